"""CoinPayments V2 request signing.

signature = base64(HMAC-SHA256(secret, BOM + method + url + clientId + timestamp + body))

The same scheme authenticates inbound webhook deliveries.
"""

import base64
import hashlib
import hmac

from ..errors import ConfigurationError

BOM = "\ufeff"


class Signer:
	"""
	Pure HMAC signer; the secret never leaves this object.
	"""

	def __init__(self, secret: str):
		if not secret:
			raise ConfigurationError("CoinPayments client secret is not configured")
		self._key = secret.encode("utf-8")

	@staticmethod
	def message(method: str, url: str, client_id: str, timestamp: str, body: str) -> str:
		return f"{BOM}{method}{url}{client_id}{timestamp}{body}"

	def sign(self, method: str, url: str, client_id: str, timestamp: str, body: str) -> str:
		mac = hmac.new(key=self._key, msg=self.message(method, url, client_id, timestamp, body).encode("utf-8"), digestmod=hashlib.sha256)
		return base64.b64encode(mac.digest()).decode("ascii")

	def verify(self, signature: str, method: str, url: str, client_id: str, timestamp: str, body: str) -> bool:
		if not signature:
			return False
		expected = self.sign(method, url, client_id, timestamp, body)
		return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))
