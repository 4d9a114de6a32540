"""Error taxonomy for invoice creation and webhook reconciliation.

Views map these to client-fault (ValidationError, NotFoundError) or
server-fault (RemoteError, PersistenceError, ConfigurationError) responses.
"""

from django.core.exceptions import ValidationError as DjangoValidationError


class FundingError(Exception):
	"""Base class for every failure surfaced by the funding core."""


class ValidationError(DjangoValidationError, FundingError):
	"""
	Malformed or out-of-range caller input. Subclasses Django's ValidationError
	so views can keep reading `.message`.
	"""


class NotFoundError(FundingError):
	"""The referenced payment does not exist. Safe on retried webhook deliveries."""


class RemoteError(FundingError):
	"""The payment processor returned a non-success or unusable response."""

	def __init__(self, message: str, status_code: int | None = None, body: str = ""):
		super().__init__(message)
		self.message = message
		self.status_code = status_code
		self.body = body


class PersistenceError(FundingError):
	"""A store operation failed. Not retried internally."""


class ConfigurationError(FundingError):
	"""Missing secret or credentials."""
