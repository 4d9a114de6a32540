"""Store adapter over persisted payments and balances.

The reconciliation engine only talks to a PaymentStore. Two implementations:
- DjangoPaymentStore: ORM-backed; conditional UPDATE + select_for_update inside transaction.atomic
- InMemoryPaymentStore: dict-backed, one lock per atomic scope (tests, local runs)

conditionally_update_status is the gate for crediting: only the caller whose
UPDATE flipped the row out of `pending` may credit the balance.
"""

import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal

from django.db import DatabaseError, transaction
from django.utils import timezone

from .errors import PersistenceError
from .models import FundingPayment, PaymentStatus, UserBalance


class PaymentStore:
	"""
	Narrow interface consumed by services.create_invoice / services.reconcile.
	"""

	def atomic(self):
		raise NotImplementedError

	def create_payment(self, *, user_id, order_id, payment_id, external_txn_id, amount, currency, crypto_currency, status=PaymentStatus.PENDING):
		raise NotImplementedError

	def find_payment_by_txn_id(self, txn_id: str):
		raise NotImplementedError

	def conditionally_update_status(self, txn_id: str, new_status: str, expected: str = PaymentStatus.PENDING) -> bool:
		raise NotImplementedError

	def get_balance(self, user_id: str) -> Decimal | None:
		raise NotImplementedError

	def lock_balance(self, user_id: str) -> Decimal:
		"""Lock the user's balance for the rest of the atomic scope; absent counts as zero."""
		raise NotImplementedError

	def upsert_balance(self, user_id: str, amount: Decimal) -> None:
		raise NotImplementedError


@contextmanager
def _db_errors(operation: str):
	try:
		yield
	except DatabaseError as e:
		raise PersistenceError(f"{operation} failed: {e}") from e


class DjangoPaymentStore(PaymentStore):

	def atomic(self):
		return transaction.atomic()

	def create_payment(self, *, user_id, order_id, payment_id, external_txn_id, amount, currency, crypto_currency, status=PaymentStatus.PENDING):
		with _db_errors("create payment"), transaction.atomic():
			return FundingPayment.objects.create(
				user_id=user_id,
				order_id=order_id,
				payment_id=payment_id,
				external_txn_id=external_txn_id,
				amount=amount,
				currency=currency,
				crypto_currency=crypto_currency,
				status=status,
			)

	def find_payment_by_txn_id(self, txn_id):
		with _db_errors("find payment"):
			return FundingPayment.objects.filter(external_txn_id=txn_id).first()

	def conditionally_update_status(self, txn_id, new_status, expected=PaymentStatus.PENDING):
		# QuerySet.update bypasses auto_now, so updated_at is set explicitly
		with _db_errors("update payment status"):
			rows = FundingPayment.objects.filter(external_txn_id=txn_id, status=expected).update(
				status=new_status, updated_at=timezone.now()
			)
		return rows == 1

	def get_balance(self, user_id):
		with _db_errors("read balance"):
			row = UserBalance.objects.filter(user_id=user_id).values_list("balance", flat=True).first()
		return row

	def lock_balance(self, user_id):
		with _db_errors("lock balance"):
			ub, _ = UserBalance.objects.select_for_update().get_or_create(user_id=user_id, defaults={"balance": Decimal("0.00")})
		return ub.balance

	def upsert_balance(self, user_id, amount):
		with _db_errors("upsert balance"):
			updated = UserBalance.objects.filter(user_id=user_id).update(balance=amount, updated_at=timezone.now())
			if not updated:
				UserBalance.objects.create(user_id=user_id, balance=amount)


@dataclass
class StoredPayment:
	user_id: str
	order_id: str
	payment_id: str
	external_txn_id: str
	amount: Decimal
	currency: str
	crypto_currency: str
	status: str = PaymentStatus.PENDING
	id: uuid.UUID = field(default_factory=uuid.uuid4)
	created_at: datetime = field(default_factory=timezone.now)
	updated_at: datetime = field(default_factory=timezone.now)


@dataclass
class StoredBalance:
	user_id: str
	balance: Decimal
	updated_at: datetime = field(default_factory=timezone.now)


class InMemoryPaymentStore(PaymentStore):
	"""
	Process-local store. atomic() serializes callers on one re-entrant lock and
	restores the previous rows if the scope raises.
	"""

	def __init__(self):
		self._lock = threading.RLock()
		self._depth = 0
		self.payments: dict[str, StoredPayment] = {}
		self.balances: dict[str, StoredBalance] = {}

	@contextmanager
	def atomic(self):
		with self._lock:
			outermost = self._depth == 0
			if outermost:
				payments = {k: replace(v) for k, v in self.payments.items()}
				balances = {k: replace(v) for k, v in self.balances.items()}
			self._depth += 1
			try:
				yield
			except BaseException:
				if outermost:
					self.payments, self.balances = payments, balances
				raise
			finally:
				self._depth -= 1

	def create_payment(self, *, user_id, order_id, payment_id, external_txn_id, amount, currency, crypto_currency, status=PaymentStatus.PENDING):
		with self.atomic():
			if external_txn_id in self.payments:
				raise PersistenceError(f"create payment failed: duplicate external_txn_id {external_txn_id}")
			payment = StoredPayment(
				user_id=user_id,
				order_id=order_id,
				payment_id=payment_id,
				external_txn_id=external_txn_id,
				amount=Decimal(amount),
				currency=currency,
				crypto_currency=crypto_currency,
				status=status,
			)
			self.payments[external_txn_id] = payment
			return replace(payment)

	def find_payment_by_txn_id(self, txn_id):
		with self._lock:
			payment = self.payments.get(txn_id)
			return replace(payment) if payment else None

	def conditionally_update_status(self, txn_id, new_status, expected=PaymentStatus.PENDING):
		with self._lock:
			payment = self.payments.get(txn_id)
			if payment is None or payment.status != expected:
				return False
			payment.status = new_status
			payment.updated_at = timezone.now()
			return True

	def get_balance(self, user_id):
		with self._lock:
			row = self.balances.get(user_id)
			return row.balance if row else None

	def lock_balance(self, user_id):
		# the atomic() lock already serializes every writer
		return self.get_balance(user_id) or Decimal("0.00")

	def upsert_balance(self, user_id, amount):
		with self._lock:
			row = self.balances.get(user_id)
			if row is None:
				self.balances[user_id] = StoredBalance(user_id=user_id, balance=amount)
			else:
				row.balance = amount
				row.updated_at = timezone.now()
