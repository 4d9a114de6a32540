"""Database models for the funding gateway.

Tables:
- PaymentStatus: pending -> completed | failed (terminal)
- FundingPayment: one row per CoinPayments invoice; external_txn_id is unique to prevent double-credit
- UserBalance: spendable balance per user, credited once per completed payment
"""

import uuid
from decimal import Decimal
from django.db import models


class PaymentStatus(models.TextChoices):
	PENDING = "pending", "Pending"
	COMPLETED = "completed", "Completed"
	FAILED = "failed", "Failed"


TERMINAL_STATUSES = frozenset({PaymentStatus.COMPLETED.value, PaymentStatus.FAILED.value})


class FundingPayment(models.Model):
	"""
	A single funding attempt backed by a processor invoice.

	Created once at invoice time and never deleted; only `status` moves afterwards.
	"""
	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	user_id = models.CharField(max_length=128, db_index=True)
	order_id = models.CharField(max_length=128)
	payment_id = models.CharField(max_length=128)
	external_txn_id = models.CharField(max_length=128, unique=True) # CoinPayments invoice id
	amount = models.DecimalField(max_digits=18, decimal_places=2)
	currency = models.CharField(max_length=8, default="USD")
	crypto_currency = models.CharField(max_length=32)
	status = models.CharField(max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		db_table = "funding_payments"

	def __str__(self):
		return f"FundingPayment {self.external_txn_id} ({self.status})"


class UserBalance(models.Model):
	"""
	Spendable balance per user. Created lazily on first credit.
	"""
	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	user_id = models.CharField(max_length=128, unique=True)
	balance = models.DecimalField(max_digits=20, decimal_places=2, default=Decimal("0.00"))
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		db_table = "user_balance"
