"""Boundary shapes for CoinPayments payloads (webhook bodies and invoice responses)."""

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from .errors import ValidationError


class _ProviderModel(BaseModel):
	model_config = ConfigDict(extra="ignore", populate_by_name=True)


class InvoiceCustomData(_ProviderModel):
	order_id: str = Field(alias="orderId", min_length=1)
	user_id: str = Field(alias="userId", min_length=1)


class NotifiedInvoice(_ProviderModel):
	id: str = Field(min_length=1)
	state: str | None = None
	custom_data: InvoiceCustomData = Field(alias="customData")


class WebhookNotification(_ProviderModel):
	"""
	{ id: 'webhook-id', type: 'InvoicePaid', timestamp: '...', invoice: { id, state, customData: {orderId, userId} } }
	"""
	id: str | None = None
	type: str | None = None
	timestamp: str | None = None
	invoice: NotifiedInvoice

	@classmethod
	def parse(cls, payload) -> "WebhookNotification":
		if not isinstance(payload, dict):
			raise ValidationError("Invalid webhook data")
		try:
			return cls.model_validate(payload)
		except PydanticValidationError as e:
			first = e.errors()[0]
			field = ".".join(str(loc) for loc in first.get("loc", ()))
			raise ValidationError(f"Invalid webhook data: {field or 'body'} {first.get('msg', 'invalid')}") from e


class CreatedInvoice(_ProviderModel):
	id: str = Field(min_length=1)
	link: str | None = None
	checkout_link: str | None = Field(default=None, alias="checkoutLink")

	@property
	def navigation_link(self) -> str | None:
		# dashboard link first; checkoutLink depends on host configuration on the processor side
		return self.link or self.checkout_link


class CreateInvoiceResponse(_ProviderModel):
	invoices: list[CreatedInvoice] = Field(default_factory=list)
