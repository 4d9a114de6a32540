"""Amount helpers shared across the funding flow.


- Funding amounts are USD Decimals with at most cent precision.
- parse_funding_amount validates caller input against the configured range.
"""

from decimal import Decimal, InvalidOperation

from .errors import ValidationError

CENT = Decimal("0.01")
MIN_FUNDING_AMOUNT = Decimal("10")
MAX_FUNDING_AMOUNT = Decimal("10000")


def to_decimal(amount: str | int | float | Decimal) -> Decimal:
    """
    Coerce str/int/float/Decimal to an exact Decimal (float goes through str to avoid binary noise)
    """
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Invalid amount: not a number")
    if not value.is_finite():
        raise ValidationError("Invalid amount: not a finite number")
    return value


def parse_funding_amount(amount, minimum: Decimal = MIN_FUNDING_AMOUNT, maximum: Decimal = MAX_FUNDING_AMOUNT) -> Decimal:
    """
    Parse a funding request amount; inclusive [minimum, maximum] in USD.

    The range is checked on the value as given. Sub-cent input is rejected
    rather than rounded, so the invoiced amount is always what was asked for.
    """
    if amount is None or isinstance(amount, bool) or (isinstance(amount, str) and not amount.strip()):
        raise ValidationError("Missing required fields")
    value = to_decimal(amount)
    if value < minimum or value > maximum:
        raise ValidationError(f"Invalid amount. Must be between ${minimum} and ${maximum:,}")
    if value != value.quantize(CENT):
        raise ValidationError("Invalid amount: at most 2 decimal places")
    return value.quantize(CENT)


def format_amount(amount: Decimal) -> str:
    """Plain decimal string for provider payloads (no exponent, cents kept)."""
    return f"{amount:f}"
