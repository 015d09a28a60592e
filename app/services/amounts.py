"""Parsing of caller-supplied amounts into Decimal."""

from decimal import Decimal, InvalidOperation
from typing import Any

from app.core.exceptions import InvalidAmountError

# Bitcoin needs 8 places. With at most 15 integer digits every balance and
# sum stays inside the 28-digit Decimal context and Decimal128 storage.
MAX_DECIMAL_PLACES = 8
MAX_INTEGER_DIGITS = 15
_SCALE = Decimal(1).scaleb(-MAX_DECIMAL_PLACES)


def parse_amount(value: Any, *, field: str = "amount", positive: bool = True) -> Decimal:
    """
    Accept JSON numbers or numeric strings. Rejects booleans, blanks, NaN and
    infinities, values finer than MAX_DECIMAL_PLACES or wider than
    MAX_INTEGER_DIGITS, and (when `positive`) anything <= 0.
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmountError(f"Invalid {field}", details={field: value})
    try:
        amount = Decimal(str(value).strip()) if not isinstance(value, Decimal) else value
    except (InvalidOperation, ValueError) as e:
        raise InvalidAmountError(f"Invalid {field}", details={field: str(value)}) from e
    if not amount.is_finite():
        raise InvalidAmountError(f"Invalid {field}", details={field: str(value)})
    if amount and amount.adjusted() >= MAX_INTEGER_DIGITS:
        raise InvalidAmountError(f"{field.replace('_', ' ').capitalize()} is too large", details={field: str(value)})
    if amount != amount.quantize(_SCALE):
        raise InvalidAmountError(
            f"{field.replace('_', ' ').capitalize()} has more than {MAX_DECIMAL_PLACES} decimal places",
            details={field: str(value)},
        )
    if positive and amount <= 0:
        raise InvalidAmountError(f"{field.replace('_', ' ').capitalize()} must be positive", details={field: str(value)})
    return amount
