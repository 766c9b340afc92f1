# accounting/services/money.py

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from accounting.services.exceptions import InvalidAmountError

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value) -> Decimal:
    """
    Normalize a monetary input to a 2dp Decimal.

    Floats are refused: amounts reach this engine already currency-normalized,
    as Decimal, int or numeric string. Sub-cent precision is refused rather
    than rounded.
    """
    if value is None or value == "":
        return ZERO

    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidAmountError(f"Floating-point amounts are not accepted: {value!r}")

    if isinstance(value, Decimal):
        amt = value
    else:
        try:
            amt = Decimal(str(value).strip())
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise InvalidAmountError(f"Invalid money value: {value!r}") from exc

    if not amt.is_finite():
        raise InvalidAmountError(f"Invalid money value: {value!r}")

    normalized = amt.quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    if normalized != amt:
        raise InvalidAmountError(f"Amounts carry at most 2 decimal places: {value!r}")
    return normalized


def q2(amount) -> Decimal:
    return (amount or ZERO).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
