from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .exceptions import InputValidationError

# two-decimal currency semantics everywhere
MONEY_QUANT = Decimal("0.01")
QTY_QUANT = Decimal("0.0001")
ZERO = Decimal("0.00")
# money columns are max_digits=18, decimal_places=2
MAX_ABS_AMOUNT = Decimal("1e16")


def to_decimal(value, field="amount"):
    """Coerce user input (str, int, Decimal) to Decimal, never via float."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, float):
        # go through str() so 0.1 stays 0.1
        value = str(value)
    try:
        number = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InputValidationError(f"{field} must be a decimal number")
    # NaN / Infinity parse fine but break every comparison
    if not number.is_finite():
        raise InputValidationError(f"{field} must be a finite number")
    if abs(number) >= MAX_ABS_AMOUNT:
        raise InputValidationError(f"{field} is too large")
    return number


def quantize_money(value):
    try:
        return Decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InputValidationError("amount is out of range")


def quantize_qty(value):
    try:
        return Decimal(value).quantize(QTY_QUANT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InputValidationError("quantity is out of range")
