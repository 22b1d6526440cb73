# kontrak/domain/money.py
from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, Decimal]


class MoneyError(ValueError):
    """Raised when an amount cannot be formatted."""


# id-ID currency style: symbol and digits joined by a no-break space.
IDR_PREFIX = "Rp\u00a0"

# Leading numeric prefix of a free-form amount field:
#   "1500000"      -> 1500000
#   "  12.5 juta"  -> 12.5
#   ".5"           -> 0.5
#   "abc"          -> no match
_LEADING_NUMBER_RE = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_amount(raw: object) -> float:
    """
    Coerce a client-supplied amount into a float, falling back to 0.0.

    Ints and floats pass through, strings are read up to the first
    non-numeric character, everything else (None, lists, NaN, infinities,
    booleans) is 0.0.
    """
    if isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float, Decimal)):
        value = float(raw)
    elif isinstance(raw, str):
        m = _LEADING_NUMBER_RE.match(raw)
        if not m:
            return 0.0
        value = float(m.group(1))
    else:
        return 0.0

    if math.isnan(value) or math.isinf(value):
        return 0.0
    return value


def _group_thousands(digits: str) -> str:
    groups = []
    while len(digits) > 3:
        groups.append(digits[-3:])
        digits = digits[:-3]
    groups.append(digits)
    return ".".join(reversed(groups))


def format_idr(amount: Number) -> str:
    """
    Format an amount as Indonesian rupiah with no fractional digits.

      1500000  -> "Rp\u00a01.500.000"
      999.5    -> "Rp\u00a01.000"
      -2500    -> "-Rp\u00a02.500"
    """
    if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)):
        raise MoneyError("amount must be a number")
    exact = Decimal(str(amount))
    if not exact.is_finite():
        raise MoneyError(f"amount is not finite: {amount!r}")
    try:
        value = exact.quantize(Decimal(1), rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise MoneyError(f"amount is out of range: {amount!r}") from e

    sign = "-" if value < 0 else ""
    return f"{sign}{IDR_PREFIX}{_group_thousands(str(abs(int(value))))}"
