from __future__ import annotations

import re
from decimal import Decimal, localcontext
from typing import Union

# Fixed precision of Contribution.amount_decimal and snapshot amounts.
CANONICAL_PLACES = 18
MAX_TOKEN_DECIMALS = 36

_AMOUNT_RE = re.compile(r"^(\d*)(?:\.(\d*))?$")


class AmountParseError(ValueError):
    pass


def _split(amount: Union[str, int, Decimal]) -> tuple[str, str]:
    if isinstance(amount, Decimal):
        if not amount.is_finite():
            raise AmountParseError("Amount must be finite.")
        amount = format(amount, "f")
    s = str(amount).strip()
    m = _AMOUNT_RE.match(s)
    if not m or not (m.group(1) or m.group(2)):
        raise AmountParseError(f"Not a non-negative decimal amount: {s!r}")
    return m.group(1) or "0", m.group(2) or ""


def raw_from_human(
    amount: Union[str, int, Decimal], decimals: int, *, truncate: bool = False
) -> int:
    """
    "1.5" with 6 decimals -> 1500000.

    Fractional digits beyond `decimals` are an error unless `truncate`
    is set, in which case they are dropped (floor).
    """
    if decimals < 0 or decimals > MAX_TOKEN_DECIMALS:
        raise AmountParseError(f"Unsupported decimals: {decimals}")

    whole, frac = _split(amount)
    frac = frac.rstrip("0")
    if len(frac) > decimals:
        if not truncate:
            raise AmountParseError(
                f"Amount has more than {decimals} fractional digits."
            )
        frac = frac[:decimals]

    return int(whole) * 10**decimals + int(frac.ljust(decimals, "0") or "0")


def human_from_raw(raw: Union[int, str], decimals: int) -> str:
    value = int(raw)
    if value < 0:
        raise AmountParseError("Raw amount must be non-negative.")
    whole, frac = divmod(value, 10**decimals)
    if decimals == 0:
        return str(whole)
    return f"{whole}.{frac:0{decimals}d}"


def canonical_amount(amount: Union[str, int, Decimal]) -> str:
    # "100" -> "100.000000000000000000"
    return human_from_raw(raw_from_human(amount, CANONICAL_PLACES), CANONICAL_PLACES)


def floor_whole_units(amount: Union[str, Decimal, None]) -> int:
    """Integer part of a decimal total. Never rounds up."""
    if amount is None:
        return 0
    whole, _ = _split(amount)
    return int(whole)


def sum_amounts(values) -> Decimal:
    total = Decimal(0)
    with localcontext() as ctx:
        ctx.prec = 96
        for v in values:
            if v:
                total += Decimal(v)
    return total
