import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple


logger = logging.getLogger(__name__)

# Numeric literal read by parseFloat (as a prefix) and Number() (whole string).
_NUMERIC_PREFIX_RE = re.compile(r"[+-]?(?:Infinity|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)")
_RADIX_INT_RE = re.compile(r"0(?:[xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)")


@dataclass(frozen=True)
class ValuationInput:
    cash_flows: Tuple[float, ...]
    discount_rate: float
    terminal_growth_rate: float
    debt: float = 0.0
    cash: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cashFlows": list(self.cash_flows),
            "discountRate": self.discount_rate,
            "terminalGrowthRate": self.terminal_growth_rate,
            "debt": self.debt,
            "cash": self.cash,
        }


def _parse_prefix(raw: str) -> Optional[float]:
    match = _NUMERIC_PREFIX_RE.match(raw.lstrip())
    if not match:
        return None
    return float(match.group(0))


def coerce_number(value: Any) -> float:
    """
    Coerce a raw field value to a float the way a lenient form does.

    Blank, missing or unparsable values (and NaN) become 0.0. Strings are read
    from their leading numeric prefix, so "12abc" is 12.0 and "1e3" is 1000.0.
    Infinity is kept.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        try:
            numeric = float(value)
        except OverflowError:
            numeric = math.inf if value > 0 else -math.inf
    else:
        numeric = _parse_prefix(str(value))
        if numeric is None:
            return 0.0
    if math.isnan(numeric) or numeric == 0:
        return 0.0
    return numeric


def to_number(value: Any) -> float:
    """
    Convert a rate field the way a browser's Number() does.

    Blank strings and None are 0.0, but text that is not entirely numeric
    is NaN rather than zero, so an invalid rate propagates into the result.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
    text = str(value).strip()
    if not text:
        return 0.0
    if _NUMERIC_PREFIX_RE.fullmatch(text):
        return float(text)
    if _RADIX_INT_RE.fullmatch(text):
        try:
            return float(int(text, 0))
        except OverflowError:
            return math.inf
    return math.nan


def percent_to_fraction(value: Any) -> float:
    return to_number(value) / 100.0


def _is_blank_or_invalid(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return True
    if isinstance(value, (int, float)):
        return isinstance(value, float) and math.isnan(value)
    return _parse_prefix(str(value)) is None


def parse_valuation_input(
    cash_flows: Iterable[Any],
    discount_rate_pct: Any,
    terminal_growth_rate_pct: Any,
    debt: Any = 0,
    cash: Any = 0,
) -> ValuationInput:
    """Turn raw form values (rates in percent) into engine arguments (rates as fractions)."""
    raw_flows = list(cash_flows)
    coerced = [idx for idx, value in enumerate(raw_flows, start=1) if _is_blank_or_invalid(value)]
    if coerced:
        logger.debug("Cash flows for years %s coerced to zero", coerced)
    for name, value in (("debt", debt), ("cash", cash)):
        if _is_blank_or_invalid(value):
            logger.debug("Field %s=%r coerced to zero", name, value)

    discount_rate = percent_to_fraction(discount_rate_pct)
    terminal_growth_rate = percent_to_fraction(terminal_growth_rate_pct)
    for name, value, rate in (
        ("discountRate", discount_rate_pct, discount_rate),
        ("terminalGrowthRate", terminal_growth_rate_pct, terminal_growth_rate),
    ):
        if math.isnan(rate):
            logger.debug("Field %s=%r is not a number", name, value)

    return ValuationInput(
        cash_flows=tuple(coerce_number(value) for value in raw_flows),
        discount_rate=discount_rate,
        terminal_growth_rate=terminal_growth_rate,
        debt=coerce_number(debt),
        cash=coerce_number(cash),
    )
