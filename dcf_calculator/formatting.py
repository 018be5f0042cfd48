import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

from .valuation import ValuationResult


def to_fixed(value: float, digits: int = 2) -> str:
    """Render like JavaScript's Number.prototype.toFixed."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if abs(value) >= 1e21:
        return repr(float(value))
    if value == 0:
        value = 0.0
    quantum = Decimal(1).scaleb(-digits)
    # Decimal(value) is the exact binary value, so 1.005 stays below the midpoint.
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def format_currency(value: float, symbol: str = "$") -> str:
    return f"{symbol}{to_fixed(value)}"


def format_result(result: ValuationResult, symbol: str = "$") -> Dict[str, str]:
    return {key: format_currency(value, symbol) for key, value in result.to_dict().items()}


def clean_number(value: Optional[float]) -> Optional[float]:
    # JSON responses reject NaN and Infinity, so non-finite values become null.
    if value is None:
        return None
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(numeric):
        return None
    return numeric


def clean_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {key: clean_number(value) if isinstance(value, float) else value for key, value in payload.items()}
