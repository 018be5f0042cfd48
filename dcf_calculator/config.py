import logging
import math
import os
from typing import List


logger = logging.getLogger(__name__)


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default
    if value < minimum:
        logger.warning("Ignoring %s=%s below minimum %s; using %s", name, value, minimum, default)
        return default
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default
    if not math.isfinite(value):
        return default
    return value


def _parse_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


ALLOWED_ORIGINS = _parse_origins(
    os.environ.get(
        "ALLOWED_ORIGINS",
        "http://localhost:5173,http://localhost:8000,http://127.0.0.1:5173,http://127.0.0.1:8000",
    )
)
FORECAST_YEARS = _env_int("DCF_FORECAST_YEARS", 5)
DEFAULT_DISCOUNT_RATE_PCT = _env_float("DCF_DEFAULT_DISCOUNT_RATE", 10.0)
DEFAULT_TERMINAL_GROWTH_PCT = _env_float("DCF_DEFAULT_TERMINAL_GROWTH", 2.0)
CURRENCY_SYMBOL = os.environ.get("DCF_CURRENCY_SYMBOL", "$")
