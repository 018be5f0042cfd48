import math
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from .inputs import coerce_number, to_number


class DCFComputationError(RuntimeError):
    """Raised when the DCF engine cannot build a valuation."""
    pass


class InvalidRateRelation(DCFComputationError):
    """Raised by the opt-in check when the discount rate does not exceed terminal growth."""

    def __init__(self, discount_rate: float, terminal_growth_rate: float):
        self.discount_rate = discount_rate
        self.terminal_growth_rate = terminal_growth_rate
        super().__init__(
            f"Discount rate {discount_rate!r} must exceed terminal growth rate {terminal_growth_rate!r}"
        )


@dataclass(frozen=True)
class ValuationResult:
    forecast_pv: float
    terminal_value: float
    discounted_terminal_value: float
    enterprise_value: float
    equity_value: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "dcfValue": self.forecast_pv,
            "terminalValue": self.terminal_value,
            "discountedTerminalValue": self.discounted_terminal_value,
            "enterpriseValue": self.enterprise_value,
            "equityValue": self.equity_value,
        }


@dataclass(frozen=True)
class ForecastYear:
    year: int
    cash_flow: float
    discount_factor: float
    present_value: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "year": self.year,
            "cashFlow": self.cash_flow,
            "discountFactor": self.discount_factor,
            "presentValue": self.present_value,
        }


def _divide(numerator: float, denominator: float) -> float:
    # Float division with IEEE-754 results instead of ZeroDivisionError.
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)
    return numerator / denominator


def _power(base: float, exponent: int) -> float:
    try:
        return math.pow(base, exponent)
    except OverflowError:
        if base < 0 and exponent % 2:
            return -math.inf
        return math.inf


def _require_cash_flows(cash_flows: Sequence[float]) -> List[float]:
    values = [coerce_number(cf) for cf in cash_flows]
    if not values:
        raise DCFComputationError("no_cash_flows")
    return values


def check_rate_relation(discount_rate: float, terminal_growth_rate: float) -> None:
    """Raise InvalidRateRelation unless discount_rate > terminal_growth_rate."""
    if not discount_rate > terminal_growth_rate:
        raise InvalidRateRelation(discount_rate, terminal_growth_rate)


def build_forecast_schedule(cash_flows: Sequence[float], discount_rate: float) -> List[ForecastYear]:
    values = _require_cash_flows(cash_flows)
    growth_factor = 1.0 + to_number(discount_rate)
    schedule: List[ForecastYear] = []
    for year, cash_flow in enumerate(values, start=1):
        compounding = _power(growth_factor, year)
        schedule.append(
            ForecastYear(
                year=year,
                cash_flow=cash_flow,
                discount_factor=_divide(1.0, compounding),
                present_value=_divide(cash_flow, compounding),
            )
        )
    return schedule


def compute_terminal_value(last_cash_flow: float, discount_rate: float, terminal_growth_rate: float) -> float:
    """Gordon growth terminal value at the end of the forecast horizon (undiscounted)."""
    return _divide(last_cash_flow * (1.0 + terminal_growth_rate), discount_rate - terminal_growth_rate)


def compute_valuation(
    cash_flows: Sequence[float],
    discount_rate: float,
    terminal_growth_rate: float,
    debt: float = 0.0,
    cash: float = 0.0,
) -> ValuationResult:
    """
    Value a business from explicit forecast cash flows plus a Gordon growth terminal value.

    Rates are fractions (0.10 for 10%). Cash flow i (1-based) is discounted by
    (1 + discount_rate) ** i and the terminal value by (1 + discount_rate) ** N.
    No domain validation is applied: a discount rate at or below the terminal
    growth rate produces an infinite, NaN or negative terminal value which is
    returned as computed. Only an empty cash-flow sequence is rejected.
    Cash flows, debt and cash that are not numbers are coerced to zero like form
    input; rates are converted with Number() rules, so a NaN rate yields NaN.
    """
    values = _require_cash_flows(cash_flows)
    discount_rate = to_number(discount_rate)
    terminal_growth_rate = to_number(terminal_growth_rate)

    forecast_pv = 0.0
    for year, cash_flow in enumerate(values, start=1):
        forecast_pv += _divide(cash_flow, _power(1.0 + discount_rate, year))

    horizon = len(values)
    terminal_value = compute_terminal_value(values[-1], discount_rate, terminal_growth_rate)
    discounted_terminal_value = _divide(terminal_value, _power(1.0 + discount_rate, horizon))

    enterprise_value = forecast_pv + discounted_terminal_value
    equity_value = enterprise_value - coerce_number(debt) + coerce_number(cash)

    return ValuationResult(
        forecast_pv=forecast_pv,
        terminal_value=terminal_value,
        discounted_terminal_value=discounted_terminal_value,
        enterprise_value=enterprise_value,
        equity_value=equity_value,
    )
