import html
import logging
import math
from typing import Any, Dict, List, Optional, Sequence

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field

from .config import (
    ALLOWED_ORIGINS,
    CURRENCY_SYMBOL,
    DEFAULT_DISCOUNT_RATE_PCT,
    DEFAULT_TERMINAL_GROWTH_PCT,
    FORECAST_YEARS,
)
from .formatting import clean_number, clean_payload, format_currency, format_result, to_fixed
from .inputs import ValuationInput, parse_valuation_input
from .valuation import (
    DCFComputationError,
    ForecastYear,
    InvalidRateRelation,
    ValuationResult,
    build_forecast_schedule,
    check_rate_relation,
    compute_valuation,
)

logger = logging.getLogger(__name__)


app = FastAPI(title="DCF Enterprise Value Calculator")

# Allow a separately hosted frontend to call the JSON API
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ValuationRequest(BaseModel):
    """Raw calculator fields. Rates are percentages; every field is coerced, never rejected."""

    cashFlows: List[Any] = Field(default_factory=list)
    discountRate: Any = DEFAULT_DISCOUNT_RATE_PCT
    terminalGrowthRate: Any = DEFAULT_TERMINAL_GROWTH_PCT
    debt: Any = 0
    cash: Any = 0


def _rate_warnings(inputs: ValuationInput, result: ValuationResult) -> List[str]:
    warnings: List[str] = []
    if not inputs.discount_rate > inputs.terminal_growth_rate:
        warnings.append("discount_rate_not_above_growth")
    if not all(math.isfinite(value) for value in result.to_dict().values()):
        warnings.append("non_finite_result")
    return warnings


def _value(inputs: ValuationInput):
    result = compute_valuation(
        inputs.cash_flows,
        inputs.discount_rate,
        inputs.terminal_growth_rate,
        inputs.debt,
        inputs.cash,
    )
    schedule = build_forecast_schedule(inputs.cash_flows, inputs.discount_rate)
    warnings = _rate_warnings(inputs, result)
    if warnings:
        logger.warning(
            "Degenerate valuation (wacc=%s, g=%s): %s",
            inputs.discount_rate,
            inputs.terminal_growth_rate,
            ",".join(warnings),
        )
    return result, schedule, warnings


def _defaults() -> Dict[str, Any]:
    return {
        "forecastYears": FORECAST_YEARS,
        "cashFlows": [""] * FORECAST_YEARS,
        "discountRate": DEFAULT_DISCOUNT_RATE_PCT,
        "terminalGrowthRate": DEFAULT_TERMINAL_GROWTH_PCT,
        "debt": 0,
        "cash": 0,
        "currencySymbol": CURRENCY_SYMBOL,
    }


def _input(name: str, value: Any, step: Optional[str] = None, placeholder: str = "0") -> str:
    step_attr = f' step="{step}"' if step else ""
    return (
        f'<input type="number" name="{name}" value="{html.escape(str(value), quote=True)}"'
        f'{step_attr} placeholder="{placeholder}">'
    )


def render_page(
    fields: Dict[str, Any],
    result: Optional[ValuationResult] = None,
    schedule: Optional[Sequence[ForecastYear]] = None,
    warnings: Optional[Sequence[str]] = None,
) -> str:
    symbol = html.escape(CURRENCY_SYMBOL)
    cash_flow_cells = "".join(
        f"<label>Year {idx}{_input('cashFlow', value)}</label>"
        for idx, value in enumerate(fields["cashFlows"], start=1)
    )
    results_html = ""
    if result is not None:
        display = format_result(result, CURRENCY_SYMBOL)
        rows = [
            ("PV of Forecast Period", display["dcfValue"], False),
            ("Terminal Value", display["terminalValue"], False),
            ("PV of Terminal Value", display["discountedTerminalValue"], False),
            ("Enterprise Value", display["enterpriseValue"], True),
            ("Equity Value", display["equityValue"], True),
        ]
        summary = "".join(
            f"<tr><td>{label}</td><td>{'<strong>' if bold else ''}{html.escape(text)}"
            f"{'</strong>' if bold else ''}</td></tr>"
            for label, text, bold in rows
        )
        schedule_rows = "".join(
            f"<tr><td>{row.year}</td><td>{html.escape(format_currency(row.cash_flow, CURRENCY_SYMBOL))}</td>"
            f"<td>{to_fixed(row.discount_factor, 4)}</td>"
            f"<td>{html.escape(format_currency(row.present_value, CURRENCY_SYMBOL))}</td></tr>"
            for row in schedule or []
        )
        warning_html = ""
        if warnings and "discount_rate_not_above_growth" in warnings:
            warning_html = (
                '<p class="warning">Discount rate should exceed the terminal growth rate; '
                "terminal value is not meaningful.</p>"
            )
        results_html = f"""
        <section class="results">
          <h3>Results</h3>
          {warning_html}
          <table>{summary}</table>
          <h4>Forecast schedule</h4>
          <table>
            <tr><th>Year</th><th>Cash flow</th><th>Discount factor</th><th>Present value</th></tr>
            {schedule_rows}
          </table>
        </section>
        """
    return f"""
    <html>
      <head>
        <title>DCF Enterprise Value Calculator</title>
        <style>
          body {{ font-family: Arial, sans-serif; margin: 2rem auto; max-width: 42rem; }}
          label {{ display: inline-block; margin: 0 0.5rem 0.75rem 0; }}
          input {{ display: block; width: 7rem; padding: 0.3rem; }}
          table {{ border-collapse: collapse; width: 100%; margin-bottom: 1rem; }}
          td, th {{ border: 1px solid #ccc; padding: 0.4rem; text-align: left; }}
          .warning {{ color: #a33; }}
        </style>
      </head>
      <body>
        <h1>DCF Enterprise Value Calculator</h1>
        <form method="get" action="/calculate">
          <h2>Projected Free Cash Flows ({symbol})</h2>
          <div>{cash_flow_cells}</div>
          <label>Discount Rate (WACC) %{_input('discountRate', fields['discountRate'], step='0.1')}</label>
          <label>Terminal Growth Rate %{_input('terminalGrowthRate', fields['terminalGrowthRate'], step='0.1')}</label>
          <br>
          <label>Outstanding Debt{_input('debt', fields['debt'])}</label>
          <label>Cash &amp; Equivalents{_input('cash', fields['cash'])}</label>
          <br>
          <button type="submit">Calculate Enterprise Value</button>
        </form>
        {results_html}
      </body>
    </html>
    """


@app.get("/", response_class=HTMLResponse)
async def root() -> HTMLResponse:
    return HTMLResponse(content=render_page(_defaults()))


@app.get("/calculate", response_class=HTMLResponse)
async def calculate_form(request: Request) -> HTMLResponse:
    params = request.query_params
    fields = _defaults()
    cash_flows = params.getlist("cashFlow")
    if cash_flows:
        fields["cashFlows"] = cash_flows
    for name in ("discountRate", "terminalGrowthRate", "debt", "cash"):
        if name in params:
            fields[name] = params[name]

    inputs = parse_valuation_input(
        fields["cashFlows"],
        fields["discountRate"],
        fields["terminalGrowthRate"],
        fields["debt"],
        fields["cash"],
    )
    result, schedule, warnings = _value(inputs)
    return HTMLResponse(content=render_page(fields, result, schedule, warnings))


@app.get("/api/defaults")
async def get_defaults() -> Dict[str, Any]:
    return _defaults()


@app.post("/api/valuation")
async def calculate_valuation(payload: ValuationRequest, strict: bool = False) -> Dict[str, Any]:
    if not payload.cashFlows:
        raise HTTPException(
            status_code=400,
            detail={"error": "no_cash_flows", "message": "At least one forecast cash flow is required."},
        )
    inputs = parse_valuation_input(
        payload.cashFlows,
        payload.discountRate,
        payload.terminalGrowthRate,
        payload.debt,
        payload.cash,
    )

    if strict:
        try:
            check_rate_relation(inputs.discount_rate, inputs.terminal_growth_rate)
        except InvalidRateRelation as exc:
            logger.info("Rejected valuation in strict mode: %s", exc)
            raise HTTPException(
                status_code=422,
                detail={"error": "invalid_rate_relation", "message": str(exc)},
            )

    try:
        result, schedule, warnings = _value(inputs)
    except DCFComputationError as exc:
        logger.warning("Valuation unavailable: %s", exc)
        raise HTTPException(status_code=400, detail={"error": "valuation_unavailable", "message": str(exc)})

    input_payload = inputs.to_dict()
    input_payload["cashFlows"] = [clean_number(value) for value in inputs.cash_flows]
    return {
        "inputs": clean_payload(input_payload),
        "result": clean_payload(result.to_dict()),
        "display": format_result(result, CURRENCY_SYMBOL),
        "forecast": [clean_payload(row.to_dict()) for row in schedule],
        "warnings": warnings,
    }
