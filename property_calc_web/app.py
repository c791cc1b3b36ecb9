import os
from functools import lru_cache
from typing import Optional, Tuple
from uuid import uuid4

from flask import Flask, jsonify, redirect, render_template, request, session, url_for

from property_calc.amortization import calculate_repayment, generate_schedule
from property_calc.constants import payments_per_year
from property_calc.inputs import (
    mortgage_from_dict,
    portfolio_from_dict,
    property_from_dict,
    read_fields,
    schedule_from_dict,
    to_jsonable,
)
from property_calc.projection import (
    aggregate_by_year,
    calculate_lvr,
    calculate_tax,
    compare_scenarios,
    compare_to_baseline,
    compare_with_shares,
    project,
    project_portfolio,
)
from property_calc.data_models import PropertyConfig, Region
from property_calc.tax_tables import marginal_rate
from property_calc.validation import ValidationError
from property_calc_web.scenario_store import create_store_from_env

app = Flask(__name__)
app.config["ASSET_VERSION"] = os.environ.get("ASSET_VERSION", "1")
app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
scenario_store = create_store_from_env(
    os.environ.get("SCENARIO_DATABASE_URL"),
    max_per_user=int(os.environ.get("SCENARIO_MAX_PER_USER", "10")),
)

CACHE_SIZE = int(os.environ.get("PROJECTION_CACHE_SIZE", "256"))
MAX_PREVIEW_ROWS = 120


# Engine inputs are frozen dataclasses and tuples, so identical requests
# share one computation.
@lru_cache(maxsize=CACHE_SIZE)
def cached_schedule(loan, extras, lumps, forecasts, offset):
    return generate_schedule(loan, extras, lumps, forecasts, offset)


@lru_cache(maxsize=CACHE_SIZE)
def cached_projection(config: PropertyConfig, years: Optional[int]):
    return project(config, years)


@lru_cache(maxsize=CACHE_SIZE)
def cached_portfolio(properties: Tuple[PropertyConfig, ...], start_year: int, end_year: int, tax_rate):
    return project_portfolio(properties, start_year, end_year, tax_rate)


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _json_body():
    data = request.get_json(silent=True)
    return {} if data is None else data


def _optional_years(data) -> Optional[int]:
    return read_fields(data, {"years": ("int", None)})["years"]


@app.errorhandler(ValidationError)
def handle_validation_error(exc: ValidationError):
    app.logger.info("Rejected request to %s: %s", request.path, exc.errors)
    return jsonify({"errors": exc.errors}), 400


@app.get("/health")
def health():
    return jsonify({"status": "ok"})


@app.post("/api/repayment")
def api_repayment():
    loan = mortgage_from_dict(_json_body())
    return jsonify(
        {
            "repayment": calculate_repayment(loan),
            "frequency": loan.frequency.value,
            "payments_per_year": payments_per_year(loan.frequency),
        }
    )


@app.post("/api/schedule")
def api_schedule():
    schedule = cached_schedule(*schedule_from_dict(_json_body()))
    payload = to_jsonable(schedule)
    payload["periods"] = schedule.periods
    payload["final_balance"] = schedule.final_balance
    return jsonify(payload)


@app.post("/api/projection")
def api_projection():
    data = _json_body()
    config = property_from_dict(data)
    years = _optional_years(data)
    rows = cached_projection(config, years)
    return jsonify(
        {
            "periods": to_jsonable(rows),
            "years": to_jsonable(aggregate_by_year(rows)),
            "savings": to_jsonable(compare_to_baseline(config, years)),
        }
    )


@app.post("/api/portfolio")
def api_portfolio():
    data = _json_body()
    properties, start_year, end_year, tax_rate = portfolio_from_dict(data)
    years = cached_portfolio(tuple(properties), start_year, end_year, tax_rate)
    payload = {"years": to_jsonable(years)}
    shares_return = read_fields(data, {"shares_return": ("percent", None)})["shares_return"]
    if shares_return is not None:
        payload["shares"] = to_jsonable(compare_with_shares(years, shares_return))
    return jsonify(payload)


@app.post("/api/compare")
def api_compare():
    data = _json_body()
    errors = {}
    loans = []
    for key in ("scenario1", "scenario2"):
        try:
            loans.append(mortgage_from_dict((data.get(key) if isinstance(data, dict) else None) or {}))
        except ValidationError as exc:
            errors.update({f"{key}.{name}": message for name, message in exc.errors.items()})
    if errors:
        raise ValidationError(errors)
    return jsonify(to_jsonable(compare_scenarios(*loans)))


@app.post("/api/lvr")
def api_lvr():
    values = read_fields(
        _json_body(),
        {"loan_amount": ("dollars", ...), "property_value": ("dollars", ...), "region": ("region", Region.AU)},
    )
    return jsonify(to_jsonable(calculate_lvr(values["loan_amount"], values["property_value"], values["region"])))


@app.post("/api/tax")
def api_tax():
    values = read_fields(
        _json_body(),
        {
            "rental_income": ("dollars", ...),
            "expenses": ("dollars", 0),
            "loan_interest": ("dollars", 0),
            "depreciation": ("dollars", 0),
            "marginal_rate": ("percent", None),
            "taxable_income": ("dollars", None),
        },
    )
    rate = values["marginal_rate"]
    if rate is None:
        if values["taxable_income"] is None:
            raise ValidationError({"marginal_rate": "marginal_rate or taxable_income is required"})
        rate = marginal_rate(values["taxable_income"])
    result = calculate_tax(
        values["rental_income"], values["expenses"], values["loan_interest"], values["depreciation"], rate
    )
    return jsonify(to_jsonable(result))


def _form_to_inputs(form) -> dict:
    """Collect the calculator form into the JSON shape ``property_from_dict`` reads."""
    loan = {
        name: form.get(name, "").strip()
        for name in ("principal", "rate", "term_years", "structure", "frequency", "region", "start_date", "io_years")
    }
    inputs = {
        name: form.get(name, "").strip()
        for name in ("name", "property_value", "growth_rate", "rental_income", "expenses", "offset_balance")
    }
    inputs["loan"] = loan
    return inputs


def _summarize(inputs: dict) -> dict:
    config = property_from_dict(inputs)
    rows = cached_projection(config, None)
    years = aggregate_by_year(rows)
    last = rows[-1] if rows else None
    return {
        "repayment": calculate_repayment(config.loan),
        "total_interest": sum(row.interest for row in rows),
        "periods": len(rows),
        "final_value": last.property_value if last else config.property_value,
        "final_equity": last.equity if last else config.property_value,
        "years": years,
    }


def _serialize_years(years):
    """Convert yearly summaries into dictionaries for charts."""
    return [
        {
            "year": summary.year,
            "balance": summary.end_balance,
            "value": summary.end_property_value,
            "equity": summary.end_equity,
            "cashflow": summary.net_cashflow,
        }
        for summary in years
    ]


@app.route("/", methods=["GET", "POST"])
def index():
    summary = None
    error = None
    inputs = None
    action = "run"

    user_token = _ensure_user_token()

    if request.method == "POST":
        action = request.form.get("action", "run")
        inputs = _form_to_inputs(request.form)
        try:
            summary = _summarize(inputs)
            if action == "save":
                name = request.form.get("scenario_name", "").strip() or inputs.get("name") or "Scenario"
                scenario_store.add_scenario(user_token, uuid4().hex, name, inputs)
        except ValidationError as exc:
            error = str(exc)
    elif request.args.get("scenario"):
        scenario = scenario_store.get_scenario(user_token, request.args["scenario"])
        if scenario is None:
            error = "Saved scenario not found."
        else:
            inputs = scenario["inputs"]
            try:
                summary = _summarize(inputs)
            except ValidationError as exc:
                error = str(exc)

    saved = []
    for scenario in scenario_store.list_scenarios(user_token):
        try:
            scenario["summary"] = _summarize(scenario["inputs"])
        except ValidationError as exc:
            app.logger.warning("Saved scenario %s no longer validates: %s", scenario["id"], exc)
            scenario["summary"] = None
        saved.append(scenario)

    return render_template(
        "index.html",
        inputs=inputs or {},
        summary=summary,
        years=summary["years"][:MAX_PREVIEW_ROWS] if summary else [],
        chart_payload=_serialize_years(summary["years"]) if summary else [],
        error=error,
        saved_scenarios=saved,
        asset_version=app.config["ASSET_VERSION"],
        last_action=action,
    )


@app.post("/scenarios/remove")
def remove_scenario():
    scenario_id = request.form.get("scenario_id")
    user_token = session.get("user_token")
    scenario_store.remove_scenario(user_token, scenario_id)
    return redirect(url_for("index"))


@app.post("/scenarios/clear")
def clear_scenarios():
    user_token = session.get("user_token")
    scenario_store.clear_scenarios(user_token)
    return redirect(url_for("index"))


if __name__ == "__main__":
    app.logger.info("Starting property calculator web app")
    app.run(host="0.0.0.0", port=8710, debug=True)
