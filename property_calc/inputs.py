"""Conversion between external representations and engine types.

Requests arrive as JSON documents or command-line strings expressed in
dollars and percentages. This module turns them into the frozen engine
inputs (cents and basis points) and turns engine results back into plain
JSON-serializable structures.
"""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from .data_models import (
    DEFAULT_GROWTH_RATE_BPS,
    ExtraPayment,
    Frequency,
    LoanStructure,
    LumpSum,
    MortgageInput,
    PropertyConfig,
    RateForecast,
    Region,
)
from .units import dollars_to_cents, percent_to_bps
from .utils import decimal_from_str, parse_date
from .validation import ValidationError

_MISSING = object()


def parse_enum(enum_type: Type[Enum], value: Any) -> Enum:
    """Look up an enum member by value or name, ignoring case."""
    if isinstance(value, enum_type):
        return value
    text = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    for member in enum_type:
        if text in (member.value.lower(), member.name.lower()):
            return member
    allowed = ", ".join(member.value for member in enum_type)
    raise ValueError(f"must be one of {allowed}")


def _dollars(value: Any) -> int:
    return dollars_to_cents(decimal_from_str(str(value)))


def _percent(value: Any) -> int:
    return percent_to_bps(decimal_from_str(str(value)))


def _date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return parse_date(str(value))


class _Reader:
    """Reads fields from a mapping, collecting conversion errors by name."""

    def __init__(self, errors: Dict[str, str], data: Mapping[str, Any], prefix: str = "") -> None:
        if not isinstance(data, Mapping):
            errors[prefix.rstrip(".") or "body"] = "must be an object"
            data = {}
        self.errors = errors
        self.data = data
        self.prefix = prefix

    def get(self, name: str, convert: Callable[[Any], Any], default: Any = _MISSING) -> Any:
        value = self.data.get(name)
        if value is None or value == "":
            if default is _MISSING:
                self.errors.setdefault(self.prefix + name, "is required")
            return None if default is _MISSING else default
        try:
            return convert(value)
        except (ValueError, TypeError, ArithmeticError) as exc:
            self.errors.setdefault(self.prefix + name, str(exc) or "is invalid")
            return None if default is _MISSING else default

    def items(self, name: str) -> List[Any]:
        value = self.data.get(name) or []
        if not isinstance(value, list):
            self.errors.setdefault(self.prefix + name, "must be a list")
            return []
        return value


def _read_mortgage(errors: Dict[str, str], data: Mapping[str, Any], prefix: str = "") -> Optional[MortgageInput]:
    reader = _Reader(errors, data, prefix)
    principal = reader.get("principal", _dollars)
    rate = reader.get("rate", _percent)
    term_years = reader.get("term_years", int)
    structure = reader.get(
        "structure", lambda v: parse_enum(LoanStructure, v), LoanStructure.PRINCIPAL_AND_INTEREST
    )
    frequency = reader.get("frequency", lambda v: parse_enum(Frequency, v), Frequency.MONTHLY)
    region = reader.get("region", lambda v: parse_enum(Region, v), Region.AU)
    start_date = reader.get("start_date", _date, None)
    io_years = reader.get("io_years", int, 0)
    if principal is None or rate is None or term_years is None:
        return None
    extra: Dict[str, Any] = {}
    if start_date is not None:
        extra["start_date"] = start_date
    return MortgageInput(
        principal=principal,
        annual_rate=rate,
        term_years=term_years,
        structure=structure,
        frequency=frequency,
        region=region,
        io_years=io_years,
        **extra,
    )


def _read_forecasts(errors: Dict[str, str], items: Sequence[Any], name: str) -> Tuple[RateForecast, ...]:
    forecasts = []
    for index, item in enumerate(items):
        reader = _Reader(errors, item, f"{name}[{index}].")
        year = reader.get("year", int)
        rate = reader.get("rate", _percent)
        if year is not None and rate is not None:
            forecasts.append(RateForecast(year=year, rate=rate))
    return tuple(forecasts)


def _read_extras(errors: Dict[str, str], items: Sequence[Any], name: str) -> Tuple[ExtraPayment, ...]:
    extras = []
    for index, item in enumerate(items):
        reader = _Reader(errors, item, f"{name}[{index}].")
        amount = reader.get("amount", _dollars)
        frequency = reader.get("frequency", lambda v: parse_enum(Frequency, v), Frequency.MONTHLY)
        start_date = reader.get("start_date", _date)
        end_date = reader.get("end_date", _date, None)
        if amount is not None and start_date is not None:
            extras.append(ExtraPayment(amount=amount, frequency=frequency, start_date=start_date, end_date=end_date))
    return tuple(extras)


def _read_lump_sums(errors: Dict[str, str], items: Sequence[Any], name: str) -> Tuple[LumpSum, ...]:
    lumps = []
    for index, item in enumerate(items):
        reader = _Reader(errors, item, f"{name}[{index}].")
        amount = reader.get("amount", _dollars)
        when = reader.get("date", _date)
        if amount is not None and when is not None:
            lumps.append(LumpSum(amount=amount, date=when))
    return tuple(lumps)


def _read_property(errors: Dict[str, str], data: Mapping[str, Any], prefix: str = "") -> Optional[PropertyConfig]:
    reader = _Reader(errors, data, prefix)
    loan = None
    if isinstance(reader.data.get("loan"), Mapping):
        loan = _read_mortgage(errors, reader.data["loan"], prefix + "loan.")
    elif reader.data.get("loan") is not None:
        errors.setdefault(prefix + "loan", "must be an object")
    values = dict(
        name=reader.get("name", str, "Property"),
        property_value=reader.get("property_value", _dollars),
        loan=loan,
        growth_rate=reader.get("growth_rate", _percent, DEFAULT_GROWTH_RATE_BPS),
        rental_income=reader.get("rental_income", _dollars, 0),
        rent_growth=reader.get("rent_growth", _percent, 0),
        expenses=reader.get("expenses", _dollars, 0),
        expense_growth=reader.get("expense_growth", _percent, 0),
        depreciation=reader.get("depreciation", _dollars, 0),
        offset_balance=reader.get("offset_balance", _dollars, 0),
        extra_payments=_read_extras(errors, reader.items("extra_payments"), prefix + "extra_payments"),
        lump_sums=_read_lump_sums(errors, reader.items("lump_sums"), prefix + "lump_sums"),
        rate_forecasts=_read_forecasts(errors, reader.items("rate_forecasts"), prefix + "rate_forecasts"),
        growth_forecasts=_read_forecasts(errors, reader.items("growth_forecasts"), prefix + "growth_forecasts"),
    )
    valuation_year = reader.get("valuation_year", int, None)
    if valuation_year is not None:
        values["valuation_year"] = valuation_year
    if values["property_value"] is None:
        return None
    return PropertyConfig(**values)


def mortgage_from_dict(data: Mapping[str, Any]) -> MortgageInput:
    """Build a ``MortgageInput`` from ``{"principal": dollars, "rate": percent, ...}``."""
    errors: Dict[str, str] = {}
    loan = _read_mortgage(errors, data)
    if errors:
        raise ValidationError(errors)
    return loan


def property_from_dict(data: Mapping[str, Any]) -> PropertyConfig:
    """Build a ``PropertyConfig``, including its optional ``loan`` object."""
    errors: Dict[str, str] = {}
    config = _read_property(errors, data)
    if errors:
        raise ValidationError(errors)
    return config


def schedule_from_dict(
    data: Mapping[str, Any],
) -> Tuple[MortgageInput, Tuple[ExtraPayment, ...], Tuple[LumpSum, ...], Tuple[RateForecast, ...], int]:
    """Read a schedule request: a ``loan`` object plus optional extras.

    Returns the arguments of ``generate_schedule`` in order.
    """
    errors: Dict[str, str] = {}
    reader = _Reader(errors, data)
    loan = None
    if isinstance(reader.data.get("loan"), Mapping):
        loan = _read_mortgage(errors, reader.data["loan"], "loan.")
    else:
        errors["loan"] = "is required"
    extras = _read_extras(errors, reader.items("extra_payments"), "extra_payments")
    lumps = _read_lump_sums(errors, reader.items("lump_sums"), "lump_sums")
    forecasts = _read_forecasts(errors, reader.items("rate_forecasts"), "rate_forecasts")
    offset = reader.get("offset_balance", _dollars, 0)
    if errors:
        raise ValidationError(errors)
    return loan, extras, lumps, forecasts, offset


def portfolio_from_dict(data: Mapping[str, Any]) -> Tuple[List[PropertyConfig], int, int, Optional[int]]:
    """Read a portfolio request.

    Returns the properties, the start and end years, and the investor's
    marginal tax rate in basis points (``None`` when not given).
    """
    errors: Dict[str, str] = {}
    reader = _Reader(errors, data)
    start_year = reader.get("start_year", int, date.today().year)
    end_year = reader.get("end_year", int, None)
    marginal_rate = reader.get("marginal_rate", _percent, None)
    properties = []
    for index, item in enumerate(reader.items("properties")):
        config = _read_property(errors, item, f"properties[{index}].")
        if config is not None:
            properties.append(config)
    if not reader.items("properties") and "properties" not in errors:
        errors["properties"] = "at least one property is required"
    if end_year is None:
        end_year = start_year + 30
    if errors:
        raise ValidationError(errors)
    return properties, start_year, end_year, marginal_rate


def read_fields(data: Mapping[str, Any], fields: Mapping[str, Tuple[str, Any]]) -> Dict[str, Any]:
    """Read flat fields described as ``{name: (kind, default)}``.

    ``kind`` is one of ``"dollars"``, ``"percent"``, ``"int"``, ``"bool"``
    or ``"str"``. A default of ``...`` makes the field required.
    """
    converters: Dict[str, Callable[[Any], Any]] = {
        "dollars": _dollars,
        "percent": _percent,
        "int": int,
        "bool": lambda v: v if isinstance(v, bool) else str(v).lower() in ("1", "true", "yes", "on"),
        "str": str,
        "region": lambda v: parse_enum(Region, v),
    }
    errors: Dict[str, str] = {}
    reader = _Reader(errors, data)
    values = {}
    for name, (kind, default) in fields.items():
        values[name] = reader.get(name, converters[kind], _MISSING if default is ... else default)
    if errors:
        raise ValidationError(errors)
    return values


def to_jsonable(value: Any) -> Any:
    """Convert engine results into JSON-serializable structures.

    Dataclasses become dictionaries, dates ISO strings, enums their values
    and decimals floats. Money stays in integer cents.
    """
    if is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(asdict(value))
    if isinstance(value, Mapping):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value
