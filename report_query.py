"""
Canonical report query model and normalization of raw tool arguments.

Tool inputs arrive loosely typed (lists or comma-separated strings, optional
filter objects, an optional ordering rule). Everything here lowers them into a
ReportQuery, a DateRange and a property resource name, or raises InvalidInput.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from config import Settings

DEFAULT_LIMIT = 100
TRAFFIC_LIMIT = 50
PRESET_LIMIT = 20
LOOKUP_LIMIT = 5

METRIC = "metric"
DIMENSION = "dimension"

_DAYS_AGO = re.compile(r"^(\d+)daysAgo$")


class InvalidInput(ValueError):
    """Tool arguments that cannot be turned into a backend request"""

    def __init__(self, message: str, hint: str = ""):
        super().__init__(message)
        self.message = message
        self.hint = hint


@dataclass(frozen=True)
class OrderBy:
    field: str
    kind: str  # METRIC or DIMENSION
    desc: bool = False


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def as_strings(self) -> Tuple[str, str]:
        return self.start.isoformat(), self.end.isoformat()


@dataclass(frozen=True)
class ReportQuery:
    dimensions: Tuple[str, ...] = ()
    metrics: Tuple[str, ...] = ()
    dimension_filter: Optional[Mapping[str, Any]] = None
    metric_filter: Optional[Mapping[str, Any]] = None
    order_by: Optional[OrderBy] = None
    limit: Optional[int] = DEFAULT_LIMIT


def parse_names(value: Union[str, List[str], None]) -> Tuple[str, ...]:
    """
    Parse a dimension/metric list.

    Accepts a list of names or a comma-separated string. Names are kept verbatim
    apart from surrounding whitespace; blank entries are dropped and order is preserved.
    """
    if not value:
        return ()
    if isinstance(value, str):
        value = value.split(',')
    return tuple(str(item).strip() for item in value if str(item).strip())


def resolve_property(property_id: Union[str, int, None], settings: Optional[Settings] = None) -> str:
    """Return the property resource name ('properties/<id>') for a tool call"""
    raw = str(property_id).strip() if property_id is not None else ""
    if not raw and settings is not None and settings.use_default_property:
        raw = settings.default_property_id
    if not raw:
        raise InvalidInput(
            "Property ID required",
            hint="Pass property_id with your Google Analytics 4 property ID, e.g. '123456789'. "
                 "It is shown under Admin > Property Settings in Google Analytics.",
        )
    if raw.startswith("properties/"):
        raw = raw[len("properties/"):]
    if not raw:
        raise InvalidInput("Property ID required", hint="'properties/' must be followed by the numeric property ID")
    return f"properties/{raw}"


def _parse_day(value: str, today: date) -> date:
    value = (value or "").strip()
    if value == "today":
        return today
    if value == "yesterday":
        return today - timedelta(days=1)
    match = _DAYS_AGO.match(value)
    if match:
        return today - timedelta(days=int(match.group(1)))
    return datetime.strptime(value, '%Y-%m-%d').date()


def parse_date_range(start_date: str, end_date: str, today: Optional[date] = None) -> DateRange:
    """Validate a YYYY-MM-DD (or today/yesterday/NdaysAgo) range with start <= end"""
    if not start_date or not end_date:
        raise InvalidInput("start_date and end_date are required parameters",
                           hint="Dates use the YYYY-MM-DD format")
    today = today or date.today()
    try:
        start = _parse_day(start_date, today)
        end = _parse_day(end_date, today)
    except ValueError:
        raise InvalidInput(f"Invalid date format: {start_date} to {end_date}",
                           hint="Dates use the YYYY-MM-DD format, or today, yesterday, NdaysAgo")
    if start > end:
        raise InvalidInput(f"Invalid date range: {start_date} is after {end_date}")
    return DateRange(start=start, end=end)


def _rule_name(value: Any, key: str) -> str:
    # Accept both {"metric": "sessions"} and the backend form {"metric": {"metricName": "sessions"}}
    if isinstance(value, Mapping):
        value = value.get(key, "")
    return str(value or "").strip()


def normalize_order_by(order_by: Optional[Mapping[str, Any]]) -> Optional[OrderBy]:
    """Lower {metric?, dimension?, desc?} to a single OrderBy, or None if nothing is set"""
    if not order_by:
        return None
    metric = _rule_name(order_by.get("metric"), "metricName")
    dimension = _rule_name(order_by.get("dimension"), "dimensionName")
    desc = order_by.get("desc")
    if desc is None:
        desc = False
    if not isinstance(desc, bool):
        raise InvalidInput(f"order_by desc must be true or false, got {desc!r}",
                           hint="Example: {\"metric\": \"sessions\", \"desc\": true}")
    if metric and dimension:
        raise InvalidInput("order_by accepts either a metric or a dimension, not both",
                           hint="Example: {\"metric\": \"sessions\", \"desc\": true}")
    if metric:
        return OrderBy(field=metric, kind=METRIC, desc=desc)
    if dimension:
        return OrderBy(field=dimension, kind=DIMENSION, desc=desc)
    return None


def normalize_limit(limit: Any, default: Optional[int]) -> Optional[int]:
    if limit is None:
        return default
    error = InvalidInput(f"limit must be a positive integer, got {limit!r}")
    if isinstance(limit, bool) or (isinstance(limit, float) and not limit.is_integer()):
        raise error
    try:
        value = int(limit)
    except (TypeError, ValueError):
        raise error
    if value <= 0:
        raise error
    return value


def normalize_report_query(
    dimensions: Union[str, List[str], None] = None,
    metrics: Union[str, List[str], None] = None,
    dimension_filter: Optional[Dict[str, Any]] = None,
    metric_filter: Optional[Dict[str, Any]] = None,
    order_by: Optional[Dict[str, Any]] = None,
    limit: Any = None,
    default_limit: Optional[int] = DEFAULT_LIMIT,
    require_metrics: bool = True,
    require_dimensions: bool = False,
) -> ReportQuery:
    """
    Lower raw tool arguments into a ReportQuery.

    Names are not checked against the GA4 schema; unknown names are rejected by the
    backend. Filters are forwarded as given, None meaning absent.
    """
    dimension_names = parse_names(dimensions)
    metric_names = parse_names(metrics)
    if require_metrics and not metric_names:
        raise InvalidInput("At least one metric is required",
                           hint="Example: metrics=[\"activeUsers\", \"sessions\"]")
    if require_dimensions and not dimension_names:
        raise InvalidInput("At least one dimension is required",
                           hint="Example: dimensions=[\"country\"]")
    return ReportQuery(
        dimensions=dimension_names,
        metrics=metric_names,
        dimension_filter=dimension_filter,
        metric_filter=metric_filter,
        order_by=normalize_order_by(order_by),
        limit=normalize_limit(limit, default_limit),
    )
