"""
Compile a ReportQuery into GA4 Data API request bodies.

Bodies use the Data API JSON field names (camelCase). Optional fields are left out
entirely when the query does not set them: the API treats an omitted field and an
empty one differently.
"""

import copy
from typing import Any, Dict, List

from report_query import DEFAULT_LIMIT, METRIC, DateRange, OrderBy, ReportQuery


def _names(names) -> List[Dict[str, str]]:
    return [{"name": name} for name in names]


def _order_bys(order_by: OrderBy) -> List[Dict[str, Any]]:
    if order_by.kind == METRIC:
        rule = {"metric": {"metricName": order_by.field}}
    else:
        rule = {"dimension": {"dimensionName": order_by.field}}
    rule["desc"] = order_by.desc
    return [rule]


def compile_report_request(query: ReportQuery, property_name: str, date_range: DateRange) -> Dict[str, Any]:
    """
    Build a runReport body.

    Key order is fixed: property, dateRanges, dimensions, metrics, limit, then
    dimensionFilter, metricFilter and orderBys when set.
    """
    start_date, end_date = date_range.as_strings()
    request = {
        "property": property_name,
        "dateRanges": [{"startDate": start_date, "endDate": end_date}],
        "dimensions": _names(query.dimensions),
        "metrics": _names(query.metrics),
        "limit": query.limit if query.limit is not None else DEFAULT_LIMIT,
    }
    if query.dimension_filter is not None:
        request["dimensionFilter"] = copy.deepcopy(query.dimension_filter)
    if query.metric_filter is not None:
        request["metricFilter"] = copy.deepcopy(query.metric_filter)
    if query.order_by is not None:
        request["orderBys"] = _order_bys(query.order_by)
    return request


def compile_realtime_request(query: ReportQuery, property_name: str) -> Dict[str, Any]:
    """Build a runRealtimeReport body (no date ranges; limit only when set)"""
    request = {
        "property": property_name,
        "dimensions": _names(query.dimensions),
        "metrics": _names(query.metrics),
    }
    if query.limit is not None:
        request["limit"] = query.limit
    return request


def compile_metadata_request(property_name: str) -> Dict[str, str]:
    return {"name": f"{property_name}/metadata"}
