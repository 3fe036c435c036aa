#!/usr/bin/env python3
"""
MCP Server for the Google Analytics 4 Data API
Exposes report, realtime, quick insight and metadata tools for AI model access.
"""

import asyncio
import json
import logging
import os
import time
import uuid
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Union

from mcp.server.fastmcp import FastMCP

import metadata_search
from config import get_settings
from error_classifier import classify_error, error_payload
from ga4_client import get_data_client, row_count
from metadata_search import MetadataKind, list_categories, select_metadata
from presets import InsightPreset, describe_presets, lookup
from report_query import (
    DEFAULT_LIMIT, LOOKUP_LIMIT, PRESET_LIMIT, TRAFFIC_LIMIT,
    InvalidInput, normalize_limit, normalize_report_query, parse_date_range, resolve_property,
)
from request_compiler import compile_metadata_request, compile_realtime_request, compile_report_request

# Logs go to stderr; stdout carries the stdio transport
log_level = os.environ.get("DEBUG_MODE", "false").lower()
if log_level == "true":
    logging_level = logging.DEBUG
else:
    logging_level = logging.INFO
logging.basicConfig(
    level=logging_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

mcp = FastMCP("google-analytics-mcp")

StrList = Union[str, List[str], None]


# Helper functions
def new_request_id() -> str:
    return str(uuid.uuid4())[:8]


def to_text(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, indent=2, default=str)


def invalid_input_text(request_id: str, error: InvalidInput) -> str:
    logger.warning(f"[{request_id}] Invalid input - {error.message}")
    payload = {"status": "error", "error": "invalid_input", "message": error.message, "request_id": request_id}
    if error.hint:
        payload["hint"] = error.hint
    return to_text(payload)


def metadata_kind(kind: Union[MetadataKind, str]) -> MetadataKind:
    try:
        return MetadataKind(kind)
    except ValueError:
        raise InvalidInput(f"Invalid kind '{kind}'", hint="kind must be one of: dimensions, metrics, both")


async def call_backend(request_id: str, method: str, body: Dict[str, Any], property_name: str,
                       transform: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None) -> str:
    """
    Run one backend call and serialize the outcome.

    The blocking SDK call runs in the default executor. Any failure is classified and
    returned as a normal tool result, never raised to the protocol layer.
    """
    start_time = time.time()
    client = None
    try:
        client = get_data_client()
        loop = asyncio.get_event_loop()
        response = await loop.run_in_executor(None, getattr(client, method), body)
        rows = row_count(response)
        if transform is not None:
            response = transform(response)
    except Exception as e:
        duration = time.time() - start_time
        logger.error(f"[{request_id}] {method} failed for {property_name} after {duration:.2f}s: {e}", exc_info=True)
        principal = client.service_account_email if client is not None else get_settings().service_account_email
        payload = error_payload(classify_error(e, property_name, principal))
        payload["request_id"] = request_id
        return to_text(payload)

    duration = time.time() - start_time
    if method == "get_metadata":
        logger.info(f"[{request_id}] {method} successful in {duration:.2f}s")
    else:
        logger.info(f"[{request_id}] {method} successful - {rows} rows in {duration:.2f}s")
    return to_text(response)


async def run_aggregated(request_id: str, property_id: str, start_date: str, end_date: str, query_args: Dict[str, Any]) -> str:
    try:
        property_name = resolve_property(property_id, get_settings())
        date_range = parse_date_range(start_date, end_date)
        query = normalize_report_query(**query_args)
    except InvalidInput as e:
        return invalid_input_text(request_id, e)
    body = compile_report_request(query, property_name, date_range)
    return await call_backend(request_id, "run_report", body, property_name)


async def run_preset(request_id: str, preset: Union[InsightPreset, str], property_id: str,
                     start_date: str, end_date: str, limit: Any, default_limit: int) -> str:
    try:
        property_name = resolve_property(property_id, get_settings())
        date_range = parse_date_range(start_date, end_date)
        query = replace(lookup(preset), limit=normalize_limit(limit, default_limit))
    except InvalidInput as e:
        return invalid_input_text(request_id, e)
    body = compile_report_request(query, property_name, date_range)
    return await call_backend(request_id, "run_report", body, property_name)


@mcp.tool()
async def analytics_report(property_id: str = "", start_date: str = "", end_date: str = "",
                           metrics: StrList = None, dimensions: StrList = None,
                           dimension_filter: Optional[Dict[str, Any]] = None,
                           metric_filter: Optional[Dict[str, Any]] = None,
                           order_by: Optional[Dict[str, Any]] = None,
                           limit: int = DEFAULT_LIMIT) -> str:
    """
    Query Google Analytics 4 data with any dimensions and metrics.

    Common Dimensions: date, country, city, pagePath, pageTitle, deviceCategory, sessionSource, sessionMedium
    Common Metrics: activeUsers, sessions, screenPageViews, bounceRate, averageSessionDuration, newUsers

    Example: daily users by country
    - dimensions: ["date", "country"], metrics: ["activeUsers", "sessions"]
    - order_by: {"metric": "activeUsers", "desc": true}

    Args:
        property_id: GA4 property ID, e.g. "123456789" (required)
        start_date: Start date in YYYY-MM-DD format (also today, yesterday, NdaysAgo)
        end_date: End date in YYYY-MM-DD format
        metrics: Metric names (list or comma-separated string, required)
        dimensions: Dimension names (optional)
        dimension_filter: Data API FilterExpression on dimensions, forwarded as given
        metric_filter: Data API FilterExpression on metrics, forwarded as given
        order_by: {"metric": name, "desc": bool} or {"dimension": name, "desc": bool}
        limit: Maximum rows (default: 100)
    """
    request_id = new_request_id()
    logger.info(f"[{request_id}] analytics_report - property: {property_id or 'default'}, dates: {start_date} to {end_date}")
    return await run_aggregated(request_id, property_id, start_date, end_date, dict(
        dimensions=dimensions, metrics=metrics, dimension_filter=dimension_filter,
        metric_filter=metric_filter, order_by=order_by, limit=limit, default_limit=DEFAULT_LIMIT,
    ))


@mcp.tool()
async def custom_report(property_id: str = "", start_date: str = "", end_date: str = "",
                        dimensions: StrList = None, metrics: StrList = None,
                        dimension_filter: Optional[Dict[str, Any]] = None,
                        metric_filter: Optional[Dict[str, Any]] = None,
                        order_by: Optional[Dict[str, Any]] = None,
                        limit: int = DEFAULT_LIMIT) -> str:
    """
    Create a custom report with specified dimensions, metrics, filters and ordering.

    Filter example (sessions from one country):
      dimension_filter: {"filter": {"fieldName": "country", "stringFilter": {"matchType": "EXACT", "value": "Canada"}}}
    Metric filter example (pages with more than 100 views):
      metric_filter: {"filter": {"fieldName": "screenPageViews", "numericFilter": {"operation": "GREATER_THAN", "value": {"int64Value": "100"}}}}

    Args:
        property_id: GA4 property ID (required)
        start_date: Start date in YYYY-MM-DD format
        end_date: End date in YYYY-MM-DD format
        dimensions: Dimension names (required)
        metrics: Metric names (required)
        dimension_filter: Dimension filter expression (optional)
        metric_filter: Metric filter expression (optional)
        order_by: Single ordering rule (optional)
        limit: Maximum rows (default: 100)
    """
    request_id = new_request_id()
    logger.info(f"[{request_id}] custom_report - property: {property_id or 'default'}, dates: {start_date} to {end_date}")
    return await run_aggregated(request_id, property_id, start_date, end_date, dict(
        dimensions=dimensions, metrics=metrics, dimension_filter=dimension_filter,
        metric_filter=metric_filter, order_by=order_by, limit=limit, default_limit=DEFAULT_LIMIT,
        require_dimensions=True,
    ))


@mcp.tool()
async def realtime_data(property_id: str = "", metrics: StrList = None, dimensions: StrList = None,
                        limit: Optional[int] = None) -> str:
    """
    Get real-time analytics data (activity in the last 30 minutes, no date range).

    Realtime Dimensions: country, city, deviceCategory, unifiedScreenName, platform
    Realtime Metrics: activeUsers, screenPageViews, eventCount, conversions

    Args:
        property_id: GA4 property ID (required)
        metrics: Metric names (required)
        dimensions: Dimension names (optional)
        limit: Maximum rows (optional)
    """
    request_id = new_request_id()
    logger.info(f"[{request_id}] realtime_data - property: {property_id or 'default'}")
    try:
        property_name = resolve_property(property_id, get_settings())
        query = normalize_report_query(dimensions=dimensions, metrics=metrics, limit=limit, default_limit=None)
    except InvalidInput as e:
        return invalid_input_text(request_id, e)
    body = compile_realtime_request(query, property_name)
    return await call_backend(request_id, "run_realtime_report", body, property_name)


@mcp.tool()
async def realtime_snapshot(property_id: str = "", limit: int = LOOKUP_LIMIT) -> str:
    """
    Quick look at who is on the site right now: active users by country.

    Args:
        property_id: GA4 property ID (required)
        limit: Number of countries to return (default: 5)
    """
    request_id = new_request_id()
    logger.info(f"[{request_id}] realtime_snapshot - property: {property_id or 'default'}")
    try:
        property_name = resolve_property(property_id, get_settings())
        query = normalize_report_query(
            dimensions=["country"], metrics=["activeUsers"], limit=limit, default_limit=LOOKUP_LIMIT,
        )
    except InvalidInput as e:
        return invalid_input_text(request_id, e)
    body = compile_realtime_request(query, property_name)
    return await call_backend(request_id, "run_realtime_report", body, property_name)


def _quick_insights_description() -> str:
    lines = [
        "Pre-built GA4 reports; no knowledge of dimension or metric names needed.",
        "",
        "Available report types:",
    ]
    for name, fields in describe_presets().items():
        lines.append(f"- {name}: dimensions {', '.join(fields['dimensions'])}; metrics {', '.join(fields['metrics'])}")
    lines += [
        "",
        "Args:",
        "    property_id: GA4 property ID (required)",
        "    start_date: Start date in YYYY-MM-DD format",
        "    end_date: End date in YYYY-MM-DD format",
        "    report_type: One of the report types above",
        "    limit: Maximum rows (default: 20)",
    ]
    return "\n".join(lines)


@mcp.tool(description=_quick_insights_description())
async def quick_insights(report_type: InsightPreset, property_id: str = "", start_date: str = "",
                         end_date: str = "", limit: int = PRESET_LIMIT) -> str:
    request_id = new_request_id()
    logger.info(f"[{request_id}] quick_insights {getattr(report_type, 'value', report_type)} - property: {property_id or 'default'}, dates: {start_date} to {end_date}")
    return await run_preset(request_id, report_type, property_id, start_date, end_date, limit, PRESET_LIMIT)


@mcp.tool()
async def traffic_sources(property_id: str = "", start_date: str = "", end_date: str = "",
                          limit: int = TRAFFIC_LIMIT) -> str:
    """
    Get traffic sources data including channels, sources, mediums and campaigns.

    Business Use Cases:
    - See which channels bring the most sessions
    - Compare new users and bounce rate per source/medium

    Args:
        property_id: GA4 property ID (required)
        start_date: Start date in YYYY-MM-DD format
        end_date: End date in YYYY-MM-DD format
        limit: Maximum rows (default: 50)
    """
    request_id = new_request_id()
    logger.info(f"[{request_id}] traffic_sources - property: {property_id or 'default'}, dates: {start_date} to {end_date}")
    return await run_preset(request_id, InsightPreset.TRAFFIC_SOURCES, property_id, start_date, end_date, limit, TRAFFIC_LIMIT)


@mcp.tool()
async def page_performance(property_id: str = "", start_date: str = "", end_date: str = "",
                           limit: int = TRAFFIC_LIMIT) -> str:
    """
    Get page performance: page views, users, bounce rate and session duration per page,
    most viewed pages first.

    Args:
        property_id: GA4 property ID (required)
        start_date: Start date in YYYY-MM-DD format
        end_date: End date in YYYY-MM-DD format
        limit: Maximum rows (default: 50)
    """
    request_id = new_request_id()
    logger.info(f"[{request_id}] page_performance - property: {property_id or 'default'}, dates: {start_date} to {end_date}")
    return await run_preset(request_id, InsightPreset.TOP_PAGES, property_id, start_date, end_date, limit, TRAFFIC_LIMIT)


@mcp.tool()
async def user_demographics(property_id: str = "", start_date: str = "", end_date: str = "",
                            limit: int = PRESET_LIMIT) -> str:
    """
    Get user demographics: age bracket, gender, country and city.

    Args:
        property_id: GA4 property ID (required)
        start_date: Start date in YYYY-MM-DD format
        end_date: End date in YYYY-MM-DD format
        limit: Maximum rows (default: 20)
    """
    request_id = new_request_id()
    logger.info(f"[{request_id}] user_demographics - property: {property_id or 'default'}, dates: {start_date} to {end_date}")
    return await run_preset(request_id, InsightPreset.USER_DEMOGRAPHICS, property_id, start_date, end_date, limit, PRESET_LIMIT)


@mcp.tool()
async def conversion_data(property_id: str = "", start_date: str = "", end_date: str = "",
                          limit: int = PRESET_LIMIT) -> str:
    """
    Get conversion event data by channel (events whose name contains "conversion").

    Args:
        property_id: GA4 property ID (required)
        start_date: Start date in YYYY-MM-DD format
        end_date: End date in YYYY-MM-DD format
        limit: Maximum rows (default: 20)
    """
    request_id = new_request_id()
    logger.info(f"[{request_id}] conversion_data - property: {property_id or 'default'}, dates: {start_date} to {end_date}")
    return await run_preset(request_id, InsightPreset.CONVERSIONS, property_id, start_date, end_date, limit, PRESET_LIMIT)


@mcp.tool()
async def get_metadata(property_id: str = "", kind: MetadataKind = MetadataKind.BOTH, custom_only: bool = False) -> str:
    """
    List the dimensions and metrics available for a property, including custom definitions.

    Args:
        property_id: GA4 property ID (required)
        kind: "dimensions", "metrics" or "both" (default: both)
        custom_only: Only return custom dimensions/metrics (default: false)
    """
    request_id = new_request_id()
    logger.info(f"[{request_id}] get_metadata - property: {property_id or 'default'}, kind: {getattr(kind, 'value', kind)}")
    try:
        property_name = resolve_property(property_id, get_settings())
        kind = metadata_kind(kind)
    except InvalidInput as e:
        return invalid_input_text(request_id, e)

    def summarize(metadata: Dict[str, Any]) -> Dict[str, Any]:
        selected = select_metadata(metadata, kind, custom_only=custom_only)
        result: Dict[str, Any] = {"name": metadata.get("name", f"{property_name}/metadata")}
        for key, descriptors in selected.items():
            result[key] = descriptors
            result[f"{key}_count"] = len(descriptors)
            result[f"{key}_categories"] = list_categories(descriptors)
        return result

    body = compile_metadata_request(property_name)
    return await call_backend(request_id, "get_metadata", body, property_name, transform=summarize)


@mcp.tool()
async def search_metadata(property_id: str = "", query: str = "", kind: MetadataKind = MetadataKind.BOTH,
                          category: Optional[str] = None) -> str:
    """
    Search available dimensions and metrics by name or description.

    Use this to find the exact apiName to pass to analytics_report, e.g. query="country".

    Args:
        property_id: GA4 property ID (required)
        query: Text to look for in apiName, uiName or description (case-insensitive; empty matches all)
        kind: "dimensions", "metrics" or "both" (default: both)
        category: Exact category to keep, e.g. "Geography" or "User" (optional, case-sensitive)
    """
    request_id = new_request_id()
    logger.info(f"[{request_id}] search_metadata - property: {property_id or 'default'}, query: '{query}', kind: {getattr(kind, 'value', kind)}, category: {category}")
    try:
        property_name = resolve_property(property_id, get_settings())
        kind = metadata_kind(kind)
    except InvalidInput as e:
        return invalid_input_text(request_id, e)

    def search(metadata: Dict[str, Any]) -> Dict[str, Any]:
        found = metadata_search.search_metadata(metadata, query, kind, category)
        result: Dict[str, Any] = {"query": query, "category": category}
        for key, descriptors in found.items():
            result[key] = descriptors
            result[f"{key}_count"] = len(descriptors)
        return result

    body = compile_metadata_request(property_name)
    return await call_backend(request_id, "get_metadata", body, property_name, transform=search)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Google Analytics 4 MCP Server (stdio)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    settings = get_settings()
    logger.info(f"Starting MCP stdio server - service account: {settings.service_account_email}, "
                f"default property mode: {'on' if settings.use_default_property else 'off'}")
    mcp.run()
