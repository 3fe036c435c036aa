"""
Quick insight presets: curated dimension/metric combinations for common GA4 questions.

The catalog is plain data. Adding a preset means adding an InsightPreset member and
its PRESETS entry; nothing else branches on the preset id.
"""

from enum import Enum
from typing import Dict, Union

from report_query import DIMENSION, METRIC, OrderBy, ReportQuery, PRESET_LIMIT


class InsightPreset(str, Enum):
    OVERVIEW = "overview"
    TOP_PAGES = "top_pages"
    TRAFFIC_SOURCES = "traffic_sources"
    GEOGRAPHIC = "geographic"
    USER_DEMOGRAPHICS = "user_demographics"
    CONVERSIONS = "conversions"
    US_STATES = "us_states"
    ENGAGEMENT_METRICS = "engagement_metrics"
    ECOMMERCE_OVERVIEW = "ecommerce_overview"
    DEVICE_TECHNOLOGY = "device_technology"


def _string_filter(field_name: str, value: str, match_type: str = "EXACT") -> dict:
    return {
        "filter": {
            "fieldName": field_name,
            "stringFilter": {"matchType": match_type, "value": value},
        }
    }


PRESETS: Dict[InsightPreset, ReportQuery] = {
    InsightPreset.OVERVIEW: ReportQuery(
        dimensions=("date",),
        metrics=("activeUsers", "sessions", "screenPageViews", "bounceRate", "averageSessionDuration"),
        order_by=OrderBy(field="date", kind=DIMENSION, desc=False),
        limit=PRESET_LIMIT,
    ),
    InsightPreset.TOP_PAGES: ReportQuery(
        dimensions=("pagePath", "pageTitle"),
        metrics=("screenPageViews", "activeUsers", "bounceRate", "averageSessionDuration", "sessions"),
        order_by=OrderBy(field="screenPageViews", kind=METRIC, desc=True),
        limit=PRESET_LIMIT,
    ),
    InsightPreset.TRAFFIC_SOURCES: ReportQuery(
        dimensions=("sessionDefaultChannelGroup", "sessionSource", "sessionMedium", "sessionCampaignName"),
        metrics=("sessions", "activeUsers", "newUsers", "bounceRate"),
        order_by=OrderBy(field="sessions", kind=METRIC, desc=True),
        limit=PRESET_LIMIT,
    ),
    InsightPreset.GEOGRAPHIC: ReportQuery(
        dimensions=("country", "city"),
        metrics=("activeUsers", "sessions", "newUsers"),
        order_by=OrderBy(field="activeUsers", kind=METRIC, desc=True),
        limit=PRESET_LIMIT,
    ),
    InsightPreset.USER_DEMOGRAPHICS: ReportQuery(
        dimensions=("userAgeBracket", "userGender", "country", "city"),
        metrics=("activeUsers", "newUsers", "sessions", "averageSessionDuration"),
        limit=PRESET_LIMIT,
    ),
    InsightPreset.CONVERSIONS: ReportQuery(
        dimensions=("eventName", "sessionDefaultChannelGroup"),
        metrics=("conversions", "eventCount", "eventValue", "sessions"),
        dimension_filter=_string_filter("eventName", "conversion", match_type="CONTAINS"),
        limit=PRESET_LIMIT,
    ),
    InsightPreset.US_STATES: ReportQuery(
        dimensions=("region", "city"),
        metrics=("activeUsers", "sessions", "newUsers"),
        dimension_filter=_string_filter("country", "United States"),
        order_by=OrderBy(field="activeUsers", kind=METRIC, desc=True),
        limit=PRESET_LIMIT,
    ),
    InsightPreset.ENGAGEMENT_METRICS: ReportQuery(
        dimensions=("date",),
        metrics=("engagementRate", "engagedSessions", "userEngagementDuration",
                 "averageSessionDuration", "screenPageViewsPerSession", "bounceRate"),
        order_by=OrderBy(field="date", kind=DIMENSION, desc=False),
        limit=PRESET_LIMIT,
    ),
    InsightPreset.ECOMMERCE_OVERVIEW: ReportQuery(
        dimensions=("date",),
        metrics=("totalRevenue", "purchaseRevenue", "transactions", "ecommercePurchases",
                 "averagePurchaseRevenue", "itemsPurchased"),
        order_by=OrderBy(field="date", kind=DIMENSION, desc=False),
        limit=PRESET_LIMIT,
    ),
    InsightPreset.DEVICE_TECHNOLOGY: ReportQuery(
        dimensions=("deviceCategory", "operatingSystem", "browser"),
        metrics=("activeUsers", "sessions", "screenPageViews"),
        order_by=OrderBy(field="activeUsers", kind=METRIC, desc=True),
        limit=PRESET_LIMIT,
    ),
}


def lookup(preset: Union[InsightPreset, str]) -> ReportQuery:
    """Return the query fragment for a preset (a str is coerced through InsightPreset)"""
    return PRESETS[InsightPreset(preset)]


def describe_presets() -> Dict[str, Dict[str, list]]:
    """Dimensions and metrics of every preset, for tool descriptions"""
    return {
        preset.value: {"dimensions": list(query.dimensions), "metrics": list(query.metrics)}
        for preset, query in PRESETS.items()
    }
