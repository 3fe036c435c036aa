#!/usr/bin/env python3
"""
Manual connectivity check for the GA4 MCP server.

Runs the same request paths the MCP tools use against a real property:
    python check_connection.py 123456789
    python check_connection.py 123456789 987654321   # also probe access to a second property
"""

import argparse
import logging
import sys

import pandas as pd

import metadata_search
from config import get_settings
from error_classifier import BackendError, PermissionDenied, classify_error
from ga4_client import GA4DataClient, response_to_dataframe, row_count
from presets import InsightPreset, lookup
from report_query import InvalidInput, ReportQuery, parse_date_range, resolve_property
from request_compiler import compile_metadata_request, compile_realtime_request, compile_report_request

PERMISSION_DENIED = 7
UNAUTHENTICATED = 16


def get_default_date_range(days: int = 7) -> dict:
    """Get default date range (last N days)"""
    end_date = pd.Timestamp.now()
    start_date = end_date - pd.Timedelta(days=days)
    return {
        "start_date": start_date.strftime('%Y-%m-%d'),
        "end_date": end_date.strftime('%Y-%m-%d')
    }


def check_custom_report(client, property_name, date_range):
    query = ReportQuery(dimensions=("date", "country"), metrics=("activeUsers", "sessions"), limit=10)
    response = client.run_report(compile_report_request(query, property_name, date_range))
    print(f"   - Data rows: {row_count(response)}")
    print("   - Dimensions: date, country")
    print("   - Metrics: activeUsers, sessions")


def check_realtime(client, property_name, date_range):
    query = ReportQuery(dimensions=("country",), metrics=("activeUsers",), limit=5)
    response = client.run_realtime_report(compile_realtime_request(query, property_name))
    df = response_to_dataframe(response)
    print(f"   - Active users by country: {len(df)} countries")
    if not df.empty:
        print(f"   - Top country: {df.iloc[0]['country']} ({df.iloc[0]['activeUsers']} users)")


def check_overview(client, property_name, date_range):
    response = client.run_report(compile_report_request(lookup(InsightPreset.OVERVIEW), property_name, date_range))
    df = response_to_dataframe(response)
    totals = df[["activeUsers", "sessions", "screenPageViews"]].sum() if not df.empty else None
    print(f"   - Total Users: {int(totals['activeUsers']) if totals is not None else 0}")
    print(f"   - Total Sessions: {int(totals['sessions']) if totals is not None else 0}")
    print(f"   - Total Page Views: {int(totals['screenPageViews']) if totals is not None else 0}")


def check_metadata(client, property_name, date_range):
    metadata = client.get_metadata(compile_metadata_request(property_name))
    dimensions = metadata.get("dimensions", [])
    metrics = metadata.get("metrics", [])
    print(f"   - Available dimensions: {len(dimensions)}")
    print(f"   - Available metrics: {len(metrics)}")
    print(f"   - Sample dimensions: {', '.join(d.get('apiName', '') for d in dimensions[:3])}")
    print(f"   - Sample metrics: {', '.join(m.get('apiName', '') for m in metrics[:3])}")


def check_metadata_search(client, property_name, date_range):
    metadata = client.get_metadata(compile_metadata_request(property_name))
    countries = metadata_search.search_metadata(metadata, "country", metadata_search.MetadataKind.DIMENSIONS)["dimensions"]
    users = metadata_search.search_metadata(metadata, "user", metadata_search.MetadataKind.METRICS)["metrics"]
    print(f"   - Country-related dimensions: {len(countries)}")
    print(f"   - User-related metrics: {len(users)}")
    if countries:
        print(f"   - Example: {countries[0].get('apiName')} ({countries[0].get('uiName')})")
    if users:
        print(f"   - Example: {users[0].get('apiName')} ({users[0].get('uiName')})")


CHECKS = [
    ("Analytics Report (Custom Query)", check_custom_report),
    ("Real-time Data", check_realtime),
    ("Quick Insights (Overview)", check_overview),
    ("Get Metadata", check_metadata),
    ("Search Metadata", check_metadata_search),
]


def run_checks(client, property_name, date_range) -> int:
    passed = 0
    for index, (title, check) in enumerate(CHECKS, start=1):
        print(f"\nTest {index}: {title}")
        try:
            check(client, property_name, date_range)
            print(f"✅ {title}: SUCCESS")
            passed += 1
        except Exception as e:
            logging.getLogger(__name__).debug("Check failed", exc_info=True)
            print(f"❌ {title}: FAILED")
            print(f"   Error: {BackendError.from_exception(e).message}")
    return passed


def probe_property(client, property_id, date_range):
    """One-row access check for a second property, with remediation on permission errors"""
    property_name = resolve_property(property_id)
    print(f"\n🔄 Testing with additional property ID: {property_id}")
    print("=" * 60)
    query = ReportQuery(dimensions=("date",), metrics=("activeUsers",), limit=1)
    try:
        response = client.run_report(compile_report_request(query, property_name, date_range))
    except Exception as e:
        classified = classify_error(e, property_name, client.service_account_email)
        if isinstance(classified, PermissionDenied):
            print(f"❌ Permission denied for property: {property_id}")
            print("\n🔧 TO FIX THIS:")
            for number, step in enumerate(classified.steps, start=1):
                print(f"{number}. {step}")
        else:
            print(f"❌ Error accessing property: {property_id}")
            print(f"   Error: {classified.message}")
        return False

    df = response_to_dataframe(response)
    active = int(df.iloc[0]["activeUsers"]) if not df.empty else 0
    print(f"✅ Access granted to property: {property_id}")
    print(f"   - Active users: {active}")
    return True


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Check connectivity to the Google Analytics 4 Data API")
    parser.add_argument("property_id", nargs='?', default=None, help="GA4 property ID (defaults to GA_PROPERTY_ID)")
    parser.add_argument("extra_property_id", nargs='?', default=None, help="Second property ID to probe for access")
    parser.add_argument("--days", type=int, default=7, help="Number of days to query (default: 7)")
    parser.add_argument("--debug", action="store_true", help="Enable debug output")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING,
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    settings = get_settings()

    try:
        property_name = resolve_property(args.property_id or settings.default_property_id)
        dates = get_default_date_range(args.days)
        date_range = parse_date_range(dates["start_date"], dates["end_date"])
        client = GA4DataClient.from_settings(settings)
    except InvalidInput as e:
        print("💥 CRITICAL ERROR:")
        print(f"{e.message}. Either set GA_PROPERTY_ID or pass it as an argument: python check_connection.py 123456789")
        return 1
    except Exception as e:
        error = BackendError.from_exception(e)
        print("💥 CRITICAL ERROR:")
        print(error.message)
        if error.code == PERMISSION_DENIED:
            print("\n🔧 PERMISSION ISSUE:")
            print("1. Ensure your service account has access to the GA property")
            print("2. Verify the GA_PROPERTY_ID is correct")
            print("3. Check that Google Analytics Data API is enabled")
        elif error.code == UNAUTHENTICATED:
            print("\n🔧 AUTHENTICATION ISSUE:")
            print("1. Check GOOGLE_CREDENTIALS environment variable")
            print("2. Verify the service account JSON is valid")
            print("3. Ensure the JSON contains all required fields")
        return 1

    start_date, end_date = date_range.as_strings()
    print("🔍 Testing Google Analytics MCP Server Connection...")
    print(f"Property: {property_name}")
    print(f"Test date range: {start_date} to {end_date}")
    print("=" * 60)

    passed = run_checks(client, property_name, date_range)

    print("\n" + "=" * 60)
    print("🎯 TEST SUMMARY")
    print("=" * 60)
    if passed == len(CHECKS):
        print(f"✅ ALL {len(CHECKS)} TESTS PASSED!")
    else:
        print(f"⚠️  {passed}/{len(CHECKS)} tests passed")
        print("Some functionality may be limited. Check the failed tests above.")

    print("\n📋 CONNECTION DETAILS:")
    print(f"   - Property: {property_name}")
    print(f"   - Service Account: {client.service_account_email}")
    print(f"   - Test Date Range: {start_date} to {end_date}")

    if args.extra_property_id and resolve_property(args.extra_property_id) != property_name:
        probe_property(client, args.extra_property_id, date_range)
    return 0


if __name__ == "__main__":
    sys.exit(main())
