#!/usr/bin/env python3
"""
Tests for compiling ReportQuery values into Data API request bodies.
"""

import sys
import unittest
from datetime import date
from pathlib import Path

repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from report_query import DIMENSION, METRIC, DateRange, OrderBy, ReportQuery, normalize_report_query
from request_compiler import compile_metadata_request, compile_realtime_request, compile_report_request

PROPERTY = "properties/123456789"
JANUARY = DateRange(date(2024, 1, 1), date(2024, 1, 31))


class TestCompileReportRequest(unittest.TestCase):

    def test_minimal_request(self):
        query = ReportQuery(dimensions=("date",), metrics=("activeUsers",))
        request = compile_report_request(query, PROPERTY, JANUARY)
        self.assertEqual(request, {
            "property": PROPERTY,
            "dateRanges": [{"startDate": "2024-01-01", "endDate": "2024-01-31"}],
            "dimensions": [{"name": "date"}],
            "metrics": [{"name": "activeUsers"}],
            "limit": 100,
        })

    def test_key_order_with_all_optional_fields(self):
        query = ReportQuery(
            dimensions=("country",),
            metrics=("sessions",),
            dimension_filter={"filter": {"fieldName": "country"}},
            metric_filter={"filter": {"fieldName": "sessions"}},
            order_by=OrderBy(field="sessions", kind=METRIC, desc=True),
            limit=10,
        )
        request = compile_report_request(query, PROPERTY, JANUARY)
        self.assertEqual(list(request), [
            "property", "dateRanges", "dimensions", "metrics", "limit",
            "dimensionFilter", "metricFilter", "orderBys",
        ])

    def test_optional_fields_absent_not_null(self):
        request = compile_report_request(ReportQuery(metrics=("sessions",)), PROPERTY, JANUARY)
        for key in ("dimensionFilter", "metricFilter", "orderBys"):
            self.assertNotIn(key, request)

    def test_empty_filter_is_present(self):
        request = compile_report_request(ReportQuery(metrics=("sessions",), metric_filter={}), PROPERTY, JANUARY)
        self.assertEqual(request["metricFilter"], {})
        self.assertNotIn("dimensionFilter", request)

    def test_metric_order_rule(self):
        query = ReportQuery(metrics=("sessions",), order_by=OrderBy(field="sessions", kind=METRIC, desc=True))
        order_bys = compile_report_request(query, PROPERTY, JANUARY)["orderBys"]
        self.assertEqual(order_bys, [{"metric": {"metricName": "sessions"}, "desc": True}])
        self.assertNotIn("dimension", order_bys[0])

    def test_dimension_order_rule(self):
        query = ReportQuery(metrics=("sessions",), order_by=OrderBy(field="date", kind=DIMENSION))
        order_bys = compile_report_request(query, PROPERTY, JANUARY)["orderBys"]
        self.assertEqual(order_bys, [{"dimension": {"dimensionName": "date"}, "desc": False}])
        self.assertNotIn("metric", order_bys[0])

    def test_name_order_preserved(self):
        dimensions = ("sessionSource", "country", "date", "browser")
        metrics = ("sessions", "activeUsers", "bounceRate")
        request = compile_report_request(ReportQuery(dimensions=dimensions, metrics=metrics), PROPERTY, JANUARY)
        self.assertEqual([d["name"] for d in request["dimensions"]], list(dimensions))
        self.assertEqual([m["name"] for m in request["metrics"]], list(metrics))

    def test_deterministic(self):
        query = normalize_report_query(
            dimensions=["country"], metrics=["sessions"],
            dimension_filter={"filter": {"fieldName": "country", "stringFilter": {"value": "Canada"}}},
            order_by={"dimension": "country"},
        )
        self.assertEqual(compile_report_request(query, PROPERTY, JANUARY),
                         compile_report_request(query, PROPERTY, JANUARY))

    def test_filters_are_copied(self):
        dimension_filter = {"filter": {"fieldName": "country", "stringFilter": {"value": "Canada"}}}
        query = ReportQuery(metrics=("sessions",), dimension_filter=dimension_filter)
        request = compile_report_request(query, PROPERTY, JANUARY)
        self.assertEqual(request["dimensionFilter"], dimension_filter)
        self.assertIsNot(request["dimensionFilter"], dimension_filter)

    def test_tool_default_limit(self):
        query = normalize_report_query(metrics=["sessions"], limit=None, default_limit=100)
        self.assertEqual(compile_report_request(query, PROPERTY, JANUARY)["limit"], 100)

    def test_unset_limit_falls_back_to_default(self):
        query = ReportQuery(metrics=("sessions",), limit=None)
        self.assertEqual(compile_report_request(query, PROPERTY, JANUARY)["limit"], 100)


class TestCompileRealtimeRequest(unittest.TestCase):

    def test_no_date_ranges(self):
        query = ReportQuery(dimensions=("country",), metrics=("activeUsers",), limit=None)
        request = compile_realtime_request(query, PROPERTY)
        self.assertEqual(request, {
            "property": PROPERTY,
            "dimensions": [{"name": "country"}],
            "metrics": [{"name": "activeUsers"}],
        })

    def test_limit_when_set(self):
        query = ReportQuery(dimensions=("country",), metrics=("activeUsers",), limit=5)
        request = compile_realtime_request(query, PROPERTY)
        self.assertEqual(list(request), ["property", "dimensions", "metrics", "limit"])
        self.assertEqual(request["limit"], 5)


class TestCompileMetadataRequest(unittest.TestCase):

    def test_metadata_name(self):
        self.assertEqual(compile_metadata_request(PROPERTY), {"name": "properties/123456789/metadata"})


if __name__ == "__main__":
    unittest.main()
