#!/usr/bin/env python3
"""
Tests for searching GA4 metadata documents.
"""

import sys
import unittest
from pathlib import Path

repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from metadata_search import MetadataKind, list_categories, search_metadata, select_metadata

METADATA = {
    "name": "properties/123/metadata",
    "dimensions": [
        {"apiName": "country", "uiName": "Country", "description": "The country from which the user activity originated.", "category": "Geography"},
        {"apiName": "city", "uiName": "City", "description": "The city, within a country, from which the user activity originated.", "category": "Geography"},
        {"apiName": "userAgeBracket", "uiName": "Age", "description": "User age brackets.", "category": "USER"},
        {"apiName": "userGender", "uiName": "Gender", "category": "USER"},
        {"apiName": "customUser:tier", "uiName": "Tier", "description": "Custom tier", "category": "user", "customDefinition": True},
    ],
    "metrics": [
        {"apiName": "activeUsers", "uiName": "Active users", "description": "Distinct users who visited.", "category": "USER", "type": "TYPE_INTEGER"},
        {"apiName": "sessions", "uiName": "Sessions", "description": "Sessions that began on your site.", "category": "Session", "type": "TYPE_INTEGER"},
        {"apiName": "bounceRate", "uiName": "Bounce rate", "category": "Session", "type": "TYPE_FLOAT"},
    ],
}


class TestSearchMetadata(unittest.TestCase):

    def test_country_matches_only_country(self):
        doc = {"dimensions": [{"apiName": "country"}, {"apiName": "city"}], "metrics": []}
        result = search_metadata(doc, "country", MetadataKind.BOTH)
        self.assertEqual(result["dimensions"], [{"apiName": "country"}])
        self.assertEqual(result["metrics"], [])

    def test_empty_query_with_category(self):
        result = search_metadata(METADATA, "", MetadataKind.DIMENSIONS, "USER")
        self.assertEqual([d["apiName"] for d in result["dimensions"]], ["userAgeBracket", "userGender"])

    def test_category_is_case_sensitive(self):
        result = search_metadata(METADATA, "", "dimensions", "user")
        self.assertEqual([d["apiName"] for d in result["dimensions"]], ["customUser:tier"])

    def test_text_match_is_case_insensitive(self):
        result = search_metadata(METADATA, "COUNTRY", "dimensions")
        # city matches on its description only
        self.assertEqual([d["apiName"] for d in result["dimensions"]], ["country", "city"])

    def test_matches_ui_name_and_description(self):
        self.assertEqual([d["apiName"] for d in search_metadata(METADATA, "age", "dimensions")["dimensions"]],
                         ["userAgeBracket"])
        self.assertEqual([m["apiName"] for m in search_metadata(METADATA, "began", "metrics")["metrics"]],
                         ["sessions"])

    def test_text_and_category_combined(self):
        result = search_metadata(METADATA, "users", MetadataKind.METRICS, "Session")
        self.assertEqual(result["metrics"], [])
        result = search_metadata(METADATA, "users", MetadataKind.METRICS, "USER")
        self.assertEqual([m["apiName"] for m in result["metrics"]], ["activeUsers"])

    def test_missing_description_does_not_fail(self):
        result = search_metadata(METADATA, "gender", "dimensions")
        self.assertEqual([d["apiName"] for d in result["dimensions"]], ["userGender"])
        result = search_metadata({"dimensions": [{"apiName": None, "uiName": 5}]}, "x", "dimensions")
        self.assertEqual(result["dimensions"], [])

    def test_kind_restricts_result_keys(self):
        self.assertEqual(list(search_metadata(METADATA, "", "dimensions")), ["dimensions"])
        self.assertEqual(list(search_metadata(METADATA, "", "metrics")), ["metrics"])
        self.assertEqual(list(search_metadata(METADATA, "", "both")), ["dimensions", "metrics"])

    def test_missing_lists(self):
        self.assertEqual(search_metadata({}, "x"), {"dimensions": [], "metrics": []})


class TestSelectMetadata(unittest.TestCase):

    def test_custom_only(self):
        result = select_metadata(METADATA, "both", custom_only=True)
        self.assertEqual([d["apiName"] for d in result["dimensions"]], ["customUser:tier"])
        self.assertEqual(result["metrics"], [])

    def test_kind(self):
        result = select_metadata(METADATA, MetadataKind.METRICS)
        self.assertEqual(list(result), ["metrics"])
        self.assertEqual(len(result["metrics"]), 3)

    def test_categories(self):
        self.assertEqual(list_categories(METADATA["metrics"]), ["Session", "USER"])


if __name__ == "__main__":
    unittest.main()
