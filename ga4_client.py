"""
Thin adapter over the GA4 Data API client.

Request bodies come in as plain dicts with Data API JSON field names (see
request_compiler) and responses go back out as plain dicts with the same naming,
so nothing above this module touches protobuf messages.
"""

import json
import logging
from typing import Any, Dict, Optional

import pandas as pd
from google.analytics.data_v1beta import BetaAnalyticsDataClient
from google.analytics.data_v1beta.types import GetMetadataRequest, RunRealtimeReportRequest, RunReportRequest
from google.oauth2 import service_account

from config import Settings, get_settings

logger = logging.getLogger(__name__)

SCOPES = ['https://www.googleapis.com/auth/analytics.readonly']


def message_to_dict(message) -> Dict[str, Any]:
    return type(message).to_dict(
        message,
        preserving_proto_field_name=False,
        use_integers_for_enums=False,
    )


class GA4DataClient:
    """Runs compiled report, realtime and metadata requests"""

    def __init__(self, client: Optional[BetaAnalyticsDataClient] = None, service_account_email: str = ""):
        self._client = client
        self.service_account_email = service_account_email

    @classmethod
    def from_settings(cls, settings: Settings) -> "GA4DataClient":
        info = settings.service_account_info()
        if info:
            credentials = service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
            client = BetaAnalyticsDataClient(credentials=credentials)
            logger.debug(f"GA4 Data API client initialized for {credentials.service_account_email}")
        else:
            # Application default credentials
            client = BetaAnalyticsDataClient()
            logger.debug("GA4 Data API client initialized with default credentials")
        return cls(client=client, service_account_email=settings.service_account_email)

    def run_report(self, body: Dict[str, Any]) -> Dict[str, Any]:
        request = RunReportRequest.from_json(json.dumps(body))
        logger.debug(f"Sending GA4 runReport request for {body.get('property')}")
        return message_to_dict(self._client.run_report(request=request))

    def run_realtime_report(self, body: Dict[str, Any]) -> Dict[str, Any]:
        request = RunRealtimeReportRequest.from_json(json.dumps(body))
        logger.debug(f"Sending GA4 runRealtimeReport request for {body.get('property')}")
        return message_to_dict(self._client.run_realtime_report(request=request))

    def get_metadata(self, body: Dict[str, Any]) -> Dict[str, Any]:
        request = GetMetadataRequest(name=body["name"])
        logger.debug(f"Sending GA4 getMetadata request for {body['name']}")
        return message_to_dict(self._client.get_metadata(request=request))


_data_client: Optional[GA4DataClient] = None


def get_data_client() -> GA4DataClient:
    """Shared client, created on first use from environment settings"""
    global _data_client
    if _data_client is None:
        _data_client = GA4DataClient.from_settings(get_settings())
    return _data_client


def response_to_dataframe(response: Dict[str, Any]) -> pd.DataFrame:
    """Convert a report response dict into a DataFrame (one column per dimension/metric)"""
    dimension_names = [header["name"] for header in response.get("dimensionHeaders", [])]
    metric_names = [header["name"] for header in response.get("metricHeaders", [])]
    data_rows = []
    for row in response.get("rows", []):
        dimension_values = [value.get("value") for value in row.get("dimensionValues", [])]
        metric_values = [value.get("value") for value in row.get("metricValues", [])]
        data_rows.append(dimension_values + metric_values)

    df = pd.DataFrame(data_rows, columns=dimension_names + metric_names)
    for col in metric_names:
        df[col] = pd.to_numeric(df[col], errors='coerce')
    return df


def row_count(response: Dict[str, Any]) -> int:
    return len(response.get("rows", []) or [])
