"""GA4 Data API wrapper: one runReport call in, plain rows out."""

import logging
import threading
from dataclasses import dataclass
from typing import NamedTuple

from google.analytics.data_v1beta import BetaAnalyticsDataClient
from google.analytics.data_v1beta.types import (
    DateRange,
    Dimension,
    Filter,
    FilterExpression,
    Metric,
    OrderBy,
    RunReportRequest,
)
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account

from errors import UpstreamError
from models import DateWindow

logger = logging.getLogger(__name__)

CHANNEL_DIMENSION = "sessionDefaultChannelGroup"


@dataclass(frozen=True)
class ReportQuery:
    """Dimensions, metrics and ordering of one report, independent of property and dates."""

    name: str
    metrics: tuple[str, ...]
    dimensions: tuple[str, ...] = ()
    order_by_dimension: str | None = None
    order_by_metric: str | None = None
    limit: int | None = None
    filtered: bool = True


class ReportRow(NamedTuple):
    dimensions: list[str]
    metrics: list[float]


def to_number(value: object) -> float:
    try:
        return float(value) if value else 0.0
    except (TypeError, ValueError):
        return 0.0


def channel_filter(channel_group: str | None) -> FilterExpression | None:
    """Exact-match filter on the default channel group, or None for all traffic."""
    if not channel_group:
        return None
    return FilterExpression(
        filter=Filter(
            field_name=CHANNEL_DIMENSION,
            string_filter=Filter.StringFilter(
                match_type=Filter.StringFilter.MatchType.EXACT,
                value=channel_group,
            ),
        )
    )


def build_request(
    property_id: str,
    window: DateWindow,
    query: ReportQuery,
    channel_group: str | None = None,
) -> RunReportRequest:
    params = {
        "property": f"properties/{property_id}",
        "date_ranges": [DateRange(start_date=window.start.isoformat(), end_date=window.end.isoformat())],
        "dimensions": [Dimension(name=name) for name in query.dimensions],
        "metrics": [Metric(name=name) for name in query.metrics],
    }

    if query.filtered:
        dimension_filter = channel_filter(channel_group)
        if dimension_filter is not None:
            params["dimension_filter"] = dimension_filter

    if query.order_by_dimension:
        params["order_bys"] = [OrderBy(dimension=OrderBy.DimensionOrderBy(dimension_name=query.order_by_dimension))]
    elif query.order_by_metric:
        params["order_bys"] = [OrderBy(metric=OrderBy.MetricOrderBy(metric_name=query.order_by_metric), desc=True)]

    if query.limit:
        params["limit"] = query.limit
    return RunReportRequest(**params)


class GA4ReportClient:
    """Runs GA4 reports for any property with a single set of credentials.

    The underlying BetaAnalyticsDataClient is created on first use so that a
    missing default credential surfaces as an UpstreamError on the request
    that needed it.
    """

    def __init__(
        self,
        credentials: service_account.Credentials | None = None,
        client: BetaAnalyticsDataClient | None = None,
    ) -> None:
        self._credentials = credentials
        self._client = client
        self._lock = threading.Lock()

    @property
    def client(self) -> BetaAnalyticsDataClient:
        # Reports run on worker threads; only one of them may build the client.
        if self._client is None:
            with self._lock:
                if self._client is None:
                    if self._credentials is not None:
                        self._client = BetaAnalyticsDataClient(credentials=self._credentials)
                    else:
                        self._client = BetaAnalyticsDataClient()
                    logger.info("GA4 Data API client created")
        return self._client

    def run_report(
        self,
        property_id: str,
        window: DateWindow,
        query: ReportQuery,
        channel_group: str | None = None,
    ) -> list[ReportRow]:
        request = build_request(property_id, window, query, channel_group)
        try:
            response = self.client.run_report(request=request)
        except (GoogleAPIError, GoogleAuthError) as exc:
            logger.error("GA4 %s report failed for property %s: %s", query.name, property_id, exc)
            raise UpstreamError("ga4", str(exc)) from exc

        rows = [
            ReportRow(
                dimensions=[value.value for value in row.dimension_values],
                metrics=[to_number(value.value) for value in row.metric_values],
            )
            for row in response.rows
        ]
        logger.debug("GA4 %s report for property %s returned %d rows", query.name, property_id, len(rows))
        return rows
