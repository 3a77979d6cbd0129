"""GA4 dashboard data: per-property report fetching and multi-property aggregation."""

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import date

from config import Settings
from errors import ConfigurationError
from ga4_client import CHANNEL_DIMENSION, GA4ReportClient, ReportQuery, ReportRow
from models import ChannelSummary, DateWindow, PropertyReport, clamp_days

logger = logging.getLogger(__name__)

OVERVIEW_KEY = "overview"
TOP_ROWS = 10

CHANNEL_GROUPS = {
    "organic": "Organic Search",
    "paid": "Paid Search",
    "social": "Organic Social",
    "direct": "Direct",
    "referral": "Referral",
}

TOTALS_QUERY = ReportQuery(
    name="totals",
    metrics=("activeUsers", "newUsers", "sessions", "engagedSessions", "userEngagementDuration"),
)
DAILY_QUERY = ReportQuery(
    name="daily",
    metrics=("activeUsers",),
    dimensions=("date",),
    order_by_dimension="date",
)
CHANNELS_QUERY = ReportQuery(
    name="channels",
    metrics=("activeUsers", "newUsers", "engagementRate"),
    dimensions=(CHANNEL_DIMENSION,),
)
SOURCES_QUERY = ReportQuery(
    name="sources",
    metrics=("activeUsers", "newUsers", "engagementRate"),
    dimensions=("firstUserSource",),
    order_by_metric="activeUsers",
    limit=TOP_ROWS,
)
PAGES_QUERY = ReportQuery(
    name="pages",
    metrics=("activeUsers", "engagedSessions", "engagementRate", "userEngagementDuration"),
    dimensions=("pageTitle",),
    order_by_metric="activeUsers",
    limit=TOP_ROWS,
)
# Split by channel already, so the channel filter is not applied.
CHANNELS_TREND_QUERY = ReportQuery(
    name="channels_trend",
    metrics=("activeUsers",),
    dimensions=("date", CHANNEL_DIMENSION),
    order_by_dimension="date",
    filtered=False,
)

PROPERTY_QUERIES = (
    TOTALS_QUERY,
    DAILY_QUERY,
    CHANNELS_QUERY,
    SOURCES_QUERY,
    PAGES_QUERY,
    CHANNELS_TREND_QUERY,
)


def resolve_channel_group(channel: str | None) -> str | None:
    """Map a dashboard channel key to its GA4 channel group; None means no filter."""
    if not channel or channel == "all":
        return None
    return CHANNEL_GROUPS.get(channel)


def resolve_window(
    days: int | None,
    start_date: date | None = None,
    end_date: date | None = None,
    today: date | None = None,
) -> DateWindow:
    """Explicit start/end dates win over a trailing window of `days`."""
    if start_date and end_date:
        if end_date < start_date:
            raise ConfigurationError("endDate must not be before startDate")
        return DateWindow(start=start_date, end=end_date)
    return DateWindow.trailing(clamp_days(days), today)


def resolve_property_ids(settings: Settings, property_key: str | None) -> list[str]:
    key = property_key or settings.default_property_key

    if key == OVERVIEW_KEY:
        property_ids = list(settings.ga4_properties.values())
        if not property_ids and settings.default_property_id:
            property_ids = [settings.default_property_id]
    elif key in settings.ga4_properties:
        property_ids = [settings.ga4_properties[key]]
    elif not settings.ga4_properties and settings.default_property_id:
        property_ids = [settings.default_property_id]
    else:
        property_ids = []

    if not property_ids:
        raise ConfigurationError(f"Invalid property selected: {key}")
    return property_ids


def _count(value: float) -> int:
    return int(round(value))


def _by_date(rows: list[ReportRow]) -> dict[str, int]:
    users_by_date: dict[str, int] = {}
    for row in rows:
        day = row.dimensions[0]
        users_by_date[day] = users_by_date.get(day, 0) + _count(row.metrics[0])
    return users_by_date


def _channels(rows: list[ReportRow]) -> list[ChannelSummary]:
    return [
        ChannelSummary(
            name=row.dimensions[0] or "Direct",
            users=_count(row.metrics[0]),
            new_users=_count(row.metrics[1]),
            engagement_rate=row.metrics[2],
        )
        for row in rows
    ]


def _sources(rows: list[ReportRow]) -> list[list]:
    return [
        [row.dimensions[0] or "Direct", _count(row.metrics[0]), _count(row.metrics[1]), row.metrics[2]]
        for row in rows
    ]


def _pages(rows: list[ReportRow]) -> list[list]:
    pages = []
    for row in rows:
        users, engaged, engagement_rate, engagement_duration = row.metrics
        avg_engagement = engagement_duration / users if users else 0.0
        pages.append([row.dimensions[0] or "/", _count(users), _count(engaged), avg_engagement, engagement_rate])
    return pages


def _trend_rows(
    users: dict[tuple[str, str], int], dates: list[str], labels: list[str]
) -> list[list]:
    return [[day] + [users.get((day, label), 0) for label in labels] for day in dates]


def _channels_trend(rows: list[ReportRow], window: DateWindow) -> tuple[list[str], list[list]]:
    users: dict[tuple[str, str], int] = {}
    for row in rows:
        key = (row.dimensions[0], row.dimensions[1] or "Direct")
        users[key] = users.get(key, 0) + _count(row.metrics[0])
    labels = sorted({channel for _, channel in users})
    return labels, _trend_rows(users, window.dates(), labels)


def build_property_report(results: dict[str, list[ReportRow]], window: DateWindow) -> PropertyReport:
    """Reshape the raw rows of one property's reports, keyed by query name."""
    totals = results[TOTALS_QUERY.name]
    total_users, new_users, sessions, engaged_sessions, engagement_duration = (
        totals[0].metrics if totals else [0.0] * len(TOTALS_QUERY.metrics)
    )

    users_by_date = _by_date(results[DAILY_QUERY.name])
    daily_dates = window.dates()
    trend_labels, trend = _channels_trend(results[CHANNELS_TREND_QUERY.name], window)

    return PropertyReport(
        total_users=_count(total_users),
        new_users=_count(new_users),
        sessions=_count(sessions),
        engaged_sessions=_count(engaged_sessions),
        avg_engagement_time=engagement_duration / sessions if sessions else 0.0,
        daily_dates=daily_dates,
        daily_users=[users_by_date.get(day, 0) for day in daily_dates],
        channels=_channels(results[CHANNELS_QUERY.name]),
        sources=_sources(results[SOURCES_QUERY.name]),
        pages=_pages(results[PAGES_QUERY.name]),
        channels_trend_labels=trend_labels,
        channels_trend=trend,
    )


def fetch_property_report(
    client: GA4ReportClient,
    property_id: str,
    window: DateWindow,
    channel: str | None = "all",
) -> PropertyReport:
    """Run every dashboard report for one property in parallel and reshape the rows."""
    channel_group = resolve_channel_group(channel)
    logger.info(
        "Fetching GA4 property %s from %s to %s (channel=%s)",
        property_id,
        window.start,
        window.end,
        channel_group or "all",
    )

    with ThreadPoolExecutor(max_workers=len(PROPERTY_QUERIES)) as executor:
        futures = {
            query.name: executor.submit(client.run_report, property_id, window, query, channel_group)
            for query in PROPERTY_QUERIES
        }
        results = {name: future.result() for name, future in futures.items()}

    return build_property_report(results, window)


def _merge_ranked(rows_per_report: list[list[list]], width: int) -> list[list]:
    # Only the two leading numbers are summed; the remaining columns are not re-derived.
    merged: dict[str, list] = {}
    for rows in rows_per_report:
        for row in rows:
            entry = merged.setdefault(row[0], [row[0]] + [0] * (width - 1))
            entry[1] += row[1]
            entry[2] += row[2]
    return sorted(merged.values(), key=lambda entry: entry[1], reverse=True)[:TOP_ROWS]


def aggregate_reports(reports: Sequence[PropertyReport]) -> PropertyReport:
    """Merge several property reports into one. A single report is returned as is."""
    if not reports:
        return PropertyReport()
    if len(reports) == 1:
        return reports[0]

    sessions = sum(report.sessions for report in reports)
    weighted_time = sum(report.avg_engagement_time * report.sessions for report in reports)

    daily: dict[str, int] = {}
    for report in reports:
        for day, users in zip(report.daily_dates, report.daily_users):
            daily[day] = daily.get(day, 0) + users
    daily_dates = sorted(daily)

    channels: dict[str, ChannelSummary] = {}
    weighted_rates: dict[str, float] = {}
    for report in reports:
        for channel in report.channels:
            merged = channels.setdefault(channel.name, ChannelSummary(channel.name, 0, 0, 0.0))
            merged.users += channel.users
            merged.new_users += channel.new_users
            weighted_rates[channel.name] = weighted_rates.get(channel.name, 0.0) + channel.engagement_rate * channel.users
    for merged in channels.values():
        merged.engagement_rate = weighted_rates[merged.name] / merged.users if merged.users else 0.0

    trend: dict[tuple[str, str], int] = {}
    for report in reports:
        for row in report.channels_trend:
            for label, users in zip(report.channels_trend_labels, row[1:]):
                trend[(row[0], label)] = trend.get((row[0], label), 0) + users
    trend_dates = sorted({row[0] for report in reports for row in report.channels_trend})
    trend_labels = sorted({label for report in reports for label in report.channels_trend_labels})

    return PropertyReport(
        total_users=sum(report.total_users for report in reports),
        new_users=sum(report.new_users for report in reports),
        sessions=sessions,
        engaged_sessions=sum(report.engaged_sessions for report in reports),
        avg_engagement_time=weighted_time / sessions if sessions else 0.0,
        daily_dates=daily_dates,
        daily_users=[daily[day] for day in daily_dates],
        channels=list(channels.values()),
        sources=_merge_ranked([report.sources for report in reports], width=4),
        pages=_merge_ranked([report.pages for report in reports], width=5),
        channels_trend_labels=trend_labels,
        channels_trend=_trend_rows(trend, trend_dates, trend_labels),
    )


def fetch_report(
    client: GA4ReportClient,
    property_ids: Sequence[str],
    window: DateWindow,
    channel: str | None = "all",
) -> PropertyReport:
    """Fetch every property in parallel and merge. Any failure fails the whole report."""
    with ThreadPoolExecutor(max_workers=max(1, len(property_ids))) as executor:
        futures = [
            executor.submit(fetch_property_report, client, property_id, window, channel)
            for property_id in property_ids
        ]
        reports = [future.result() for future in futures]
    return aggregate_reports(reports)
