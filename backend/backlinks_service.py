"""Backlinks card data from Google Search Console, plus an explicit demo dataset.

Search Console exposes no link data through its API, so the card is filled
with search analytics instead: impressions stand in for backlinks, clicks for
new backlinks, distinct queries for referring domains and average position
for domain authority.
"""

import logging
import random
from collections.abc import Callable
from datetime import date

from google.auth.exceptions import GoogleAuthError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from config import Settings
from credential_loader import SEARCH_CONSOLE_SCOPES, service_account_credentials, site_credential_info
from errors import ConfigurationError, UpstreamError
from models import (
    BacklinksAvailable,
    BacklinksReport,
    BacklinksResult,
    BacklinksUnavailable,
    DateWindow,
    clamp_days,
)

logger = logging.getLogger(__name__)

ROW_LIMIT = 10000
TOP_QUERIES = 6
TOP_DOMAINS = 5

MOCK_TOP_DOMAINS = [
    ("medium.com", 0.18, 8),
    ("reddit.com", 0.14, 5),
    ("linkedin.com", 0.12, 10),
    ("forbes.com", 0.10, 12),
    ("quora.com", 0.08, -5),
]
MOCK_ANCHOR_TEXTS = [
    ("real estate", 0.22),
    ("luxury homes", 0.18),
    ("property investment", 0.15),
    ("estate management", 0.12),
    ("magnum estates", 0.10),
    ("other anchors", 0.23),
]


def build_search_console(credentials):
    return build("searchconsole", "v1", credentials=credentials, cache_discovery=False)


def query_search_analytics(service, site_url: str, window: DateWindow) -> list[dict]:
    body = {
        "startDate": window.start.isoformat(),
        "endDate": window.end.isoformat(),
        "dimensions": ["page", "query"],
        "rowLimit": ROW_LIMIT,
        "dataState": "all",
    }
    logger.info("Fetching GSC data from %s to %s for %s", body["startDate"], body["endDate"], site_url)
    try:
        response = service.searchanalytics().query(siteUrl=site_url, body=body).execute()
    except (HttpError, GoogleAuthError) as exc:
        logger.error("GSC API error for %s: %s", site_url, exc)
        raise UpstreamError("gsc", str(exc)) from exc

    rows = response.get("rows", [])
    logger.info("Fetched GSC data for %s, rows: %d", site_url, len(rows))
    return rows


def summarize_search_analytics(rows: list[dict], window: DateWindow) -> BacklinksResult:
    """Reduce (page, query) rows to the backlinks card, or report no data."""
    clicks_by_query: dict[str, int] = {}
    total_clicks = 0
    total_impressions = 0
    total_position = 0.0
    row_count = 0
    clicked_impressions = 0
    unclicked_impressions = 0

    for row in rows:
        keys = row.get("keys") or []
        if len(keys) < 2:
            continue
        clicks = int(row.get("clicks") or 0)
        impressions = int(row.get("impressions") or 0)
        query = keys[1] or "direct"

        clicks_by_query[query] = clicks_by_query.get(query, 0) + clicks
        total_clicks += clicks
        total_impressions += impressions
        total_position += row.get("position") or 1
        row_count += 1
        if clicks > 0:
            clicked_impressions += impressions
        else:
            unclicked_impressions += impressions

    if total_impressions == 0:
        return BacklinksUnavailable(days=window.days, reason="no search impressions in range")

    avg_position = round(total_position / row_count, 1)
    top_queries = sorted(clicks_by_query.items(), key=lambda item: item[1], reverse=True)[:TOP_QUERIES]

    report = BacklinksReport(
        days=window.days,
        daily_dates=window.dates(),
        daily_backlinks=[round(total_impressions / window.days)] * window.days,
        total_backlinks=total_impressions,
        new_backlinks=total_clicks,
        referring_domains=len(clicks_by_query),
        follow_backlinks=clicked_impressions,
        nofollow_backlinks=unclicked_impressions,
        avg_da=avg_position,
        top_domains=[[query, clicks, round(avg_position)] for query, clicks in top_queries[:TOP_DOMAINS]],
        anchor_text_distribution=[[query, clicks] for query, clicks in top_queries],
        source="gsc",
    )
    return BacklinksAvailable(report)


def fetch_backlinks(
    settings: Settings,
    property_key: str,
    days: int | None = None,
    today: date | None = None,
    service_factory: Callable = build_search_console,
) -> BacklinksResult:
    """Fetch the backlinks card for a configured site.

    Raises ConfigurationError for an unknown key and UpstreamError when the
    Search Console call fails. A site without usable credentials yields
    BacklinksUnavailable.
    """
    site = settings.backlink_sites.get(property_key)
    if site is None:
        raise ConfigurationError(f"Unknown property: {property_key}")

    window = DateWindow.trailing(clamp_days(days), today)

    info = site_credential_info(settings, site)
    credentials = service_account_credentials(info, SEARCH_CONSOLE_SCOPES) if info else None
    if credentials is None:
        logger.info("No GSC credentials for property %s", property_key)
        return BacklinksUnavailable(days=window.days, reason="no credentials configured")

    logger.info("Loaded credentials for %s (%s)", property_key, info["client_email"])
    service = service_factory(credentials)
    rows = query_search_analytics(service, site.site_url, window)
    return summarize_search_analytics(rows, window)


def generate_mock_backlinks(
    days: int | None = None,
    today: date | None = None,
    rng: random.Random | None = None,
) -> BacklinksReport:
    """Synthetic backlinks data for demos. Only served when explicitly requested."""
    rng = rng or random.Random()
    window = DateWindow.trailing(clamp_days(days), today)

    base = 850 + rng.random() * 250
    trend = rng.random() * 5
    daily = [max(100.0, base + offset * trend + rng.random() * 40 - 20) for offset in range(window.days)]

    total = round(sum(daily) / window.days * 30)
    follow = round(total * 0.68)
    avg_da = 35 + rng.random() * 25

    return BacklinksReport(
        days=window.days,
        daily_dates=window.dates(),
        daily_backlinks=daily,
        total_backlinks=total,
        new_backlinks=round(total * 0.15),
        referring_domains=round(total * 0.25),
        follow_backlinks=follow,
        nofollow_backlinks=total - follow,
        avg_da=avg_da,
        top_domains=[[domain, round(total * share), round(avg_da + bonus)] for domain, share, bonus in MOCK_TOP_DOMAINS],
        anchor_text_distribution=[[anchor, round(total * share)] for anchor, share in MOCK_ANCHOR_TEXTS],
        source="mock",
    )
