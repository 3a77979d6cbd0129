import random
from unittest.mock import MagicMock, patch

import pytest
from googleapiclient.errors import HttpError

import backlinks_service
from backlinks_service import (
    fetch_backlinks,
    generate_mock_backlinks,
    query_search_analytics,
    summarize_search_analytics,
)
from conftest import TODAY
from errors import ConfigurationError, UpstreamError
from models import BacklinksAvailable, BacklinksUnavailable, DateWindow

WINDOW = DateWindow.trailing(10, TODAY)

GSC_ROWS = [
    {"keys": ["https://magnumestate.com/", "magnum estate"], "clicks": 12, "impressions": 300, "position": 2.0},
    {"keys": ["https://magnumestate.com/villas", "bali villas"], "clicks": 3, "impressions": 500, "position": 8.5},
    {"keys": ["https://magnumestate.com/", "bali villas"], "clicks": 0, "impressions": 200, "position": 12.0},
    {"keys": ["https://magnumestate.com/blog"], "clicks": 99, "impressions": 99, "position": 1.0},
]


@pytest.fixture
def fake_credentials():
    with patch.object(backlinks_service, "service_account_credentials", return_value=MagicMock()) as factory:
        yield factory


class TestSummarize:
    def test_maps_search_metrics(self):
        result = summarize_search_analytics(GSC_ROWS, WINDOW)

        assert isinstance(result, BacklinksAvailable)
        report = result.report
        assert report.source == "gsc"
        assert report.total_backlinks == 1000
        assert report.new_backlinks == 15
        assert report.referring_domains == 2
        assert report.follow_backlinks == 800
        assert report.nofollow_backlinks == 200
        assert report.avg_da == 7.5
        assert report.anchor_text_distribution == [["magnum estate", 12], ["bali villas", 3]]
        assert report.top_domains == [["magnum estate", 12, 8], ["bali villas", 3, 8]]

    def test_daily_series_matches_dates(self):
        report = summarize_search_analytics(GSC_ROWS, WINDOW).report

        assert len(report.daily_dates) == len(report.daily_backlinks) == 10
        assert report.daily_dates[-1] == "20250310"
        assert report.daily_backlinks == [100] * 10

    def test_top_queries_capped(self):
        rows = [{"keys": ["/", f"q{i}"], "clicks": i, "impressions": 10, "position": 3} for i in range(10)]
        report = summarize_search_analytics(rows, WINDOW).report

        assert len(report.anchor_text_distribution) == 6
        assert len(report.top_domains) == 5
        assert report.anchor_text_distribution[0] == ["q9", 9]

    def test_missing_values_use_defaults(self):
        rows = [{"keys": ["/", ""], "impressions": 4}]
        report = summarize_search_analytics(rows, WINDOW).report

        assert report.anchor_text_distribution == [["direct", 0]]
        assert report.avg_da == 1.0

    def test_zero_impressions_is_unavailable(self):
        rows = [{"keys": ["/", "nothing"], "clicks": 0, "impressions": 0, "position": 40}]
        result = summarize_search_analytics(rows, WINDOW)

        assert isinstance(result, BacklinksUnavailable)
        assert result.days == 10

    def test_no_rows_is_unavailable(self):
        assert isinstance(summarize_search_analytics([], WINDOW), BacklinksUnavailable)


class TestFetchBacklinks:
    def test_unknown_property(self, settings):
        with pytest.raises(ConfigurationError):
            fetch_backlinks(settings, "unknown", 30)

    def test_missing_credential_file(self, settings, search_console):
        result = fetch_backlinks(settings, "magnum", 30, today=TODAY, service_factory=lambda creds: search_console)

        assert result == BacklinksUnavailable(days=30, reason="no credentials configured")
        search_console.searchanalytics.assert_not_called()

    def test_site_without_credential_file(self, settings):
        result = fetch_backlinks(settings, "skystar", 30, today=TODAY)
        assert isinstance(result, BacklinksUnavailable)

    def test_invalid_credential_file(self, settings):
        settings.credentials_dir.mkdir(parents=True)
        (settings.credentials_dir / "endless-office.json").write_text("{not json")

        assert isinstance(fetch_backlinks(settings, "magnum", 30, today=TODAY), BacklinksUnavailable)

    def test_queries_search_console(self, settings, service_account_file, fake_credentials, search_console):
        search_console.searchanalytics.return_value.query.return_value.execute.return_value = {"rows": GSC_ROWS}
        result = fetch_backlinks(settings, "magnum", 10, today=TODAY, service_factory=lambda creds: search_console)

        assert isinstance(result, BacklinksAvailable)
        assert result.report.total_backlinks == 1000
        search_console.searchanalytics.return_value.query.assert_called_once_with(
            siteUrl="https://magnumestate.com/",
            body={
                "startDate": "2025-03-01",
                "endDate": "2025-03-10",
                "dimensions": ["page", "query"],
                "rowLimit": 10000,
                "dataState": "all",
            },
        )

    def test_days_clamped(self, settings, service_account_file, fake_credentials, search_console):
        search_console.searchanalytics.return_value.query.return_value.execute.return_value = {"rows": GSC_ROWS}
        result = fetch_backlinks(settings, "magnum", 9999, today=TODAY, service_factory=lambda creds: search_console)

        assert result.report.days == 365
        assert len(result.report.daily_dates) == 365

    def test_upstream_failure(self, settings, service_account_file, fake_credentials, search_console):
        error = HttpError(MagicMock(status=403, reason="Forbidden"), b'{"error": {"message": "denied"}}')
        search_console.searchanalytics.return_value.query.return_value.execute.side_effect = error

        with pytest.raises(UpstreamError):
            query_search_analytics(search_console, "https://magnumestate.com/", WINDOW)
        with pytest.raises(UpstreamError):
            fetch_backlinks(settings, "magnum", 10, today=TODAY, service_factory=lambda creds: search_console)


class TestMockBacklinks:
    @pytest.mark.parametrize("days", [1, 7, 30, 365])
    def test_internally_consistent(self, days):
        report = generate_mock_backlinks(days, today=TODAY, rng=random.Random(days))

        assert report.source == "mock"
        assert len(report.daily_backlinks) == len(report.daily_dates) == days
        assert all(value >= 100 for value in report.daily_backlinks)
        assert report.follow_backlinks + report.nofollow_backlinks == report.total_backlinks
        assert report.new_backlinks == round(0.15 * report.total_backlinks)
        assert report.referring_domains == round(0.25 * report.total_backlinks)
        assert 35 <= report.avg_da <= 60

    def test_reproducible_with_seed(self):
        first = generate_mock_backlinks(30, today=TODAY, rng=random.Random(7))
        second = generate_mock_backlinks(30, today=TODAY, rng=random.Random(7))
        assert first == second

    def test_fixed_lists(self):
        report = generate_mock_backlinks(30, today=TODAY, rng=random.Random(1))

        assert [row[0] for row in report.top_domains] == [
            "medium.com",
            "reddit.com",
            "linkedin.com",
            "forbes.com",
            "quora.com",
        ]
        assert len(report.anchor_text_distribution) == 6
