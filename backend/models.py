"""Data models and types used across the backend.

Internal report shapes live here. The JSON response models are in schemas.py.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta

MIN_DAYS = 1
MAX_DAYS = 365
DEFAULT_DAYS = 30

DATE_FORMAT = "%Y%m%d"


def parse_days(value: str | None) -> int | None:
    """Read a days query value; anything that is not a number counts as absent."""
    if not value:
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


def clamp_days(days: int | None, default: int = DEFAULT_DAYS) -> int:
    """Clamp a requested window length to [MIN_DAYS, MAX_DAYS]."""
    if days is None:
        return default
    return max(MIN_DAYS, min(MAX_DAYS, int(days)))


@dataclass(frozen=True)
class DateWindow:
    """Inclusive calendar date range shared by every report of one request."""

    start: date
    end: date

    @classmethod
    def trailing(cls, days: int, today: date | None = None) -> "DateWindow":
        end = today or date.today()
        return cls(start=end - timedelta(days=days - 1), end=end)

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def dates(self) -> list[str]:
        """Every date of the window as YYYYMMDD, ascending."""
        return [(self.start + timedelta(days=offset)).strftime(DATE_FORMAT) for offset in range(self.days)]


@dataclass
class ChannelSummary:
    name: str
    users: int
    new_users: int
    engagement_rate: float


@dataclass
class PropertyReport:
    """GA4 dashboard data for one property, or several merged together.

    sources rows: [name, users, new_users, engagement_rate]
    pages rows: [title, users, engaged_sessions, avg_engagement, engagement_rate]
    channels_trend rows: [date, *users per channel in channels_trend_labels order]
    """

    total_users: int = 0
    new_users: int = 0
    sessions: int = 0
    engaged_sessions: int = 0
    avg_engagement_time: float = 0.0
    daily_dates: list[str] = field(default_factory=list)
    daily_users: list[int] = field(default_factory=list)
    channels: list[ChannelSummary] = field(default_factory=list)
    sources: list[list] = field(default_factory=list)
    pages: list[list] = field(default_factory=list)
    channels_trend_labels: list[str] = field(default_factory=list)
    channels_trend: list[list] = field(default_factory=list)


@dataclass
class BacklinksReport:
    """Backlinks card data. For GSC data the fields carry search metrics."""

    days: int
    daily_dates: list[str]
    daily_backlinks: list[float]
    total_backlinks: int
    new_backlinks: int
    referring_domains: int
    follow_backlinks: int
    nofollow_backlinks: int
    avg_da: float
    top_domains: list[list]
    anchor_text_distribution: list[list]
    source: str


@dataclass(frozen=True)
class BacklinksAvailable:
    report: BacklinksReport


@dataclass(frozen=True)
class BacklinksUnavailable:
    days: int
    reason: str


BacklinksResult = BacklinksAvailable | BacklinksUnavailable
