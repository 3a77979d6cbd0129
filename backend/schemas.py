"""Pydantic schemas for API responses.

Fields are snake_case in Python and serialized as the camelCase keys the
dashboard front end reads.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models import BacklinksAvailable, BacklinksResult, PropertyReport


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChannelItem(CamelModel):
    """Users and engagement for one default channel group."""

    name: str
    users: int
    new_users: int
    engagement_rate: float


class GA4Response(CamelModel):
    """Response for GET /api/ga4."""

    days: int
    total_users: int
    new_users: int
    sessions: int
    engaged_sessions: int
    avg_engagement_time: float
    daily_dates: list[str]
    daily_users: list[int]
    channels: list[ChannelItem]
    sources: list[list[str | int | float]]
    pages: list[list[str | int | float]]
    channels_trend_labels: list[str]
    channels_trend: list[list[str | int]]

    @classmethod
    def from_report(cls, report: PropertyReport, days: int) -> "GA4Response":
        return cls(
            days=days,
            total_users=report.total_users,
            new_users=report.new_users,
            sessions=report.sessions,
            engaged_sessions=report.engaged_sessions,
            avg_engagement_time=report.avg_engagement_time,
            daily_dates=report.daily_dates,
            daily_users=report.daily_users,
            channels=[
                ChannelItem(
                    name=channel.name,
                    users=channel.users,
                    new_users=channel.new_users,
                    engagement_rate=channel.engagement_rate,
                )
                for channel in report.channels
            ],
            sources=report.sources,
            pages=report.pages,
            channels_trend_labels=report.channels_trend_labels,
            channels_trend=report.channels_trend,
        )


class BacklinksResponse(CamelModel):
    """Response for GET /api/backlinks. Unavailable data is all zeros and empty lists."""

    days: int
    daily_dates: list[str] = Field(default_factory=list)
    daily_backlinks: list[float] = Field(default_factory=list)
    total_backlinks: int = 0
    new_backlinks: int = 0
    referring_domains: int = 0
    follow_backlinks: int = 0
    nofollow_backlinks: int = 0
    avg_da: float = Field(default=0.0, alias="avgDA")
    top_domains: list[list[str | int]] = Field(default_factory=list)
    anchor_text_distribution: list[list[str | int]] = Field(default_factory=list)
    source: str = "none"
    data_available: bool = False
    reason: str | None = None

    @classmethod
    def from_result(cls, result: BacklinksResult) -> "BacklinksResponse":
        if isinstance(result, BacklinksAvailable):
            report = result.report
            return cls(
                days=report.days,
                daily_dates=report.daily_dates,
                daily_backlinks=report.daily_backlinks,
                total_backlinks=report.total_backlinks,
                new_backlinks=report.new_backlinks,
                referring_domains=report.referring_domains,
                follow_backlinks=report.follow_backlinks,
                nofollow_backlinks=report.nofollow_backlinks,
                avg_da=report.avg_da,
                top_domains=report.top_domains,
                anchor_text_distribution=report.anchor_text_distribution,
                source=report.source,
                data_available=True,
            )
        return cls(days=result.days, source="none", data_available=False, reason=result.reason)


class ErrorResponse(BaseModel):
    """Error body for 400 and 500 answers."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    error: str
    detail: str | None = None
    message: str | None = None
    data_available: bool | None = None
