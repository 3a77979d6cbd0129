"""Analytics Dashboard API – FastAPI app serving GA4 and Search Console data."""

import logging
from datetime import date
from functools import lru_cache

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from backlinks_service import build_search_console, fetch_backlinks, generate_mock_backlinks
from config import Settings, configure_logging, load_settings
from credential_loader import load_ga4_credentials
from errors import ConfigurationError
from ga4_client import GA4ReportClient
from ga4_service import fetch_report, resolve_property_ids, resolve_window
from models import BacklinksAvailable, parse_days
from schemas import BacklinksResponse, ErrorResponse, GA4Response

logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> Settings:
    return load_settings()


@lru_cache
def get_report_client() -> GA4ReportClient:
    return GA4ReportClient(credentials=load_ga4_credentials(get_settings()))


def get_search_console_factory():
    return build_search_console


app = FastAPI(
    title="Analytics Dashboard API",
    description="GA4 and Search Console data for the marketing dashboard",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True, exclude_none=True))


@app.on_event("startup")
def startup() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(
        "Dashboard API ready - %d GA4 properties, default property id %s",
        len(settings.ga4_properties),
        settings.default_property_id or "not configured",
    )


@app.get("/api/ga4", response_model=GA4Response)
def ga4_report(
    days: str | None = None,
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    channel: str = "all",
    property_key: str | None = Query(default=None, alias="property"),
    settings: Settings = Depends(get_settings),
    client: GA4ReportClient = Depends(get_report_client),
):
    """
    GA4 dashboard data for one configured property, or every property merged
    together when property=overview.
    """
    try:
        window = resolve_window(parse_days(days), start_date, end_date)
        property_ids = resolve_property_ids(settings, property_key)
        report = fetch_report(client, property_ids, window, channel)
    except ConfigurationError as exc:
        return _error(400, ErrorResponse(error=str(exc)))
    except Exception as exc:
        logger.exception("GA4 API error")
        return _error(500, ErrorResponse(error="GA4 API request failed", detail=str(exc)))

    return GA4Response.from_report(report, days=window.days)


@app.get("/api/backlinks", response_model=BacklinksResponse, response_model_exclude_none=True)
def backlinks_report(
    days: str | None = None,
    property_key: str | None = Query(default=None, alias="property"),
    mock: bool = False,
    settings: Settings = Depends(get_settings),
    service_factory=Depends(get_search_console_factory),
):
    """Search Console data for a configured site; demo data only when mock=true."""
    key = property_key or settings.default_backlinks_property
    if key not in settings.backlink_sites:
        return _error(400, ErrorResponse(error=f"Unknown property: {key}", data_available=False))

    window_days = parse_days(days)
    if mock:
        return BacklinksResponse.from_result(BacklinksAvailable(generate_mock_backlinks(window_days)))

    try:
        result = fetch_backlinks(settings, key, window_days, service_factory=service_factory)
    except ConfigurationError as exc:
        return _error(400, ErrorResponse(error=str(exc), data_available=False))
    except Exception as exc:
        logger.exception("Backlinks API error for property %s", key)
        return _error(
            500,
            ErrorResponse(error="Failed to fetch backlinks data", message=str(exc), data_available=False),
        )

    return BacklinksResponse.from_result(result)


@app.get("/health")
def health() -> dict:
    """Health check for deployment."""
    return {"status": "ok"}


_static_dir = get_settings().static_dir
if _static_dir.is_dir():
    app.mount("/", StaticFiles(directory=_static_dir, html=True), name="static")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
