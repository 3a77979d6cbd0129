"""
Process configuration, read once at startup.

Values come from the environment. A .env (and the legacy GA4.env) file in the
backend root is loaded automatically using python-dotenv:

GA4_PROPERTIES_JSON={"magnumestate": "123456789", "anoya": "987654321"}
GA4_PROPERTY_ID=123456789
GOOGLE_APPLICATION_CREDENTIALS=/path/to/service_account.json
"""

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent

load_dotenv(dotenv_path=BASE_DIR / ".env")
load_dotenv(dotenv_path=BASE_DIR / "GA4.env")

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@dataclass(frozen=True)
class BacklinkSite:
    """A Search Console site and the service-account file that can read it."""

    site_url: str
    credential_file: str | None


BACKLINK_SITES: Mapping[str, BacklinkSite] = MappingProxyType(
    {
        "magnum": BacklinkSite("https://magnumestate.com/", "endless-office.json"),
        "anoya": BacklinkSite("https://anoyavillas.com/", "anoya-villas.json"),
        "shisha": BacklinkSite("https://shishacool.com/", "shisha-cool.json"),
        "skystar": BacklinkSite("https://skystars.com/", None),
        "theumala": BacklinkSite("https://theumala.com/", None),
    }
)


@dataclass(frozen=True)
class Settings:
    ga4_properties: Mapping[str, str]
    default_property_id: str | None
    default_property_key: str
    ga4_credentials_info: Mapping[str, str] | None
    ga4_credentials_file: str | None
    backlink_sites: Mapping[str, BacklinkSite]
    default_backlinks_property: str
    credentials_dir: Path
    static_dir: Path
    port: int
    log_level: str


def _parse_json_object(raw: str, name: str) -> dict | None:
    raw = raw.strip()
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse %s: %s", name, exc)
        return None
    if not isinstance(parsed, dict):
        logger.error("Failed to parse %s: expected a JSON object", name)
        return None
    return parsed


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build an immutable Settings value from environment variables."""
    env = os.environ if environ is None else environ

    properties = _parse_json_object(env.get("GA4_PROPERTIES_JSON", ""), "GA4_PROPERTIES_JSON") or {}
    properties = {str(key): str(value) for key, value in properties.items() if value}

    default_property_id = env.get("GA4_PROPERTY_ID", "").strip() or None
    if default_property_id is None and properties:
        default_property_id = next(iter(properties.values()))

    credentials_info = _parse_json_object(
        env.get("GOOGLE_APPLICATION_CREDENTIALS_JSON", ""),
        "GOOGLE_APPLICATION_CREDENTIALS_JSON",
    )

    try:
        port = int(env.get("PORT", "3000"))
    except ValueError:
        logger.error("Invalid PORT value %r, using 3000", env.get("PORT"))
        port = 3000

    return Settings(
        ga4_properties=MappingProxyType(properties),
        default_property_id=default_property_id,
        default_property_key=env.get("GA4_DEFAULT_PROPERTY", "").strip() or "magnumestate",
        ga4_credentials_info=MappingProxyType(credentials_info) if credentials_info else None,
        ga4_credentials_file=env.get("GOOGLE_APPLICATION_CREDENTIALS", "").strip() or None,
        backlink_sites=BACKLINK_SITES,
        default_backlinks_property=env.get("GSC_DEFAULT_PROPERTY", "").strip() or "magnum",
        credentials_dir=Path(env.get("GSC_CREDENTIALS_DIR", "").strip() or BASE_DIR.parent / "credentials"),
        static_dir=Path(env.get("STATIC_DIR", "").strip() or BASE_DIR.parent / "public"),
        port=port,
        log_level=env.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
