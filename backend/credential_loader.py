"""Service-account credential loading for the GA4 and Search Console clients.

A missing credential is an expected state: every loader returns None instead
of raising, and callers decide what "no credential" means for them.
"""

import json
import logging
from collections.abc import Mapping
from pathlib import Path

from google.oauth2 import service_account

from config import BacklinkSite, Settings

logger = logging.getLogger(__name__)

GA4_SCOPES = ["https://www.googleapis.com/auth/analytics.readonly"]
SEARCH_CONSOLE_SCOPES = ["https://www.googleapis.com/auth/webmasters.readonly"]

REQUIRED_FIELDS = ("client_email", "private_key")


def _is_service_account(info: object) -> bool:
    return isinstance(info, dict) and all(info.get(field) for field in REQUIRED_FIELDS)


def load_service_account_info(path: Path) -> dict | None:
    """Read a service-account JSON file. Returns None if absent or unusable."""
    try:
        info = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning("Credential file %s not found", path)
        return None
    except (OSError, ValueError) as exc:
        logger.warning("Failed to load credential file %s: %s", path, exc)
        return None

    if not _is_service_account(info):
        logger.warning("Credential file %s is missing client_email or private_key", path)
        return None
    return info


def service_account_credentials(
    info: Mapping[str, str], scopes: list[str]
) -> service_account.Credentials | None:
    try:
        return service_account.Credentials.from_service_account_info(dict(info), scopes=scopes)
    except (ValueError, KeyError) as exc:
        logger.warning("Invalid service account for %s: %s", info.get("client_email", "?"), exc)
        return None


def site_credential_info(settings: Settings, site: BacklinkSite) -> dict | None:
    """Resolve the service-account JSON configured for a Search Console site."""
    if not site.credential_file:
        return None
    return load_service_account_info(settings.credentials_dir / site.credential_file)


def load_ga4_credentials(settings: Settings) -> service_account.Credentials | None:
    """
    Credentials for the GA4 Data API.

    Inline JSON wins over a key file. None means the client falls back to
    application default credentials.
    """
    if settings.ga4_credentials_info:
        if not _is_service_account(dict(settings.ga4_credentials_info)):
            logger.warning("GOOGLE_APPLICATION_CREDENTIALS_JSON is missing client_email or private_key")
            return None
        return service_account_credentials(settings.ga4_credentials_info, GA4_SCOPES)

    if settings.ga4_credentials_file:
        info = load_service_account_info(Path(settings.ga4_credentials_file))
        if info is None:
            return None
        return service_account_credentials(info, GA4_SCOPES)

    return None
