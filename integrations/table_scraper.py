"""
URL table scraper integration.

Calls the Supabase edge function that fetches a page and extracts its HTML
tables. The function answers {"tables": [{"tableIndex", "headers", "rows"}]}
or {"error": "..."}.
"""

from typing import Optional
from urllib.parse import urlparse
import requests
import structlog

from config import settings
from models.import_data import TableCandidate
from parsers.tabular_parser import tables_to_candidates
from exceptions import ValidationError, TableScrapeError

logger = structlog.get_logger(__name__)


def validate_url(url: Optional[str]) -> bool:
    """True for absolute http(s) URLs with a host."""
    if not url:
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _function_url() -> str:
    return f"{settings.functions_url}/{settings.scrape_function_name}"


def _headers() -> dict[str, str]:
    return {
        "Authorization": f"Bearer {settings.supabase_key}",
        "apikey": settings.supabase_key,
        "Content-Type": "application/json",
    }


def fetch_tables_from_url(url: str) -> list[TableCandidate]:
    """
    Extract the tables found at a URL.

    Args:
        url: Page to scrape

    Returns:
        One TableCandidate per table (empty list when the page has none)

    Raises:
        ValidationError: If the URL is not a valid http(s) URL
        TableScrapeError: If the edge function fails or reports an error
    """
    if not validate_url(url):
        raise ValidationError(
            code="INVALID_URL",
            message="Please enter a valid URL",
            details={"url": url}
        )

    logger.info("fetching_tables_from_url", url=url)

    try:
        response = requests.post(
            _function_url(),
            json={"url": url.strip()},
            headers=_headers(),
            timeout=settings.scrape_timeout_seconds,
        )
        payload = response.json() if response.content else {}
    except requests.exceptions.RequestException as e:
        logger.error("table_scrape_request_failed", url=url, error=str(e))
        raise TableScrapeError(f"Failed to fetch tables: {e}", details={"url": url})
    except ValueError as e:
        logger.error("table_scrape_invalid_response", url=url, error=str(e))
        raise TableScrapeError("Table scraper returned an invalid response", details={"url": url})

    if not response.ok or (isinstance(payload, dict) and payload.get("error")):
        message = payload.get("error") if isinstance(payload, dict) else None
        logger.error(
            "table_scrape_failed",
            url=url,
            status_code=response.status_code,
            error=message
        )
        raise TableScrapeError(
            f"Failed to fetch tables: {message or response.status_code}",
            details={"url": url, "status_code": response.status_code}
        )

    candidates = tables_to_candidates(payload.get("tables") or [])

    logger.info("tables_fetched", url=url, count=len(candidates))

    return candidates
