from typing import Any, Dict, Iterator, List, Optional

import requests

from models import Record
from utils.logging_utils import get_logger

logger = get_logger(__name__)

MAX_PAGE_SIZE = 300


class UpstreamFetchError(Exception):
    pass


class TooManyPagesError(UpstreamFetchError):
    pass


def iter_pages(
    url: str,
    params: Optional[Dict[str, Any]],
    access_token: str,
    items_field: str,
    page_size: int = MAX_PAGE_SIZE,
    timeout: float = 10.0,
    max_pages: int = 1000,
) -> Iterator[List[Record]]:
    """
    Yield each page's `items_field` list until Zoom stops returning next_page_token.

    Raises UpstreamFetchError on any HTTP failure and TooManyPagesError once
    `max_pages` pages have been read and Zoom still reports more.
    """
    headers = {"Authorization": f"Bearer {access_token}", "Content-Type": "application/json"}
    next_page_token: Optional[str] = None
    page_count = 0

    while True:
        if page_count >= max_pages:
            raise TooManyPagesError(f"{url} still paginating after {max_pages} pages")
        page_count += 1

        query = dict(params or {})
        query["page_size"] = page_size
        if next_page_token:
            query["next_page_token"] = next_page_token

        logger.debug("Fetching page %s of %s from %s", page_count, items_field, url)
        try:
            response = requests.get(url, headers=headers, params=query, timeout=timeout)
            response.raise_for_status()
            body = response.json()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else "?"
            logger.error("Fetching %s page %s failed (status %s)", items_field, page_count, status)
            raise UpstreamFetchError(f"{url} returned status {status}") from exc
        except requests.RequestException as exc:
            logger.error("Fetching %s page %s failed: %s", items_field, page_count, exc)
            raise UpstreamFetchError(f"{url} request failed: {exc}") from exc
        except ValueError as exc:
            raise UpstreamFetchError(f"{url} returned a non-JSON body") from exc

        if not isinstance(body, dict):
            raise UpstreamFetchError(f"{url} returned an unexpected body")

        items = body.get(items_field) or []
        logger.info("Page %s fetched: %s %s", page_count, len(items), items_field)
        yield items

        next_page_token = body.get("next_page_token") or None
        if not next_page_token:
            return


def fetch_all_pages(
    url: str,
    params: Optional[Dict[str, Any]],
    access_token: str,
    items_field: str,
    page_size: int = MAX_PAGE_SIZE,
    timeout: float = 10.0,
    max_pages: int = 1000,
) -> List[Record]:
    records: List[Record] = []
    for page in iter_pages(url, params, access_token, items_field, page_size, timeout, max_pages):
        records.extend(page)
    return records
