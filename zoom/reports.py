from typing import List, Optional, Union
from urllib.parse import quote

from config import Settings
from models import Record
from utils.logging_utils import get_logger
from zoom.auth import ZoomAuthClient
from zoom.pagination import fetch_all_pages

logger = get_logger(__name__)


def encode_webinar_id(webinar_id: Union[int, str]) -> str:
    # Webinar UUIDs may contain "/" and must be double-encoded.
    value = str(webinar_id)
    if value.startswith("/") or "//" in value:
        return quote(quote(value, safe=""), safe="")
    return quote(value, safe="")


class ZoomReportClient:
    def __init__(self, settings: Settings, auth: Optional[ZoomAuthClient] = None):
        self.base_url = settings.zoom_api_base_url.rstrip("/")
        self.auth = auth or ZoomAuthClient(settings)
        self.page_size = settings.page_size
        self.timeout = settings.page_timeout_seconds
        self.max_pages = settings.max_pages

    def _fetch(self, path: str, items_field: str, params: Optional[dict] = None) -> List[Record]:
        access_token = self.auth.obtain_access_token()
        logger.info("OAuth token obtained for %s", items_field)
        records = fetch_all_pages(
            f"{self.base_url}{path}",
            params,
            access_token,
            items_field,
            page_size=self.page_size,
            timeout=self.timeout,
            max_pages=self.max_pages,
        )
        logger.info("Fetched %s %s from %s", len(records), items_field, path)
        return records

    def fetch_participants(self, webinar_id: Union[int, str]) -> List[Record]:
        path = f"/report/webinars/{encode_webinar_id(webinar_id)}/participants"
        return self._fetch(path, "participants")

    def fetch_registrants(self, webinar_id: Union[int, str]) -> List[Record]:
        path = f"/webinars/{encode_webinar_id(webinar_id)}/registrants"
        return self._fetch(path, "registrants", {"status": "approved"})
