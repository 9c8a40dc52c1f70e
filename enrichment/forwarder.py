from typing import Any, Dict, Optional

import requests

from config import Settings
from utils.logging_utils import get_logger

logger = get_logger(__name__)


class DeliveryError(Exception):
    pass


class DownstreamForwarder:
    """Single-shot JSON POST to the n8n webhook. Failures are raised, never retried."""

    def __init__(self, settings: Settings):
        self.default_timeout = settings.delivery_timeout_seconds

    def deliver(self, payload: Dict[str, Any], target_url: str, timeout: Optional[float] = None) -> int:
        headers = {"Content-Type": "application/json"}
        try:
            response = requests.post(
                target_url, json=payload, headers=headers, timeout=timeout or self.default_timeout
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else "?"
            raise DeliveryError(f"{target_url} responded with status {status}") from exc
        except requests.RequestException as exc:
            raise DeliveryError(f"POST to {target_url} failed: {exc}") from exc

        logger.info("Delivered %s to %s (status %s)", payload.get("event"), target_url, response.status_code)
        return response.status_code
