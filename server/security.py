import hashlib
import hmac
import time
from typing import Mapping, Optional

from config import Settings
from utils.logging_utils import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADER = "x-zm-signature"
TIMESTAMP_HEADER = "x-zm-request-timestamp"


class SignatureVerifier:
    """
    Zoom webhook authenticity checks.

    Zoom signs `v0:{x-zm-request-timestamp}:{raw body}` with the app's secret token
    and sends `v0=<hex digest>` in x-zm-signature. The same secret answers the
    endpoint.url_validation challenge.
    """

    def __init__(self, settings: Settings):
        self._secret = settings.zoom_webhook_secret_token.encode("utf-8")
        self.tolerance_seconds: Optional[int] = settings.webhook_timestamp_tolerance_seconds

    def _hexdigest(self, message: str) -> str:
        return hmac.new(key=self._secret, msg=message.encode("utf-8"), digestmod=hashlib.sha256).hexdigest()

    def compute_signature(self, timestamp: str, raw_body: bytes) -> str:
        return "v0=" + self._hexdigest(f"v0:{timestamp}:{raw_body.decode('utf-8')}")

    def compute_challenge_response(self, plain_token: str) -> str:
        return self._hexdigest(plain_token)

    def _is_stale(self, timestamp: str) -> bool:
        if self.tolerance_seconds is None:
            return False
        try:
            sent_at = int(timestamp)
        except ValueError:
            return True
        return abs(int(time.time()) - sent_at) > self.tolerance_seconds

    def verify(self, headers: Mapping[str, str], raw_body: bytes) -> bool:
        lowered = {k.lower(): v for k, v in headers.items()}
        signature = lowered.get(SIGNATURE_HEADER)
        timestamp = lowered.get(TIMESTAMP_HEADER)
        if not signature or not timestamp:
            logger.error("Webhook request is missing %s or %s", SIGNATURE_HEADER, TIMESTAMP_HEADER)
            return False

        if self._is_stale(timestamp):
            logger.error("Webhook timestamp outside tolerance: %s", timestamp)
            return False

        try:
            expected = self.compute_signature(timestamp, raw_body)
        except UnicodeDecodeError:
            logger.error("Webhook body is not valid UTF-8")
            return False

        if not hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8")):
            logger.error("Signature mismatch for timestamp %s", timestamp)
            return False
        return True
