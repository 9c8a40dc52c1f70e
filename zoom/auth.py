import base64

import requests

from config import Settings
from utils.logging_utils import get_logger

logger = get_logger(__name__)


class AuthError(Exception):
    pass


class ZoomAuthClient:
    """
    Exchanges the account's Server-to-Server OAuth credentials for a short-lived
    bearer token. Tokens are not cached; every caller gets a fresh one.
    """

    def __init__(self, settings: Settings):
        self.oauth_url = settings.zoom_oauth_url
        self.account_id = settings.zoom_account_id
        self.timeout = settings.token_timeout_seconds
        raw = f"{settings.zoom_client_id}:{settings.zoom_client_secret}".encode("utf-8")
        self._basic_credentials = base64.b64encode(raw).decode("ascii")

    def obtain_access_token(self) -> str:
        headers = {"Authorization": f"Basic {self._basic_credentials}"}
        params = {"grant_type": "account_credentials", "account_id": self.account_id}

        try:
            response = requests.post(self.oauth_url, headers=headers, params=params, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.HTTPError as exc:
            logger.error(
                "Zoom token exchange failed (status %s): %s",
                exc.response.status_code if exc.response is not None else "?",
                exc.response.text if exc.response is not None else "",
            )
            raise AuthError("Zoom token exchange was rejected") from exc
        except requests.RequestException as exc:
            logger.error("Zoom token exchange failed: %s", exc)
            raise AuthError(f"Zoom token exchange failed: {exc}") from exc
        except ValueError as exc:
            raise AuthError("Zoom token response was not valid JSON") from exc

        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            raise AuthError("Zoom token response did not contain access_token")
        return token
