import hmac
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from config import Settings
from utils.logging_utils import get_logger
from zoom.auth import AuthError, ZoomAuthClient
from zoom.reports import encode_webinar_id

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProxyRoute:
    method: str
    path: str
    upstream_path: str
    forwards_body: bool = False


PROXY_ROUTES = (
    ProxyRoute("POST", "/webinars", "/users/me/webinars", forwards_body=True),
    ProxyRoute("GET", "/webinars/{webinar_id}", "/webinars/{webinar_id}"),
    ProxyRoute("PATCH", "/webinars/{webinar_id}", "/webinars/{webinar_id}", forwards_body=True),
    ProxyRoute("DELETE", "/webinars/{webinar_id}", "/webinars/{webinar_id}"),
    ProxyRoute(
        "POST", "/webinars/{webinar_id}/registrants", "/webinars/{webinar_id}/registrants", forwards_body=True
    ),
)


class ZoomProxy:
    """Pass-through calls to the Zoom management API with a fresh token per request."""

    def __init__(self, settings: Settings, auth: Optional[ZoomAuthClient] = None):
        self.base_url = settings.zoom_api_base_url.rstrip("/")
        self.auth = auth or ZoomAuthClient(settings)
        self.timeout = settings.page_timeout_seconds

    def forward(
        self,
        route: ProxyRoute,
        path_params: Dict[str, str],
        query: Optional[Dict[str, str]] = None,
        body: Any = None,
    ) -> requests.Response:
        encoded = {key: encode_webinar_id(value) for key, value in path_params.items()}
        url = self.base_url + route.upstream_path.format(**encoded)
        access_token = self.auth.obtain_access_token()
        headers = {"Authorization": f"Bearer {access_token}", "Content-Type": "application/json"}
        logger.info("Proxying %s %s", route.method, url)
        return requests.request(
            route.method,
            url,
            headers=headers,
            params=query or None,
            json=body if route.forwards_body else None,
            timeout=self.timeout,
        )


def _to_response(upstream: requests.Response) -> Response:
    if upstream.status_code == 204 or not upstream.content:
        return Response(status_code=upstream.status_code)
    try:
        return JSONResponse(content=upstream.json(), status_code=upstream.status_code)
    except ValueError:
        return Response(
            content=upstream.content,
            status_code=upstream.status_code,
            media_type=upstream.headers.get("Content-Type", "text/plain"),
        )


def create_proxy_router(settings: Settings, proxy: Optional[ZoomProxy] = None) -> APIRouter:
    proxy = proxy or ZoomProxy(settings)
    expected_key = settings.proxy_api_key or ""

    async def require_api_key(x_api_key: Optional[str] = Header(default=None)) -> None:
        if not expected_key or not x_api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")
        if not hmac.compare_digest(x_api_key.encode("utf-8"), expected_key.encode("utf-8")):
            raise HTTPException(status_code=401, detail="Invalid API key")

    router = APIRouter(dependencies=[Depends(require_api_key)])

    def make_endpoint(route: ProxyRoute):
        async def endpoint(request: Request) -> Response:
            body = None
            if route.forwards_body:
                try:
                    body = await request.json()
                except ValueError:
                    raise HTTPException(status_code=400, detail="Invalid JSON payload")
            try:
                upstream = await run_in_threadpool(
                    proxy.forward, route, dict(request.path_params), dict(request.query_params), body
                )
            except AuthError as exc:
                logger.error("Proxy %s %s failed to authenticate: %s", route.method, route.path, exc)
                raise HTTPException(status_code=502, detail="Zoom authentication failed")
            except requests.RequestException as exc:
                logger.error("Proxy %s %s failed: %s", route.method, route.path, exc)
                raise HTTPException(status_code=502, detail="Zoom request failed")
            return _to_response(upstream)

        return endpoint

    for route in PROXY_ROUTES:
        router.add_api_route(route.path, make_endpoint(route), methods=[route.method])
    return router
