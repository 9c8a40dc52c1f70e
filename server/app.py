from typing import Optional

from fastapi import FastAPI

from config import Settings, load_settings
from enrichment.pipeline import EnrichmentPipeline
from server.proxy import create_proxy_router
from server.security import SignatureVerifier
from server.webhook import create_webhook_router
from utils.logging_utils import configure_logging, get_logger

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None, pipeline: Optional[EnrichmentPipeline] = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Zoom webinar relay", docs_url=None, redoc_url=None)

    app.include_router(create_webhook_router(SignatureVerifier(settings), pipeline or EnrichmentPipeline(settings)))
    if settings.proxy_api_key:
        app.include_router(create_proxy_router(settings))
    else:
        logger.info("PROXY_API_KEY not set; webinar management proxy disabled")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
