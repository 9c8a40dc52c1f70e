import json

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request, Response
from pydantic import ValidationError

from enrichment.pipeline import EnrichmentPipeline
from models import (
    URL_VALIDATION_EVENT,
    WEBINAR_ENDED_EVENT,
    WEBINAR_STARTED_EVENT,
    UrlValidationPayload,
    WebhookEvent,
)
from server.security import SignatureVerifier
from utils.logging_utils import get_logger

logger = get_logger(__name__)


def create_webhook_router(verifier: SignatureVerifier, pipeline: EnrichmentPipeline) -> APIRouter:
    router = APIRouter()

    @router.post("/webhook")
    async def zoom_webhook(request: Request, background_tasks: BackgroundTasks):
        raw_body = await request.body()
        if not verifier.verify(request.headers, raw_body):
            raise HTTPException(status_code=401, detail="Invalid signature")

        try:
            data = json.loads(raw_body.decode("utf-8"))
            event = WebhookEvent(**data)
        except (UnicodeDecodeError, json.JSONDecodeError, TypeError, ValidationError):
            raise HTTPException(status_code=400, detail="Invalid JSON payload")

        if event.event == URL_VALIDATION_EVENT:
            try:
                challenge = UrlValidationPayload(**(event.payload if isinstance(event.payload, dict) else {}))
            except ValidationError:
                raise HTTPException(status_code=400, detail="plainToken is required")
            logger.info("Answering Zoom endpoint validation challenge")
            return {
                "plainToken": challenge.plainToken,
                "encryptedToken": verifier.compute_challenge_response(challenge.plainToken),
            }

        if event.event == WEBINAR_STARTED_EVENT:
            background_tasks.add_task(pipeline.forward_started, event.payload)
            return {"success": True}

        if event.event == WEBINAR_ENDED_EVENT:
            background_tasks.add_task(pipeline.run, event.payload)
            return {"success": True}

        logger.info("Ignoring unhandled event %r", event.event)
        return Response(status_code=200)

    return router
