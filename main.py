import asyncio
from typing import Optional

import typer

from config import load_settings
from enrichment.forwarder import DeliveryError
from enrichment.pipeline import EnrichmentPipeline
from models import WebinarObject
from server.security import SignatureVerifier
from utils.logging_utils import configure_logging, get_logger
from zoom.auth import AuthError
from zoom.pagination import UpstreamFetchError

logger = get_logger(__name__)

app = typer.Typer(help="Zoom webinar webhook relay to n8n.")


def _settings():
    try:
        settings = load_settings()
    except RuntimeError as exc:
        typer.echo(f"[error] {exc}", err=True)
        raise typer.Exit(code=1)
    configure_logging(settings.log_level)
    return settings


@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address; defaults to HOST."),
    port: Optional[int] = typer.Option(None, help="Bind port; defaults to PORT."),
):
    """
    Run the webhook relay HTTP server.
    """
    import uvicorn

    from server.app import create_app

    settings = _settings()
    uvicorn.run(create_app(settings), host=host or settings.host, port=port or settings.port)


@app.command("enrich")
def enrich(
    webinar_id: str = typer.Option(..., help="Webinar id to fetch participants and registrants for"),
    topic: Optional[str] = typer.Option(None, help="Topic to include in the forwarded webinar_info"),
    start_time: Optional[str] = typer.Option(None),
    end_time: Optional[str] = typer.Option(None),
):
    """
    Re-run the webinar.ended enrichment for one webinar and forward it to n8n.
    """
    settings = _settings()
    pipeline = EnrichmentPipeline(settings)
    # Live Zoom events carry numeric webinar ids.
    coerced_id = int(webinar_id) if webinar_id.isdigit() else webinar_id
    webinar = WebinarObject(id=coerced_id, topic=topic, start_time=start_time, end_time=end_time)

    typer.echo(f"[info] webinar_id={webinar_id}")
    try:
        enriched = asyncio.run(pipeline.enrich(webinar))
    except (AuthError, UpstreamFetchError, DeliveryError) as exc:
        logger.error("Enrichment failed: %s", exc)
        raise typer.Exit(code=1)

    stats = enriched.payload.statistics
    typer.echo(
        f"Delivered: participants={stats.total_participants} registrants={stats.total_registrants} "
        f"no_shows={stats.no_shows_count} attendance={stats.attendance_rate_percent}%"
    )


@app.command("challenge")
def challenge(plain_token: str = typer.Argument(..., help="plainToken from an endpoint.url_validation event")):
    """
    Print the encryptedToken Zoom expects for a validation challenge.
    """
    settings = _settings()
    typer.echo(SignatureVerifier(settings).compute_challenge_response(plain_token))


if __name__ == "__main__":
    app()
