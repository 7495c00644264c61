"""HTTP endpoint receiving gateway callbacks (acknowledgements, session status)."""

from __future__ import annotations

import logging
import threading

import uvicorn
from fastapi import FastAPI, HTTPException, Request

from .waha import WahaTransport

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/hooks/whatsapp"


def create_app(transport: WahaTransport) -> FastAPI:
    app = FastAPI(title="receipt-notifier webhooks", docs_url=None, redoc_url=None)

    @app.post(WEBHOOK_PATH)
    async def receive(request: Request) -> dict[str, str]:
        try:
            body = await request.json()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Body must be JSON") from exc
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="Body must be a JSON object")
        transport.handle_webhook(body)
        return {"status": "ok"}

    @app.get("/healthz")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


class WebhookServer:
    """Runs the webhook app on a daemon thread, apart from the dispatch loop."""

    def __init__(self, transport: WahaTransport, host: str, port: int) -> None:
        config = uvicorn.Config(
            create_app(transport),
            host=host,
            port=port,
            log_level="warning",
        )
        self._server = uvicorn.Server(config)
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            logger.warning("Webhook server already running; skipping start")
            return
        self._thread = threading.Thread(target=self._server.run, name="webhook-server", daemon=True)
        self._thread.start()
        logger.info(
            "Listening for gateway callbacks on http://%s:%d%s",
            self._server.config.host,
            self._server.config.port,
            WEBHOOK_PATH,
        )

    def stop(self, timeout: float = 5.0) -> None:
        self._server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
