from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace

from .config import Settings
from .dispatch.loop import Dispatcher
from .dispatch.scheduler import PollingScheduler
from .errors import SourceUnavailable
from .observers.delivery import DeliveryObserver, SessionEventLogger
from .sheets.client import SheetsClient
from .transport.waha import WahaTransport
from .transport.webhook import WebhookServer


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Send WhatsApp receipts for new rows in a Google Sheet."
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single iteration and exit.",
    )
    parser.add_argument(
        "--interval",
        type=float,
        help="Polling interval in seconds. Defaults to POLL_INTERVAL_SECONDS or 60.",
    )
    parser.add_argument(
        "--no-webhook",
        dest="webhook",
        action="store_false",
        help="Do not start the delivery status webhook receiver.",
    )
    return parser.parse_args(argv)


def build_dispatcher(
    settings: Settings,
    transport: WahaTransport,
    observer: DeliveryObserver,
) -> Dispatcher:
    return Dispatcher(
        source=SheetsClient.from_settings(settings),
        transport=transport,
        sheet_configured=settings.sheet_configured,
        address_suffix=settings.address_suffix,
        tracker=observer,
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        settings = Settings.from_env()
    except RuntimeError as exc:
        logging.basicConfig(level=logging.INFO)
        logging.error("%s", exc)
        return 1

    if args.interval is not None:
        if args.interval <= 0:
            logging.basicConfig(level=logging.INFO)
            logging.error("--interval must be positive")
            return 1
        settings = replace(settings, poll_interval_seconds=args.interval)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    transport = WahaTransport.from_settings(settings)
    observer = DeliveryObserver()
    observer.attach(transport.events)
    SessionEventLogger().attach(transport.events)

    webhook = None
    if args.webhook:
        webhook = WebhookServer(transport, settings.webhook_host, settings.webhook_port)
        webhook.start()

    try:
        logging.info("Waiting for the WhatsApp gateway at %s...", settings.transport_url)
        if not transport.wait_until_ready(settings.ready_timeout):
            logging.error(
                "WhatsApp session '%s' not ready after %s seconds.",
                settings.transport_session,
                settings.ready_timeout,
            )
            return 1

        try:
            dispatcher = build_dispatcher(settings, transport, observer)
        except SourceUnavailable as exc:
            logging.error("%s", exc)
            return 1

        if args.once:
            result = dispatcher.run_iteration()
            return 0 if result.status.ok else 1

        scheduler = PollingScheduler(settings.poll_interval_seconds, dispatcher.run_iteration)
        try:
            scheduler.start()
        except KeyboardInterrupt:
            logging.info("Stopping.")
            scheduler.stop()
        return 0
    finally:
        if webhook is not None:
            webhook.stop()


if __name__ == "__main__":
    sys.exit(main())
