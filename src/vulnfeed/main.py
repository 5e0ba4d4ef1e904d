"""Application entry point — runs scheduler, ingestion worker and web server in one process."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from contextlib import asynccontextmanager

import uvicorn

from vulnfeed.config import Config, load_config
from vulnfeed.ingestion import init_adapters
from vulnfeed.ingestion.channel import IngestionChannel
from vulnfeed.ingestion.worker import IngestionWorker
from vulnfeed.scheduler import SyncScheduler
from vulnfeed.storage import init_db
from vulnfeed.web.app import create_app

logger = logging.getLogger("vulnfeed")


def _setup_logging(log_level: str, log_format: str) -> None:
    """Configure root logger based on config."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps(
                {
                    "time": "%(asctime)s",
                    "level": "%(levelname)s",
                    "logger": "%(name)s",
                    "message": "%(message)s",
                }
            )
        )
    else:
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)


def build_lifespan(config: Config):
    """Return the lifespan that wires channel, adapters, worker and scheduler."""

    @asynccontextmanager
    async def lifespan(app):
        channel = IngestionChannel()
        init_adapters(channel, config)

        worker = IngestionWorker(
            channel,
            config.database_path,
            github_token=config.github_token,
            http_timeout=config.http_timeout_seconds,
            ding_api_url=config.ding_api_url,
            max_reference_links=config.max_reference_links,
        )
        worker_task = asyncio.create_task(worker.run(), name="ingestion-worker")

        scheduler = SyncScheduler(
            config.database_path,
            page_limit=config.sync_page_limit,
            default_interval=config.default_sync_interval_minutes,
        )
        logger.info("Scheduler starting")
        scheduler.init_from_persisted_state()
        app.state.scheduler = scheduler
        try:
            yield
        finally:
            logger.info("Scheduler shutting down")
            scheduler.shutdown()
            await asyncio.sleep(0)
            channel.close()
            await worker_task
            logger.info("Ingestion worker drained")

    return lifespan


def main() -> None:
    """Load config, set up logging, and start scheduler + worker + web server."""
    config = load_config()

    _setup_logging(config.log_level, config.log_format)

    logger.info(
        "vulnfeed starting (env=%s, db=%s, page_limit=%d)",
        config.app_env,
        config.database_path,
        config.sync_page_limit,
    )

    init_db(config.database_path)

    app = create_app(config, lifespan=build_lifespan(config))

    uvicorn.run(app, host=config.web_host, port=config.web_port)


if __name__ == "__main__":
    main()
