"""Notification dispatch — render a record and deliver it exactly once."""

from __future__ import annotations

import logging

from vulnfeed.ingestion.records import RecordClass
from vulnfeed.push.dingbot import DING_API_URL, DingBot
from vulnfeed.push.renderer import MAX_REFERENCE_LENGTH, render_markdown
from vulnfeed.storage import ding_bot
from vulnfeed.storage import records as store
from vulnfeed.storage.connection import get_connection

logger = logging.getLogger(__name__)


def dispatch(
    database_path: str,
    record_cls: RecordClass,
    record_id: int,
    *,
    api_url: str = DING_API_URL,
    timeout: float = 30,
    max_reference_links: int = MAX_REFERENCE_LENGTH,
) -> bool:
    """Push one record to the configured DingTalk robot.

    Returns True when a message was delivered and the record marked pushed,
    False when there was nothing to do (no enabled bot, record missing or
    already pushed). Raises DeliveryError when the webhook rejects the message;
    the record then stays unpushed.

    The pushed check and the pushed update share one write transaction, so two
    racing calls for the same record deliver at most once.
    """
    logger.info("Dispatch start: %s id=%d", record_cls.KIND, record_id)
    with get_connection(database_path, immediate=True) as conn:
        config = ding_bot.first(conn)
        if config is None or not config.status:
            logger.info("Ding bot config not found or disabled; skipping %s id=%d",
                        record_cls.KIND, record_id)
            return False

        stored = store.fetch_by_id(conn, record_cls, record_id)
        if stored is None:
            logger.warning("%s id=%d not found; nothing to push", record_cls.KIND, record_id)
            return False
        if stored.record.pushed:
            logger.info("%s id=%d already pushed", record_cls.KIND, record_id)
            return False

        text = render_markdown(stored.record, max_reference_links)
        bot = DingBot(
            config.access_token, config.secret_token, api_url=api_url, timeout=timeout,
        )
        bot.push_markdown(stored.record.title, text)
        store.set_pushed(conn, record_cls, record_id, True)

    logger.info("Dispatch success: %s id=%d", record_cls.KIND, record_id)
    return True
