"""Ingestion pipeline — source adapters, the ingestion channel, merge and push."""

from __future__ import annotations

from typing import TYPE_CHECKING

from vulnfeed.ingestion.github_advisory_adapter import GitHubAdvisoryAdapter
from vulnfeed.ingestion.grafana_adapter import GrafanaNoticeAdapter
from vulnfeed.ingestion.kev_adapter import KevAdapter
from vulnfeed.ingestion.registry import register_adapter

if TYPE_CHECKING:
    from vulnfeed.config import Config
    from vulnfeed.ingestion.channel import IngestionChannel


def init_adapters(channel: IngestionChannel, config: Config) -> None:
    """Construct every shipped adapter on ``channel`` and register it by name."""
    timeout = config.http_timeout_seconds
    adapters = [
        KevAdapter(channel, timeout=timeout),
        GitHubAdvisoryAdapter(channel, token=config.github_token, timeout=timeout),
        GrafanaNoticeAdapter(channel, timeout=timeout),
    ]
    for adapter in adapters:
        register_adapter(adapter.name, adapter)
