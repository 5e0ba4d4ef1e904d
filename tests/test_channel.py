"""Tests for vulnfeed.ingestion.channel — the MPSC ingestion queue."""

from __future__ import annotations

import asyncio

import pytest

from vulnfeed.ingestion.channel import ChannelClosed, IngestionChannel
from vulnfeed.ingestion.records import SecurityNotice, VulnInformation


def _vuln(key: str) -> VulnInformation:
    return VulnInformation(key=key, title=key, severity="Low")


class TestIngestionChannel:
    def test_fifo_order(self):
        async def scenario():
            channel = IngestionChannel()
            for key in ("a", "b", "c"):
                await channel.send(_vuln(key))
            return [(await channel.recv()).key for _ in range(3)]

        assert asyncio.run(scenario()) == ["a", "b", "c"]

    def test_carries_both_record_kinds(self):
        async def scenario():
            channel = IngestionChannel()
            await channel.send(_vuln("v"))
            await channel.send(SecurityNotice(key="n", title="n", risk_level="High"))
            return [type(await channel.recv()) for _ in range(2)]

        assert asyncio.run(scenario()) == [VulnInformation, SecurityNotice]

    def test_close_drains_backlog_then_returns_none(self):
        async def scenario():
            channel = IngestionChannel()
            await channel.send(_vuln("a"))
            await channel.send(_vuln("b"))
            channel.close()
            received = []
            while True:
                record = await channel.recv()
                if record is None:
                    break
                received.append(record.key)
            # Still None on later calls
            assert await channel.recv() is None
            return received

        assert asyncio.run(scenario()) == ["a", "b"]

    def test_send_after_close_raises(self):
        async def scenario():
            channel = IngestionChannel()
            channel.close()
            await channel.send(_vuln("late"))

        with pytest.raises(ChannelClosed):
            asyncio.run(scenario())

    def test_close_is_idempotent(self):
        async def scenario():
            channel = IngestionChannel()
            channel.close()
            channel.close()
            assert channel.closed
            assert channel.qsize() == 1
            return await channel.recv()

        assert asyncio.run(scenario()) is None

    def test_many_producers_one_consumer(self):
        async def producer(channel, prefix):
            for i in range(10):
                await channel.send(_vuln(f"{prefix}-{i}"))
                await asyncio.sleep(0)

        async def scenario():
            channel = IngestionChannel()
            await asyncio.gather(*(producer(channel, p) for p in "xyz"))
            channel.close()
            keys = []
            while (record := await channel.recv()) is not None:
                keys.append(record.key)
            return keys

        keys = asyncio.run(scenario())
        assert len(keys) == 30
        # Per-producer order is preserved
        for prefix in "xyz":
            mine = [k for k in keys if k.startswith(prefix)]
            assert mine == [f"{prefix}-{i}" for i in range(10)]

    def test_recv_waits_for_send(self):
        async def scenario():
            channel = IngestionChannel()
            waiter = asyncio.create_task(channel.recv())
            await asyncio.sleep(0)
            assert not waiter.done()
            await channel.send(_vuln("later"))
            return (await waiter).key

        assert asyncio.run(scenario()) == "later"
