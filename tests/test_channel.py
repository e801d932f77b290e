"""Tests for the rendezvous record channel."""

import asyncio

import pytest

from pg_pack.records.channel import ChannelClosedError, ErrorFragment, RecordChannel


class TestRecordChannel:
    async def test_fragments_arrive_in_order(self) -> None:
        channel = RecordChannel()

        async def produce() -> None:
            for i in range(3):
                await channel.send(f"row {i}\n")
            await channel.close()

        task = asyncio.create_task(produce())
        received = [fragment async for fragment in channel]
        await task

        assert received == ["row 0\n", "row 1\n", "row 2\n"]
        assert channel.error is None

    async def test_send_blocks_until_taken(self) -> None:
        """At most one fragment is in flight: send returns after receive."""
        channel = RecordChannel()
        events: list[str] = []

        async def produce() -> None:
            await channel.send("a")
            events.append("sent a")
            await channel.send("b")
            events.append("sent b")
            await channel.close()

        task = asyncio.create_task(produce())
        await asyncio.sleep(0.01)
        assert events == []

        assert await channel.receive() == "a"
        await asyncio.sleep(0.01)
        assert events == ["sent a"]

        assert await channel.receive() == "b"
        assert await channel.receive() is None
        await task
        assert events == ["sent a", "sent b"]

    async def test_error_fragment_ends_stream(self) -> None:
        channel = RecordChannel()

        async def produce() -> None:
            await channel.send("partial\n")
            await channel.fail("ValueError: bad row")

        task = asyncio.create_task(produce())
        received = [fragment async for fragment in channel]
        await task

        assert received == ["partial\n"]
        assert channel.error == ErrorFragment("ValueError: bad row")

    async def test_only_first_terminal_item_counts(self) -> None:
        channel = RecordChannel()

        await channel.fail("first")
        await channel.close()
        await channel.fail("second")

        assert await channel.receive() == ErrorFragment("first")

    async def test_send_after_close(self) -> None:
        channel = RecordChannel()
        await channel.close()

        with pytest.raises(ChannelClosedError):
            await channel.send("late")
