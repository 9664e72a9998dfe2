"""Unit tests for EventSubscriber."""

import asyncio

import pytest

from flight_oracle.src.EventSubscriber import (
    FLIGHT_ADDED,
    ORACLE_REQUEST,
    STREAMS,
    WITHDRAWAL,
    EventSubscriber,
)
from flight_oracle.src.StreamBackoff import StreamBackoff


class TestEventSubscriberInit:
    """Test EventSubscriber initialization."""

    def test_streams(self) -> None:
        assert STREAMS == (
            "OracleRequest",
            "FlightAdded",
            "FlightStatusInfo",
            "StatusUpdate",
            "Withdrawal",
        )

    def test_invalid_poll_interval(self, fake_contract) -> None:
        with pytest.raises(ValueError, match="poll_interval must be positive"):
            EventSubscriber(fake_contract, {}, poll_interval=0)

    def test_invalid_from_block(self, fake_contract) -> None:
        with pytest.raises(ValueError, match="from_block must not be negative"):
            EventSubscriber(fake_contract, {}, from_block=-1)


class TestEventSubscriberPolling:
    """Test single polls of a stream."""

    def test_poll_dispatches_and_advances(self, fake_contract) -> None:
        """Events in new blocks are dispatched and the cursor moves past them."""
        received = []

        async def handler(event):
            received.append(event["args"]["flight"])

        fake_contract.emit(ORACLE_REQUEST, {"flight": "AA100"})
        fake_contract.emit(ORACLE_REQUEST, {"flight": "BB200"})
        subscriber = EventSubscriber(fake_contract, {ORACLE_REQUEST: handler})

        async def run():
            cursor = await subscriber.poll_once(ORACLE_REQUEST, 0)
            await subscriber.drain()
            return cursor

        cursor = asyncio.run(run())

        assert cursor == 3
        assert received == ["AA100", "BB200"]
        assert fake_contract.log_queries == [(ORACLE_REQUEST, 0, 2)]

    def test_poll_without_new_blocks(self, fake_contract) -> None:
        """No query is made when the chain has not advanced."""
        subscriber = EventSubscriber(fake_contract, {ORACLE_REQUEST: lambda e: None})

        cursor = asyncio.run(subscriber.poll_once(ORACLE_REQUEST, 5))

        assert cursor == 5
        assert fake_contract.log_queries == []

    def test_handler_failure_is_isolated(self, fake_contract) -> None:
        """A failing handler does not stop the other events."""
        received = []

        async def handler(event):
            if event["args"]["flight"] == "BAD":
                raise ValueError("malformed payload")
            received.append(event["args"]["flight"])

        fake_contract.emit(ORACLE_REQUEST, {"flight": "BAD"})
        fake_contract.emit(ORACLE_REQUEST, {"flight": "AA100"})
        subscriber = EventSubscriber(fake_contract, {ORACLE_REQUEST: handler})

        async def run():
            await subscriber.poll_once(ORACLE_REQUEST, 0)
            await subscriber.drain()

        asyncio.run(run())

        assert received == ["AA100"]
        assert subscriber.pending == 0

    def test_slow_handler_does_not_block_poll(self, fake_contract) -> None:
        """Polling returns while handlers are still running."""
        release = None

        async def handler(event):
            await release.wait()

        fake_contract.emit(ORACLE_REQUEST, {"flight": "AA100"})
        subscriber = EventSubscriber(fake_contract, {ORACLE_REQUEST: handler})

        async def run():
            nonlocal release
            release = asyncio.Event()
            await subscriber.poll_once(ORACLE_REQUEST, 0)
            pending = subscriber.pending
            release.set()
            await subscriber.drain()
            return pending

        assert asyncio.run(run()) == 1

    def test_dispatch_unknown_stream(self, fake_contract) -> None:
        subscriber = EventSubscriber(fake_contract, {})

        async def run():
            return subscriber.dispatch("Transfer", {})

        assert asyncio.run(run()) is None


class TestEventSubscriberRun:
    """Test the long-running subscription loop."""

    def test_streams_are_independent(self, fake_contract) -> None:
        """Each stream receives only its own events."""
        received = {ORACLE_REQUEST: [], FLIGHT_ADDED: [], WITHDRAWAL: []}

        def recorder(stream):
            async def handler(event):
                received[stream].append(event["args"])
            return handler

        fake_contract.emit(ORACLE_REQUEST, {"n": 1})
        fake_contract.emit(FLIGHT_ADDED, {"n": 2})
        fake_contract.emit(WITHDRAWAL, {"n": 3})
        subscriber = EventSubscriber(
            fake_contract,
            {stream: recorder(stream) for stream in received},
            poll_interval=0.01,
            from_block=0,
        )

        async def run():
            task = asyncio.create_task(subscriber.run())
            await asyncio.sleep(0.1)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())

        assert received == {
            ORACLE_REQUEST: [{"n": 1}],
            FLIGHT_ADDED: [{"n": 2}],
            WITHDRAWAL: [{"n": 3}],
        }

    def test_starts_at_current_block(self, fake_contract) -> None:
        """Without from_block, history before startup is not replayed."""
        received = []

        async def handler(event):
            received.append(event["args"]["n"])

        fake_contract.emit(ORACLE_REQUEST, {"n": 1})
        subscriber = EventSubscriber(
            fake_contract, {ORACLE_REQUEST: handler}, poll_interval=0.01
        )

        async def run():
            task = asyncio.create_task(subscriber.run())
            await asyncio.sleep(0.05)
            fake_contract.emit(ORACLE_REQUEST, {"n": 2})
            await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())

        assert received == [2]

    def test_resubscribes_after_failure(self, fake_contract) -> None:
        """A failed poll is retried after backoff without losing events."""
        received = []

        async def handler(event):
            received.append(event["args"]["n"])

        fake_contract.emit(ORACLE_REQUEST, {"n": 1})
        backoff = StreamBackoff([ORACLE_REQUEST], base_backoff_seconds=0.01)
        subscriber = EventSubscriber(
            fake_contract,
            {ORACLE_REQUEST: handler},
            poll_interval=0.01,
            from_block=0,
            backoff=backoff,
        )
        fake_contract.fail_block_number = 2

        async def run():
            task = asyncio.create_task(subscriber.run())
            await asyncio.sleep(0.2)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())

        status = backoff.get_stream_status(ORACLE_REQUEST)
        assert status.total_failures == 2
        assert status.last_error == "socket closed"
        assert received == [1]
