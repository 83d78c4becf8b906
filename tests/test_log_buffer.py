"""Log buffer ordering and drain semantics."""

import pytest

from edge.exceptions import OriginError, StoreUnavailableError
from edge.log_buffer import LogBuffer
from edge.schemas import AccessLogEntry
from tests.conftest import EDGE_HOSTNAME, FakeOrigin, make_entry


@pytest.fixture
def buffer(store) -> LogBuffer:
    return LogBuffer(store, "access_logs_buffer", EDGE_HOSTNAME)


async def _paths_in_buffer(buffer: LogBuffer) -> list[str]:
    return [AccessLogEntry.model_validate_json(raw).short_path for raw in await buffer.snapshot()]


@pytest.mark.asyncio
async def test_append_keeps_arrival_order(buffer: LogBuffer) -> None:
    for path in ("a", "b", "c"):
        await buffer.append(make_entry(path))

    assert await buffer.size() == 3
    assert await _paths_in_buffer(buffer) == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_drain_on_empty_buffer_makes_no_call(buffer: LogBuffer, origin: FakeOrigin) -> None:
    async def fail_if_called(entries) -> None:
        raise AssertionError("push_logs must not be called for an empty buffer")

    origin.on_push = fail_if_called

    assert await buffer.drain_and_push(origin) == 0
    assert origin.pushed == []


@pytest.mark.asyncio
async def test_successful_drain_sends_in_order_and_empties(buffer: LogBuffer, origin: FakeOrigin) -> None:
    for path in ("a", "b", "c"):
        await buffer.append(make_entry(path))

    assert await buffer.drain_and_push(origin) == 3
    assert [entry.short_path for entry in origin.pushed[0]] == ["a", "b", "c"]
    assert await buffer.size() == 0


@pytest.mark.asyncio
async def test_entries_appended_mid_drain_survive(buffer: LogBuffer, origin: FakeOrigin) -> None:
    for path in ("a", "b", "c"):
        await buffer.append(make_entry(path))

    async def append_during_push(entries) -> None:
        await buffer.append(make_entry("d"))
        await buffer.append(make_entry("e"))

    origin.on_push = append_during_push

    assert await buffer.drain_and_push(origin) == 3
    assert [entry.short_path for entry in origin.pushed[0]] == ["a", "b", "c"]
    assert await _paths_in_buffer(buffer) == ["d", "e"]

    origin.on_push = None
    assert await buffer.drain_and_push(origin) == 2
    assert [entry.short_path for entry in origin.pushed[1]] == ["d", "e"]
    assert await buffer.size() == 0


@pytest.mark.asyncio
async def test_unacknowledged_push_leaves_buffer_unchanged(buffer: LogBuffer, origin: FakeOrigin) -> None:
    for path in ("a", "b"):
        await buffer.append(make_entry(path))
    before = await buffer.snapshot()
    origin.acknowledge = False

    with pytest.raises(OriginError):
        await buffer.drain_and_push(origin)

    assert await buffer.snapshot() == before


@pytest.mark.asyncio
async def test_failed_push_leaves_buffer_unchanged_and_retry_resends(buffer: LogBuffer, origin: FakeOrigin) -> None:
    await buffer.append(make_entry("a"))
    origin.push_error = OriginError("connection refused")

    with pytest.raises(OriginError):
        await buffer.drain_and_push(origin)
    assert await buffer.size() == 1

    await buffer.append(make_entry("b"))
    origin.push_error = None
    assert await buffer.drain_and_push(origin) == 2
    assert [entry.short_path for entry in origin.pushed[0]] == ["a", "b"]


@pytest.mark.asyncio
async def test_unparsable_entries_are_dropped_with_the_snapshot(buffer: LogBuffer, store, origin: FakeOrigin) -> None:
    await buffer.append(make_entry("a"))
    await store.rpush(buffer.key, "{not json")
    await buffer.append(make_entry("b"))

    assert await buffer.drain_and_push(origin) == 3
    assert [entry.short_path for entry in origin.pushed[0]] == ["a", "b"]
    assert await buffer.size() == 0


@pytest.mark.asyncio
async def test_only_corrupt_entries_are_trimmed_without_a_push(buffer: LogBuffer, store, origin: FakeOrigin) -> None:
    await store.rpush(buffer.key, "garbage")

    assert await buffer.drain_and_push(origin) == 1
    assert origin.pushed == []
    assert await buffer.size() == 0


@pytest.mark.asyncio
async def test_append_propagates_store_failure(buffer: LogBuffer, store) -> None:
    store.available = False
    with pytest.raises(StoreUnavailableError):
        await buffer.append(make_entry("a"))
