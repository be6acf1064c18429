import pytest

from camrelay.services.protocol import CLOSE_SUPERSEDED, Role


@pytest.mark.asyncio
async def test_second_producer_closes_first(registry, make_conn):
    first, second = make_conn(), make_conn()

    await registry.register_producer(first)
    await registry.register_producer(second)

    assert registry.producer is second
    assert first.transport.closes == [CLOSE_SUPERSEDED]
    assert first.closed
    assert second.transport.closes == []


@pytest.mark.asyncio
async def test_each_replacement_closes_exactly_one_producer(registry, make_conn):
    producers = [make_conn() for _ in range(4)]
    for conn in producers:
        await registry.register_producer(conn)

    for conn in producers[:-1]:
        assert conn.transport.closes == [CLOSE_SUPERSEDED]
    assert producers[-1].transport.closes == []
    assert registry.producer is producers[-1]


@pytest.mark.asyncio
async def test_registering_current_producer_again_is_noop(registry, make_conn):
    conn = make_conn()
    await registry.register_producer(conn)
    await registry.register_producer(conn)

    assert registry.producer is conn
    assert conn.transport.closes == []


@pytest.mark.asyncio
async def test_consumer_ids_are_unique_and_increasing(registry, make_conn):
    ids = [await registry.register_consumer(make_conn()) for _ in range(5)]

    assert ids == sorted(ids)
    assert len(set(ids)) == 5
    assert registry.consumer_count == 5


@pytest.mark.asyncio
async def test_consumer_registered_once(registry, make_conn):
    conn = make_conn()
    first = await registry.register_consumer(conn)
    again = await registry.register_consumer(conn)

    assert first == again
    assert conn.client_id == first
    assert conn.role is Role.CONSUMER
    assert registry.consumer_count == 1


@pytest.mark.asyncio
async def test_unregister_consumer(registry, make_conn):
    conns = [make_conn() for _ in range(3)]
    for conn in conns:
        await registry.register_consumer(conn)

    assert await registry.unregister(conns[1]) is Role.CONSUMER

    assert registry.consumer_count == 2
    assert await registry.current_consumers() == [conns[0], conns[2]]


@pytest.mark.asyncio
async def test_unregister_unknown_handle_is_noop(registry, make_conn):
    await registry.register_producer(make_conn())
    await registry.register_consumer(make_conn())

    assert await registry.unregister(make_conn()) is None
    assert registry.has_producer
    assert registry.consumer_count == 1


@pytest.mark.asyncio
async def test_superseded_producer_close_keeps_new_producer(registry, make_conn):
    old, new = make_conn(), make_conn()
    await registry.register_producer(old)
    await registry.register_producer(new)

    assert await registry.unregister(old) is None
    assert registry.producer is new

    assert await registry.unregister(new) is Role.PRODUCER
    assert registry.producer is None


@pytest.mark.asyncio
async def test_stale_id_does_not_remove_other_consumer(registry, make_conn):
    conn = make_conn()
    await registry.register_consumer(conn)
    impostor = make_conn()
    impostor.client_id = conn.client_id

    assert await registry.unregister(impostor) is None
    assert registry.consumer_count == 1


@pytest.mark.asyncio
async def test_snapshot_is_stable_while_registry_changes(registry, make_conn):
    a, b = make_conn(), make_conn()
    await registry.register_consumer(a)
    await registry.register_consumer(b)

    snapshot = await registry.current_consumers()
    await registry.unregister(a)
    await registry.register_consumer(make_conn())

    assert snapshot == [a, b]
    assert registry.consumer_count == 2


@pytest.mark.asyncio
async def test_count_matches_identifications_minus_closes(registry, make_conn):
    conns = [make_conn() for _ in range(6)]
    for conn in conns:
        await registry.register_consumer(conn)
    for conn in conns[:4:2]:
        await registry.unregister(conn)
    # closing an already removed or never registered handle does not count
    await registry.unregister(conns[0])
    await registry.unregister(make_conn())

    assert registry.consumer_count == 4
