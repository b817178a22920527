# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

from __future__ import annotations

import json

import anyio
import pytest
from starlette.datastructures import Headers

from tests.helpers import (
    INITIALIZE_BODY,
    DisconnectingReceive,
    SendCollector,
    SessionFactory,
    body_receive,
    make_scope,
    wait_until,
)
from versemcp.server import MCPServer
from versemcp.server.transports import (
    ConnectionRegistry,
    RequestKind,
    SessionTransportManager,
    classify_request,
)


HANDSHAKE_ACCEPT = {"accept": "application/json, text/event-stream", "content-type": "application/json"}


def make_manager(factory: SessionFactory | None = None, **kwargs) -> SessionTransportManager:
    return SessionTransportManager(
        MCPServer("manager-test"),
        messages_path="/mcp/messages",
        session_factory=factory,
        **kwargs,
    )


async def send_request(manager: SessionTransportManager, *, method: str = "POST", headers=None) -> SendCollector:
    collector = SendCollector()
    await manager.handle_request(make_scope(method, headers=headers or HANDSHAKE_ACCEPT), body_receive(b"{}"), collector)
    return collector


@pytest.mark.parametrize(
    ("method", "headers", "expected"),
    [
        ("GET", {"accept": "text/event-stream"}, RequestKind.OPEN_EVENT_STREAM),
        ("GET", HANDSHAKE_ACCEPT, RequestKind.OPEN_EVENT_STREAM),
        ("POST", HANDSHAKE_ACCEPT, RequestKind.NEW_SESSION),
        ("POST", {"accept": "text/event-stream"}, RequestKind.STREAM_METHOD_NOT_ALLOWED),
        ("POST", {"accept": "application/json"}, RequestKind.NEW_SESSION),
        ("GET", {"accept": "text/event-stream", "mcp-session-id": "unknown"}, RequestKind.NEW_SESSION),
    ],
)
def test_classify_request(method: str, headers: dict[str, str], expected: RequestKind) -> None:
    registry = ConnectionRegistry()
    assert classify_request(method, Headers(headers), registry) is expected


@pytest.mark.anyio
async def test_handle_request_requires_run() -> None:
    manager = make_manager(SessionFactory())
    with pytest.raises(RuntimeError):
        await send_request(manager)


@pytest.mark.anyio
async def test_run_can_only_be_entered_once() -> None:
    manager = make_manager(SessionFactory())
    async with manager.run():
        pass
    with pytest.raises(RuntimeError):
        async with manager.run():
            pass


@pytest.mark.anyio
async def test_new_session_registers_after_handshake() -> None:
    factory = SessionFactory()
    manager = make_manager(factory)

    async with manager.run():
        response = await send_request(manager)

    [session] = factory.sessions
    assert response.status == 200
    assert session.started
    assert manager.registry.get_session(session.session_id) is session
    assert session.close_calls == 0


@pytest.mark.anyio
async def test_known_session_is_routed_to_its_transport() -> None:
    factory = SessionFactory()
    manager = make_manager(factory)

    async with manager.run():
        await send_request(manager)
        [session] = factory.sessions
        follow_up = await send_request(manager, headers={**HANDSHAKE_ACCEPT, "mcp-session-id": session.session_id})

    assert follow_up.status == 200
    assert len(factory.sessions) == 1
    assert len(session.requests) == 2


@pytest.mark.anyio
async def test_sessions_are_isolated_and_removed_once() -> None:
    factory = SessionFactory()
    manager = make_manager(factory)

    async with manager.run():
        await send_request(manager)
        await send_request(manager)
        first, second = factory.sessions
        assert first.session_id != second.session_id

        first.simulate_close()
        first.simulate_close()

        assert manager.registry.get_session(first.session_id) is None
        assert manager.registry.get_session(second.session_id) is second

        await send_request(manager, headers={**HANDSHAKE_ACCEPT, "mcp-session-id": second.session_id})

    assert len(first.requests) == 1
    assert len(second.requests) == 2


class ForgetfulRegistry(ConnectionRegistry):
    """Reports a session while the request is classified, then loses it before routing."""

    def __init__(self) -> None:
        super().__init__()
        self.lookups = 0

    def get_session(self, session_id: str):  # type: ignore[no-untyped-def]
        self.lookups += 1
        if self.lookups == 1:
            return super().get_session(session_id)
        return None


@pytest.mark.anyio
async def test_session_closed_between_lookups_starts_a_new_session() -> None:
    factory = SessionFactory()
    registry = ForgetfulRegistry()
    manager = make_manager(factory, registry=registry)

    async with manager.run():
        await send_request(manager)
        [original] = factory.sessions
        registry.lookups = 0
        follow_up = await send_request(manager, headers={**HANDSHAKE_ACCEPT, "mcp-session-id": original.session_id})

    assert follow_up.status == 200
    assert len(factory.sessions) == 2
    assert len(original.requests) == 1


@pytest.mark.anyio
async def test_unknown_session_id_creates_a_new_session() -> None:
    factory = SessionFactory()
    manager = make_manager(factory)

    async with manager.run():
        await send_request(manager, headers={**HANDSHAKE_ACCEPT, "mcp-session-id": "stale"})

    [session] = factory.sessions
    assert session.session_id != "stale"


@pytest.mark.anyio
@pytest.mark.parametrize("session_kwargs", [{"status": 400}, {"echo_session_id": False}])
async def test_failed_handshake_is_never_registered(session_kwargs: dict[str, object]) -> None:
    factory = SessionFactory(**session_kwargs)
    manager = make_manager(factory)

    async with manager.run():
        await send_request(manager)

    [session] = factory.sessions
    assert manager.registry.sessions == {}
    assert session.close_calls == 1


@pytest.mark.anyio
async def test_error_before_headers_returns_500() -> None:
    factory = SessionFactory(fail_before_start=True)
    manager = make_manager(factory)

    async with manager.run():
        response = await send_request(manager)

    assert response.status == 500
    assert json.loads(response.body) == {"error": "Internal server error"}
    assert manager.registry.sessions == {}


@pytest.mark.anyio
async def test_error_after_headers_is_swallowed() -> None:
    factory = SessionFactory(fail_after_start=True)
    manager = make_manager(factory)

    async with manager.run():
        response = await send_request(manager)

    assert [start["status"] for start in response.starts] == [200]


@pytest.mark.anyio
async def test_event_stream_requires_get() -> None:
    manager = make_manager(SessionFactory())
    async with manager.run():
        response = await send_request(manager, headers={"accept": "text/event-stream"})
    assert response.status == 405


@pytest.mark.anyio
async def test_post_to_unknown_channel_is_not_found() -> None:
    manager = make_manager(SessionFactory())

    outcome = await manager.post_message("never-opened", INITIALIZE_BODY)
    assert outcome.status_code == 404

    collector = SendCollector()
    scope = make_scope("POST", "/mcp/messages", query="sessionId=never-opened")
    await manager.handle_post_message(scope, body_receive(INITIALIZE_BODY), collector)
    assert collector.status == 404
    assert json.loads(collector.body) == {"error": "Session not found"}


@pytest.mark.anyio
async def test_event_stream_channel_lifecycle() -> None:
    manager = make_manager(SessionFactory(), keepalive_interval=30.0)
    stream = SendCollector()
    receive = DisconnectingReceive()
    scope = make_scope("GET", headers={"accept": "text/event-stream"})

    async with manager.run(), anyio.create_task_group() as tg:
        tg.start_soon(manager.handle_request, scope, receive, stream)
        await wait_until(lambda: len(manager.registry.channels) == 1)
        await wait_until(lambda: b"event: endpoint" in stream.body)
        [channel_id] = list(manager.registry.channels)

        assert stream.status == 200
        assert stream.headers["content-type"] == "text/event-stream"
        assert f"/mcp/messages?sessionId={channel_id}".encode() in stream.body
        assert manager.registry.sessions == {}

        posted = SendCollector()
        post_scope = make_scope("POST", "/mcp/messages", query=f"sessionId={channel_id}")
        await manager.handle_post_message(post_scope, body_receive(INITIALIZE_BODY), posted)
        assert posted.status == 202
        await wait_until(lambda: b'"id":1' in stream.body)

        receive.disconnect()
        await wait_until(lambda: not manager.registry.channels)

    late = await manager.post_message(channel_id, INITIALIZE_BODY)
    assert late.status_code == 404
