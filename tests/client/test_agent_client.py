"""AgentClient behaviour against an in-memory socket."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest
from websockets.exceptions import ConnectionClosed

from vibecode.bridge.errors import BridgeConnectionError, InvalidMessageError, NotRegisteredError
from vibecode.bridge.models.enums import MessageType, Role
from vibecode.bridge.models.messages import Chat, Identify, Register
from vibecode.client import DEFAULT_CAPABILITIES, AgentClient, StudentClient, default_agent_id, is_important_action

URL = "ws://bridge.test/ws"


class FakeSocket:
    """Minimal stand-in for a websockets ClientConnection."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.close_code: int | None = None
        self._inbox: asyncio.Queue[str | None] = asyncio.Queue()

    async def send(self, data: str) -> None:
        self.sent.append(json.loads(data))

    async def close(self, code: int = 1000) -> None:
        self.close_code = code
        self._inbox.put_nowait(None)

    def push(self, message: dict) -> None:
        self._inbox.put_nowait(json.dumps(message))

    def push_raw(self, data: str) -> None:
        self._inbox.put_nowait(data)

    def __aiter__(self) -> FakeSocket:
        return self

    async def __anext__(self) -> str:
        frame = await self._inbox.get()
        if frame is None:
            raise StopAsyncIteration
        return frame


@pytest.fixture
async def socket() -> FakeSocket:
    return FakeSocket()


@pytest.fixture
def fake_connect(socket: FakeSocket):
    with patch("vibecode.client.agent_client.connect", AsyncMock(return_value=socket)) as mock_connect:
        yield mock_connect


# -- Helpers ------------------------------------------------------------------


def test_is_important_action() -> None:
    assert is_important_action("creating-file")
    assert is_important_action("running-tests")
    assert not is_important_action("reading-file")


def test_default_agent_id() -> None:
    agent_id = default_agent_id("student")
    prefix, _, millis = agent_id.rpartition("-")
    assert prefix == "student"
    assert millis.isdigit()


# -- Connection & registration -----------------------------------------------


async def test_connect_failure_raises_bridge_connection_error() -> None:
    failing = AsyncMock(side_effect=ConnectionRefusedError("refused"))
    with patch("vibecode.client.agent_client.connect", failing):
        client = AgentClient()
        with pytest.raises(BridgeConnectionError, match="Could not connect"):
            await client.connect(URL)

    assert not client.connected


async def test_join_registers_with_role_defaults(socket: FakeSocket, fake_connect) -> None:
    client = AgentClient()
    await client.join(URL, Role.TEACHING_AGENT, agent_id="teacher")

    fake_connect.assert_awaited_once_with(URL, open_timeout=10.0)
    assert socket.sent == [
        {
            "type": "register",
            "agentId": "teacher",
            "role": "teaching-agent",
            "capabilities": DEFAULT_CAPABILITIES[Role.TEACHING_AGENT],
        }
    ]
    assert client.registered
    assert client.connected
    await client.close()
    assert not client.connected


async def test_register_twice_is_rejected(socket: FakeSocket, fake_connect) -> None:
    async with AgentClient() as client:
        await client.join(URL, "coding-agent", agent_id="coder", capabilities=["testing"])

        with pytest.raises(InvalidMessageError):
            await client.register("coder", "coding-agent")

    assert len(socket.sent) == 1
    assert socket.sent[0]["capabilities"] == ["testing"]


async def test_send_before_register(socket: FakeSocket, fake_connect) -> None:
    async with AgentClient() as client:
        await client.connect(URL)
        with pytest.raises(NotRegisteredError):
            await client.send_chat("hello?")
    assert socket.sent == []


@pytest.mark.parametrize(
    "message",
    [Register(agent_id="x", role=Role.STUDENT), Identify()],
)
async def test_send_rejects_non_agent_kinds(socket: FakeSocket, fake_connect, message) -> None:
    async with AgentClient() as client:
        await client.join(URL, Role.STUDENT, agent_id="s")
        with pytest.raises(InvalidMessageError):
            await client.send(message)
    assert len(socket.sent) == 1


async def test_send_after_bridge_closed(fake_connect, socket: FakeSocket) -> None:
    async with AgentClient() as client:
        await client.join(URL, Role.STUDENT, agent_id="s")
        socket.send = AsyncMock(side_effect=ConnectionClosed(None, None))

        with pytest.raises(BridgeConnectionError, match="closed"):
            await client.send_chat("anyone?")


async def test_registration_cleared_when_bridge_closes(socket: FakeSocket, fake_connect) -> None:
    async with AgentClient() as client:
        await client.join(URL, Role.CODING_AGENT, agent_id="coder")
        assert client.registered

        socket.push({"type": "error", "code": "duplicate-id", "detail": "Agent id 'coder' is already connected"})
        await socket.close(4009)
        await client.wait_closed()

        assert not client.registered
        assert client.agent_id is None
        assert client.role is None
        assert client.close_code == 4009
        with pytest.raises(NotRegisteredError):
            await client.send_chat("still there?")


# -- Sending -----------------------------------------------------------------


async def test_status_importance_derived_from_action(socket: FakeSocket, fake_connect) -> None:
    async with AgentClient() as client:
        await client.join(URL, Role.CODING_AGENT, agent_id="coder")
        await client.send_status("creating-file", {"file": "auth.py"})
        await client.send_status("reading-file")
        await client.send_status("reading-file", important=True)

    statuses = socket.sent[1:]
    assert [s["important"] for s in statuses] == [True, False, True]
    assert statuses[0]["details"] == {"file": "auth.py"}
    assert "details" not in statuses[1]


async def test_question_and_answer_shapes(socket: FakeSocket, fake_connect) -> None:
    async with AgentClient() as client:
        await client.join(URL, Role.TEACHING_AGENT, agent_id="teacher")
        await client.ask_question("Ready?", context={"step": 2})
        await client.answer_question("q-1", "Yes.")
        await client.send_chat("psst", to="student")

    question, answer, chat = socket.sent[1:]
    assert question == {"type": "question", "question": "Ready?", "context": {"step": 2}}
    assert answer == {"type": "answer", "questionId": "q-1", "answer": "Yes."}
    assert chat == {"type": "chat", "content": "psst", "to": "student"}


# -- Receiving ---------------------------------------------------------------


async def test_handlers_sync_async_and_last_wins(socket: FakeSocket, fake_connect) -> None:
    seen: list[str] = []

    async def on_answer(message) -> None:
        seen.append(f"answer:{message.question_id}")

    client = AgentClient()
    client.on_message(MessageType.CHAT, lambda m: seen.append(f"first:{m.content}"))
    client.on_message("chat", lambda m: seen.append(f"chat:{m.content}"))
    client.on_message(MessageType.ANSWER, on_answer)
    await client.join(URL, Role.STUDENT, agent_id="s")

    socket.push({"type": "chat", "content": "hi", "from": "teacher", "fromRole": "teaching-agent"})
    socket.push({"type": "answer", "questionId": "q-1", "answer": "because"})
    await socket.close()
    await client.wait_closed()

    assert seen == ["chat:hi", "answer:q-1"]


async def test_failing_handler_and_bad_frames_do_not_stop_reader(socket: FakeSocket, fake_connect) -> None:
    chats: list[Chat] = []

    def explode(message) -> None:
        raise RuntimeError("boom")

    client = AgentClient()
    client.on_message(MessageType.STATUS, explode)
    client.on_message(MessageType.CHAT, chats.append)
    await client.join(URL, Role.STUDENT, agent_id="s")

    socket.push({"type": "status", "action": "creating-file"})
    socket.push_raw("{garbage")
    socket.push({"type": "chat", "content": "still here"})
    await socket.close()
    await client.wait_closed()

    assert [c.content for c in chats] == ["still here"]


async def test_peer_tracking(socket: FakeSocket, fake_connect) -> None:
    client = AgentClient()
    await client.join(URL, Role.STUDENT, agent_id="me")

    socket.push(
        {
            "type": "state-snapshot",
            "agents": [
                {"id": "coder", "role": "coding-agent", "status": "active"},
                {"id": "me", "role": "student", "status": "active"},
            ],
            "recentConversation": [],
        }
    )
    socket.push({"type": "agent-joined", "agentId": "teacher", "role": "teaching-agent"})
    socket.push({"type": "agent-left", "agentId": "coder"})
    await socket.close()
    await client.wait_closed()

    assert client.peers == {"teacher": Role.TEACHING_AGENT}


# -- Student -------------------------------------------------------------------


async def test_student_client(socket: FakeSocket, fake_connect) -> None:
    answers = []
    async with StudentClient() as student:
        student.on_answer(answers.append)
        await student.join(URL, agent_id="alice")
        await student.ask("What is a closure?", "Live coding session")
        await student.say("thanks!")

        socket.push({"type": "answer", "questionId": "q-1", "answer": "A function with captured scope."})
        await socket.close()
        await student.wait_closed()

    register, question, chat = socket.sent
    assert register["role"] == "student"
    assert register["capabilities"] == DEFAULT_CAPABILITIES[Role.STUDENT]
    assert question == {"type": "question", "question": "What is a closure?", "context": "Live coding session"}
    assert chat == {"type": "chat", "content": "thanks!"}
    assert [a.answer for a in answers] == ["A function with captured scope."]
