from __future__ import annotations

import asyncio
import sys

import click

from vibecode.bridge.errors import BridgeConnectionError
from vibecode.bridge.models.enums import MessageType, Role
from vibecode.bridge.models.messages import AgentJoined, AgentLeft, Answer, Chat, ErrorNotice, Message, Status


@click.group()
def main() -> None:
    """vibecode - live teaching bridge between coding agents, teachers and students."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from VIBE_HOST or 127.0.0.1).")
@click.option("--port", default=None, type=int, help="Bind port (default: from VIBE_PORT or 4567).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def bridge(host: str | None, port: int | None, reload: bool) -> None:
    """Start the communication bridge."""
    import uvicorn

    from vibecode.bridge.settings import BridgeSettings

    settings = BridgeSettings()

    uvicorn.run(
        "vibecode.bridge.app:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
    )


# ---------------------------------------------------------------------------
# Student console
# ---------------------------------------------------------------------------


def render(message: Message) -> str | None:
    """One console line for *message*, or ``None`` if the student need not see it."""
    match message:
        case Chat(sender_role=role, content=content):
            return f"{role}: {content}"
        case Answer(sender_role=role, answer=answer) if role != Role.STUDENT:
            return f"{role} answered: {answer}"
        case Status(sender_role=role, action=action):
            return f"[{role}] {action}"
        case AgentJoined(agent_id=agent_id, role=role):
            return f"* {agent_id} ({role}) joined"
        case AgentLeft(agent_id=agent_id):
            return f"* {agent_id} left"
        case ErrorNotice(code=code, detail=detail):
            return f"! {code}: {detail}"
    return None


def _echo(message: Message) -> None:
    line = render(message)
    if line is not None:
        click.echo(line)


async def _run_student(url: str, agent_id: str | None) -> None:
    from vibecode.client.student import StudentClient

    client = StudentClient()
    for message_type in (
        MessageType.CHAT,
        MessageType.ANSWER,
        MessageType.STATUS,
        MessageType.AGENT_JOINED,
        MessageType.AGENT_LEFT,
        MessageType.ERROR,
    ):
        client.on_message(message_type, _echo)

    await client.join(url, agent_id=agent_id)
    click.echo("You can now ask questions. '/say <text>' chats with everyone, '/quit' leaves.")

    try:
        while client.connected:
            line = await asyncio.to_thread(sys.stdin.readline)
            if not line:
                break
            line = line.strip()
            if not line:
                continue
            if line == "/quit":
                break
            if line.startswith("/say "):
                await client.say(line.removeprefix("/say ").strip())
            else:
                await client.ask(line, context="Live coding session")
    finally:
        await client.close()


@main.command()
@click.option("--url", default=None, help="Bridge WebSocket URL (default: from VIBE_BRIDGE_URL).")
@click.option("--agent-id", default=None, help="Agent id to register (default: student-<millis>).")
def student(url: str | None, agent_id: str | None) -> None:
    """Join the bridge as a student from this terminal."""
    from vibecode.bridge.log import setup_logging
    from vibecode.bridge.settings import BridgeSettings

    settings = BridgeSettings()
    setup_logging(settings.log_level)

    try:
        asyncio.run(_run_student(url or settings.bridge_url, agent_id))
    except BridgeConnectionError as exc:
        raise click.ClickException(str(exc)) from exc


if __name__ == "__main__":
    main()
