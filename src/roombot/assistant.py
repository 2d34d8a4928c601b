"""Bridge room requests to an OpenAI assistant that can assign roles.

Each room gets one assistant thread for the lifetime of the process. A
request is posted to the room's thread together with the current member
roster, a run is started and then driven to a terminal status. While the run
is waiting on ``requires_action`` its ``assignRole`` tool calls are executed
locally and their results submitted back in one batch.
"""

from __future__ import annotations

import asyncio
import json
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import partial
from typing import TYPE_CHECKING, Any, TypeAlias

import openai
from openai import AsyncOpenAI

from .constants import ASSIGN_ROLE_TOOL, MS_PER_DAY
from .errors import AssistantRunCancelledError, AssistantRunTimeoutError
from .logging_config import get_logger
from .matrix.client import fetch_room_history, get_room_members, send_message
from .matrix.events import format_timestamp
from .roles import assign_role

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from .config import AssistantConfig
    from .matrix.client import RoomMember
    from .runtime import BotContext

    ToolCallHandler: TypeAlias = Callable[[str, dict[str, Any]], Awaitable[str]]

logger = get_logger(__name__)

SUMMARIZE_PATTERN = re.compile(r"^summarize\s+(\d+)\s+days?$", re.IGNORECASE)

TERMINAL_RUN_STATUSES = frozenset({"completed", "failed", "cancelled", "expired", "incomplete"})

ASSIGN_ROLE_TOOL_SPEC: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": ASSIGN_ROLE_TOOL,
        "description": "Assign a role to a person in the chat",
        "parameters": {
            "type": "object",
            "properties": {
                "personName": {
                    "type": "string",
                    "description": "Display name of the person to assign the role to (must match exactly)",
                },
                "roleName": {
                    "type": "string",
                    "description": "Name of the role to assign",
                },
            },
            "required": ["personName", "roleName"],
        },
    },
}


@dataclass
class AssistantSession:
    """The assistant handle and per-room threads for one bot process."""

    config: AssistantConfig
    api_key: str | None = None
    client: AsyncOpenAI | None = None
    assistant_id: str | None = None
    threads: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.assistant_id is None:
            self.assistant_id = self.config.assistant_id

    @property
    def openai(self) -> AsyncOpenAI:
        """The OpenAI client, created on first use."""
        if self.client is None:
            self.client = AsyncOpenAI(api_key=self.api_key)
        return self.client

    async def ensure_assistant(self) -> str:
        """Create the assistant unless one is already known."""
        if self.assistant_id is None:
            assistant = await self.openai.beta.assistants.create(
                name=self.config.name,
                instructions=self.config.instructions,
                model=self.config.model,
                tools=[ASSIGN_ROLE_TOOL_SPEC],
            )
            self.assistant_id = assistant.id
            logger.info("Created assistant", assistant_id=assistant.id, model=self.config.model)
        return self.assistant_id

    async def get_thread_id(self, room_id: str) -> str:
        """Return the room's thread, creating it on first use."""
        thread_id = self.threads.get(room_id)
        if thread_id is None:
            thread = await self.openai.beta.threads.create()
            thread_id = thread.id
            self.threads[room_id] = thread_id
            logger.info("Created assistant thread", room_id=room_id, thread_id=thread_id)
        return thread_id

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self.client is not None:
            await self.client.close()


def parse_summary_request(message: str) -> int | None:
    """Return N for a ``summarize N days`` request, otherwise None."""
    match = SUMMARIZE_PATTERN.match(message.strip())
    if not match:
        return None
    days = int(match.group(1))
    return days if days > 0 else None


async def compile_room_digest(
    ctx: BotContext,
    room_id: str,
    days: int,
    now_ms: int | None = None,
    exclude_event_ids: set[str] | None = None,
) -> str:
    """Compile the room's messages of the last ``days`` days, oldest first.

    The bot's own messages and ``exclude_event_ids`` (the request itself) are left out.
    """
    exclude_event_ids = exclude_event_ids or set()
    if now_ms is None:
        now_ms = int(datetime.now(UTC).timestamp() * 1000)
    since_ts = now_ms - days * MS_PER_DAY

    messages = await fetch_room_history(
        ctx.client,
        room_id,
        limit=ctx.config.history.limit,
        page_size=ctx.config.history.page_size,
        since_ts=since_ts,
    )
    messages = [m for m in messages if m["sender"] != ctx.user_id and m["event_id"] not in exclude_event_ids]
    logger.info("Compiled room digest", room_id=room_id, days=days, messages=len(messages))

    lines = [f"Summarize the following messages from the last {days} day(s):"]
    lines.extend(f"[{format_timestamp(m['timestamp'])}] {m['sender']}: {m['body']}" for m in messages)
    return "\n".join(lines)


def build_context_message(members: list[RoomMember], content: str) -> str:
    """Combine the member roster and the user's request into one thread message."""
    roster = ", ".join(f"{member.display_name} ({member.user_id})" for member in members)
    return f"Room members: {roster}\n\nUser message: {content}"


async def execute_tool_call(ctx: BotContext, room_id: str, name: str, arguments: dict[str, Any]) -> str:
    """Run one tool call requested by the assistant and describe the result."""
    if name != ASSIGN_ROLE_TOOL:
        logger.warning("Assistant requested an unknown tool", tool=name)
        return f"Error: unknown tool {name}"

    person_name = arguments.get("personName")
    role_name = arguments.get("roleName")
    if not isinstance(person_name, str) or not isinstance(role_name, str):
        return f"Error: {ASSIGN_ROLE_TOOL} requires string personName and roleName"

    await assign_role(ctx.store, person_name, room_id, role_name)
    return f"Assigned {person_name} the role {role_name}"


async def _collect_tool_outputs(run: Any, on_tool_call: ToolCallHandler) -> list[dict[str, str]]:  # noqa: ANN401
    outputs = []
    for tool_call in run.required_action.submit_tool_outputs.tool_calls:
        name = tool_call.function.name
        try:
            arguments = json.loads(tool_call.function.arguments or "{}")
        except json.JSONDecodeError:
            logger.warning("Tool call arguments are not valid JSON", tool=name, tool_call_id=tool_call.id)
            output = f"Error: could not parse arguments for {name}"
        else:
            output = await on_tool_call(name, arguments if isinstance(arguments, dict) else {})
        outputs.append({"tool_call_id": tool_call.id, "output": output})
    return outputs


async def _sleep_or_cancel(interval: float, cancel_event: asyncio.Event | None, run_id: str) -> None:
    if cancel_event is None:
        await asyncio.sleep(interval)
        return
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=interval)
    except TimeoutError:
        return
    raise AssistantRunCancelledError(run_id)


async def _poll_run(
    session: AssistantSession,
    thread_id: str,
    run_id: str,
    on_tool_call: ToolCallHandler,
    cancel_event: asyncio.Event | None,
) -> Any:  # noqa: ANN401
    runs = session.openai.beta.threads.runs
    interval = session.config.poll_interval

    run = await runs.retrieve(run_id=run_id, thread_id=thread_id)
    while run.status not in TERMINAL_RUN_STATUSES:
        if cancel_event is not None and cancel_event.is_set():
            raise AssistantRunCancelledError(run_id)

        if run.status == "requires_action":
            tool_outputs = await _collect_tool_outputs(run, on_tool_call)
            logger.info("Submitting tool outputs", run_id=run_id, count=len(tool_outputs))
            run = await runs.submit_tool_outputs(run_id=run_id, thread_id=thread_id, tool_outputs=tool_outputs)
            continue

        await _sleep_or_cancel(interval, cancel_event, run_id)
        interval = min(interval * session.config.poll_backoff, session.config.max_poll_interval)
        run = await runs.retrieve(run_id=run_id, thread_id=thread_id)
        logger.debug("Polled assistant run", run_id=run_id, status=run.status)

    return run


async def _cancel_remote_run(session: AssistantSession, thread_id: str, run_id: str) -> None:
    # A run left active locks the thread for the room's next request
    try:
        await session.openai.beta.threads.runs.cancel(run_id=run_id, thread_id=thread_id)
    except openai.OpenAIError as e:
        logger.warning("Could not cancel assistant run", run_id=run_id, error=str(e))


async def drive_run(
    session: AssistantSession,
    thread_id: str,
    run_id: str,
    on_tool_call: ToolCallHandler,
    cancel_event: asyncio.Event | None = None,
) -> Any:  # noqa: ANN401
    """Poll a run until it reaches a terminal status, executing its tool calls.

    The whole operation, network calls included, is bounded by the
    configured ``run_timeout``. Setting ``cancel_event`` stops polling.

    Returns:
        The run object in its terminal status

    Raises:
        AssistantRunTimeoutError: If the deadline passes first
        AssistantRunCancelledError: If ``cancel_event`` is set

    """
    timeout = session.config.run_timeout
    try:
        async with asyncio.timeout(timeout):
            return await _poll_run(session, thread_id, run_id, on_tool_call, cancel_event)
    except TimeoutError as e:
        await _cancel_remote_run(session, thread_id, run_id)
        raise AssistantRunTimeoutError(run_id, timeout) from e
    except AssistantRunCancelledError:
        await _cancel_remote_run(session, thread_id, run_id)
        raise


async def latest_assistant_reply(session: AssistantSession, thread_id: str, run_id: str | None = None) -> str | None:
    """Return the text of the newest assistant message, if its first block is text."""
    kwargs: dict[str, Any] = {"run_id": run_id} if run_id else {}
    messages = await session.openai.beta.threads.messages.list(thread_id=thread_id, order="desc", **kwargs)
    for message in messages.data:
        if message.role != "assistant":
            continue
        if not message.content:
            return None
        block = message.content[0]
        if block.type != "text":
            return None
        return str(block.text.value)
    return None


async def handle_assistant_message(
    ctx: BotContext,
    room_id: str,
    message: str,
    cancel_event: asyncio.Event | None = None,
    exclude_event_id: str | None = None,
) -> str | None:
    """Forward a request to the assistant and send its answer to the room.

    ``exclude_event_id`` is the triggering event, kept out of summary digests.

    Returns:
        The text sent to the room, or None if the run produced no text reply

    """
    session = ctx.assistant
    thread_id = await session.get_thread_id(room_id)

    days = parse_summary_request(message)
    if days:
        excluded = {exclude_event_id} if exclude_event_id else set()
        content = await compile_room_digest(ctx, room_id, days, exclude_event_ids=excluded)
    else:
        content = message

    members = await get_room_members(ctx.client, room_id)
    await session.openai.beta.threads.messages.create(
        thread_id=thread_id,
        role="user",
        content=build_context_message(members, content),
    )

    assistant_id = await session.ensure_assistant()
    run = await session.openai.beta.threads.runs.create(thread_id=thread_id, assistant_id=assistant_id)
    logger.info("Started assistant run", room_id=room_id, thread_id=thread_id, run_id=run.id)

    run = await drive_run(session, thread_id, run.id, partial(execute_tool_call, ctx, room_id), cancel_event)
    if run.status != "completed":
        logger.warning("Assistant run ended without completing", run_id=run.id, status=run.status)
        return None

    reply = await latest_assistant_reply(session, thread_id, run.id)
    if reply is None:
        logger.info("Assistant run produced no text reply", run_id=run.id)
        return None

    await send_message(ctx.client, room_id, reply)
    return reply
