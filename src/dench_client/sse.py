"""Minimal text/event-stream parser."""
from collections.abc import AsyncIterable, AsyncIterator
import json
from typing import Any

from pydantic import BaseModel


class SSEMessage(BaseModel):
    """One dispatched server-sent event."""
    event: str = "message"
    data: str = ""
    id: str | None = None

    def payload(self) -> Any:
        """Decode ``data`` as JSON (None if empty or not JSON)."""
        if not self.data:
            return None
        try:
            return json.loads(self.data)
        except ValueError:
            return None


async def parse_sse_lines(lines: AsyncIterable[str]) -> AsyncIterator[SSEMessage]:
    """
    Group event-stream lines into messages.

    Comment lines (``: heartbeat``) are dropped; a blank line dispatches the
    pending event. An unterminated trailing event is discarded.

    Args:
        lines: Lines without their line terminators (e.g. ``response.aiter_lines()``)

    Yields:
        SSEMessage per dispatched event
    """
    event: str | None = None
    data: list[str] = []
    event_id: str | None = None

    async for raw in lines:
        line = raw.rstrip("\r")
        if line == "":
            if event is not None or data:
                yield SSEMessage(event=event or "message", data="\n".join(data), id=event_id)
            event, data, event_id = None, [], None
            continue
        if line.startswith(":"):
            continue

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event = value
        elif field == "data":
            data.append(value)
        elif field == "id":
            event_id = value
