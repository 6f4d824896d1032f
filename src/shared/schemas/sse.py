"""SSE (Server-Sent Events) protocol schemas."""
import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .change import FileChange


class SSEEvent(BaseModel):
    """Base SSE event model.

    Follows the Server-Sent Events specification:
    https://html.spec.whatwg.org/multipage/server-sent-events.html
    """

    event: str = Field(..., description="Event type")
    id: str | None = Field(None, description="Event ID (omitted from the frame when unset)")
    data: dict[str, Any] = Field(default_factory=dict, description="Event data payload")

    def to_sse(self) -> str:
        """Convert to SSE format string.

        SSE format:
            event: <event_type>
            id: <event_id>
            data: <json_data>

            (two newlines required at the end)

        Returns:
            str: SSE formatted string
        """
        lines = [f"event: {self.event}"]
        if self.id is not None:
            lines.append(f"id: {self.id}")
        lines.append(f"data: {json.dumps(self.data, ensure_ascii=False)}")
        lines.append("")  # SSE requires two newlines
        return "\n".join(lines) + "\n"

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "event": "change",
                "data": {"type": "add", "path": "people/alice.md"},
            }
        }
    )


class ConnectedEvent(SSEEvent):
    """Sent once when the watch stream opens."""

    def __init__(self, **data):
        if "event" not in data:
            data["event"] = "connected"
        super().__init__(**data)


class ChangeEvent(SSEEvent):
    """Debounced "something changed" notification.

    Carries the most recent raw change; clients treat it as a refetch signal.
    """

    def __init__(self, **data):
        if "event" not in data:
            data["event"] = "change"
        super().__init__(**data)


class ErrorEvent(SSEEvent):
    """Terminal error notification (e.g. file watching unavailable)."""

    def __init__(self, **data):
        if "event" not in data:
            data["event"] = "error"
        super().__init__(**data)


HEARTBEAT_FRAME = ": heartbeat\n\n"


def change_to_sse(change: FileChange) -> SSEEvent:
    """Convert a FileChange to a change SSE event."""
    return ChangeEvent(data={"type": change.kind.value, "path": change.path})
