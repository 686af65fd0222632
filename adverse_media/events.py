"""SSE event models, append-only event log and snapshot reducer for screening streams."""

import json
from collections.abc import Iterator
from enum import Enum
from functools import reduce
from typing import Any

from pydantic import BaseModel, Field

from adverse_media.models import ScreeningSnapshot


class SSEEventType(str, Enum):
    """SSE event types for the screening stream."""

    PROGRESS = "progress"
    COMPLETE = "complete"
    HEARTBEAT = "heartbeat"


class SSEEvent(BaseModel):
    """Base SSE event model."""

    event: SSEEventType = Field(description="Event type identifier")
    data: dict[str, Any] = Field(description="Event payload data")

    def format(self) -> str:
        """Format as SSE message: 'event: type\\ndata: json\\n\\n'."""
        return f"event: {self.event.value}\ndata: {json.dumps(self.data)}\n\n"


class ProgressEvent(SSEEvent):
    """Accumulated pipeline state after a step: status, progress, results, sources."""

    event: SSEEventType = SSEEventType.PROGRESS
    data: dict[str, Any] = Field(
        description="Snapshot fields to merge into client state",
        examples=[
            {
                "status": "analyzing",
                "progress": 42,
                "results": [
                    {
                        "url": "https://example.com/news/1",
                        "title": "Local news",
                        "description": "...",
                        "riskScore": 0,
                        "adverseContent": [],
                        "status": "analyzing",
                        "relationships": [],
                    }
                ],
            }
        ],
    )


class CompleteEvent(SSEEvent):
    """Terminal event: full results, summary and relationships, or an error."""

    event: SSEEventType = SSEEventType.COMPLETE
    data: dict[str, Any] = Field(
        description="Final snapshot; carries `error` when the run failed",
        examples=[
            {
                "status": "complete",
                "progress": 100,
                "results": [],
                "summary": {
                    "riskLevel": "low",
                    "adverseFindings": 0,
                    "recommendation": "No search results found. Consider refining your search terms.",
                    "entityMatchStats": {"totalResults": 0, "validEntityMatches": 0},
                },
                "relationships": [],
                "searchId": "9b2f6c1e-...",
                "autoSaved": True,
            }
        ],
    )


class HeartbeatEvent(SSEEvent):
    """Heartbeat event to prevent proxy buffering.

    Formatted as SSE comment (': keepalive\\n\\n') instead of
    named event to avoid requiring client-side handling.
    """

    event: SSEEventType = SSEEventType.HEARTBEAT
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Empty data for heartbeat",
    )

    def format(self) -> str:
        """Format as SSE comment for compatibility."""
        return ": keepalive\n\n"


def progress_event(snapshot: ScreeningSnapshot) -> ProgressEvent:
    return ProgressEvent(data=snapshot.to_wire())


def complete_event(snapshot: ScreeningSnapshot) -> CompleteEvent:
    return CompleteEvent(data=snapshot.to_wire())


def reduce_snapshot(snapshot: ScreeningSnapshot, event: SSEEvent) -> ScreeningSnapshot:
    """Fold one event into the snapshot, field by field.

    Fields present in the event replace the snapshot's; absent fields are kept.
    Heartbeats carry no state.
    """
    if event.event == SSEEventType.HEARTBEAT or not event.data:
        return snapshot
    return ScreeningSnapshot.model_validate({**snapshot.to_wire(), **event.data})


class EventLog:
    """Append-only log of the events emitted by one run."""

    def __init__(self) -> None:
        self._events: list[SSEEvent] = []

    def append(self, event: SSEEvent) -> None:
        self._events.append(event)

    def __iter__(self) -> Iterator[SSEEvent]:
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)

    @property
    def events(self) -> tuple[SSEEvent, ...]:
        return tuple(self._events)

    def snapshot(self) -> ScreeningSnapshot:
        """Current consumer-side state, replayed from the start."""
        return reduce(reduce_snapshot, self._events, ScreeningSnapshot())

    def replay(self) -> Iterator[ScreeningSnapshot]:
        """Yield the state after every event, in order."""
        snapshot = ScreeningSnapshot()
        for event in self._events:
            snapshot = reduce_snapshot(snapshot, event)
            yield snapshot
