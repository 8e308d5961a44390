"""Event tracing for failfast runs.

A :class:`TraceLogger` is registered as a controller observer and records
one entry per lifecycle event together with the controller state seen just
before the event was applied.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from failfast.controller import ControllerState
from failfast.types import EventKind, LifecycleEvent

# ---------------------------------------------------------------------------
# Core data structures
# ---------------------------------------------------------------------------


@dataclass
class TraceEntry:
    """A single event record."""

    step: int
    kind: EventKind
    label: str
    depth: int
    failed_at_depth: int
    optional_threshold: int
    suite_failed: bool
    timestamp: float = field(default_factory=time.monotonic)


@dataclass
class EventTrace:
    """Complete trace for one traversal."""

    suite_name: str
    entries: list[TraceEntry]

    @property
    def kinds(self) -> list[EventKind]:
        """Ordered list of event kinds."""
        return [e.kind for e in self.entries]

    def of_kind(self, kind: EventKind) -> list[TraceEntry]:
        return [e for e in self.entries if e.kind is kind]


# ---------------------------------------------------------------------------
# Trace logger
# ---------------------------------------------------------------------------


class TraceLogger:
    """Observer accumulating TraceEntry records."""

    def __init__(self) -> None:
        self._entries: list[TraceEntry] = []

    def __call__(self, event: LifecycleEvent, state: ControllerState) -> None:
        self._entries.append(
            TraceEntry(
                step=len(self._entries) + 1,
                kind=event.kind,
                label=event.label,
                depth=state.current_depth,
                failed_at_depth=state.failed_at_depth,
                optional_threshold=state.optional_threshold,
                suite_failed=state.suite_failed,
            )
        )

    def __len__(self) -> int:
        return len(self._entries)

    def finish(self, suite_name: str) -> EventTrace:
        """Finalize the current traversal and return its trace.

        Args:
            suite_name: Name of the suite that was walked.

        Returns:
            An EventTrace containing all recorded entries.
        """
        trace = EventTrace(suite_name=suite_name, entries=list(self._entries))
        self.reset()
        return trace

    def reset(self) -> None:
        """Clear all accumulated entries."""
        self._entries.clear()
