"""Core type definitions for failfast."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Scope(str, Enum):
    """How far a failure reaches once it has happened."""

    GLOBAL = "global"
    BLOCK = "block"


class Decision(str, Enum):
    """Verdict for a test that is about to start."""

    RUN = "run"
    SKIP = "skip"


class FailFastPolicy(BaseModel):
    """Policy for a single run. Immutable once the run starts."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    scope: Scope = Scope.GLOBAL
    verbose: bool = False


class ConfigurationError(ValueError):
    """Raised when the fail-fast options cannot be turned into a policy."""


class EventOrderError(RuntimeError):
    """Raised when the runner delivers an impossible event sequence."""


class SuiteLoadError(ValueError):
    """Raised when a suite file cannot be turned into a test tree."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class EventKind(str, Enum):
    """Lifecycle events emitted by the tree walker."""

    GROUP_ENTER = "group_enter"
    GROUP_EXIT = "group_exit"
    HOOK_FAILURE = "hook_failure"
    TEST_FAILURE = "test_failure"
    TEST_SUCCESS = "test_success"
    TEST_START = "test_start"
    TEST_SKIP = "test_skip"


class LifecycleEvent(BaseModel):
    """Base event. ``path`` names the enclosing groups and the node itself."""

    kind: EventKind
    path: list[str] = Field(default_factory=list)

    @property
    def label(self) -> str:
        """Human readable location, e.g. ``outer > inner > test``."""
        return " > ".join(self.path) if self.path else "<root>"


class GroupEnter(LifecycleEvent):
    kind: Literal[EventKind.GROUP_ENTER] = EventKind.GROUP_ENTER
    is_root_child: bool = False


class GroupExit(LifecycleEvent):
    kind: Literal[EventKind.GROUP_EXIT] = EventKind.GROUP_EXIT


class HookFailure(LifecycleEvent):
    kind: Literal[EventKind.HOOK_FAILURE] = EventKind.HOOK_FAILURE
    hook: str = "before_all"
    error: str | None = None


class TestFailure(LifecycleEvent):
    __test__ = False

    kind: Literal[EventKind.TEST_FAILURE] = EventKind.TEST_FAILURE
    invocation: int = Field(default=1, ge=1)
    error: str | None = None


class TestSuccess(LifecycleEvent):
    __test__ = False

    kind: Literal[EventKind.TEST_SUCCESS] = EventKind.TEST_SUCCESS
    invocation: int = Field(default=1, ge=1)


class TestStart(LifecycleEvent):
    __test__ = False

    kind: Literal[EventKind.TEST_START] = EventKind.TEST_START
    invocation: int = Field(default=1, ge=1)


class TestSkip(LifecycleEvent):
    __test__ = False

    kind: Literal[EventKind.TEST_SKIP] = EventKind.TEST_SKIP
