"""Pydantic models for YAML test-tree suites.

A suite is an ordered tree of ``describe`` groups and ``it`` test cases.
Each test scripts its own outcome per attempt, so a suite fully determines
the event stream the runner produces.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Outcome = Literal["pass", "fail"]

# Manual controls a test body may call while it runs.
TestAction = Literal["skip_next", "skip_block", "unskip_block", "mark_optional"]

# Steps a before_all/after_all hook performs, in order. "fail" stops the hook.
HookAction = Literal["pass", "fail", "mark_optional", "skip_block", "skip_next"]


class TestStatus(str, Enum):
    """Final status of a test case."""

    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class TestCaseDef(BaseModel):
    """A leaf test case.

    ``outcomes`` lists the result of each attempt; the last entry repeats
    when the test is retried more often than listed.
    """

    __test__ = False

    model_config = ConfigDict(extra="forbid")

    it: str
    outcomes: list[Outcome] = Field(default_factory=lambda: ["pass"], min_length=1)
    actions: list[TestAction] = Field(default_factory=list)
    expect: TestStatus | None = None


class GroupDef(BaseModel):
    """A describe block with optional setup/teardown and ordered children."""

    model_config = ConfigDict(extra="forbid")

    describe: str
    before_all: list[HookAction] = Field(default_factory=list)
    after_all: list[HookAction] = Field(default_factory=list)
    children: list[GroupDef | TestCaseDef] = Field(default_factory=list)


class SuiteDefinition(BaseModel):
    """Top-level suite loaded from YAML.

    ``options`` holds raw fail-fast options in any shape accepted by
    :func:`failfast.config.policy_from_options`. Root children sit directly
    under the implicit root group.
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    description: str = ""
    options: dict[str, Any] = Field(default_factory=dict)
    retry_times: int = Field(default=0, ge=0)
    children: list[GroupDef | TestCaseDef] = Field(default_factory=list)

    def iter_tests(self) -> list[TestCaseDef]:
        """Return every test case in walk order."""
        found: list[TestCaseDef] = []

        def _collect(nodes: list[GroupDef | TestCaseDef]) -> None:
            for node in nodes:
                if isinstance(node, GroupDef):
                    _collect(node.children)
                else:
                    found.append(node)

        _collect(self.children)
        return found


GroupDef.model_rebuild()
SuiteDefinition.model_rebuild()
