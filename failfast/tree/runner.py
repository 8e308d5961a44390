"""TreeRunner — walks a suite depth-first and drives a FailFastController.

This is the adapter between a concrete test tree and the controller's
abstract event set. It emits exactly the sequence a describe/it runner
would: group enter/exit around every block (including the implicit root),
hooks inside the group, one ``TestStart`` per attempt, and the outcome.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from failfast.controller import FailFastController
from failfast.tree.schema import (
    GroupDef,
    SuiteDefinition,
    TestCaseDef,
    TestStatus,
)
from failfast.types import (
    Decision,
    GroupEnter,
    GroupExit,
    HookFailure,
    LifecycleEvent,
    TestFailure,
    TestSkip,
    TestStart,
    TestSuccess,
)

logger = logging.getLogger(__name__)


class TestResult(BaseModel):
    """Observed result of one test case."""

    __test__ = False

    path: list[str]
    name: str
    depth: int
    status: TestStatus
    attempts: int = 0
    expected: TestStatus | None = None

    @property
    def label(self) -> str:
        return " > ".join([*self.path, self.name])

    @property
    def matches(self) -> bool:
        """Return True if there is no expectation or it was met."""
        return self.expected is None or self.expected == self.status


class RunReport(BaseModel):
    """Ordered results of one suite run."""

    suite_name: str
    results: list[TestResult] = Field(default_factory=list)

    def count(self, status: TestStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def passed(self) -> int:
        return self.count(TestStatus.PASSED)

    @property
    def failed(self) -> int:
        return self.count(TestStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self.count(TestStatus.SKIPPED)

    @property
    def statuses(self) -> list[TestStatus]:
        return [r.status for r in self.results]

    def mismatches(self) -> list[TestResult]:
        """Return results whose expected status was not met."""
        return [r for r in self.results if not r.matches]


class TreeRunner:
    """Sequential depth-first walker for a :class:`SuiteDefinition`.

    Args:
        controller: The controller deciding which tests run.
        retry_times: Extra attempts for a failing test. None uses the
            suite's own ``retry_times``.
    """

    def __init__(
        self,
        controller: FailFastController,
        retry_times: int | None = None,
    ) -> None:
        self._controller = controller
        self._retry_times = retry_times
        self._retries = 0

    def run(self, suite: SuiteDefinition) -> RunReport:
        """Walk the whole suite once and return the collected results."""
        self._retries = suite.retry_times if self._retry_times is None else self._retry_times
        report = RunReport(suite_name=suite.name)

        logger.debug("Running suite '%s' (retries=%d)", suite.name, self._retries)

        self._emit(GroupEnter())
        for child in suite.children:
            self._visit(child, [], report.results, hook_failed=False, is_root_child=True)
        self._emit(GroupExit())

        logger.debug(
            "Suite '%s' done: %d passed, %d failed, %d skipped",
            suite.name,
            report.passed,
            report.failed,
            report.skipped,
        )
        return report

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _emit(self, event: LifecycleEvent) -> Decision | None:
        return self._controller.handle(event)

    def _visit(
        self,
        node: GroupDef | TestCaseDef,
        parent_path: list[str],
        results: list[TestResult],
        hook_failed: bool,
        is_root_child: bool,
    ) -> None:
        if isinstance(node, GroupDef):
            self._run_group(node, parent_path, results, hook_failed, is_root_child)
        else:
            results.append(self._run_test(node, parent_path, hook_failed))

    def _run_group(
        self,
        group: GroupDef,
        parent_path: list[str],
        results: list[TestResult],
        inherited_failure: bool,
        is_root_child: bool,
    ) -> None:
        path = [*parent_path, group.describe]
        self._emit(GroupEnter(path=path, is_root_child=is_root_child))

        # Setup of nested groups does not run once an outer setup failed.
        hook_failed = inherited_failure or self._run_hook(group.before_all, "before_all", path)
        for child in group.children:
            self._visit(child, path, results, hook_failed, is_root_child=False)

        self._run_hook(group.after_all, "after_all", path)
        self._emit(GroupExit(path=path))

    def _run_hook(self, actions: list[str], hook: str, path: list[str]) -> bool:
        """Run hook steps in order. Returns True if the hook failed."""
        for action in actions:
            if action == "fail":
                self._emit(HookFailure(path=path, hook=hook, error=f"{hook} hook failed"))
                return True
            self._apply_action(action)
        return False

    def _run_test(
        self,
        test: TestCaseDef,
        parent_path: list[str],
        hook_failed: bool,
    ) -> TestResult:
        path = [*parent_path, test.it]
        depth = self._controller.state.current_depth
        status = TestStatus.FAILED
        attempts = 0

        for invocation in range(1, self._retries + 2):
            decision = self._emit(TestStart(path=path, invocation=invocation))
            if decision is Decision.SKIP:
                self._emit(TestSkip(path=path))
                status = TestStatus.SKIPPED
                break

            attempts = invocation
            if hook_failed:
                # The setup error is attached to the test; its body never runs.
                status = TestStatus.FAILED
                break

            for action in test.actions:
                self._apply_action(action)

            outcome = test.outcomes[min(invocation, len(test.outcomes)) - 1]
            if outcome == "pass":
                self._emit(TestSuccess(path=path, invocation=invocation))
                status = TestStatus.PASSED
                break

            self._emit(
                TestFailure(
                    path=path,
                    invocation=invocation,
                    error=f"attempt {invocation} failed",
                )
            )
            status = TestStatus.FAILED

        return TestResult(
            path=parent_path,
            name=test.it,
            depth=depth,
            status=status,
            attempts=attempts,
            expected=test.expect,
        )

    def _apply_action(self, action: str) -> None:
        controller = self._controller
        if action == "mark_optional":
            controller.mark_block_optional()
        elif action == "skip_next":
            controller.skip_next_test()
        elif action == "skip_block":
            controller.skip_block(True)
        elif action == "unskip_block":
            controller.skip_block(False)
