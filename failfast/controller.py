"""FailFastController — decides which tests run after a failure.

The controller follows one depth-first walk of a describe/test tree. The
walker reports every group enter/exit, hook failure and test outcome; for
each test about to start the controller answers ``RUN`` or ``SKIP``.

Two scopes are supported:

    - global: any unresolved failure skips everything that remains, until a
      fresh top-level group starts.
    - block: a failure skips the remaining tests at or below the depth where
      it happened; it is forgotten once that group exits.

A group may be marked optional from its setup hook. A failure inside an
optional group skips the rest of that group but never leaks outside it.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from typing import Any

from failfast.types import (
    ConfigurationError,
    Decision,
    EventKind,
    EventOrderError,
    FailFastPolicy,
    GroupEnter,
    HookFailure,
    LifecycleEvent,
    Scope,
    TestFailure,
    TestStart,
    TestSuccess,
)

logger = logging.getLogger(__name__)

Observer = Callable[[LifecycleEvent, "ControllerState"], "Awaitable[Any] | Any"]


@dataclass
class ControllerState:
    """Mutable bookkeeping for one traversal. Depth 0 means "not set"."""

    current_depth: int = 0
    failed_at_depth: int = 0
    optional_threshold: int = 0
    suite_failed: bool = False
    skip_next: bool = False
    skipped_blocks: set[int] = field(default_factory=set)

    def snapshot(self) -> ControllerState:
        """Return an independent copy of the state."""
        return replace(self, skipped_blocks=set(self.skipped_blocks))


class FailFastController:
    """Event-driven skip/run state machine for a single test-file run.

    Feed it events through :meth:`handle` (or :meth:`handle_async`), or call
    the ``on_*`` transitions directly. Manual controls (:meth:`skip_next_test`,
    :meth:`skip_block`, :meth:`mark_block_optional`) are meant to be called
    from inside running test code or setup hooks.
    """

    def __init__(self, policy: FailFastPolicy | None = None) -> None:
        policy = policy or FailFastPolicy()
        try:
            scope = Scope(policy.scope)
        except ValueError as exc:
            msg = (
                f"Invalid fail-fast scope: {policy.scope!r}. "
                f"Choose from: {', '.join(s.value for s in Scope)}"
            )
            raise ConfigurationError(msg) from exc

        self._policy = policy
        self._scope = scope
        self._verbose = policy.verbose
        self._state = ControllerState()
        self._observers: list[Observer] = []

    @property
    def policy(self) -> FailFastPolicy:
        """Return the policy the controller was built with."""
        return self._policy

    @property
    def state(self) -> ControllerState:
        """Return a snapshot of the current state."""
        return self._state.snapshot()

    @property
    def verbose(self) -> bool:
        return self._verbose

    def set_verbose(self, verbose: bool = False) -> None:
        self._verbose = bool(verbose)

    # ------------------------------------------------------------------
    # Observers and event dispatch
    # ------------------------------------------------------------------

    def register_observer(self, handler: Observer) -> None:
        """Register a callback run before the default handling of every event.

        Handlers are called as ``handler(event, state)`` in registration
        order. ``state`` is a snapshot, so handlers cannot alter decisions.

        Example:
            >>> def on_failure(event, state):
            ...     if event.kind is EventKind.TEST_FAILURE:
            ...         take_screenshot()
            >>> controller.register_observer(on_failure)
        """
        self._observers.append(handler)

    def handle(self, event: LifecycleEvent) -> Decision | None:
        """Run observers, then apply the event.

        Returns:
            The decision for ``TestStart`` events, None for everything else.

        Raises:
            TypeError: If an observer returns an awaitable; use handle_async.
        """
        for handler in self._observers:
            result = handler(event, self._state.snapshot())
            if inspect.isawaitable(result):
                if inspect.iscoroutine(result):
                    result.close()
                msg = "Observer returned an awaitable; use handle_async() instead."
                raise TypeError(msg)
        return self._apply(event)

    async def handle_async(self, event: LifecycleEvent) -> Decision | None:
        """Like :meth:`handle`, awaiting observers that return awaitables."""
        for handler in self._observers:
            result = handler(event, self._state.snapshot())
            if inspect.isawaitable(result):
                await result
        return self._apply(event)

    def _apply(self, event: LifecycleEvent) -> Decision | None:
        if isinstance(event, GroupEnter):
            self.on_group_enter(event.is_root_child)
        elif event.kind is EventKind.GROUP_EXIT:
            self.on_group_exit()
        elif isinstance(event, HookFailure):
            # Runners do not report hook errors for tests that end up skipped.
            if self._verbose:
                logger.error(
                    "Hook %s failed in %s: %s", event.hook, event.label, event.error
                )
            self.on_hook_failure()
        elif isinstance(event, TestFailure):
            if self._verbose:
                logger.info("[FAILED  ] %s (%s)", event.label, event.error)
            self.on_test_failure()
        elif isinstance(event, TestSuccess):
            self.on_test_success(event.invocation)
        elif isinstance(event, TestStart):
            if self._verbose:
                logger.info("[Starting] %s", event.label)
            return self.on_test_start(event.invocation)
        elif event.kind is EventKind.TEST_SKIP:
            if self._verbose:
                logger.info("[SKIPPED ] %s", event.label)

        return None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def on_group_enter(self, is_root_child: bool = False) -> None:
        """Enter a group. A fresh top-level group forgets global failures."""
        self._state.current_depth += 1
        if is_root_child:
            self._state.suite_failed = False

    def on_group_exit(self) -> None:
        """Leave the current group, releasing markers set at this depth."""
        state = self._state
        exited = state.current_depth
        if exited == 0:
            msg = "Group exit received at depth 0 (no group is open)."
            raise EventOrderError(msg)

        if state.optional_threshold and exited <= state.optional_threshold:
            # The optional group absorbs its own failure.
            state.optional_threshold = 0
            state.failed_at_depth = 0
            state.suite_failed = False

        if exited <= state.failed_at_depth:
            state.failed_at_depth = 0

        state.skipped_blocks = {d for d in state.skipped_blocks if d < exited}
        state.current_depth -= 1

    def on_hook_failure(self) -> None:
        """Record a setup/teardown failure exactly like a test failure."""
        self._record_failure()

    def on_test_failure(self) -> None:
        self._record_failure()

    def on_test_success(self, invocation: int = 1) -> None:
        """Record a passing attempt.

        A retried test that eventually passes clears the suite-level failure;
        any success clears the local failure marker.
        """
        if invocation > 1:
            self._state.suite_failed = False
        self._state.failed_at_depth = 0

    def on_test_start(self, invocation: int = 1) -> Decision:
        """Decide whether the test about to start must be skipped.

        Only the first attempt is evaluated; retries always run.
        """
        if invocation != 1:
            return Decision.RUN

        decision = self._decide()
        if self._verbose:
            logger.info(
                "Decision %s at depth %d (failed_at=%d, optional=%d, suite_failed=%s)",
                decision.value,
                self._state.current_depth,
                self._state.failed_at_depth,
                self._state.optional_threshold,
                self._state.suite_failed,
            )
        return decision

    def _decide(self) -> Decision:
        state = self._state
        depth = state.current_depth

        if any(d <= depth for d in state.skipped_blocks):
            return Decision.SKIP
        if state.skip_next:
            state.skip_next = False
            return Decision.SKIP

        if not self._policy.enabled:
            return Decision.RUN

        failed = state.failed_at_depth
        optional = state.optional_threshold

        if optional > 0 and failed > 0 and depth >= failed and depth >= optional:
            return Decision.SKIP
        if self._scope is Scope.GLOBAL and state.suite_failed:
            return Decision.SKIP
        if self._scope is Scope.BLOCK and optional == 0 and failed > 0 and depth >= failed:
            return Decision.SKIP
        return Decision.RUN

    def _record_failure(self) -> None:
        self._state.failed_at_depth = self._state.current_depth
        self._state.suite_failed = True

    # ------------------------------------------------------------------
    # Manual controls
    # ------------------------------------------------------------------

    def mark_block_optional(self, optional: bool = True) -> None:
        """Treat the current group as optional (call from its setup hook).

        Passing ``optional=False`` removes the marker.
        """
        depth = self._state.current_depth if optional else 0
        if self._verbose:
            logger.info(
                "Setting optional block to %s (current depth: %d)",
                optional,
                self._state.current_depth,
            )
        self._state.optional_threshold = depth

    def skip_next_test(self) -> None:
        """Skip exactly the next test that starts, whatever the policy."""
        self._state.skip_next = True

    def skip_block(self, active: bool = True) -> None:
        """Skip (or stop skipping) the rest of the current group."""
        depth = self._state.current_depth
        if active:
            self._state.skipped_blocks.add(depth)
        else:
            self._state.skipped_blocks.discard(depth)
