"""failfast — skip-on-failure controller for hierarchical test runners."""

from failfast.config import load_policy, policy_from_options
from failfast.controller import ControllerState, FailFastController
from failfast.types import (
    ConfigurationError,
    Decision,
    EventKind,
    EventOrderError,
    FailFastPolicy,
    GroupEnter,
    GroupExit,
    HookFailure,
    LifecycleEvent,
    Scope,
    SuiteLoadError,
    TestFailure,
    TestSkip,
    TestStart,
    TestSuccess,
)

__all__ = [
    "ConfigurationError",
    "ControllerState",
    "Decision",
    "EventKind",
    "EventOrderError",
    "FailFastController",
    "FailFastPolicy",
    "GroupEnter",
    "GroupExit",
    "HookFailure",
    "LifecycleEvent",
    "Scope",
    "SuiteLoadError",
    "TestFailure",
    "TestSkip",
    "TestStart",
    "TestSuccess",
    "load_policy",
    "policy_from_options",
]

__version__ = "0.1.0"
