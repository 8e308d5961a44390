"""Test-tree suites for failfast.

Provides YAML suite definitions, a loader, and a depth-first runner that
drives a FailFastController through the suite's lifecycle events.
"""

from failfast.tree.loader import load_all_suites, load_suite, validate_suite
from failfast.tree.runner import RunReport, TestResult, TreeRunner
from failfast.tree.schema import (
    GroupDef,
    SuiteDefinition,
    TestCaseDef,
    TestStatus,
)

__all__ = [
    "GroupDef",
    "RunReport",
    "SuiteDefinition",
    "TestCaseDef",
    "TestResult",
    "TestStatus",
    "TreeRunner",
    "load_all_suites",
    "load_suite",
    "validate_suite",
]
