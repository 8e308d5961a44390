"""Suite loading and static checks.

Every problem with a suite file, whether unreadable YAML or a tree that does
not fit the schema, surfaces as :class:`SuiteLoadError` naming the file.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from failfast.tree.schema import GroupDef, SuiteDefinition, TestCaseDef
from failfast.types import SuiteLoadError

SUITE_SUFFIXES = (".yaml", ".yml")


def load_suite(path: Path) -> SuiteDefinition:
    """Parse one suite file.

    Raises:
        FileNotFoundError: If the file does not exist.
        SuiteLoadError: If the YAML is malformed or the tree is invalid.
    """
    with open(path) as fh:
        try:
            raw = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise SuiteLoadError(path, f"malformed YAML: {exc}") from exc

    if not isinstance(raw, dict):
        raise SuiteLoadError(path, "a suite must be a mapping with at least a 'name'")

    try:
        return SuiteDefinition.model_validate(raw)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<suite>'}: {err['msg']}"
            for err in exc.errors()
        )
        raise SuiteLoadError(path, problems) from exc


def load_all_suites(directory: Path) -> list[SuiteDefinition]:
    """Load every suite file directly inside ``directory``, ordered by suite name.

    Suite names label reports and traces, so two files declaring the same
    name are rejected.

    Raises:
        FileNotFoundError: If the directory does not exist.
        SuiteLoadError: If a file is invalid or a suite name is reused.
    """
    if not directory.is_dir():
        msg = f"Suite directory does not exist: {directory}"
        raise FileNotFoundError(msg)

    by_name: dict[str, tuple[Path, SuiteDefinition]] = {}
    for path in sorted(p for p in directory.iterdir() if p.suffix in SUITE_SUFFIXES):
        suite = load_suite(path)
        if suite.name in by_name:
            first = by_name[suite.name][0]
            raise SuiteLoadError(path, f"suite name '{suite.name}' already used by {first.name}")
        by_name[suite.name] = (path, suite)

    return [by_name[name][1] for name in sorted(by_name)]


def validate_suite(suite: SuiteDefinition) -> list[str]:
    """Find constructs the runner accepts but that cannot do what they say.

    Returns:
        Human readable warnings, empty if the suite is clean.
    """
    warnings: list[str] = []

    def _check(nodes: list[GroupDef | TestCaseDef], path: list[str]) -> None:
        for node in nodes:
            if isinstance(node, TestCaseDef):
                if len(node.outcomes) > suite.retry_times + 1:
                    warnings.append(
                        f"{' > '.join([*path, node.it])}: {len(node.outcomes)} outcomes "
                        f"but only {suite.retry_times + 1} attempt(s) allowed"
                    )
                continue

            here = [*path, node.describe]
            label = " > ".join(here)
            if "mark_optional" in node.after_all:
                warnings.append(f"{label}: mark_optional in after_all has no test left to protect")
            if not node.children:
                warnings.append(f"{label}: group has no tests")
            _check(node.children, here)

    _check(suite.children, [])
    return warnings
