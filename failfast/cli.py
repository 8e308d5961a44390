"""CLI for failfast.

Usage:
    failfast run suites/global.yaml --scope block --verbose
    failfast run suites/ --trace
    failfast check-config failfast.yaml
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from failfast.config import load_policy, policy_from_options
from failfast.controller import FailFastController
from failfast.trace import EventTrace, TraceLogger
from failfast.tree import RunReport, SuiteDefinition, TestStatus, TreeRunner
from failfast.tree.loader import load_all_suites, load_suite, validate_suite
from failfast.types import ConfigurationError, FailFastPolicy, Scope, SuiteLoadError

app = typer.Typer(
    name="failfast",
    help="Replay describe/it suites through the fail-fast controller.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()

STATUS_STYLES = {
    TestStatus.PASSED: "green",
    TestStatus.FAILED: "red",
    TestStatus.SKIPPED: "yellow",
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _print_report(report: RunReport, policy: FailFastPolicy) -> None:
    """Render one suite's results as a table."""
    table = Table(
        title=f"{report.suite_name}  (enabled={policy.enabled}, scope={policy.scope.value})"
    )
    table.add_column("Test")
    table.add_column("Depth", justify="right")
    table.add_column("Attempts", justify="right")
    table.add_column("Status")
    table.add_column("Expected")

    for result in report.results:
        style = STATUS_STYLES[result.status]
        expected = result.expected.value if result.expected else "-"
        if not result.matches:
            expected = f"[bold red]{expected}[/bold red]"
        table.add_row(
            escape(result.label),
            str(result.depth),
            str(result.attempts),
            f"[{style}]{result.status.value}[/{style}]",
            expected,
        )

    console.print(table)
    console.print(
        f"{report.passed} passed, {report.failed} failed, {report.skipped} skipped"
    )


def _print_trace(trace: EventTrace) -> None:
    for entry in trace.entries:
        console.print(
            f"  {entry.step:>3} {entry.kind.value:<13} depth={entry.depth} "
            f"failed_at={entry.failed_at_depth} optional={entry.optional_threshold} "
            f"suite_failed={entry.suite_failed}  {entry.label}"
        )


def _collect_suites(target: Path) -> list[SuiteDefinition]:
    if target.is_dir():
        return load_all_suites(target)
    return [load_suite(target)]


@app.command()
def run(
    target: Annotated[
        Path, typer.Argument(help="Suite YAML file or directory of suites.")
    ],
    enabled: Annotated[
        Optional[bool],
        typer.Option("--enabled/--disabled", help="Override the suite's enabled flag."),
    ] = None,
    scope: Annotated[
        Optional[str], typer.Option("--scope", "-s", help="Override scope: global or block.")
    ] = None,
    retry_times: Annotated[
        Optional[int], typer.Option("--retry-times", min=0, help="Override retries per test.")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log controller decisions.")] = False,
    trace: Annotated[bool, typer.Option("--trace", help="Print every lifecycle event.")] = False,
) -> None:
    """Run suites and show which tests ran, failed, or were skipped."""
    _setup_logging(verbose)

    try:
        suites = _collect_suites(target)
    except (FileNotFoundError, SuiteLoadError) as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=2) from exc

    mismatched = 0
    for suite in suites:
        for warning in validate_suite(suite):
            console.print(f"[yellow]warning: {escape(warning)}[/yellow]")

        try:
            policy = policy_from_options(
                suite.options,
                enabled=enabled,
                scope=scope,
                verbose=verbose or None,
            )
        except ConfigurationError as exc:
            console.print(f"[red]{escape(suite.name)}: {escape(str(exc))}[/red]")
            raise typer.Exit(code=2) from exc

        controller = FailFastController(policy)
        tracer = TraceLogger()
        if trace:
            controller.register_observer(tracer)

        report = TreeRunner(controller, retry_times=retry_times).run(suite)
        _print_report(report, policy)
        if trace:
            _print_trace(tracer.finish(suite.name))

        mismatched += len(report.mismatches())

    if mismatched:
        console.print(f"[bold red]{mismatched} result(s) did not match expectations[/bold red]")
        raise typer.Exit(code=1)


@app.command("check-config")
def check_config(
    path: Annotated[Path, typer.Argument(help="YAML file with fail-fast options.")],
) -> None:
    """Validate a fail-fast options file and print the resolved policy."""
    try:
        policy = load_policy(path)
    except FileNotFoundError as exc:
        console.print(f"[red]File not found: {escape(str(path))}[/red]")
        raise typer.Exit(code=2) from exc
    except IsADirectoryError as exc:
        console.print(f"[red]Not a file: {escape(str(path))}[/red]")
        raise typer.Exit(code=2) from exc
    except ConfigurationError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=2) from exc

    console.print(f"enabled: {policy.enabled}")
    console.print(f"scope:   {policy.scope.value}")
    console.print(f"verbose: {policy.verbose}")
    console.print(f"[dim]scopes available: {', '.join(s.value for s in Scope)}[/dim]")


if __name__ == "__main__":
    app()
