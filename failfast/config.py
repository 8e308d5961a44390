"""Fail-fast options parsing.

Turns the loosely shaped options a runner hands over (environment options,
a YAML file, CLI flags) into a validated :class:`FailFastPolicy`.

Accepted shapes::

    {"enabled": true, "scope": "block", "verbose": false}
    {"failFast": {"enabled": true, "scope": "global"}}
    {"failFast": {"enabled": true, "global": false}}     # legacy boolean scope
    {"enableFailFast": true}                             # legacy flag
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from failfast.types import ConfigurationError, FailFastPolicy, Scope

NESTED_KEY = "failFast"
LEGACY_ENABLED_KEY = "enableFailFast"


def _normalize(options: Mapping[str, Any]) -> dict[str, Any]:
    raw: dict[str, Any] = {}

    if LEGACY_ENABLED_KEY in options:
        raw["enabled"] = options[LEGACY_ENABLED_KEY]

    nested = options.get(NESTED_KEY)
    if nested is None:
        source: Mapping[str, Any] = {
            k: v for k, v in options.items() if k not in (NESTED_KEY, LEGACY_ENABLED_KEY)
        }
    elif isinstance(nested, Mapping):
        source = nested
    else:
        msg = f"'{NESTED_KEY}' must be a mapping, got {type(nested).__name__}"
        raise ConfigurationError(msg)

    for key, value in source.items():
        if key == "global":
            if not isinstance(value, bool):
                msg = f"'global' must be true or false, got {value!r}"
                raise ConfigurationError(msg)
            raw["scope"] = Scope.GLOBAL if value else Scope.BLOCK
        elif key == "scope" and isinstance(value, str):
            raw["scope"] = value.strip().lower()
        else:
            raw[key] = value

    return raw


def policy_from_options(
    options: Mapping[str, Any] | None = None,
    **overrides: Any,
) -> FailFastPolicy:
    """Build a policy from runner options plus explicit overrides.

    Args:
        options: Raw options in any of the accepted shapes.
        **overrides: Field values that win over ``options``. None values
            are ignored so unset CLI flags can be passed straight through.

    Returns:
        A validated FailFastPolicy.

    Raises:
        ConfigurationError: If the scope is unknown or a field is invalid.
    """
    if options is not None and not isinstance(options, Mapping):
        msg = f"Fail-fast options must be a mapping, got {type(options).__name__}"
        raise ConfigurationError(msg)

    raw = _normalize(options or {})
    for key, value in overrides.items():
        if value is None:
            continue
        raw[key] = value.strip().lower() if key == "scope" and isinstance(value, str) else value

    try:
        return FailFastPolicy.model_validate(raw)
    except ValidationError as exc:
        if any(err["loc"] == ("scope",) for err in exc.errors()):
            msg = (
                f"Invalid fail-fast scope: {raw.get('scope')!r}. "
                f"Choose from: {', '.join(s.value for s in Scope)}"
            )
        else:
            msg = f"Invalid fail-fast options: {exc}"
        raise ConfigurationError(msg) from exc


def load_policy(path: Path, **overrides: Any) -> FailFastPolicy:
    """Load a policy from a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If the YAML is malformed or the options invalid.
    """
    with open(path) as fh:
        try:
            raw = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            msg = f"Malformed YAML in {path}: {exc}"
            raise ConfigurationError(msg) from exc
    return policy_from_options(raw or {}, **overrides)
