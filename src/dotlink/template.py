"""Expansion of templated paths into concrete paths.

A template is split into segments. Each segment is one of:

``*``
    every subdirectory at this position.
``<name>``
    the value bound to ``name`` in the environment. An unbound name is kept
    literally. A name bound to ``*`` behaves like a wildcard and additionally
    binds the matched directory name to ``name`` for the rest of that branch.
``$VAR`` or ``~``
    expanded by the shell with the current environment, falling back to the
    literal text when the shell cannot produce a value.

Anything else is joined as is. Every branch carries its own read-only
environment, so a binding made while expanding one directory is never seen by
its siblings.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePath
from types import MappingProxyType
from typing import Mapping

from .errors import ResolveError, ShellError
from .filesystem import list_directories
from .shell import ShellEvaluator

logger = logging.getLogger(__name__)

WILDCARD = "*"

Environment = Mapping[str, str]
Resolved = list[tuple[Path, Environment]]


def freeze(env: Mapping[str, str] | None = None) -> Environment:
    """Return a read-only copy of ``env``."""

    return MappingProxyType(dict(env or {}))


def resolve(
    base: Path,
    template: str | PurePath,
    env: Mapping[str, str] | None = None,
    *,
    shell: ShellEvaluator,
) -> Resolved:
    """Expand ``template`` relative to ``base``.

    Returns ``(path, environment)`` pairs in directory-listing order. The
    environment is the one in effect at the end of that branch.
    """

    parts = PurePath(template).parts
    return _resolve(Path(base), parts, freeze(env), shell)


def resolve_one(
    base: Path,
    template: str | PurePath,
    env: Mapping[str, str] | None = None,
    *,
    shell: ShellEvaluator,
) -> tuple[Path, Environment]:
    """Expand a template that must name exactly one path."""

    if WILDCARD in PurePath(template).parts:
        raise ResolveError(f"Wildcards are not allowed in '{template}'", Path(base) / template)

    results = resolve(base, template, env, shell=shell)
    if len(results) != 1:
        raise ResolveError(
            f"Template '{template}' resolved to {len(results)} paths; expected exactly one",
            Path(base) / template,
        )
    return results[0]


def _resolve(accumulator: Path, parts: tuple[str, ...], env: Environment, shell: ShellEvaluator) -> Resolved:
    if not parts:
        return [(accumulator, env)]

    segment, rest = parts[0], parts[1:]

    if segment == WILDCARD:
        return _expand_directories(accumulator, rest, env, shell, bind=None)

    if len(segment) > 2 and segment.startswith("<") and segment.endswith(">"):
        name = segment[1:-1]
        value = env.get(name)
        if value is None:
            return _resolve(accumulator / segment, rest, env, shell)
        if value == WILDCARD:
            return _expand_directories(accumulator, rest, env, shell, bind=name)
        return _resolve(accumulator / value, rest, env, shell)

    if segment.startswith(("$", "~")):
        return _resolve(accumulator / _expand_shell(segment, env, shell), rest, env, shell)

    return _resolve(accumulator / segment, rest, env, shell)


def _expand_directories(
    directory: Path,
    rest: tuple[str, ...],
    env: Environment,
    shell: ShellEvaluator,
    *,
    bind: str | None,
) -> Resolved:
    try:
        names = list_directories(directory)
    except OSError as exc:
        raise ResolveError(f"Unable to list '{directory}': {exc}", directory) from exc

    results: Resolved = []
    for name in names:
        branch_env = env if bind is None else freeze({**env, bind: name})
        results.extend(_resolve(directory / name, rest, branch_env, shell))
    return results


def _expand_shell(segment: str, env: Environment, shell: ShellEvaluator) -> str:
    try:
        value = shell.echo(segment, env)
    except ShellError as exc:
        logger.debug("Keeping '%s' literally: %s", segment, exc)
        return segment
    return value or segment
