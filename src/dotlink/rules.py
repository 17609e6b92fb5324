"""Evaluation of ``[dots.use]`` rules into source and destination pairs."""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePath
from typing import Iterable, Mapping

from .config import DotsOptions, TargetPairs, UseRule, UseVar, UseWhen
from .errors import ConfigError, ResolveError, ShellError
from .shell import ShellEvaluator
from .template import Environment, freeze, resolve, resolve_one

logger = logging.getLogger(__name__)


def bind_variables(rule: UseRule, *, shell: ShellEvaluator) -> Environment:
    """Produce the starting environment of ``rule`` from its variable sources."""

    bound: dict[str, str] = {}
    for name, var in rule.variables.items():
        try:
            bound[name] = _variable_value(name, var, shell)
        except ShellError as exc:
            raise ConfigError(f"Unable to evaluate variable '{name}': {exc}") from exc
    return freeze(bound)


def _variable_value(name: str, var: UseVar, shell: ShellEvaluator) -> str:
    defined = [source for source in (var.value, var.env, var.shell) if source is not None]
    if len(defined) > 1:
        raise ConfigError(f"Multiple fields defined for variable '{name}'")
    if var.value is not None:
        return var.value
    if var.env is not None:
        expression = var.env if var.env.startswith(("$", "~")) else f"${var.env}"
        return shell.echo(expression)
    if var.shell is not None:
        return shell.run(var.shell)
    raise ConfigError(f"No value found for variable '{name}'")


def guard_passes(when: bool | UseWhen, env: Mapping[str, str], *, shell: ShellEvaluator) -> bool:
    """Return ``True`` when every present sub-condition of ``when`` holds."""

    if isinstance(when, bool):
        return when
    try:
        if when.shell is not None and not shell.run_for_bool(when.shell, env):
            return False
        if when.test_if is not None and not shell.test_if(when.test_if, env):
            return False
        if when.command is not None and not shell.test_command(when.command, env):
            return False
    except ShellError as exc:
        raise ConfigError(f"Unable to evaluate 'when': {exc}") from exc
    return True


def evaluate(
    rule: UseRule,
    base: Path,
    use_path: str,
    *,
    shell: ShellEvaluator,
    global_target: TargetPairs | None = None,
    global_exclude: Iterable[str] = (),
) -> dict[Path, Path] | None:
    """Evaluate ``rule`` for ``use_path`` under the dotfiles root ``base``.

    Returns a mapping of concrete source to concrete destination, or ``None``
    when the rule's guard is false. Every target suffix is resolved on its
    own, so variables matched for one suffix never affect another.
    """

    if rule.when is False:
        return None

    env = bind_variables(rule, shell=shell)
    if not guard_passes(rule.when, env, shell=shell):
        logger.debug("Guard for '%s' is false; skipping", use_path)
        return None

    targets = rule.target or global_target
    if not targets:
        raise ConfigError(f"No targets provided for '{use_path}'")

    excluded_roots = _resolve_all(base, global_exclude, freeze(), shell)
    mapping: dict[Path, Path] = {}

    for suffix, destination_template in targets:
        for source, refined_env in _resolve(base, PurePath(use_path) / suffix, env, shell):
            if _is_under(source, excluded_roots):
                logger.debug("Excluded by global pattern: %s", source)
                continue
            if rule.exclude and _is_under(source, _resolve_all(base, rule.exclude, refined_env, shell)):
                logger.debug("Excluded by rule pattern: %s", source)
                continue
            if not os.path.lexists(source):
                logger.warning("Source path '%s' does not exist; skipping", source)
                continue

            try:
                destination, _ = resolve_one(base, destination_template, refined_env, shell=shell)
            except ResolveError as exc:
                raise ConfigError(f"Invalid destination for '{source}': {exc}") from exc
            mapping[source] = destination

    return mapping


def collect_targets(options: DotsOptions, base: Path, *, shell: ShellEvaluator) -> dict[Path, Path]:
    """Evaluate every use rule and merge the results keyed by destination.

    Rules are applied in configuration order, so a later rule wins when two
    sources map to the same destination.
    """

    targets: dict[Path, Path] = {}
    for use_path, rules in (options.use or {}).items():
        for rule in rules:
            mapping = evaluate(
                rule,
                base,
                use_path,
                shell=shell,
                global_target=options.target,
                global_exclude=options.exclude or (),
            )
            if not mapping:
                continue
            for source, destination in mapping.items():
                if destination in targets and targets[destination] != source:
                    logger.info("'%s' now links to '%s' instead of '%s'", destination, source, targets[destination])
                targets[destination] = source
    return targets


def _resolve(base: Path, template: PurePath, env: Environment, shell: ShellEvaluator) -> list[tuple[Path, Environment]]:
    try:
        return resolve(base, template, env, shell=shell)
    except ResolveError as exc:
        raise ConfigError(f"Unable to resolve '{template}': {exc}") from exc


def _resolve_all(
    base: Path,
    templates: Iterable[str | PurePath],
    env: Environment,
    shell: ShellEvaluator,
) -> list[Path]:
    paths: list[Path] = []
    for template in templates:
        paths.extend(path for path, _ in _resolve(base, PurePath(template), env, shell))
    return paths


def _is_under(path: Path, roots: Iterable[Path]) -> bool:
    return any(path == root or path.is_relative_to(root) for root in roots)
