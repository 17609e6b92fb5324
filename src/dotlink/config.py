"""TOML configuration loading for dotlink."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigError
from .shell import DEFAULT_SHELL

DIRECTORY_CONFIG_NAMES = ("dots.toml", "config.dots", ".dots")
USER_CONFIG_LOCATIONS = (".config/dotlink/config.toml", ".config/dots/config", ".dots")
TRACKFILE_ENV = "DOTLINK_TRACKFILE"

INHERITABLE = frozenset({"use", "target", "exclude"})
_RULE_KEYS = frozenset({"when", "target", "exclude"})
_WHEN_KEYS = frozenset({"shell", "if", "command"})
_VAR_KEYS = frozenset({"value", "env", "shell"})

TargetPairs = tuple[tuple[str, str], ...]

__all__ = [
    "Config",
    "ConfigError",
    "DotsOptions",
    "Settings",
    "UseRule",
    "UseVar",
    "UseWhen",
    "default_trackfile_path",
    "load_config",
]


def _expand_path(raw: str | os.PathLike[str] | Path, *, base_dir: Path) -> Path:
    """Return an absolute ``Path`` by expanding env vars and user segments."""

    text = str(raw)
    expanded = Path(os.path.expandvars(text)).expanduser()
    if expanded.is_absolute():
        return expanded.resolve(strict=False)
    return (base_dir / expanded).resolve(strict=False)


def default_trackfile_path() -> Path:
    """Return the trackfile location used when no setting overrides it."""

    override = os.environ.get(TRACKFILE_ENV)
    if override:
        return _expand_path(override, base_dir=Path.cwd())
    cache_home = os.environ.get("XDG_CACHE_HOME")
    cache_dir = Path(cache_home) if cache_home else Path.home() / ".cache"
    return cache_dir / "dotlink" / "trackfile.toml"


def _parse_target(raw: Any, *, where: str) -> TargetPairs:
    if isinstance(raw, str):
        if not raw:
            raise ConfigError(f"{where}: target cannot be empty")
        return (("", raw),)
    if isinstance(raw, Mapping):
        pairs: list[tuple[str, str]] = []
        for suffix, destination in raw.items():
            if not isinstance(destination, str) or not destination:
                raise ConfigError(f"{where}: target for suffix '{suffix}' must be a non-empty string")
            pairs.append((str(suffix), destination))
        return tuple(pairs)
    raise ConfigError(f"{where}: target must be a string or a table, not {type(raw).__name__}")


def _parse_exclude(raw: Any, *, where: str) -> tuple[str, ...]:
    if isinstance(raw, str):
        return (raw,)
    if isinstance(raw, list) and all(isinstance(item, str) for item in raw):
        return tuple(raw)
    raise ConfigError(f"{where}: exclude must be a string or a list of strings")


class UseVar(BaseModel):
    """Source of a variable bound by a use rule.

    Exactly one field is expected to be set; the evaluator enforces this.
    """

    model_config = ConfigDict(frozen=True)

    value: str | None = None
    env: str | None = None
    shell: str | None = None

    @classmethod
    def from_raw(cls, name: str, raw: Any, *, where: str) -> "UseVar":
        if isinstance(raw, str):
            if raw.startswith(("$", "~")):
                return cls(env=raw)
            return cls(value=raw)
        if isinstance(raw, Mapping):
            unknown = set(raw) - _VAR_KEYS
            if unknown:
                raise ConfigError(f"{where}: unknown keys {sorted(unknown)} for variable '{name}'")
            for key, value in raw.items():
                if not isinstance(value, str):
                    raise ConfigError(f"{where}: '{key}' of variable '{name}' must be a string")
            return cls(**raw)
        raise ConfigError(f"{where}: variable '{name}' must be a string or a table")


class UseWhen(BaseModel):
    """Guard made of shell sub-conditions; missing ones count as true."""

    model_config = ConfigDict(frozen=True)

    shell: str | None = None
    test_if: str | None = None
    command: str | None = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], *, where: str) -> "UseWhen":
        unknown = set(raw) - _WHEN_KEYS
        if unknown:
            raise ConfigError(f"{where}: unknown 'when' keys {sorted(unknown)}")
        for key, value in raw.items():
            if not isinstance(value, str):
                raise ConfigError(f"{where}: 'when.{key}' must be a string")
        return cls(shell=raw.get("shell"), test_if=raw.get("if"), command=raw.get("command"))


class UseRule(BaseModel):
    """One entry of ``[dots.use]``."""

    model_config = ConfigDict(frozen=True)

    when: bool | UseWhen = True
    target: TargetPairs | None = None
    exclude: tuple[str, ...] | None = None
    variables: Dict[str, UseVar] = Field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], *, where: str) -> "UseRule":
        when_raw = raw.get("when", True)
        if isinstance(when_raw, bool):
            when: bool | UseWhen = when_raw
        elif isinstance(when_raw, Mapping):
            when = UseWhen.from_raw(when_raw, where=where)
        else:
            raise ConfigError(f"{where}: 'when' must be a boolean or a table")

        target = _parse_target(raw["target"], where=where) if "target" in raw else None
        exclude = _parse_exclude(raw["exclude"], where=where) if "exclude" in raw else None
        variables = {
            name: UseVar.from_raw(name, value, where=where) for name, value in raw.items() if name not in _RULE_KEYS
        }
        return cls(when=when, target=target, exclude=exclude, variables=variables)


def _parse_use_entry(path: str, raw: Any) -> tuple[UseRule, ...]:
    where = f"dots.use.'{path}'"
    if isinstance(raw, bool):
        return (UseRule(when=raw),)
    if isinstance(raw, str):
        return (UseRule(target=_parse_target(raw, where=where)),)
    if isinstance(raw, Mapping):
        return (UseRule.from_raw(raw, where=where),)
    if isinstance(raw, list):
        rules: list[UseRule] = []
        for index, item in enumerate(raw):
            if not isinstance(item, Mapping):
                raise ConfigError(f"{where}[{index}]: expected a table")
            rules.append(UseRule.from_raw(item, where=f"{where}[{index}]"))
        return tuple(rules)
    raise ConfigError(f"{where}: expected a string, boolean, table or array of tables")


class DotsOptions(BaseModel):
    """The ``[dots]`` section: use rules plus shared target and exclude lists."""

    model_config = ConfigDict(frozen=True)

    use: Dict[str, tuple[UseRule, ...]] | None = None
    target: TargetPairs | None = None
    exclude: tuple[str, ...] | None = None
    inherits: frozenset[str] = frozenset()

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "DotsOptions":
        use_raw = raw.get("use")
        use: Dict[str, tuple[UseRule, ...]] | None = None
        if use_raw is not None:
            if not isinstance(use_raw, Mapping):
                raise ConfigError("dots.use must be a table")
            use = {str(path): _parse_use_entry(str(path), value) for path, value in use_raw.items()}

        target = _parse_target(raw["target"], where="dots") if "target" in raw else None
        exclude = _parse_exclude(raw["exclude"], where="dots") if "exclude" in raw else None

        inherits_raw = raw.get("inherits", [])
        if not isinstance(inherits_raw, list) or not all(isinstance(item, str) for item in inherits_raw):
            raise ConfigError("dots.inherits must be a list of strings")
        unknown = set(inherits_raw) - INHERITABLE
        if unknown:
            raise ConfigError(f"dots.inherits contains unknown options {sorted(unknown)}")

        return cls(use=use, target=target, exclude=exclude, inherits=frozenset(inherits_raw))

    def inherit(self, parent: "DotsOptions") -> "DotsOptions":
        """Fill in the options ``parent`` marks as inheritable.

        Entries defined here win: inherited use paths and target suffixes are
        only added when missing, and exclusions are appended.
        """

        update: dict[str, Any] = {}

        if "use" in parent.inherits and parent.use:
            merged_use = dict(parent.use)
            merged_use.update(self.use or {})
            update["use"] = merged_use

        if "target" in parent.inherits and parent.target:
            own = list(self.target or ())
            suffixes = {suffix for suffix, _ in own}
            own.extend(pair for pair in parent.target if pair[0] not in suffixes)
            update["target"] = tuple(own)

        if "exclude" in parent.inherits and parent.exclude:
            update["exclude"] = tuple(self.exclude or ()) + parent.exclude

        return self.model_copy(update=update) if update else self


class Settings(BaseModel):
    """Global configuration options."""

    model_config = ConfigDict(frozen=True)

    trackfile: Path
    shell: str = DEFAULT_SHELL

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], *, base_dir: Path) -> "Settings":
        trackfile_raw = raw.get("trackfile")
        trackfile = (
            _expand_path(trackfile_raw, base_dir=base_dir) if trackfile_raw is not None else default_trackfile_path()
        )
        shell = raw.get("shell", DEFAULT_SHELL)
        if not isinstance(shell, str) or not shell:
            raise ConfigError("settings.shell must be a non-empty string")
        return cls(trackfile=trackfile, shell=shell)


class Config(BaseModel):
    """Fully parsed configuration for one dotfiles directory."""

    model_config = ConfigDict(frozen=True)

    root: Path
    config_path: Path
    options: DotsOptions
    settings: Settings
    user_config_path: Path | None = None


def load_config(target: Path | str, user_config: Path | None = None) -> Config:
    """Load the configuration of the dotfiles directory ``target``.

    Args:
        target: The dotfiles directory, or a config file inside it.
        user_config: Optional user-level config to inherit from. Defaults to
            the first existing file among ``USER_CONFIG_LOCATIONS`` under
            the home directory.
    """

    config_path = _resolve_config_path(Path(target))
    root = config_path.parent
    data = _read_toml(config_path)

    options = DotsOptions.from_raw(_section(data, "dots", config_path))
    settings_raw: dict[str, Any] = {}

    user_path = user_config if user_config is not None else _detect_user_config()
    if user_path is not None:
        user_path = _expand_path(user_path, base_dir=Path.cwd())
        if not user_path.exists():
            raise ConfigError(f"User configuration '{user_path}' does not exist")
    if user_path is not None and user_path != config_path:
        user_data = _read_toml(user_path)
        options = options.inherit(DotsOptions.from_raw(_section(user_data, "dots", user_path)))
        settings_raw.update(_section(user_data, "settings", user_path))

    settings_raw.update(_section(data, "settings", config_path))
    settings = Settings.from_raw(settings_raw, base_dir=root)

    return Config(
        root=root,
        config_path=config_path,
        options=options,
        settings=settings,
        user_config_path=user_path,
    )


def _resolve_config_path(path: Path) -> Path:
    path = _expand_path(path, base_dir=Path.cwd())
    if not path.exists():
        raise ConfigError(f"Dotfiles directory '{path}' does not exist")
    if path.is_file():
        return path
    for name in DIRECTORY_CONFIG_NAMES:
        candidate = path / name
        if candidate.is_file():
            return candidate
    names = ", ".join(DIRECTORY_CONFIG_NAMES)
    raise ConfigError(f"Expected to find one of {names} inside '{path}', but none was located")


def _detect_user_config() -> Path | None:
    home = Path.home()
    for location in USER_CONFIG_LOCATIONS:
        candidate = home / location
        if candidate.is_file():
            return candidate
    return None


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse '{path}': {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Unable to read '{path}': {exc}") from exc


def _section(data: Mapping[str, Any], name: str, path: Path) -> Mapping[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, Mapping):
        raise ConfigError(f"'{name}' in '{path}' must be a table")
    return section
