"""Shell command evaluation used by templates and rule guards."""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Mapping

from .errors import ShellError

logger = logging.getLogger(__name__)

DEFAULT_SHELL = "/bin/sh"

_TRUE_VALUES = ("1", "true")
_FALSE_VALUES = ("0", "false")


class ShellEvaluator:
    """Runs commands through ``<shell> -c`` with a variable environment overlaid."""

    def __init__(self, shell: str = DEFAULT_SHELL) -> None:
        self.shell = shell

    def run(self, command: str, env: Mapping[str, str] | None = None) -> str:
        """Run ``command`` and return its trimmed standard output."""

        merged = dict(os.environ)
        if env:
            merged.update(env)

        logger.debug("Running shell command: %s", command)
        try:
            completed = subprocess.run(
                [self.shell, "-c", command],
                env=merged,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise ShellError(f"Unable to run '{command}' with {self.shell}: {exc}") from exc

        stderr = completed.stderr.strip()
        if completed.returncode != 0:
            detail = f": {stderr}" if stderr else ""
            raise ShellError(f"Command '{command}' exited with status {completed.returncode}{detail}")
        if stderr:
            logger.warning("%s", stderr)
        return completed.stdout.strip()

    def echo(self, expression: str, env: Mapping[str, str] | None = None) -> str:
        """Expand ``expression`` the way the shell would for ``echo``."""

        return self.run(f"echo {expression}", env)

    def run_for_bool(self, command: str, env: Mapping[str, str] | None = None) -> bool:
        output = self.run(command, env)
        if output in _FALSE_VALUES:
            return False
        if output in _TRUE_VALUES:
            return True
        raise ShellError(f"Command '{command}' returned '{output}', which is not a boolean")

    def test_if(self, expression: str, env: Mapping[str, str] | None = None) -> bool:
        return self.run_for_bool(f"if [ {expression} ]; then echo true; else echo false; fi", env)

    def test_command(self, name: str, env: Mapping[str, str] | None = None) -> bool:
        """Return ``True`` if ``name`` resolves to an executable on ``PATH``."""

        return self.test_if(f'-x "$(command -v {name})"', env)
