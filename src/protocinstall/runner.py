"""Command execution for the external tools the installer drives.

Steps never call :mod:`subprocess` directly; they go through a
:class:`CommandRunner` so a run can be rehearsed (``DryRunRunner``) or
scripted in tests without touching the network or a compiler.
"""

from __future__ import annotations

import shlex
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from protocinstall.errors import CommandError

# Exit status shells use for "command not found".
COMMAND_NOT_FOUND = 127

_STDERR_TAIL = 2000


@dataclass(frozen=True, slots=True)
class CommandResult:
    argv: tuple[str, ...]
    returncode: int
    cwd: Path | None = None
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command(self) -> str:
        return shlex.join(self.argv)

    def check(self, operation: str, *, hint: str | None = None) -> CommandResult:
        if self.ok:
            return self
        raise CommandError(
            f"`{self.argv[0]}` exited with status {self.returncode}.",
            returncode=self.returncode,
            hint=hint or "Inspect the tool output above for details.",
            context={
                "operation": operation,
                "command": self.command,
                "cwd": str(self.cwd) if self.cwd is not None else "",
                "returncode": str(self.returncode),
                "stderr": self.stderr[-_STDERR_TAIL:] if self.stderr else "",
            },
        )


class CommandRunner(Protocol):
    def run(self, argv: Sequence[str], *, cwd: Path | None = None) -> CommandResult:
        """Run ``argv`` to completion and report its exit status."""


@dataclass(slots=True)
class SubprocessRunner:
    """Run commands for real.

    Output is inherited from the parent process unless ``capture`` is set,
    so compiler and package-manager diagnostics reach the terminal as-is.
    """

    capture: bool = False

    def run(self, argv: Sequence[str], *, cwd: Path | None = None) -> CommandResult:
        args = tuple(str(arg) for arg in argv)
        if cwd is not None and not cwd.is_dir():
            return CommandResult(
                argv=args,
                returncode=1,
                cwd=cwd,
                stderr=f"working directory {cwd} does not exist",
            )
        try:
            completed = subprocess.run(
                args,
                cwd=str(cwd) if cwd is not None else None,
                capture_output=self.capture,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            if exc.filename not in (None, args[0]):
                raise
            return CommandResult(
                argv=args,
                returncode=COMMAND_NOT_FOUND,
                cwd=cwd,
                stderr=str(exc),
            )
        return CommandResult(
            argv=args,
            returncode=completed.returncode,
            cwd=cwd,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


@dataclass(slots=True)
class DryRunRunner:
    """Record commands without executing them; every call succeeds."""

    calls: list[CommandResult] = field(default_factory=list)

    def run(self, argv: Sequence[str], *, cwd: Path | None = None) -> CommandResult:
        result = CommandResult(argv=tuple(str(arg) for arg in argv), returncode=0, cwd=cwd)
        self.calls.append(result)
        return result

    @property
    def commands(self) -> list[tuple[str, ...]]:
        return [call.argv for call in self.calls]
