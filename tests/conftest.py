"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from protocinstall.config import InstallConfig
from protocinstall.runner import CommandResult


@dataclass
class ScriptedRunner:
    """Runner that fakes git/cmake/apt-get side effects on disk.

    ``failures`` maps an operation name (``packages``, ``clone``,
    ``submodules``, ``configure``, ``build``) to the exit status it should
    report. Failed operations leave the filesystem untouched.
    """

    config: InstallConfig
    failures: dict[str, int] = field(default_factory=dict)
    calls: list[CommandResult] = field(default_factory=list)
    builds: int = 0

    def run(self, argv: Sequence[str], *, cwd: Path | None = None) -> CommandResult:
        args = tuple(str(arg) for arg in argv)
        operation = operation_of(args)
        returncode = self.failures.get(operation, 0)
        result = CommandResult(
            argv=args,
            returncode=returncode,
            cwd=cwd,
            stderr=f"{operation} failed" if returncode else "",
        )
        self.calls.append(result)
        if returncode == 0:
            self._simulate(operation, args)
        return result

    def operations(self) -> list[str]:
        return [operation_of(call.argv) for call in self.calls]

    def _simulate(self, operation: str, args: tuple[str, ...]) -> None:
        if operation == "clone":
            checkout = Path(args[-1])
            checkout.mkdir(parents=True)
            (checkout / "CMakeLists.txt").write_text("project(protobuf)\n", encoding="utf-8")
        elif operation == "configure":
            self.config.build_dir.mkdir(parents=True, exist_ok=True)
        elif operation == "build":
            self.builds += 1
            self.config.build_dir.mkdir(parents=True, exist_ok=True)
            self.config.artifact_source.write_text(f"protoc build {self.builds}\n", encoding="utf-8")
            include = self.config.install_prefix / "include" / "google" / "protobuf"
            include.mkdir(parents=True, exist_ok=True)
            (include / "message.h").write_text("// header\n", encoding="utf-8")


def operation_of(args: tuple[str, ...]) -> str:
    if "install" in args and ("apt-get" in args or args[0] == "sudo"):
        return "packages"
    if args[:2] == ("git", "clone"):
        return "clone"
    if args[:2] == ("git", "submodule"):
        return "submodules"
    if args[:2] == ("cmake", "-S"):
        return "configure"
    if args[:2] == ("cmake", "--build"):
        return "build"
    return "unknown"


@pytest.fixture
def config(tmp_path: Path) -> InstallConfig:
    return InstallConfig(
        staging_dir=tmp_path / "staging",
        install_prefix=tmp_path / "home" / ".local" / "share" / "protoc",
        privilege="none",
    )


@pytest.fixture
def runner(config: InstallConfig) -> ScriptedRunner:
    return ScriptedRunner(config=config)
