"""The named steps of a protoc install, in execution order."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from protocinstall.checkout import ExistsCheck, ensure_checkout, update_submodules
from protocinstall.config import InstallConfig
from protocinstall.errors import ArtifactError, FilesystemError
from protocinstall.observability import StructuredLogger
from protocinstall.pipeline import Step, StepResult
from protocinstall.runner import CommandRunner

STAGING = "staging"
PACKAGES = "packages"
CLONE = "clone"
SUBMODULES = "submodules"
CONFIGURE = "configure"
BUILD = "build"
BIN_DIR = "bin-dir"
ARTIFACT = "artifact"

STEP_ORDER: tuple[str, ...] = (
    STAGING,
    PACKAGES,
    CLONE,
    SUBMODULES,
    CONFIGURE,
    BUILD,
    BIN_DIR,
    ARTIFACT,
)


@dataclass(slots=True)
class StepContext:
    config: InstallConfig
    runner: CommandRunner
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    exists: ExistsCheck = Path.exists
    dry_run: bool = False
    cloned: bool = False


def ensure_staging(ctx: StepContext) -> StepResult:
    return _ensure_dir(STAGING, ctx.config.staging_dir, dry_run=ctx.dry_run)


def install_packages(ctx: StepContext) -> StepResult:
    config = ctx.config
    if config.package_step == "skip":
        return StepResult(name=PACKAGES, status="skipped", detail="package install disabled")

    argv: list[str] = []
    if config.privilege == "sudo" and _needs_sudo():
        argv.append("sudo")
    argv.extend([config.package_manager, "install", "-y", *config.packages])
    ctx.runner.run(argv).check(
        PACKAGES,
        hint="Package installation needs root; re-run with sudo or pass --skip-packages.",
    )
    return StepResult(name=PACKAGES, status="ok", detail=" ".join(config.packages))


def clone(ctx: StepContext) -> StepResult:
    result = ensure_checkout(ctx.config, ctx.runner, exists=ctx.exists)
    ctx.cloned = result.cloned
    if not result.cloned:
        return StepResult(
            name=CLONE,
            status="skipped",
            detail=f"reusing existing checkout {result.path}",
        )
    return StepResult(name=CLONE, status="ok", detail=f"cloned into {result.path}")


def submodules(ctx: StepContext) -> StepResult:
    update_submodules(ctx.config, ctx.runner)
    return StepResult(name=SUBMODULES, status="ok")


def configure(ctx: StepContext) -> StepResult:
    config = ctx.config
    ctx.runner.run(
        [
            "cmake",
            "-S",
            str(config.checkout_dir),
            "-B",
            str(config.build_dir),
            f"-DCMAKE_INSTALL_PREFIX={config.install_prefix}",
        ],
    ).check(CONFIGURE, hint="Make sure cmake and a C++ compiler are installed.")
    return StepResult(name=CONFIGURE, status="ok", detail=str(config.build_dir))


def build(ctx: StepContext) -> StepResult:
    config = ctx.config
    ctx.runner.run(
        [
            "cmake",
            "--build",
            str(config.build_dir),
            "--parallel",
            str(config.jobs),
            "--target",
            "install",
        ],
    ).check(BUILD, hint="Check compiler output; lower --jobs if the build ran out of memory.")
    return StepResult(name=BUILD, status="ok", detail=f"installed into {config.install_prefix}")


def ensure_bin_dir(ctx: StepContext) -> StepResult:
    return _ensure_dir(BIN_DIR, ctx.config.bin_dir, dry_run=ctx.dry_run)


def copy_artifact(ctx: StepContext) -> StepResult:
    config = ctx.config
    source = config.artifact_source
    destination = config.artifact_destination
    if ctx.dry_run:
        return StepResult(name=ARTIFACT, status="ok", detail=f"would copy {source} -> {destination}")
    if not source.is_file():
        raise ArtifactError(
            "Built binary not found.",
            hint="The build did not produce the binary at the expected path.",
            context={"operation": ARTIFACT, "path": str(source)},
        )
    try:
        shutil.copy(source, destination)
    except OSError as exc:
        raise ArtifactError(
            "Failed to copy the built binary.",
            hint="Check permissions on the install prefix.",
            context={
                "operation": ARTIFACT,
                "source": str(source),
                "destination": str(destination),
                "error": str(exc),
            },
        ) from exc
    return StepResult(name=ARTIFACT, status="ok", detail=str(destination))


def default_steps(config: InstallConfig) -> list[Step]:
    return [
        Step(STAGING, ensure_staging),
        Step(PACKAGES, install_packages, best_effort=config.package_step == "best-effort"),
        Step(CLONE, clone),
        Step(SUBMODULES, submodules),
        Step(CONFIGURE, configure),
        Step(BUILD, build),
        Step(BIN_DIR, ensure_bin_dir),
        Step(ARTIFACT, copy_artifact),
    ]


def _ensure_dir(name: str, path: Path, *, dry_run: bool) -> StepResult:
    if dry_run:
        return StepResult(name=name, status="ok", detail=f"would create {path}")
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to create directory {path}.",
            hint="Check permissions on the parent directory.",
            context={"operation": name, "path": str(path), "error": str(exc)},
        ) from exc
    return StepResult(name=name, status="ok", detail=str(path))


def _needs_sudo() -> bool:
    return os.geteuid() != 0
