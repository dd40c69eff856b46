"""Installer configuration.

Every path, URL and knob the installer uses lives on :class:`InstallConfig`
so callers (and tests) can point the whole run at a scratch directory.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Literal

from protocinstall.errors import ValidationError

Privilege = Literal["sudo", "none"]
PackageStepMode = Literal["required", "best-effort", "skip"]
FailureMode = Literal["resume", "clean"]

DEFAULT_REPO_URL = "https://github.com/protocolbuffers/protobuf.git"
DEFAULT_PACKAGES: tuple[str, ...] = ("git", "cmake", "build-essential")
DEFAULT_JOBS = 8

ENV_PREFIX = "PROTOC_INSTALL_"

_PRIVILEGES: tuple[str, ...] = ("sudo", "none")
_PACKAGE_STEP_MODES: tuple[str, ...] = ("required", "best-effort", "skip")
_FAILURE_MODES: tuple[str, ...] = ("resume", "clean")


def default_install_prefix() -> Path:
    return Path.home() / ".local" / "share" / "protoc"


@dataclass(frozen=True, slots=True)
class InstallConfig:
    staging_dir: Path = Path("utils/var")
    checkout_name: str = "protobuf"
    repo_url: str = DEFAULT_REPO_URL
    install_prefix: Path = field(default_factory=default_install_prefix)
    packages: tuple[str, ...] = DEFAULT_PACKAGES
    jobs: int = DEFAULT_JOBS
    binary_name: str = "protoc"
    build_subdir: str = "_build"
    package_manager: str = "apt-get"
    privilege: Privilege = "sudo"
    package_step: PackageStepMode = "required"
    on_failure: FailureMode = "resume"

    @property
    def checkout_dir(self) -> Path:
        return self.staging_dir / self.checkout_name

    @property
    def build_dir(self) -> Path:
        return self.checkout_dir / self.build_subdir

    @property
    def bin_dir(self) -> Path:
        return self.install_prefix / "bin"

    @property
    def artifact_source(self) -> Path:
        return self.build_dir / self.binary_name

    @property
    def artifact_destination(self) -> Path:
        return self.bin_dir / self.binary_name

    def validate(self) -> InstallConfig:
        if self.jobs < 1:
            raise ValidationError(
                "Build parallelism must be at least 1.",
                hint="Pass --jobs with a positive integer.",
                context={"jobs": str(self.jobs)},
            )
        for name in ("checkout_name", "binary_name", "build_subdir", "repo_url"):
            if not getattr(self, name):
                raise ValidationError(
                    f"`{name}` must not be empty.",
                    context={"field": name},
                )
        if Path(self.checkout_name).name != self.checkout_name:
            raise ValidationError(
                "Checkout name must be a single path component.",
                context={"checkout_name": self.checkout_name},
            )
        _ensure_choice("privilege", self.privilege, _PRIVILEGES)
        _ensure_choice("package_step", self.package_step, _PACKAGE_STEP_MODES)
        _ensure_choice("on_failure", self.on_failure, _FAILURE_MODES)
        return self.anchored()

    def anchored(self) -> InstallConfig:
        """Return a copy whose staging dir and prefix are absolute.

        Relative paths are taken against the current working directory, so
        tools that run with a different ``cwd`` still see the same tree.
        """
        if self.staging_dir.is_absolute() and self.install_prefix.is_absolute():
            return self
        return replace(
            self,
            staging_dir=self.staging_dir.absolute(),
            install_prefix=self.install_prefix.absolute(),
        )

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str],
        *,
        base: InstallConfig | None = None,
    ) -> InstallConfig:
        """Apply ``PROTOC_INSTALL_*`` overrides on top of ``base`` (or defaults).

        Recognized variables: ``STAGING_DIR``, ``PREFIX``, ``REPO_URL``,
        ``JOBS`` and ``ON_FAILURE``. Unset or empty variables are ignored.
        """
        config = base if base is not None else cls()
        overrides: dict[str, object] = {}

        staging = environ.get(f"{ENV_PREFIX}STAGING_DIR")
        if staging:
            overrides["staging_dir"] = Path(staging).expanduser()
        prefix = environ.get(f"{ENV_PREFIX}PREFIX")
        if prefix:
            overrides["install_prefix"] = Path(prefix).expanduser()
        repo_url = environ.get(f"{ENV_PREFIX}REPO_URL")
        if repo_url:
            overrides["repo_url"] = repo_url
        jobs = environ.get(f"{ENV_PREFIX}JOBS")
        if jobs:
            try:
                overrides["jobs"] = int(jobs)
            except ValueError as exc:
                raise ValidationError(
                    f"{ENV_PREFIX}JOBS must be an integer.",
                    context={"value": jobs},
                ) from exc
        on_failure = environ.get(f"{ENV_PREFIX}ON_FAILURE")
        if on_failure:
            overrides["on_failure"] = on_failure

        return replace(config, **overrides) if overrides else config


def _ensure_choice(field_name: str, value: str, choices: tuple[str, ...]) -> None:
    if value not in choices:
        raise ValidationError(
            f"Unsupported {field_name} value: {value}",
            hint=f"Use one of: {', '.join(choices)}.",
            context={"field": field_name, "value": value},
        )
