"""Build the protocol-buffer compiler from source into a per-user prefix."""

from .config import InstallConfig
from .errors import (
    ArtifactError,
    CheckoutError,
    CommandError,
    ErrorCode,
    FilesystemError,
    InstallError,
    PipelineError,
    ValidationError,
)
from .installer import ProtocInstaller
from .observability import StructuredLogger
from .pipeline import PipelineResult, Step, StepResult, run_pipeline
from .runner import CommandResult, CommandRunner, DryRunRunner, SubprocessRunner

__all__ = [
    "ArtifactError",
    "CheckoutError",
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "DryRunRunner",
    "ErrorCode",
    "FilesystemError",
    "InstallConfig",
    "InstallError",
    "PipelineError",
    "PipelineResult",
    "ProtocInstaller",
    "Step",
    "StepResult",
    "StructuredLogger",
    "SubprocessRunner",
    "ValidationError",
    "run_pipeline",
]
