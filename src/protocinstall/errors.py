"""Typed installer error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import ClassVar


class ErrorCode(StrEnum):
    """Stable error identifiers used across the CLI and the JSON log."""

    VALIDATION = "E_VALIDATION"
    COMMAND = "E_COMMAND"
    CHECKOUT = "E_CHECKOUT"
    ARTIFACT = "E_ARTIFACT"
    FILESYSTEM = "E_FILESYSTEM"
    PIPELINE = "E_PIPELINE"


class InstallError(Exception):
    """Base error class that carries code, optional hint, and context.

    Subclasses pick their code through ``error_code``.
    """

    error_code: ClassVar[ErrorCode] = ErrorCode.PIPELINE

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = self.error_code.value
        self.hint = hint
        self.context = dict(context or {})

    @property
    def message(self) -> str:
        return super().__str__()

    def __str__(self) -> str:
        parts = [self.message]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        parts.extend(f"  {k}: {v}" for k, v in self.context.items() if v)
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": self.message,
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class ValidationError(InstallError):
    error_code = ErrorCode.VALIDATION


class CommandError(InstallError):
    """An external tool exited non-zero.

    ``returncode`` is kept so the pipeline can surface the failing tool's
    exit status as its own.
    """

    error_code = ErrorCode.COMMAND

    def __init__(
        self,
        message: str,
        *,
        returncode: int = 1,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, hint=hint, context=context)
        self.returncode = returncode

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["returncode"] = self.returncode
        return payload


class CheckoutError(InstallError):
    error_code = ErrorCode.CHECKOUT


class ArtifactError(InstallError):
    error_code = ErrorCode.ARTIFACT


class FilesystemError(InstallError):
    error_code = ErrorCode.FILESYSTEM


class PipelineError(InstallError):
    error_code = ErrorCode.PIPELINE


__all__ = [
    "ArtifactError",
    "CheckoutError",
    "CommandError",
    "ErrorCode",
    "FilesystemError",
    "InstallError",
    "PipelineError",
    "ValidationError",
]
