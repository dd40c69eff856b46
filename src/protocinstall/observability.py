"""Structured logging for installer runs."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TextIO


@dataclass(slots=True)
class StructuredLogger:
    records: list[dict[str, Any]] = field(default_factory=list)
    echo: TextIO | None = None

    def log(
        self,
        *,
        operation: str,
        step: str | None,
        message: str,
        level: str = "info",
        returncode: int | None = None,
        duration: float | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "level": level,
            "operation": operation,
            "step": step,
            "message": message,
        }
        if returncode is not None:
            record["returncode"] = returncode
        if duration is not None:
            record["duration"] = round(duration, 3)
        if extra is not None:
            record["extra"] = extra
        self.records.append(record)
        if self.echo is not None:
            self._echo(record)

    def records_for_step(self, step: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("step") == step]

    def step_durations(self) -> dict[str, float]:
        """Seconds spent in each finished step, in execution order."""
        return {
            record["step"]: record["duration"]
            for record in self.records
            if record.get("step") is not None and "duration" in record
        }

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(record, sort_keys=True) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path

    def _echo(self, record: dict[str, Any]) -> None:
        prefix = f"[{record['step']}] " if record["step"] else ""
        suffix = ""
        if "returncode" in record:
            suffix += f" (exit {record['returncode']})"
        if "duration" in record:
            suffix += f" ({record['duration']:.1f}s)"
        print(f"{record['level']}: {prefix}{record['message']}{suffix}", file=self.echo)


def stderr_logger() -> StructuredLogger:
    return StructuredLogger(echo=sys.stderr)
