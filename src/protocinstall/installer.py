"""Top-level entrypoint tying configuration, steps and the runner together."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path

from protocinstall.checkout import ExistsCheck
from protocinstall.config import InstallConfig
from protocinstall.observability import StructuredLogger
from protocinstall.pipeline import PipelineResult, Step, run_pipeline
from protocinstall.runner import CommandRunner, DryRunRunner, SubprocessRunner
from protocinstall.steps import StepContext, default_steps


@dataclass(slots=True)
class ProtocInstaller:
    config: InstallConfig = field(default_factory=InstallConfig)
    runner: CommandRunner = field(default_factory=SubprocessRunner)
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    exists: ExistsCheck = Path.exists

    @property
    def dry_run(self) -> bool:
        return isinstance(self.runner, DryRunRunner)

    def steps(self) -> list[Step]:
        return default_steps(self.config)

    def plan(self) -> list[str]:
        return [step.name for step in self.steps()]

    def run(self) -> PipelineResult:
        config = self.config.validate()
        context = StepContext(
            config=config,
            runner=self.runner,
            logger=self.logger,
            exists=self.exists,
            dry_run=self.dry_run,
        )
        self.logger.log(
            operation="install",
            step=None,
            message="starting protoc install",
            extra={
                "staging_dir": str(config.staging_dir),
                "install_prefix": str(config.install_prefix),
                "repo_url": config.repo_url,
                "jobs": config.jobs,
                "dry_run": context.dry_run,
            },
        )
        result = run_pipeline(self.steps(), context, logger=self.logger)

        if result.ok:
            self.logger.log(
                operation="install",
                step=None,
                message=f"installed {config.artifact_destination}",
            )
        elif config.on_failure == "clean" and not context.dry_run:
            self._clean(config, cloned=context.cloned)
        else:
            self.logger.log(
                operation="install",
                step=None,
                level="warning",
                message="leaving partial state in place; re-run to resume",
                extra={"checkout_dir": str(config.checkout_dir)},
            )
        return result

    def _clean(self, config: InstallConfig, *, cloned: bool) -> None:
        # Staging dir and install prefix are shared with other runs; never removed.
        targets = [config.checkout_dir] if cloned else [config.build_dir]
        for target in targets:
            if target.exists():
                shutil.rmtree(target)
                self.logger.log(
                    operation="cleanup",
                    step=None,
                    message=f"removed {target}",
                )
