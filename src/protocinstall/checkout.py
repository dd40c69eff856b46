"""Source checkout: clone once, then reuse whatever is on disk."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from protocinstall.config import InstallConfig
from protocinstall.errors import CheckoutError, CommandError
from protocinstall.runner import CommandRunner

ExistsCheck = Callable[[Path], bool]


@dataclass(frozen=True, slots=True)
class CheckoutResult:
    path: Path
    cloned: bool


def ensure_checkout(
    config: InstallConfig,
    runner: CommandRunner,
    *,
    exists: ExistsCheck = Path.exists,
) -> CheckoutResult:
    """Clone ``config.repo_url`` into the checkout dir unless it already exists.

    An existing checkout is reused untouched: it is neither fetched nor
    verified, so a stale or half-written tree stays stale.
    """
    checkout_dir = config.checkout_dir
    if exists(checkout_dir):
        return CheckoutResult(path=checkout_dir, cloned=False)

    result = runner.run(["git", "clone", config.repo_url, str(checkout_dir)])
    if not result.ok:
        raise CheckoutError(
            "git clone failed.",
            hint="Check network access to the repository and free disk space.",
            context={
                "operation": "clone",
                "repo": config.repo_url,
                "path": str(checkout_dir),
                "returncode": str(result.returncode),
                "stderr": result.stderr.strip(),
            },
        )
    return CheckoutResult(path=checkout_dir, cloned=True)


def update_submodules(config: InstallConfig, runner: CommandRunner) -> None:
    try:
        runner.run(
            ["git", "submodule", "update", "--init", "--recursive"],
            cwd=config.checkout_dir,
        ).check("submodules", hint="Re-run once the submodule remotes are reachable.")
    except CommandError as exc:
        raise CheckoutError(
            "Submodule initialization failed.",
            hint=exc.hint,
            context=exc.context,
        ) from exc
