"""Command-line interface for ``protoc-install``."""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Mapping, Sequence
from dataclasses import replace
from pathlib import Path

from protocinstall.config import InstallConfig
from protocinstall.errors import InstallError
from protocinstall.installer import ProtocInstaller
from protocinstall.observability import stderr_logger
from protocinstall.runner import CommandRunner, DryRunRunner, SubprocessRunner


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="protoc-install",
        description="Build protoc from source and install it into a per-user prefix.",
    )
    parser.add_argument("--staging-dir", type=Path, help="Directory to clone and build in")
    parser.add_argument("--prefix", type=Path, help="Install prefix (default: ~/.local/share/protoc)")
    parser.add_argument("--repo-url", help="Repository to clone")
    parser.add_argument("--jobs", "-j", type=int, help="Build parallelism")
    parser.add_argument("--no-sudo", action="store_true", help="Do not prefix the package manager with sudo")
    packages = parser.add_mutually_exclusive_group()
    packages.add_argument("--skip-packages", action="store_true", help="Do not install system packages")
    packages.add_argument(
        "--best-effort-packages",
        action="store_true",
        help="Continue even if system package installation fails",
    )
    parser.add_argument(
        "--on-failure",
        choices=("resume", "clean"),
        help="Keep partial state for a rerun (resume) or remove build output (clean)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Print commands without running them")
    parser.add_argument("--plan", action="store_true", help="List the install steps and exit")
    parser.add_argument("--log-file", type=Path, help="Write structured JSON-lines log to this path")
    return parser


def config_from_args(args: argparse.Namespace, environ: Mapping[str, str]) -> InstallConfig:
    config = InstallConfig.from_env(environ)
    overrides: dict[str, object] = {}
    if args.staging_dir is not None:
        overrides["staging_dir"] = args.staging_dir.expanduser()
    if args.prefix is not None:
        overrides["install_prefix"] = args.prefix.expanduser()
    if args.repo_url:
        overrides["repo_url"] = args.repo_url
    if args.jobs is not None:
        overrides["jobs"] = args.jobs
    if args.no_sudo:
        overrides["privilege"] = "none"
    if args.skip_packages:
        overrides["package_step"] = "skip"
    elif args.best_effort_packages:
        overrides["package_step"] = "best-effort"
    if args.on_failure:
        overrides["on_failure"] = args.on_failure
    return replace(config, **overrides)


def main(
    argv: Sequence[str] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    runner: CommandRunner | None = None,
) -> int:
    args = build_parser().parse_args(argv)
    env = os.environ if environ is None else environ

    try:
        config = config_from_args(args, env).validate()
    except InstallError as exc:
        print(f"error [{exc.code}]: {exc}", file=sys.stderr)
        return 2

    if args.dry_run:
        runner = DryRunRunner()
    installer = ProtocInstaller(
        config=config,
        runner=runner if runner is not None else SubprocessRunner(),
        logger=stderr_logger(),
    )

    if args.plan:
        for index, name in enumerate(installer.plan(), start=1):
            print(f"{index}. {name}")
        return 0

    result = installer.run()

    if isinstance(installer.runner, DryRunRunner):
        for call in installer.runner.calls:
            where = f" (in {call.cwd})" if call.cwd is not None else ""
            print(f"$ {call.command}{where}")
    if args.log_file is not None:
        installer.logger.to_json_lines(args.log_file)

    failed = result.failed_step
    if failed is not None:
        if failed.error is not None:
            print(f"error [{failed.error.code}]: {failed.error}", file=sys.stderr)
        return result.exit_code

    if isinstance(installer.runner, DryRunRunner):
        return 0

    print(f"protoc installed to {config.artifact_destination}")
    if not _on_path(config.bin_dir, env.get("PATH", "")):
        print(f"Add {config.bin_dir} to your PATH to use it.")
    return 0


def _on_path(directory: Path, search_path: str) -> bool:
    target = directory.expanduser().resolve()
    for entry in search_path.split(os.pathsep):
        if entry and Path(entry).expanduser().resolve() == target:
            return True
    return False


if __name__ == "__main__":
    sys.exit(main())
