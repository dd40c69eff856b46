from dataclasses import replace
from pathlib import Path

import pytest

from protocinstall.config import InstallConfig
from protocinstall.installer import ProtocInstaller
from protocinstall.runner import DryRunRunner
from protocinstall.steps import STEP_ORDER


def test_plan_lists_steps_in_order(config: InstallConfig, runner) -> None:
    assert ProtocInstaller(config=config, runner=runner).plan() == list(STEP_ORDER)


def test_fresh_run_clones_builds_and_installs(tmp_path: Path, config: InstallConfig, runner) -> None:
    result = ProtocInstaller(config=config, runner=runner).run()

    assert result.ok
    assert runner.operations() == ["packages", "clone", "submodules", "configure", "build"]
    assert result.result_for("clone").status == "ok"
    assert config.artifact_destination.read_text(encoding="utf-8") == "protoc build 1\n"
    assert (config.install_prefix / "include" / "google" / "protobuf" / "message.h").is_file()
    assert [p.name for p in config.staging_dir.iterdir()] == [config.checkout_name]
    assert sorted(p.name for p in tmp_path.iterdir()) == ["home", "staging"]
    assert list(config.bin_dir.iterdir()) == [config.artifact_destination]


def test_commands_match_configuration(config: InstallConfig, runner) -> None:
    config = replace(config, jobs=3)
    runner.config = config

    ProtocInstaller(config=config, runner=runner).run()

    argv = {runner.operations()[i]: call.argv for i, call in enumerate(runner.calls)}
    assert argv["packages"] == ("apt-get", "install", "-y", "git", "cmake", "build-essential")
    assert argv["clone"] == ("git", "clone", config.repo_url, str(config.checkout_dir))
    assert argv["configure"] == (
        "cmake",
        "-S",
        str(config.checkout_dir),
        "-B",
        str(config.build_dir),
        f"-DCMAKE_INSTALL_PREFIX={config.install_prefix}",
    )
    assert argv["build"] == (
        "cmake",
        "--build",
        str(config.build_dir),
        "--parallel",
        "3",
        "--target",
        "install",
    )


def test_sudo_prefix_when_not_root(config: InstallConfig, runner, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("protocinstall.steps.os.geteuid", lambda: 1000)
    config = replace(config, privilege="sudo")
    runner.config = config

    ProtocInstaller(config=config, runner=runner).run()

    assert runner.calls[0].argv[:3] == ("sudo", "apt-get", "install")


def test_rerun_reuses_checkout_and_directories(config: InstallConfig, runner) -> None:
    installer = ProtocInstaller(config=config, runner=runner)

    first = installer.run()
    second = installer.run()

    assert first.ok and second.ok
    assert runner.operations().count("clone") == 1
    assert second.result_for("clone").status == "skipped"
    assert second.result_for("staging").status == "ok"
    assert second.result_for("bin-dir").status == "ok"
    assert [p.name for p in config.staging_dir.iterdir()] == [config.checkout_name]


def test_rerun_overwrites_installed_binary(config: InstallConfig, runner) -> None:
    installer = ProtocInstaller(config=config, runner=runner)
    installer.run()
    assert config.artifact_destination.read_text(encoding="utf-8") == "protoc build 1\n"

    installer.run()

    assert config.artifact_destination.read_text(encoding="utf-8") == "protoc build 2\n"
    assert [p.name for p in config.bin_dir.iterdir()] == ["protoc"]


def test_package_failure_halts_the_run(config: InstallConfig, runner) -> None:
    runner.failures["packages"] = 100

    result = ProtocInstaller(config=config, runner=runner).run()

    assert not result.ok
    assert result.failed_step.name == "packages"
    assert result.exit_code == 100
    assert runner.operations() == ["packages"]
    assert not config.checkout_dir.exists()


def test_best_effort_packages_continue_after_failure(config: InstallConfig, runner) -> None:
    config = replace(config, package_step="best-effort")
    runner.config = config
    runner.failures["packages"] = 100

    result = ProtocInstaller(config=config, runner=runner).run()

    assert result.ok
    assert result.result_for("packages").status == "failed"
    assert config.artifact_destination.is_file()


def test_skip_packages_runs_no_package_manager(config: InstallConfig, runner) -> None:
    config = replace(config, package_step="skip")
    runner.config = config

    result = ProtocInstaller(config=config, runner=runner).run()

    assert result.result_for("packages").status == "skipped"
    assert "packages" not in runner.operations()


def test_missing_build_output_fails_artifact_step(config: InstallConfig, runner) -> None:
    config = replace(config, binary_name="protoc-not-built")
    runner.config = replace(config, binary_name="protoc")

    result = ProtocInstaller(config=config, runner=runner).run()

    assert result.failed_step.name == "artifact"
    assert result.failed_step.error.code == "E_ARTIFACT"
    assert result.exit_code == 1


def test_resume_mode_leaves_partial_state(config: InstallConfig, runner) -> None:
    runner.failures["build"] = 2

    result = ProtocInstaller(config=config, runner=runner).run()

    assert result.exit_code == 2
    assert config.checkout_dir.is_dir()
    assert config.build_dir.is_dir()


def test_clean_mode_removes_fresh_checkout(config: InstallConfig, runner) -> None:
    config = replace(config, on_failure="clean")
    runner.config = config
    runner.failures["build"] = 2

    result = ProtocInstaller(config=config, runner=runner).run()

    assert not result.ok
    assert config.staging_dir.is_dir()
    assert not config.checkout_dir.exists()


def test_clean_mode_keeps_reused_checkout(config: InstallConfig, runner) -> None:
    config = replace(config, on_failure="clean")
    runner.config = config
    config.build_dir.mkdir(parents=True)
    (config.checkout_dir / "CMakeLists.txt").write_text("project(protobuf)\n", encoding="utf-8")
    runner.failures["build"] = 2

    ProtocInstaller(config=config, runner=runner).run()

    assert (config.checkout_dir / "CMakeLists.txt").is_file()
    assert not config.build_dir.exists()


def test_dry_run_touches_nothing(tmp_path: Path, config: InstallConfig) -> None:
    runner = DryRunRunner()

    result = ProtocInstaller(config=config, runner=runner).run()

    assert result.ok
    assert len(runner.calls) == 5
    assert list(tmp_path.iterdir()) == []


def test_logger_records_each_step(config: InstallConfig, runner) -> None:
    installer = ProtocInstaller(config=config, runner=runner)

    installer.run()

    for name in STEP_ORDER:
        assert installer.logger.records_for_step(name), name


def test_relative_staging_dir_resolves_against_invocation_cwd(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    runner,
) -> None:
    monkeypatch.chdir(tmp_path)
    config = InstallConfig(install_prefix=tmp_path / "prefix", privilege="none")
    runner.config = config

    result = ProtocInstaller(config=config, runner=runner).run()

    assert result.ok
    checkout = (tmp_path / "utils" / "var" / "protobuf").resolve()
    calls = dict(zip(runner.operations(), runner.calls))
    configure_argv = calls["configure"].argv
    build_argv = calls["build"].argv
    assert Path(configure_argv[2]).is_absolute()
    assert Path(configure_argv[2]).resolve() == checkout
    assert Path(configure_argv[4]).resolve() == checkout / "_build"
    assert Path(build_argv[2]).resolve() == checkout / "_build"
    for call in (calls["configure"], calls["build"]):
        base = call.cwd if call.cwd is not None else Path.cwd()
        assert (base / call.argv[2]).is_dir()
    assert (tmp_path / "prefix" / "bin" / "protoc").is_file()
