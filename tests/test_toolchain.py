"""
Tests for the toolchain steps — base packages, nvm, Node.js, Yarn.
"""

from pathlib import Path

from devprovision.adapters.system.packages import SystemPackagesAdapter
from devprovision.core.context import StepContext
from devprovision.core.models.step import ProbeResult, StepResult
from devprovision.core.services import probes, toolchain
from tests.helpers import BASE_BINARIES, script_node


class TestBasePackages:
    def test_installs_and_verifies(self, ctx, runner):
        runner.remove_binary(*BASE_BINARIES)
        runner.set_response("apt install", effect=lambda: runner.add_binary(*BASE_BINARIES))

        result = toolchain.install_base_packages(ctx, probes.basic_packages(ctx))

        assert result is StepResult.ACTED
        assert runner.calls_matching("apt update")[0].sudo
        assert runner.calls_matching("apt install -y curl wget git build-essential")

    def test_install_failure_is_fatal(self, ctx, runner):
        runner.remove_binary("gcc")
        runner.set_failure("apt update", error="E: Could not get lock")
        result = toolchain.install_base_packages(ctx, probes.basic_packages(ctx))
        assert result is StepResult.FAILED_FATAL
        assert not runner.calls_matching("apt install")

    def test_still_missing_is_soft(self, ctx, runner):
        runner.remove_binary("make")
        result = toolchain.install_base_packages(ctx, probes.basic_packages(ctx))
        assert result is StepResult.FAILED_SOFT

    def test_unsupported_distro_is_soft(self, config, runner, tmp_path: Path):
        release = tmp_path / "gentoo-release"
        release.write_text("ID=gentoo\n")
        ctx = StepContext.build(
            config, runner=runner, packages=SystemPackagesAdapter(runner, os_release=release),
        )
        runner.remove_binary("make")

        result = toolchain.install_base_packages(ctx, probes.basic_packages(ctx))

        assert result is StepResult.FAILED_SOFT
        assert runner.call_count == 0


class TestNvm:
    def test_install(self, ctx, runner, config):
        def place_script():
            (config.nvm_dir / "nvm.sh").write_text("# nvm\n")

        runner.set_response("curl -o-", effect=place_script)
        runner.set_response("nvm --version", output="0.39.4")

        assert toolchain.install_nvm(ctx, probes.nvm_present(ctx)) is StepResult.ACTED
        assert "nvm-sh/nvm/v0.39.4/install.sh" in runner.calls_matching("curl -o-")[0].command

    def test_install_failure(self, ctx, runner):
        runner.set_failure("curl -o-", error="curl: (6) Could not resolve host")
        assert toolchain.install_nvm(ctx, probes.nvm_present(ctx)) is StepResult.FAILED_FATAL

    def test_unverifiable(self, ctx, runner):
        # installer "succeeds" but leaves no nvm.sh behind
        assert toolchain.install_nvm(ctx, probes.nvm_present(ctx)) is StepResult.FAILED_FATAL


class TestNode:
    def test_reuses_installed_major(self, ctx, runner, nvm_installed):
        script_node(runner, "v20.11.0")
        runner.set_response("nvm ls 20", output="v20.11.0")

        result = toolchain.install_node(ctx, ProbeResult.needs_action())

        assert result is StepResult.ACTED
        assert not runner.calls_matching("nvm install")
        assert runner.calls_matching("nvm alias default 20")
        assert runner.calls_matching("nvm use 20")

    def test_installs_missing_major(self, ctx, runner, nvm_installed):
        script_node(runner, "v20.11.0")
        runner.set_failure("nvm ls 20", error="N/A")

        result = toolchain.install_node(ctx, ProbeResult.needs_action())

        assert result is StepResult.ACTED
        assert runner.calls_matching("nvm install 20")[0].timeout is None

    def test_version_mismatch_is_fatal(self, ctx, runner, nvm_installed):
        script_node(runner, "v18.19.0")
        runner.set_failure("nvm ls 20")
        result = toolchain.install_node(ctx, ProbeResult.needs_action())
        assert result is StepResult.FAILED_FATAL

    def test_install_failure_is_fatal(self, ctx, runner, nvm_installed):
        runner.set_failure("nvm ls 20")
        runner.set_failure("nvm install 20", error="download failed")
        result = toolchain.install_node(ctx, ProbeResult.needs_action())
        assert result is StepResult.FAILED_FATAL

    def test_toolchain_refreshed(self, ctx, runner, nvm_installed):
        script_node(runner, "v20.11.0")
        assert ctx.toolchain.node_bin_dir is None
        toolchain.install_node(ctx, ProbeResult.needs_action())
        assert ctx.toolchain.default_version == "v20.11.0"
        assert str(ctx.toolchain.node_bin_dir).endswith("v20.11.0/bin")


class TestYarn:
    def test_install(self, ctx, runner, nvm_installed):
        script_node(runner)
        ctx.refresh_toolchain()
        runner.set_response("yarn --version", output="1.22.22")
        runner.set_response("npm install -g yarn", effect=lambda: runner.add_binary("yarn"))

        assert toolchain.install_yarn(ctx, ProbeResult.needs_action()) is StepResult.ACTED
        call = runner.calls_matching("npm install -g yarn")[0]
        assert call.env_overrides["PATH"].startswith("/home/dev/.nvm/versions/node/")

    def test_install_failure(self, ctx, runner, nvm_installed):
        script_node(runner)
        ctx.refresh_toolchain()
        runner.set_failure("npm install -g yarn")
        result = toolchain.install_yarn(ctx, ProbeResult.needs_action())
        assert result is StepResult.FAILED_FATAL
