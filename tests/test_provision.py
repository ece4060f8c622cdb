"""Tests for remote environment preparation."""

import shutil
import subprocess
from pathlib import Path

import pytest

from dockship import provision
from dockship.remote import RemoteResult
from dockship.scripts import read_script
from dockship.utils import DeployError, ExitCode

from conftest import FakeRemote


class TestPrepareScript:
    """Tests for the packaged preparation script."""

    def test_script_is_packaged(self):
        script = read_script(provision.PREPARE_SCRIPT)

        assert script.startswith("#!/usr/bin/env bash")

    def test_supports_both_package_families(self):
        script = read_script(provision.PREPARE_SCRIPT)

        assert "apt-get" in script
        assert "yum" in script

    def test_checks_before_installing(self):
        """Each install should be guarded so re-running is harmless."""
        script = read_script(provision.PREPARE_SCRIPT)

        assert "if ! has docker" in script
        assert "if ! has_compose" in script
        assert "if ! has nginx" in script

    def test_unknown_script_raises(self):
        with pytest.raises(FileNotFoundError):
            read_script("does_not_exist.sh")


class TestPrepare:
    """Tests for running preparation on the remote."""

    def test_sends_script_on_stdin(self, remote):
        provision.prepare(remote)

        assert remote.commands == ["bash -s"]
        assert remote.inputs[0] == read_script(provision.PREPARE_SCRIPT)

    def test_failure_is_fatal(self, params):
        remote = FakeRemote(params, responses={"bash -s": RemoteResult(1, "E: lock")})

        with pytest.raises(DeployError) as exc:
            provision.prepare(remote)

        assert exc.value.exit_code == ExitCode.PREPARE


BASH = shutil.which("bash")
GREP = shutil.which("grep")


@pytest.mark.skipif(BASH is None or GREP is None, reason="bash and grep required")
class TestPrepareScriptBranches:
    """Runs remote_prepare.sh against stub executables on an isolated PATH."""

    @pytest.fixture
    def host(self, tmp_path):
        return FakeHost(tmp_path)

    def test_apt_installs_missing_tools(self, host):
        host.install("apt-get", "curl")

        result = host.run_script()

        assert result.returncode == 0, result.stderr
        assert "sudo apt-get update -y" in host.calls
        assert "curl -fsSL https://get.docker.com" in host.calls
        assert "sudo sh" in host.calls
        assert "sudo apt-get install -y nginx" in host.calls
        assert "sudo usermod -aG docker tester" in host.calls
        assert "sudo systemctl enable --now nginx" in host.calls

    def test_apt_skips_present_tools(self, host):
        host.install("apt-get", "curl", "docker", "nginx")

        result = host.run_script()

        assert result.returncode == 0, result.stderr
        assert not any(c.startswith("curl") for c in host.calls)
        assert "sudo apt-get install -y nginx" not in host.calls
        assert "sudo apt-get install -y docker-compose-plugin" not in host.calls
        assert "docker compose version" in host.calls

    def test_apt_installs_compose_plugin_when_missing(self, host):
        host.install("apt-get", "nginx")
        host.install("docker", body='[ "$1" = compose ] && exit 1; exit 0')

        result = host.run_script()

        assert result.returncode == 0, result.stderr
        assert "sudo apt-get install -y docker-compose-plugin" in host.calls

    def test_yum_family(self, host):
        host.install("yum")

        result = host.run_script()

        assert result.returncode == 0, result.stderr
        assert "sudo yum install -y docker" in host.calls
        assert "sudo yum install -y nginx" in host.calls
        assert not any(c.startswith("sudo apt-get") for c in host.calls)

    def test_dnf_preferred_over_yum(self, host):
        host.install("yum", "dnf", "docker", "nginx")

        result = host.run_script()

        assert result.returncode == 0, result.stderr
        assert "sudo dnf install -y yum-utils" in host.calls
        assert not any(c.startswith("sudo yum") for c in host.calls)

    def test_unknown_package_manager_fails(self, host):
        result = host.run_script()

        assert result.returncode == 1
        assert "unsupported package manager" in result.stderr

    def test_root_is_not_added_to_group(self, host):
        host.install("apt-get", "docker", "nginx")
        host.install("id", body='[ "$1" = -u ] && echo 0; [ "$1" = -nG ] && echo root; exit 0')

        host.run_script()

        assert not any("usermod" in c for c in host.calls)


class FakeHost:
    """A bin directory of recording stubs standing in for a remote host."""

    def __init__(self, root):
        self.bin = root / "bin"
        self.bin.mkdir()
        self.log = root / "calls.log"
        self.log.touch()
        (self.bin / "grep").symlink_to(GREP)
        # a non-root user, not yet in the docker group
        self.install("sudo", "systemctl", "usermod")
        self.install("id", body='[ "$1" = -u ] && echo 1000; [ "$1" = -nG ] && echo users; exit 0')
        self.install("whoami", body="echo tester")

    def install(self, *names, body="exit 0"):
        for name in names:
            stub = self.bin / name
            stub.write_text(f'#!/bin/sh\necho "{name} $*" >> "$CALLS"\n{body}\n')
            stub.chmod(0o755)

    def run_script(self):
        script = Path(provision.__file__).parent / "scripts" / provision.PREPARE_SCRIPT
        return subprocess.run(
            [BASH, str(script)],
            env={"PATH": str(self.bin), "CALLS": str(self.log)},
            capture_output=True,
            text=True,
        )

    @property
    def calls(self) -> list[str]:
        return [line.strip() for line in self.log.read_text().splitlines()]
