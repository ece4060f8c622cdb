"""SSH command execution and rsync file transfer"""

import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .config import DeployParams
from .utils import DeployError, ExitCode, logger

SENTINEL = "remote_ok"


@dataclass
class RemoteResult:
    exit_code: int
    output: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class RemoteCommandError(Exception):
    """A remote command exited non-zero"""

    def __init__(self, command: str, result: RemoteResult):
        super().__init__(f"'{command}' exited with {result.exit_code}")
        self.command = command
        self.result = result


def remote_path(params: DeployParams) -> str:
    """Deployment directory relative to the remote user's home.

    Every ssh session starts in the home directory, so this is
    ``params.remote_dir`` without the ``~/`` that quoting would break.
    """
    return params.remote_dir.removeprefix("~/")


class Remote:
    """Runs commands on the target host, one ssh process per command"""

    def __init__(self, params: DeployParams, connect_timeout: int = 10):
        self.params = params
        self.connect_timeout = connect_timeout

    def ssh_options(self) -> list[str]:
        return [
            "-i",
            str(self.params.ssh_key),
            "-o",
            "StrictHostKeyChecking=accept-new",
            "-o",
            f"ConnectTimeout={self.connect_timeout}",
            "-o",
            "BatchMode=yes",
        ]

    def _execute(self, cmd: list[str], input: str | None = None) -> RemoteResult:
        # ssh must never read from the operator's terminal
        stdin = {"input": input} if input is not None else {"stdin": subprocess.DEVNULL}
        try:
            proc = subprocess.run(
                cmd,
                **stdin,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except FileNotFoundError:
            return RemoteResult(127, f"{cmd[0]}: command not found")
        logger.capture(proc.stdout)
        return RemoteResult(proc.returncode, proc.stdout)

    def run(
        self,
        args: list[str] | str,
        *,
        input: str | None = None,
        check: bool = True,
    ) -> RemoteResult:
        """Run a command on the remote host.

        Args:
            args: Argument list (quoted for the remote shell) or a shell string
            input: Text fed to the remote command's stdin
            check: Raise RemoteCommandError on non-zero exit

        Returns:
            RemoteResult with exit code and combined stdout/stderr
        """
        command = args if isinstance(args, str) else shlex.join(args)
        logger.capture(f"$ {command}")
        result = self._execute(
            ["ssh", *self.ssh_options(), self.params.ssh_target, command], input
        )
        if check and not result.ok:
            raise RemoteCommandError(command, result)
        return result

    def run_script(self, script: str, *, check: bool = True) -> RemoteResult:
        """Run a shell script on the remote host by feeding it to bash on stdin"""
        return self.run(["bash", "-s"], input=script, check=check)

    def check_connectivity(self):
        """Verify an ssh round trip echoes the sentinel.

        Raises:
            DeployError: With ExitCode.CONNECT on any failure
        """
        logger.info("Testing SSH connectivity...")
        result = self.run(["echo", SENTINEL], check=False)
        if not result.ok or SENTINEL not in result.output:
            raise DeployError(
                f"SSH connectivity to {self.params.ssh_target} failed", ExitCode.CONNECT
            )
        logger.success("SSH OK")

    def sync(self, local_dir: Path, remote_dir: str):
        """Mirror local_dir to remote_dir, deleting extraneous remote files.

        Raises:
            DeployError: With ExitCode.SYNC if rsync fails
        """
        logger.info(f"Syncing project to remote ({remote_dir})...")
        cmd = [
            "rsync",
            "-az",
            "--delete",
            "-e",
            shlex.join(["ssh", *self.ssh_options()]),
            f"{local_dir}/",
            f"{self.params.ssh_target}:{remote_dir}/",
        ]
        result = self._execute(cmd)
        if not result.ok:
            raise DeployError(
                f"File sync failed (rsync exited with {result.exit_code})", ExitCode.SYNC
            )
        logger.success("Files synced")
