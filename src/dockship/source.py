"""Source retrieval and deployment type detection"""

import re
import subprocess
from pathlib import Path

from .config import DeployParams, Settings
from .docker import DeployType
from .utils import DeployError, ExitCode, logger

DOCKERFILE = "Dockerfile"
COMPOSE_FILES = (
    "docker-compose.yml",
    "docker-compose.yaml",
    "compose.yml",
    "compose.yaml",
)

_SCHEME = re.compile(r"^https?://", re.IGNORECASE)


class GitError(Exception):
    """A git invocation failed"""


def authenticated_url(url: str, token: str | None) -> str:
    """Splice an access token into the authority of an http(s) clone URL"""
    if not token:
        return url
    return _SCHEME.sub(f"https://{token}@", url, count=1)


def redact(text: str, token: str | None) -> str:
    if not token:
        return text
    return text.replace(token, "***")


class Git:
    """Thin wrapper around the git CLI"""

    def __init__(self, token: str | None = None):
        self.token = token

    def _run(self, args: list[str]):
        try:
            result = subprocess.run(
                ["git", *args],
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            raise GitError("git executable not found")

        logger.capture(redact(result.stdout + result.stderr, self.token))
        if result.returncode != 0:
            raise GitError(
                redact(result.stderr.strip(), self.token)
                or f"git {args[0]} exited with {result.returncode}"
            )

    def clone(self, url: str, branch: str, dest: Path):
        self._run(
            ["clone", "--depth", "1", "--branch", branch, "--single-branch", url, str(dest)]
        )

    def set_remote_url(self, repo: Path, url: str):
        self._run(["-C", str(repo), "remote", "set-url", "origin", url])

    def fetch(self, repo: Path, url: str, branch: str):
        self._run(["-C", str(repo), "fetch", url, branch])

    def checkout(self, repo: Path, branch: str):
        self._run(["-C", str(repo), "checkout", branch])

    def pull(self, repo: Path, url: str, branch: str):
        self._run(["-C", str(repo), "pull", url, branch])


def workspace_path(settings: Settings, project_name: str, timestamp: str) -> Path:
    """Local workspace for this run. It is left on disk for inspection."""
    return settings.workspace_root / f"{project_name}_{timestamp}"


def retrieve(params: DeployParams, workspace: Path, git: Git) -> Path:
    """Clone the requested branch into workspace, updating an existing checkout.

    Args:
        params: Deployment parameters
        workspace: Local directory to clone into
        git: Git implementation

    Returns:
        The workspace path

    Raises:
        DeployError: With ExitCode.SOURCE if the branch cannot be retrieved
    """
    workspace.mkdir(parents=True, exist_ok=True)
    url = authenticated_url(params.repo_url, params.token)

    logger.info("Cloning repository...")
    try:
        git.clone(url, params.branch, workspace)
    except GitError as e:
        if not (workspace / ".git").is_dir():
            raise DeployError(f"Git clone failed: {e}", ExitCode.SOURCE)
        logger.warn(f"Clone failed, updating existing checkout in {workspace}")
        _update(params, workspace, git, url)

    # git stores the clone URL in .git/config, which is synced to the remote
    try:
        git.set_remote_url(workspace, params.repo_url)
    except GitError as e:
        raise DeployError(f"Git remote set-url failed: {e}", ExitCode.SOURCE)

    return workspace


def _update(params: DeployParams, workspace: Path, git: Git, url: str):
    """Fetch, check out and pull the branch in an existing checkout.

    The authenticated URL is passed explicitly so the stored origin never
    needs to carry the token.
    """
    for step, call in (
        ("fetch", lambda: git.fetch(workspace, url, params.branch)),
        ("checkout", lambda: git.checkout(workspace, params.branch)),
        ("pull", lambda: git.pull(workspace, url, params.branch)),
    ):
        try:
            call()
        except GitError as e:
            raise DeployError(f"Git {step} failed: {e}", ExitCode.SOURCE)


def detect_deploy_type(workspace: Path) -> DeployType:
    """Pick the build strategy from the files present in workspace.

    A Dockerfile wins over a compose file.

    Raises:
        DeployError: With ExitCode.NO_BUILD_DEFINITION if neither exists
    """
    if (workspace / DOCKERFILE).is_file():
        deploy_type = DeployType.DOCKERFILE
    elif any((workspace / name).is_file() for name in COMPOSE_FILES):
        deploy_type = DeployType.COMPOSE
    else:
        raise DeployError(
            "No Dockerfile or docker-compose.yml found in repo",
            ExitCode.NO_BUILD_DEFINITION,
        )
    logger.info(f"Deploy type: {deploy_type.value}")
    return deploy_type
