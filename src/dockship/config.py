"""Deployment parameters, derived names and settings"""

import ipaddress
import os
import re
import tempfile
import tomllib
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import click

from .utils import DeployError, ExitCode, is_non_empty_str, logger

CONFIG_FILE = "dockship.toml"
ENV_PREFIX = "DOCKSHIP_"
DEFAULT_BRANCH = "main"
DEFAULT_ACCEPT_STATUS = (200, 500)

_UNSAFE_CHARS = re.compile(r"[^a-z0-9_.-]")

# Prompt defaults that may come from dockship.toml or DOCKSHIP_* variables
PROMPT_KEYS = ("repo_url", "branch", "ssh_user", "ssh_host", "ssh_key", "app_port")


def sanitize(name: str) -> str:
    """Normalize a project name into a container/image/file-name token.

    Lowercases the name and maps every character outside ``[a-z0-9_.-]``
    to ``-``.
    """
    return _UNSAFE_CHARS.sub("-", name.lower())


def project_name_from_url(url: str) -> str:
    """Return the repository basename without a trailing ``.git``"""
    base = url.rstrip("/").rsplit("/", 1)[-1]
    # scp-like urls: git@host:repo.git
    base = base.rsplit(":", 1)[-1]
    if base.endswith(".git"):
        base = base[: -len(".git")]
    return base


@dataclass(frozen=True)
class DeployParams:
    """Operator-supplied deployment parameters"""

    repo_url: str
    token: str | None
    branch: str
    ssh_user: str
    ssh_host: str
    ssh_key: Path
    app_port: int

    @property
    def project_name(self) -> str:
        return project_name_from_url(self.repo_url)

    @property
    def sanitized_name(self) -> str:
        return sanitize(self.project_name)

    @property
    def remote_dir(self) -> str:
        return f"~/deploy_{self.project_name}"

    @property
    def ssh_target(self) -> str:
        return f"{self.ssh_user}@{self.ssh_host}"

    @property
    def public_url(self) -> str:
        host = self.ssh_host
        try:
            if ipaddress.ip_address(host).version == 6:
                host = f"[{host}]"
        except ValueError:
            pass
        return f"http://{host}"


@dataclass(frozen=True)
class Settings:
    """Ambient configuration"""

    ssh_connect_timeout: int = 10
    http_timeout: float = 10.0
    accept_status: tuple[int, int] = DEFAULT_ACCEPT_STATUS
    workspace_root: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))
    log_dir: Path = field(default_factory=Path)
    defaults: dict[str, str] = field(default_factory=dict)


def parse_accept_status(value) -> tuple[int, int]:
    """Parse an HTTP acceptance range.

    Accepts ``"200-500"`` or a two-element list. The range is half-open.

    Raises:
        ValueError: If the range is malformed or empty
    """
    try:
        parts = value.split("-") if isinstance(value, str) else list(value)
        if len(parts) != 2:
            raise ValueError
        low, high = (int(p) for p in parts)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid status range: {value!r} (expected LOW-HIGH)")
    if not 100 <= low < high <= 600:
        raise ValueError(f"Invalid status range: {value!r}")
    return low, high


def load_settings(cwd: Path | None = None) -> Settings:
    """Load settings

    Configuration precedence (highest to lowest):
    1. Environment variables (DOCKSHIP_HTTP_TIMEOUT, DOCKSHIP_ACCEPT_STATUS, etc.)
    2. dockship.toml [deploy] section
    3. Built-in defaults
    """
    cwd = cwd or Path.cwd()

    deploy_config: dict = {}
    config_path = cwd / CONFIG_FILE
    if config_path.exists():
        with open(config_path, "rb") as f:
            deploy_config = tomllib.load(f).get("deploy", {})
        if not isinstance(deploy_config, dict):
            raise ValueError(f"[deploy] in {CONFIG_FILE} must be a table")

    def setting(key: str, default=None):
        return os.getenv(ENV_PREFIX + key.upper(), deploy_config.get(key, default))

    defaults = {}
    for key in PROMPT_KEYS:
        value = setting(key)
        if value is not None and value != "":
            defaults[key] = str(value)

    def typed(key: str, kind, default):
        value = setting(key, default)
        try:
            return kind(value)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid {key}: {value!r}")

    workspace_root = setting("workspace_root")
    return Settings(
        ssh_connect_timeout=typed("ssh_connect_timeout", int, 10),
        http_timeout=typed("http_timeout", float, 10.0),
        accept_status=parse_accept_status(
            setting("accept_status", list(DEFAULT_ACCEPT_STATUS))
        ),
        workspace_root=(
            typed("workspace_root", Path, None)
            if workspace_root
            else Path(tempfile.gettempdir())
        ),
        log_dir=typed("log_dir", Path, "."),
        defaults=defaults,
    )


def _required(value: str, what: str) -> str:
    value = value.strip()
    if not is_non_empty_str(value):
        raise DeployError(f"{what} required", ExitCode.INPUT)
    return value


def parse_port(raw: str) -> int:
    """Parse an application port, raising DeployError on bad input"""
    raw = _required(raw, "Application port")
    try:
        port = int(raw)
    except ValueError:
        raise DeployError(f"Invalid application port: {raw}", ExitCode.INPUT)
    if not 1 <= port <= 65535:
        raise DeployError(f"Application port out of range: {port}", ExitCode.INPUT)
    return port


def collect_params(
    settings: Settings, prompt: Callable[..., str] = click.prompt
) -> DeployParams:
    """Interactively collect and validate deployment parameters.

    Args:
        settings: Settings providing prompt defaults
        prompt: click.prompt-compatible callable

    Returns:
        Validated DeployParams

    Raises:
        DeployError: With ExitCode.INPUT on the first invalid field
    """
    defaults = settings.defaults

    def ask(text: str, key: str | None = None, **kwargs) -> str:
        default = defaults.get(key, "") if key else ""
        return str(prompt(text, default=default, show_default=bool(default), **kwargs))

    repo_url = _required(ask("Git repository URL (https://... .git)", "repo_url"), "Git URL")
    token = ask("Personal access token (press Enter for public repo)", hide_input=True).strip()
    branch = ask("Branch name", "branch").strip() or DEFAULT_BRANCH
    ssh_user = _required(ask("Remote SSH username", "ssh_user"), "SSH username")
    ssh_host = _required(ask("Remote server address", "ssh_host"), "Remote host")

    ssh_key = Path(ask("SSH private key path", "ssh_key").strip()).expanduser()
    if not ssh_key.name or not ssh_key.is_file():
        raise DeployError(f"SSH key not found at {ssh_key}", ExitCode.INPUT)

    app_port = parse_port(ask("Application port (container port, e.g. 5000)", "app_port"))

    params = DeployParams(
        repo_url=repo_url,
        token=token or None,
        branch=branch,
        ssh_user=ssh_user,
        ssh_host=ssh_host,
        ssh_key=ssh_key,
        app_port=app_port,
    )
    logger.info(
        f"Project name: {params.project_name}  Sanitized name: {params.sanitized_name}"
    )
    return params
