"""Deployment pipeline orchestration"""

from datetime import datetime
from pathlib import Path

import httpx

from . import docker, nginx, provision, source, validate
from .config import DeployParams, Settings
from .remote import Remote, remote_path
from .utils import logger


def run(
    params: DeployParams,
    settings: Settings,
    *,
    cleanup: bool = False,
    git: source.Git | None = None,
    remote: Remote | None = None,
    http_client: httpx.Client | None = None,
    timestamp: str | None = None,
) -> Path:
    """Run the deployment (or cleanup) end to end.

    Each stage raises DeployError with its own exit code; the first failure
    stops the run.

    Args:
        params: Validated deployment parameters
        settings: Ambient settings
        cleanup: Tear down the previous deployment instead of deploying
        git: Git implementation (defaults to the git CLI)
        remote: Remote implementation (defaults to ssh/rsync)
        http_client: Client used for the public probe
        timestamp: Suffix for the workspace directory

    Returns:
        Path to the local workspace, left in place for inspection
    """
    git = git or source.Git(params.token)
    remote = remote or Remote(params, settings.ssh_connect_timeout)
    timestamp = timestamp or datetime.now().strftime("%Y%m%d_%H%M%S")

    logger.info(
        f"Start deploy: project={params.project_name} "
        f"host={params.ssh_target} branch={params.branch}"
    )

    workspace = source.workspace_path(settings, params.project_name, timestamp)
    source.retrieve(params, workspace, git)
    deploy_type = source.detect_deploy_type(workspace)

    remote.check_connectivity()

    if cleanup:
        docker.teardown(remote, params)
        return workspace

    provision.prepare(remote)
    remote.sync(workspace, remote_path(params))
    docker.deploy(remote, params, deploy_type)
    nginx.configure(remote, params.sanitized_name, params.app_port)
    validate.validate(remote, params, settings, http_client)

    return workspace
