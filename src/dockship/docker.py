"""Remote docker operations: build & run, listing, teardown"""

import shlex
from enum import Enum

from .config import DeployParams
from .nginx import site_paths
from .remote import Remote, RemoteCommandError, remote_path
from .utils import DeployError, ExitCode, logger


class DeployType(Enum):
    """Build strategy for the repository"""

    DOCKERFILE = "dockerfile"
    COMPOSE = "compose"


def image_tag(name: str) -> str:
    return f"{name}:latest"


def compose_down_cmd() -> list[str]:
    return ["docker", "compose", "down", "--remove-orphans"]


def compose_up_cmd() -> list[str]:
    return ["docker", "compose", "up", "-d", "--build"]


def build_image_cmd(tag: str) -> list[str]:
    return ["docker", "build", "-t", tag, "."]


def container_exists_cmd(name: str) -> list[str]:
    return ["docker", "ps", "-a", "--filter", f"name=^/{name}$", "--format", "{{.Names}}"]


def remove_container_cmd(name: str) -> list[str]:
    return ["docker", "rm", "-f", name]


def run_container_cmd(name: str, tag: str, port: int) -> list[str]:
    return ["docker", "run", "-d", "--name", name, "-p", f"{port}:{port}", tag]


def list_containers_cmd(name: str) -> list[str]:
    return [
        "docker",
        "ps",
        "--filter",
        f"name={name}",
        "--format",
        "table {{.Names}}\t{{.Status}}\t{{.Ports}}",
    ]


def in_dir(directory: str, args: list[str]) -> str:
    """Shell command running args inside directory"""
    return f"cd {shlex.quote(directory)} && {shlex.join(args)}"


def _deploy_compose(remote: Remote, directory: str):
    result = remote.run(in_dir(directory, compose_down_cmd()), check=False)
    if not result.ok:
        logger.warn("docker compose down failed (no existing stack?), continuing")
    remote.run(in_dir(directory, compose_up_cmd()))


def _deploy_dockerfile(remote: Remote, directory: str, name: str, port: int):
    tag = image_tag(name)
    logger.info(f"Building {tag} on remote...")
    remote.run(in_dir(directory, build_image_cmd(tag)))

    existing = remote.run(container_exists_cmd(name)).output.split()
    if name in existing:
        logger.info(f"Removing existing container {name}")
        remote.run(remove_container_cmd(name))

    remote.run(run_container_cmd(name, tag, port))


def deploy(remote: Remote, params: DeployParams, deploy_type: DeployType):
    """Build and start the application on the remote host.

    Args:
        remote: Remote connection
        params: Deployment parameters
        deploy_type: Compose stack or single Dockerfile container

    Raises:
        DeployError: With ExitCode.BUILD if any remote command fails
    """
    directory = remote_path(params)
    logger.info("Running remote deploy...")
    try:
        if deploy_type is DeployType.COMPOSE:
            _deploy_compose(remote, directory)
        else:
            _deploy_dockerfile(remote, directory, params.sanitized_name, params.app_port)
    except RemoteCommandError as e:
        raise DeployError(f"Remote deploy failed: {e}", ExitCode.BUILD)
    logger.success("Remote deployment complete")


def list_containers(remote: Remote, name: str):
    """Record running containers matching name in the log (best-effort)"""
    result = remote.run(list_containers_cmd(name), check=False)
    if not result.ok:
        logger.warn(f"Could not list containers (exit {result.exit_code})")


def teardown(remote: Remote, params: DeployParams):
    """Remove all containers, images, deployed files and the nginx site.

    Every step tolerates the resource being absent; failures are logged
    and never raised.
    """
    logger.info("Cleanup: stopping containers and removing files on remote")
    available, enabled = site_paths(params.sanitized_name)
    steps = [
        ("remove containers", "docker ps -aq | xargs -r docker rm -f"),
        ("remove images", "docker images -aq | xargs -r docker rmi -f"),
        ("remove deployed files", ["sudo", "rm", "-rf", remote_path(params)]),
        ("remove nginx site", ["sudo", "rm", "-f", enabled, available]),
        ("reload nginx", ["sudo", "systemctl", "reload", "nginx"]),
    ]
    for description, command in steps:
        result = remote.run(command, check=False)
        if not result.ok:
            logger.warn(f"Cleanup step '{description}' failed (exit {result.exit_code})")

    logger.success("Cleanup complete")
