"""Remote environment preparation (docker, compose plugin, nginx)"""

from .remote import Remote, RemoteCommandError
from .scripts import read_script
from .utils import DeployError, ExitCode, logger

PREPARE_SCRIPT = "remote_prepare.sh"


def prepare(remote: Remote):
    """Install docker, the compose plugin and nginx on the remote if absent.

    The script detects apt or yum/dnf and checks for each tool before
    installing it, so re-running it is harmless.

    Raises:
        DeployError: With ExitCode.PREPARE if the script fails
    """
    logger.info("Preparing remote environment (install docker & nginx if needed)...")
    try:
        remote.run_script(read_script(PREPARE_SCRIPT))
    except RemoteCommandError as e:
        raise DeployError(f"Remote prep failed: {e}", ExitCode.PREPARE)
    logger.success("Remote prepared")
