"""Post-deploy validation against the public endpoint"""

import httpx

from .config import DEFAULT_ACCEPT_STATUS, DeployParams, Settings
from .docker import list_containers
from .remote import Remote
from .utils import DeployError, ExitCode, logger

NO_RESPONSE = "000"


def probe(url: str, client: httpx.Client) -> str:
    """GET url once and return the status code as a 3-digit string.

    Returns "000" when no response was obtained at all.
    """
    try:
        resp = client.get(url)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.warn(f"No response from {url}: {e}")
        return NO_RESPONSE
    return f"{resp.status_code:03d}"


def is_success(code: str, accept: tuple[int, int] = DEFAULT_ACCEPT_STATUS) -> bool:
    """Check a probe result against the half-open acceptance range"""
    if code == NO_RESPONSE or not code.isdigit():
        return False
    low, high = accept
    return low <= int(code) < high


def validate(
    remote: Remote,
    params: DeployParams,
    settings: Settings,
    client: httpx.Client | None = None,
):
    """Check the deployment is reachable.

    Raises:
        DeployError: With ExitCode.VALIDATE if the probe fails
    """
    logger.info("Validating deployment...")
    list_containers(remote, params.sanitized_name)

    own_client = client is None
    if own_client:
        client = httpx.Client(timeout=settings.http_timeout, follow_redirects=False)

    try:
        code = probe(params.public_url, client)
    finally:
        if own_client:
            client.close()

    logger.info(f"HTTP code from public endpoint: {code}")
    if not is_success(code, settings.accept_status):
        raise DeployError(f"Validation failed (http code {code})", ExitCode.VALIDATE)
    logger.success("Deployment looks successful.")
