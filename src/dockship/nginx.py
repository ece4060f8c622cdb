"""Nginx reverse-proxy site configuration"""

from .remote import Remote, RemoteCommandError
from .utils import DeployError, ExitCode, logger

SITES_AVAILABLE = "/etc/nginx/sites-available"
SITES_ENABLED = "/etc/nginx/sites-enabled"

SITE_TEMPLATE = """\
server {{
    listen 80;
    server_name _;

    location / {{
        proxy_pass http://127.0.0.1:{port};
        proxy_set_header Host $host;
        proxy_set_header X-Real-IP $remote_addr;
        proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;
        proxy_set_header X-Forwarded-Proto $scheme;
    }}
}}
"""


def site_paths(name: str) -> tuple[str, str]:
    """Return (sites-available, sites-enabled) paths for a site"""
    filename = f"{name}.conf"
    return f"{SITES_AVAILABLE}/{filename}", f"{SITES_ENABLED}/{filename}"


def render_site(port: int) -> str:
    return SITE_TEMPLATE.format(port=port)


def configure(remote: Remote, name: str, port: int):
    """Install, enable and load a site proxying port 80 to the app.

    nginx is only reloaded once ``nginx -t`` accepts the configuration.

    Raises:
        DeployError: With ExitCode.PROXY if any step fails
    """
    logger.info("Configuring Nginx on remote...")
    available, enabled = site_paths(name)
    try:
        remote.run(["sudo", "tee", available], input=render_site(port))
        remote.run(["sudo", "ln", "-sf", available, enabled])
        remote.run(["sudo", "nginx", "-t"])
        remote.run(["sudo", "systemctl", "reload", "nginx"])
    except RemoteCommandError as e:
        raise DeployError(f"Nginx configuration failed: {e}", ExitCode.PROXY)
    logger.success(f"Nginx proxying port 80 to 127.0.0.1:{port}")
