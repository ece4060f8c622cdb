"""Packaged shell scripts executed on the remote host"""

from pathlib import Path


def _resolve_script(script_name: str) -> Path:
    """Resolve script path.

    Args:
        script_name: Name of the script file (e.g., "remote_prepare.sh")

    Returns:
        Absolute path to script

    Raises:
        FileNotFoundError: If script doesn't exist
    """
    scripts_dir = Path(__file__).parent
    script_path = scripts_dir / script_name

    if not script_path.exists():
        raise FileNotFoundError(f"Script not found: {script_path}")

    return script_path


def read_script(script_name: str) -> str:
    """Return the text of a packaged script, ready to be fed to a remote shell

    Raises:
        FileNotFoundError: If script doesn't exist
    """
    return _resolve_script(script_name).read_text()
