#!/usr/bin/env python3
"""dockship CLI"""

import sys
import tomllib
from datetime import datetime

import click

from . import __version__, config, pipeline
from .utils import DeployError, ExitCode, logger


@click.command()
@click.version_option(version=__version__, prog_name="dockship")
@click.option(
    "--cleanup",
    is_flag=True,
    help="Remove containers, images, files and the nginx site from the remote host",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Echo remote command output to the terminal",
)
def main(cleanup: bool, verbose: bool):
    """Deploy a Dockerized git repository to a remote host behind nginx

    All deployment parameters are asked for interactively. Prompt defaults
    can be set in dockship.toml ([deploy] section) or DOCKSHIP_* variables.

    \b
    Examples:
      dockship              # Deploy
      dockship --cleanup    # Tear down a previous deployment
      dockship -v           # Deploy, showing remote output

    \b
    Exit codes:
      10 input   20/21 source   30 ssh      40 prepare   45 sync
      50 build   51 nginx       60 validate
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    settings_error = None
    try:
        settings = config.load_settings()
    except (ValueError, tomllib.TOMLDecodeError) as e:
        # still record the run next to the working directory
        settings, settings_error = config.Settings(), e

    logfile = settings.log_dir / f"deploy_{timestamp}.log"
    logger.open_logfile(logfile)
    logger.verbose = verbose

    rc = int(ExitCode.OK)
    try:
        if settings_error is not None:
            raise DeployError(f"Invalid configuration: {settings_error}", ExitCode.INPUT)
        params = config.collect_params(settings)
        pipeline.run(params, settings, cleanup=cleanup, timestamp=timestamp)
        if cleanup:
            logger.success(f"Cleanup finished: {params.project_name}")
        else:
            logger.success(f"Deployment finished. Logfile: {logfile}")
    except DeployError as e:
        logger.error(e.message)
        rc = int(e.exit_code)
    except (KeyboardInterrupt, click.Abort):
        logger.error("Interrupted")
        rc = int(ExitCode.INTERRUPTED)
    except Exception as e:
        logger.error(f"Deployment failed: {e}")
        rc = 1
    finally:
        logger.info(f"Exited with {rc}")
        logger.close()

    sys.exit(rc)


if __name__ == "__main__":
    main()
