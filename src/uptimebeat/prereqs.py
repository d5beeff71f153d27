# ABOUTME: Host prerequisite checks for the heartbeat cron job
# ABOUTME: Installs missing tools through apt-get and starts the cron service

import logging
import shutil
import subprocess

from uptimebeat.errors import PrerequisiteError

logger = logging.getLogger(__name__)


def _run_quiet(command: list[str]) -> bool:
    """Run a command with output discarded. Returns True on exit code 0."""
    try:
        completed = subprocess.run(
            command,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError as e:
        logger.debug(f"Could not run {command[0]}: {e}")
        return False
    return completed.returncode == 0


def ensure_binary(binary: str, package: str | None = None) -> None:
    """
    Make sure ``binary`` is on PATH, installing ``package`` via apt-get if not.

    Args:
        binary: Executable name to look for
        package: apt package providing it (defaults to the binary name)

    Raises:
        PrerequisiteError: If the binary is missing and cannot be installed
    """
    package = package or binary
    if shutil.which(binary):
        return

    if not shutil.which("apt-get"):
        raise PrerequisiteError(
            f"'{binary}' not found and apt-get is unavailable. Please install '{package}'."
        )

    logger.info(f"Installing {package} to provide {binary}")
    if not _run_quiet(["sudo", "apt-get", "update", "-y"]):
        raise PrerequisiteError(f"apt-get update failed while installing '{package}'.")
    if not _run_quiet(["sudo", "apt-get", "install", "-y", package]):
        raise PrerequisiteError(f"apt-get install failed for '{package}'.")


def ensure_cron_running() -> None:
    """Best-effort enable and start of the cron service. Never raises."""
    if shutil.which("systemctl"):
        for action in ("enable", "start"):
            if not any(_run_quiet(["sudo", "systemctl", action, unit]) for unit in ("cron", "crond")):
                logger.debug(f"systemctl {action} failed for cron and crond")
    elif shutil.which("service"):
        if not _run_quiet(["sudo", "service", "cron", "start"]):
            logger.debug("service cron start failed")
    else:
        logger.debug("No service manager found; assuming cron is running")


def resolve_curl() -> str:
    """
    Absolute path of curl, for use inside the cron entry.

    Raises:
        PrerequisiteError: If curl is not on PATH
    """
    curl = shutil.which("curl")
    if not curl:
        raise PrerequisiteError("curl not found on PATH")
    return curl


def ensure_prerequisites() -> str:
    """
    Ensure curl and crontab are present and cron is running.

    Returns:
        Absolute path of curl

    Raises:
        PrerequisiteError: If curl is missing and cannot be installed
    """
    ensure_binary("curl")
    try:
        ensure_binary("crontab", "cron")
    except PrerequisiteError as e:
        logger.warning(f"Continuing without crontab check: {e}")
    ensure_cron_running()
    return resolve_curl()
