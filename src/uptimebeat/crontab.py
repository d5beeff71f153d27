# ABOUTME: Per-user crontab management for the heartbeat ping job
# ABOUTME: Resolves the invoking user and upserts one tagged line via the crontab command

import getpass
import logging
import os
import subprocess
from collections.abc import Mapping

from uptimebeat.errors import CrontabError

logger = logging.getLogger(__name__)

TAG_TEMPLATE = "# UptimeRobot Heartbeat ({monitor_id})"


def resolve_target_user(environ: Mapping[str, str] | None = None) -> str:
    """
    Determine whose crontab to write.

    Under sudo this is SUDO_USER (unless it is root), otherwise USER,
    falling back to the login name of the current process.

    Raises:
        CrontabError: If no user name can be determined
    """
    env = os.environ if environ is None else environ

    sudo_user = env.get("SUDO_USER", "")
    if sudo_user and sudo_user != "root":
        return sudo_user

    user = env.get("USER", "")
    if not user:
        try:
            user = getpass.getuser()
        except (KeyError, OSError):
            user = ""

    if not user:
        raise CrontabError("Could not determine target user for crontab.")
    return user


def heartbeat_tag(monitor_id: str) -> str:
    """Comment tag identifying the cron line for a monitor."""
    return TAG_TEMPLATE.format(monitor_id=monitor_id)


def build_cron_line(
    curl: str,
    url: str,
    tag: str,
    schedule: str = "* * * * *",
    retries: int = 2,
    max_time: int = 10,
) -> str:
    """Build the cron line that pings ``url`` with curl, tagged for replacement."""
    return (
        f'{schedule} {curl} -fsS --retry {retries} --max-time {max_time} "{url}" '
        f">/dev/null 2>&1 {tag}"
    )


def upsert_line(existing: str, line: str, tag: str) -> str:
    """
    Replace every line containing ``tag`` with ``line``.

    The new line is appended at the end; other lines keep their order.
    Applying the same upsert twice yields exactly one tagged line.
    """
    kept = [current for current in existing.splitlines() if tag not in current]
    kept.append(line)
    return "\n".join(kept) + "\n"


class CrontabManager:
    """
    Reads and installs a user's crontab through the ``crontab`` command.

    Running as root, the target user is addressed with ``-u``; otherwise
    the caller can only edit their own table.
    """

    def __init__(self, user: str, as_root: bool | None = None):
        self.user = user
        self.as_root = os.geteuid() == 0 if as_root is None else as_root

    def _base_command(self) -> list[str]:
        if self.as_root:
            return ["crontab", "-u", self.user]
        return ["crontab"]

    @property
    def list_command(self) -> list[str]:
        return [*self._base_command(), "-l"]

    @property
    def install_command(self) -> list[str]:
        return [*self._base_command(), "-"]

    def read(self) -> str:
        """Current crontab contents, or "" when the user has none."""
        try:
            completed = subprocess.run(
                self.list_command,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise CrontabError(f"Could not run crontab: {e}") from e

        if completed.returncode != 0:
            # "no crontab for <user>" also exits non-zero
            logger.debug(f"crontab -l exited {completed.returncode}: {completed.stderr.strip()}")
            return ""
        return completed.stdout

    def install(self, content: str) -> None:
        """
        Replace the crontab with ``content``.

        Raises:
            CrontabError: If the crontab command fails
        """
        try:
            completed = subprocess.run(
                self.install_command,
                input=content,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise CrontabError(f"Could not run crontab: {e}") from e

        if completed.returncode != 0:
            raise CrontabError(
                f"crontab install for {self.user} failed: {completed.stderr.strip() or completed.returncode}"
            )

    def upsert(self, line: str, tag: str) -> str:
        """Read, replace the tagged line, and install. Returns the installed content."""
        content = upsert_line(self.read(), line, tag)
        self.install(content)
        logger.info(f"Installed cron entry for {self.user}")
        return content
