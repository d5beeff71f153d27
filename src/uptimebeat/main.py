# ABOUTME: uptimebeat entry point - parses flags and runs the installer
# ABOUTME: Maps installer failures to an error line on stderr and a non-zero exit code

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

from pydantic import ValidationError

from .api import UptimeRobotClient
from .config import (
    DEFAULT_GRACE_SECONDS,
    DEFAULT_INTERVAL_SECONDS,
    InstallConfig,
    Settings,
    get_settings,
)
from .crontab import CrontabManager, resolve_target_user
from .errors import ConfigurationError, UptimebeatError
from .installer import Installer, list_contacts
from .prereqs import ensure_prerequisites

logger = logging.getLogger(__name__)

NOTES = """\
Notes:
  * For heartbeat monitors, INTERVAL and GRACE are specified in SECONDS.
  * If your plan enforces minimums (e.g., interval >= 30), pass a compliant value (e.g., --interval 60).
  * Cron will be installed for the user who launched the command. If run via sudo, it will target SUDO_USER.
  * --api-key may be omitted when UPTIMEROBOT_API_KEY is set in the environment or .env.
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="uptimebeat",
        description="Create an UptimeRobot Heartbeat monitor and install cron (for the invoking user)",
        epilog=NOTES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--api-key", help="UptimeRobot Main API key")
    parser.add_argument("--name", dest="friendly_name", help="Friendly name for the new monitor")
    parser.add_argument("--email", help="Email address of an existing alert contact to attach")

    app = parser.add_mutually_exclusive_group()
    app.add_argument("--app-id", metavar="ID", help="Add App (mobile push) alert contact by ID (fail if not found)")
    app.add_argument(
        "--app-name",
        metavar="NAME",
        help="Add App contact whose friendly_name contains NAME (case-insensitive; fail if not found)",
    )

    parser.add_argument(
        "--interval",
        type=int,
        metavar="SECONDS",
        default=DEFAULT_INTERVAL_SECONDS,
        help=f"Heartbeat interval in SECONDS (default: {DEFAULT_INTERVAL_SECONDS})",
    )
    parser.add_argument(
        "--grace",
        type=int,
        metavar="SECONDS",
        default=DEFAULT_GRACE_SECONDS,
        help=f"Grace period in SECONDS (default: {DEFAULT_GRACE_SECONDS})",
    )
    parser.add_argument(
        "--list-contacts",
        dest="list_only",
        action="store_true",
        help="Print available alert contacts (ID, type, friendly_name, value) and exit",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More log output (-vv for debug)")
    return parser


def configure_logging(settings: Settings, verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = getattr(logging, settings.log_level.upper(), logging.WARNING)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # httpx logs every request URL at INFO, which would include the heartbeat token
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


FLAG_NAMES = {"friendly_name": "--name", "list_only": "--list-contacts"}


def _describe(error: dict) -> str:
    """Render a pydantic error in terms of the command-line flag."""
    message = error["msg"].removeprefix("Value error, ")
    if not error["loc"]:
        return message
    field = str(error["loc"][0])
    flag = FLAG_NAMES.get(field, "--" + field.replace("_", "-"))
    return f"{flag}: {message}"


def build_install_config(args: argparse.Namespace, settings: Settings) -> InstallConfig:
    """
    Validate parsed flags into an InstallConfig.

    Raises:
        ConfigurationError: If flags are missing, conflicting, or out of range
    """
    try:
        config = InstallConfig(
            api_key=args.api_key or settings.uptimerobot_api_key,
            friendly_name=args.friendly_name,
            email=args.email,
            app_id=args.app_id,
            app_name=args.app_name,
            interval=args.interval,
            grace=args.grace,
            list_only=args.list_only,
        )
    except ValidationError as e:
        raise ConfigurationError("; ".join(_describe(error) for error in e.errors())) from e

    config.require_complete()
    return config


async def run(config: InstallConfig, settings: Settings) -> list[str]:
    """Run one install (or contact listing) and return the lines to print."""
    async with UptimeRobotClient(
        api_key=config.api_key or "",
        base_url=settings.uptimerobot_api_url,
        timeout=settings.api_timeout,
    ) as client:
        if config.list_only:
            return await list_contacts(client)

        target_user = resolve_target_user()
        logger.info(f"Installing heartbeat monitor '{config.friendly_name}' for cron user {target_user}")
        curl = ensure_prerequisites()
        installer = Installer(
            config,
            settings,
            client,
            crontab=CrontabManager(target_user),
            curl=curl,
        )
        result = await installer.install()
        return result.summary_lines()


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for uptimebeat."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"ERROR: Failed to load settings: {e}", file=sys.stderr)
        return 1

    configure_logging(settings, args.verbose)

    errors = settings.validate_ready()
    if errors:
        for error in errors:
            print(f"ERROR: {error}", file=sys.stderr)
        return 1

    try:
        config = build_install_config(args, settings)
        lines = asyncio.run(run(config, settings))
    except UptimebeatError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return e.exit_code

    for line in lines:
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
