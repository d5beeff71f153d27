# ABOUTME: Exception hierarchy for uptimebeat install runs
# ABOUTME: Every failure is fatal; each class carries the process exit code


class UptimebeatError(Exception):
    """Base class for all installer failures."""

    exit_code = 1


class ConfigurationError(UptimebeatError):
    """Required input is missing or flags conflict."""

    exit_code = 2


class ContactNotFoundError(UptimebeatError):
    """A requested alert contact does not exist on the account."""


class ApiError(UptimebeatError):
    """The UptimeRobot API call failed or returned a non-ok status."""


class ResponseParseError(UptimebeatError):
    """An expected field could not be read from an API response."""


class PingError(UptimebeatError):
    """The verification ping to the heartbeat URL failed."""


class PrerequisiteError(UptimebeatError):
    """A required host tool is missing and cannot be installed."""


class CrontabError(UptimebeatError):
    """The target user's crontab could not be resolved or written."""
