# ABOUTME: Installer that creates a heartbeat monitor and schedules its ping job
# ABOUTME: Runs the steps in order: contacts, monitor, heartbeat URL, verification ping, cron

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from uptimebeat.api import UptimeRobotClient
from uptimebeat.config import InstallConfig, Settings
from uptimebeat.contacts import (
    build_alert_contacts,
    format_contacts,
    resolve_app_contact,
    resolve_email_contact,
)
from uptimebeat.crontab import CrontabManager, build_cron_line, heartbeat_tag
from uptimebeat.errors import PingError

logger = logging.getLogger(__name__)

SleepCallback = Callable[[float], Awaitable[None]]


@dataclass
class InstallResult:
    """
    Outcome of a successful install.

    Attributes:
        email_contact_id: ID of the attached email contact
        app_contact_id: ID of the attached app contact, if any
        monitor_id: ID of the created monitor
        heartbeat_url: URL the cron job pings
        interval: Heartbeat interval in seconds
        grace: Grace period in seconds
        target_user: User whose crontab was written
        cron_line: The installed cron line
    """

    email_contact_id: str
    app_contact_id: str | None
    monitor_id: str
    heartbeat_url: str
    interval: int
    grace: int
    target_user: str
    cron_line: str

    def summary_lines(self) -> list[str]:
        if self.app_contact_id:
            attached = f"Attached contacts: email({self.email_contact_id}), app({self.app_contact_id})"
        else:
            attached = f"Attached contacts: email({self.email_contact_id})"
        return [
            attached,
            f"Monitor created: {self.monitor_id}",
            f"Heartbeat URL: {self.heartbeat_url}",
            f"Interval (s): {self.interval} | Grace (s): {self.grace}",
            f"Cron installed for user: {self.target_user}",
            "Heartbeat installed",
        ]


async def list_contacts(client: UptimeRobotClient) -> list[str]:
    """Fetch alert contacts and render them for display."""
    contacts = await client.get_alert_contacts()
    return format_contacts(contacts)


class Installer:
    """
    Orchestrates one install run.

    Every step either succeeds or raises an UptimebeatError. Nothing is
    rolled back: a monitor created before a later failure stays in place.
    """

    def __init__(
        self,
        config: InstallConfig,
        settings: Settings,
        client: UptimeRobotClient,
        crontab: CrontabManager,
        curl: str = "curl",
        sleep: SleepCallback = asyncio.sleep,
        ping_transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the Installer.

        Args:
            config: Validated inputs for this run
            settings: Ambient settings (delays, timeouts, cron schedule)
            client: Started UptimeRobot API client
            crontab: Crontab manager for the target user
            curl: Path of curl for the cron line
            sleep: Async sleep used before the verification ping
            ping_transport: Optional httpx transport for the ping (used by tests)
        """
        self.config = config
        self.settings = settings
        self.client = client
        self.crontab = crontab
        self.curl = curl
        self._sleep = sleep
        self._ping_transport = ping_transport

    async def install(self) -> InstallResult:
        """
        Create the monitor, verify it, and install the cron entry.

        Raises:
            UptimebeatError: On the first failing step
        """
        config = self.config
        config.require_complete()

        contacts = await self.client.get_alert_contacts()
        email_id = resolve_email_contact(contacts, config.email or "")
        app_id = resolve_app_contact(contacts, app_id=config.app_id, app_name=config.app_name)

        monitor_id = await self.client.new_monitor(
            friendly_name=config.friendly_name or "",
            interval=config.interval,
            grace=config.grace,
            alert_contacts=build_alert_contacts(email_id, app_id),
        )
        heartbeat_url = await self.client.get_heartbeat_url(monitor_id)
        logger.info(f"Heartbeat URL for monitor {monitor_id}: {heartbeat_url}")

        await self.verify(heartbeat_url)

        tag = heartbeat_tag(monitor_id)
        cron_line = build_cron_line(
            self.curl,
            heartbeat_url,
            tag,
            schedule=self.settings.cron_schedule,
            retries=self.settings.cron_retries,
            max_time=math.ceil(self.settings.ping_timeout),
        )
        self.crontab.upsert(cron_line, tag)

        return InstallResult(
            email_contact_id=email_id,
            app_contact_id=app_id,
            monitor_id=monitor_id,
            heartbeat_url=heartbeat_url,
            interval=config.interval,
            grace=config.grace,
            target_user=self.crontab.user,
            cron_line=cron_line,
        )

    async def verify(self, heartbeat_url: str) -> None:
        """
        Wait for the monitor to settle, then ping it once.

        Raises:
            PingError: If the ping fails or returns an error status
        """
        delay = self.settings.initial_ping_delay
        if delay > 0:
            logger.info(f"Waiting {delay:.0f}s before initial heartbeat ping")
            await self._sleep(delay)

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.ping_timeout,
                transport=self._ping_transport,
            ) as http_client:
                response = await http_client.get(heartbeat_url)
        except httpx.HTTPError as e:
            raise PingError(f"Initial heartbeat ping failed for {heartbeat_url}: {e}") from e

        if response.status_code >= 400:
            raise PingError(
                f"Initial heartbeat ping failed for {heartbeat_url} (HTTP {response.status_code})"
            )
        logger.info("Initial heartbeat ping succeeded")
