# ABOUTME: Tests for the Installer orchestration
# ABOUTME: Mocks the API client and crontab to check step order, ping handling, and summary output

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from uptimebeat.api import AlertContact, UptimeRobotClient
from uptimebeat.config import InstallConfig, Settings
from uptimebeat.crontab import CrontabManager
from uptimebeat.errors import ApiError, ConfigurationError, ContactNotFoundError, PingError
from uptimebeat.installer import Installer, InstallResult, list_contacts

HEARTBEAT_URL = "https://heartbeat.uptimerobot.com/m777-abc"


@pytest.fixture
def settings():
    return Settings(_env_file=None, initial_ping_delay=5.0, ping_timeout=10.0)


@pytest.fixture
def config():
    return InstallConfig(api_key="k", friendly_name="web-01", email="ops@example.com")


@pytest.fixture
def mock_client():
    client = MagicMock(spec=UptimeRobotClient)
    client.get_alert_contacts = AsyncMock(
        return_value=[
            AlertContact(id="100", type="2", friendly_name="Ops mail", value="ops@example.com"),
            AlertContact(id="200", type="11", friendly_name="Alice iPhone"),
        ]
    )
    client.new_monitor = AsyncMock(return_value="777")
    client.get_heartbeat_url = AsyncMock(return_value=HEARTBEAT_URL)
    return client


@pytest.fixture
def mock_crontab():
    crontab = MagicMock(spec=CrontabManager)
    crontab.user = "alice"
    return crontab


def ping_transport(status_code=200, calls: list | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status_code)

    return httpx.MockTransport(handler)


def make_installer(config, settings, client, crontab, transport=None, sleep=None):
    return Installer(
        config,
        settings,
        client,
        crontab=crontab,
        curl="/usr/bin/curl",
        sleep=sleep or AsyncMock(),
        ping_transport=transport or ping_transport(),
    )


class TestInstallResult:
    """Tests for the success summary."""

    def _result(self, app_contact_id=None):
        return InstallResult(
            email_contact_id="100",
            app_contact_id=app_contact_id,
            monitor_id="777",
            heartbeat_url=HEARTBEAT_URL,
            interval=60,
            grace=300,
            target_user="alice",
            cron_line="* * * * * curl",
        )

    def test_summary_email_only(self):
        assert self._result().summary_lines() == [
            "Attached contacts: email(100)",
            "Monitor created: 777",
            f"Heartbeat URL: {HEARTBEAT_URL}",
            "Interval (s): 60 | Grace (s): 300",
            "Cron installed for user: alice",
            "Heartbeat installed",
        ]

    def test_summary_with_app(self):
        assert self._result("200").summary_lines()[0] == "Attached contacts: email(100), app(200)"


@pytest.mark.asyncio
class TestInstall:
    """Tests for Installer.install."""

    async def test_happy_path(self, config, settings, mock_client, mock_crontab):
        calls: list[httpx.Request] = []
        sleep = AsyncMock()
        installer = make_installer(config, settings, mock_client, mock_crontab, ping_transport(200, calls), sleep)

        result = await installer.install()

        mock_client.new_monitor.assert_awaited_once_with(
            friendly_name="web-01",
            interval=60,
            grace=300,
            alert_contacts="100_0_0",
        )
        mock_client.get_heartbeat_url.assert_awaited_once_with("777")
        sleep.assert_awaited_once_with(5.0)
        assert [str(r.url) for r in calls] == [HEARTBEAT_URL]

        expected_tag = "# UptimeRobot Heartbeat (777)"
        expected_line = (
            f'* * * * * /usr/bin/curl -fsS --retry 2 --max-time 10 "{HEARTBEAT_URL}" '
            f">/dev/null 2>&1 {expected_tag}"
        )
        mock_crontab.upsert.assert_called_once_with(expected_line, expected_tag)

        assert result.monitor_id == "777"
        assert result.email_contact_id == "100"
        assert result.app_contact_id is None
        assert result.target_user == "alice"
        assert result.cron_line == expected_line

    async def test_attaches_app_contact_by_name(self, settings, mock_client, mock_crontab):
        config = InstallConfig(api_key="k", friendly_name="web-01", email="ops@example.com", app_name="iphone")
        installer = make_installer(config, settings, mock_client, mock_crontab)

        result = await installer.install()

        assert result.app_contact_id == "200"
        assert mock_client.new_monitor.call_args.kwargs["alert_contacts"] == "100_0_0-200_0_0"

    async def test_custom_interval_and_grace(self, settings, mock_client, mock_crontab):
        config = InstallConfig(api_key="k", friendly_name="w", email="ops@example.com", interval=120, grace=600)
        installer = make_installer(config, settings, mock_client, mock_crontab)

        result = await installer.install()

        assert mock_client.new_monitor.call_args.kwargs["interval"] == 120
        assert mock_client.new_monitor.call_args.kwargs["grace"] == 600
        assert result.summary_lines()[3] == "Interval (s): 120 | Grace (s): 600"

    async def test_missing_inputs_raise_before_any_call(self, settings, mock_client, mock_crontab):
        config = InstallConfig(api_key="k", friendly_name="w")
        installer = make_installer(config, settings, mock_client, mock_crontab)

        with pytest.raises(ConfigurationError):
            await installer.install()
        mock_client.get_alert_contacts.assert_not_awaited()

    async def test_unknown_email_creates_nothing(self, settings, mock_client, mock_crontab):
        config = InstallConfig(api_key="k", friendly_name="w", email="nobody@example.com")
        installer = make_installer(config, settings, mock_client, mock_crontab)

        with pytest.raises(ContactNotFoundError):
            await installer.install()
        mock_client.new_monitor.assert_not_awaited()
        mock_crontab.upsert.assert_not_called()

    async def test_unknown_app_id_creates_nothing(self, settings, mock_client, mock_crontab):
        config = InstallConfig(api_key="k", friendly_name="w", email="ops@example.com", app_id="999")
        installer = make_installer(config, settings, mock_client, mock_crontab)

        with pytest.raises(ContactNotFoundError):
            await installer.install()
        mock_client.new_monitor.assert_not_awaited()

    async def test_api_failure_propagates(self, config, settings, mock_client, mock_crontab):
        mock_client.new_monitor = AsyncMock(side_effect=ApiError("API call failed: {}"))
        installer = make_installer(config, settings, mock_client, mock_crontab)

        with pytest.raises(ApiError):
            await installer.install()
        mock_crontab.upsert.assert_not_called()

    async def test_failed_ping_skips_cron(self, config, settings, mock_client, mock_crontab):
        installer = make_installer(config, settings, mock_client, mock_crontab, ping_transport(404))

        with pytest.raises(PingError) as exc_info:
            await installer.install()
        assert HEARTBEAT_URL in str(exc_info.value)
        mock_crontab.upsert.assert_not_called()

    async def test_sub_second_ping_timeout_rounds_up_in_cron_line(self, config, mock_client, mock_crontab):
        """curl treats --max-time 0 as no limit, so fractions must round up."""
        settings = Settings(_env_file=None, initial_ping_delay=0, ping_timeout=0.5)
        installer = make_installer(config, settings, mock_client, mock_crontab)

        result = await installer.install()

        assert " --max-time 1 " in result.cron_line
        assert "--max-time 0" not in result.cron_line


@pytest.mark.asyncio
class TestVerify:
    """Tests for the verification ping."""

    async def test_transport_error_raises_ping_error(self, config, settings, mock_client, mock_crontab):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        installer = make_installer(config, settings, mock_client, mock_crontab, httpx.MockTransport(handler))

        with pytest.raises(PingError):
            await installer.verify(HEARTBEAT_URL)

    async def test_zero_delay_does_not_sleep(self, config, mock_client, mock_crontab):
        settings = Settings(_env_file=None, initial_ping_delay=0)
        sleep = AsyncMock()
        installer = make_installer(config, settings, mock_client, mock_crontab, sleep=sleep)

        await installer.verify(HEARTBEAT_URL)

        sleep.assert_not_awaited()


@pytest.mark.asyncio
class TestListContacts:
    """Tests for list_contacts."""

    async def test_lists_contacts_only(self, mock_client):
        lines = await list_contacts(mock_client)

        assert lines[0] == "Alert Contacts (available):"
        assert lines[1] == "100\t2\tOps mail\tops@example.com"
        mock_client.new_monitor.assert_not_awaited()
