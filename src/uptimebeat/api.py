# ABOUTME: Async client for the UptimeRobot v2 API using httpx
# ABOUTME: Lists alert contacts, creates heartbeat monitors, and reads heartbeat URLs

import json
import logging
import re
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError, field_validator

from uptimebeat.errors import ApiError, ResponseParseError

logger = logging.getLogger(__name__)

# UptimeRobot monitor type for heartbeat monitors
HEARTBEAT_MONITOR_TYPE = 5

HEARTBEAT_URL_PATTERN = re.compile(r"https?://heartbeat\.uptimerobot\.com/[A-Za-z0-9-]+")


class AlertContact(BaseModel):
    """An alert contact as returned by getAlertContacts."""

    id: str
    type: str = ""
    friendly_name: str = ""
    value: str = ""

    @field_validator("id", "type", mode="before")
    @classmethod
    def coerce_to_str(cls, v: Any) -> str:
        """The API returns numeric ids and types; compare them as strings."""
        return "" if v is None else str(v)

    @field_validator("friendly_name", "value", mode="before")
    @classmethod
    def null_to_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)


def _compact(payload: Any) -> str:
    """Render a response payload on one line for error messages."""
    try:
        return json.dumps(payload, separators=(",", ":"))
    except (TypeError, ValueError):
        return str(payload)


def _first_present(payload: dict[str, Any], *paths: tuple[str, ...]) -> Any:
    """Return the first non-empty value found along any of the key paths."""
    for path in paths:
        node: Any = payload
        for key in path:
            if not isinstance(node, dict) or key not in node:
                node = None
                break
            node = node[key]
        if node not in (None, ""):
            return node
    return None


def extract_heartbeat_url(text: str) -> str | None:
    """Pull the first heartbeat.uptimerobot.com URL out of a string."""
    match = HEARTBEAT_URL_PATTERN.search(text or "")
    return match.group(0) if match else None


class UptimeRobotClient:
    """
    Thin async wrapper over the UptimeRobot v2 form-encoded API.

    Every request is a POST carrying api_key and format=json. Responses
    whose stat/status is not "ok" raise ApiError.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.uptimerobot.com/v2",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: UptimeRobot main API key
            base_url: API root, without trailing slash
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        """Initialize async resources."""
        self._http_client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def stop(self) -> None:
        """Clean up async resources."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "UptimeRobotClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            raise RuntimeError("UptimeRobotClient not started")
        return self._http_client

    async def _call(self, endpoint: str, **params: str | int) -> dict[str, Any]:
        """POST to an API endpoint and return the decoded, verified payload."""
        url = f"{self.base_url}/{endpoint}"
        data = {"api_key": self.api_key, "format": "json"}
        data.update({key: str(value) for key, value in params.items()})

        logger.debug(f"POST {url} ({', '.join(sorted(params)) or 'no params'})")
        try:
            response = await self.http_client.post(url, data=data)
        except httpx.HTTPError as e:
            raise ApiError(f"API call {endpoint} failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise ApiError(
                f"API call {endpoint} returned non-JSON body "
                f"(HTTP {response.status_code}): {response.text[:200]}"
            ) from e

        if response.status_code >= 400 or not self.is_ok(payload):
            raise ApiError(f"API call failed: {_compact(payload)}")

        return payload

    @staticmethod
    def is_ok(payload: Any) -> bool:
        """Check the stat (or status) field of a response for "ok"."""
        if not isinstance(payload, dict):
            return False
        stat = payload.get("stat")
        if stat is None:
            stat = payload.get("status")
        return stat in ("ok", "OK")

    async def get_alert_contacts(self) -> list[AlertContact]:
        """Fetch all alert contacts configured on the account."""
        payload = await self._call("getAlertContacts")
        raw = _first_present(payload, ("alert_contacts",), ("data", "alert_contacts")) or []
        if not isinstance(raw, list):
            raise ResponseParseError(f"Could not read alert contacts from API response: {_compact(payload)}")
        try:
            contacts = [AlertContact.model_validate(item) for item in raw]
        except ValidationError as e:
            raise ResponseParseError(
                f"Could not read alert contacts from API response: {_compact(payload)}"
            ) from e
        logger.info(f"Fetched {len(contacts)} alert contacts")
        return contacts

    async def new_monitor(
        self,
        friendly_name: str,
        interval: int,
        grace: int,
        alert_contacts: str,
    ) -> str:
        """
        Create a heartbeat monitor.

        Args:
            friendly_name: Display name for the monitor
            interval: Expected ping interval in seconds
            grace: Grace period in seconds before alerting
            alert_contacts: Encoded alert_contacts parameter

        Returns:
            The new monitor's ID as a string

        Raises:
            ApiError: If the API rejects the request
            ResponseParseError: If no monitor ID is present in the response
        """
        payload = await self._call(
            "newMonitor",
            type=HEARTBEAT_MONITOR_TYPE,
            friendly_name=friendly_name,
            interval=interval,
            grace=grace,
            alert_contacts=alert_contacts,
        )
        monitor_id = _first_present(payload, ("monitor", "id"), ("data", "monitor", "id"), ("id",))
        if monitor_id is None:
            raise ResponseParseError(
                f"Could not read new monitor ID from API response: {_compact(payload)}"
            )
        logger.info(f"Created heartbeat monitor {monitor_id}")
        return str(monitor_id)

    async def get_heartbeat_url(self, monitor_id: str) -> str:
        """
        Look up the heartbeat URL of a monitor.

        Raises:
            ApiError: If the API rejects the request
            ResponseParseError: If the monitor has no heartbeat URL
        """
        payload = await self._call("getMonitors", monitors=monitor_id)
        monitors = _first_present(payload, ("monitors",), ("data", "monitors")) or []

        url = None
        if isinstance(monitors, list) and monitors and isinstance(monitors[0], dict):
            first = monitors[0]
            url = extract_heartbeat_url(str(first.get("heartbeat_url") or first.get("url") or ""))

        if not url:
            raise ResponseParseError(f"Could not determine the heartbeat URL for monitor {monitor_id}.")
        return url
