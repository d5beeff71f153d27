# ABOUTME: uptimebeat - install an UptimeRobot heartbeat monitor and its cron ping job
# ABOUTME: Exposes the API client, contact resolution, crontab helpers, and installer

from uptimebeat.api import AlertContact, UptimeRobotClient
from uptimebeat.config import InstallConfig, Settings
from uptimebeat.contacts import build_alert_contacts, resolve_app_contact, resolve_email_contact
from uptimebeat.crontab import CrontabManager, upsert_line
from uptimebeat.installer import Installer, InstallResult

__all__ = [
    "AlertContact",
    "UptimeRobotClient",
    "InstallConfig",
    "Settings",
    "build_alert_contacts",
    "resolve_app_contact",
    "resolve_email_contact",
    "CrontabManager",
    "upsert_line",
    "Installer",
    "InstallResult",
]
