# ABOUTME: Alert contact resolution for new heartbeat monitors
# ABOUTME: First-match lookup by email value, contact ID, or friendly_name fragment

import logging

from uptimebeat.api import AlertContact
from uptimebeat.errors import ContactNotFoundError

logger = logging.getLogger(__name__)

# UptimeRobot alert_contacts entries are "<id>_<threshold>_<recurrence>"
CONTACT_SUFFIX = "_0_0"


def resolve_email_contact(contacts: list[AlertContact], email: str) -> str:
    """
    Find the ID of the email alert contact whose value is exactly ``email``.

    Raises:
        ContactNotFoundError: If no contact has that value
    """
    for contact in contacts:
        if contact.value == email:
            logger.info(f"Resolved email contact {email} to {contact.id}")
            return contact.id
    raise ContactNotFoundError(
        f"Email alert contact '{email}' not found. Create it in UptimeRobot first."
    )


def resolve_app_contact(
    contacts: list[AlertContact],
    app_id: str | None = None,
    app_name: str | None = None,
) -> str | None:
    """
    Resolve the optional additional (app/push) alert contact.

    Args:
        contacts: Contacts available on the account
        app_id: Exact contact ID to attach
        app_name: Case-insensitive fragment of a contact's friendly_name

    Returns:
        The contact ID to attach, or None if neither option was given

    Raises:
        ContactNotFoundError: If the requested contact does not exist
    """
    if app_id:
        if not any(contact.id == app_id for contact in contacts):
            raise ContactNotFoundError(f"--app-id '{app_id}' not found in alert contacts.")
        return app_id

    if app_name:
        needle = app_name.lower()
        for contact in contacts:
            if needle in contact.friendly_name.lower():
                logger.info(f"Matched --app-name '{app_name}' to contact {contact.id} ({contact.friendly_name})")
                return contact.id
        raise ContactNotFoundError(
            f"--app-name '{app_name}' did not match any alert contact friendly_name."
        )

    return None


def build_alert_contacts(email_id: str, app_id: str | None = None) -> str:
    """Encode the alert_contacts parameter for newMonitor."""
    entries = [f"{email_id}{CONTACT_SUFFIX}"]
    if app_id:
        entries.append(f"{app_id}{CONTACT_SUFFIX}")
    return "-".join(entries)


def format_contacts(contacts: list[AlertContact]) -> list[str]:
    """Render contacts as a heading plus one tab-separated line each."""
    lines = ["Alert Contacts (available):"]
    for contact in contacts:
        lines.append("\t".join([contact.id, contact.type, contact.friendly_name, contact.value]))
    return lines
