"""Registration actions.

Each action performs one side effect for a newly created account and
returns an ``ActionOutcome``. Actions raise ``HeraldError`` subclasses (or
whatever a collaborator raises) on failure; the pipeline catches them.
"""

import logging
from datetime import timedelta

from herald.contacts import ContactList
from herald.errors import ConfigurationMissingError, TransportError
from herald.integrations.collaborators import (
    EmailTransport,
    GroupStore,
    LockoutStore,
    MessageRouter,
    PrivacyListStore,
)
from herald.privacy_cache import PrivacyListCache
from herald.schemas.registration import (
    AccountCreated,
    ActionName,
    ActionOutcome,
    ActionStatus,
    OutboundMessage,
    PendingLockout,
    WelcomeMessageSpec,
)
from herald.settings import GROUP_NAME, PRIVACY_LIST_DOCUMENT, PRIVACY_LIST_NAME
from herald.templates import expand_welcome

logger = logging.getLogger(__name__)

NOTIFICATION_SUBJECT = "Registration Notification"
EMAIL_SUBJECT = "User Registration"


def account_address(username: str, domain: str) -> str:
    return f"{username}@{domain}"


def notification_body(username: str) -> str:
    return f" A new user with the username '{username}' just registered."


def notify_im_contacts(
    event: AccountCreated,
    *,
    contacts: ContactList,
    router: MessageRouter,
    domain: str,
) -> ActionOutcome:
    """Send one IM to every IM contact, in sorted order."""
    recipients = contacts.list()
    if not recipients:
        return ActionOutcome(
            action=ActionName.IM_NOTIFY,
            status=ActionStatus.SKIPPED,
            detail="no IM contacts configured",
        )

    body = notification_body(event.username)
    for contact in recipients:
        router.route(
            OutboundMessage(
                to=account_address(contact, domain),
                sender=domain,
                subject=NOTIFICATION_SUBJECT,
                body=body,
            )
        )
    logger.debug("Sent IM registration notice for %s to %d contact(s)", event.username, len(recipients))
    return ActionOutcome(
        action=ActionName.IM_NOTIFY,
        status=ActionStatus.SUCCEEDED,
        delivered=len(recipients),
    )


def notify_email_contacts(
    event: AccountCreated,
    *,
    contacts: ContactList,
    transport: EmailTransport,
    domain: str,
    from_name: str,
) -> ActionOutcome:
    """Email every email contact, in insertion order.

    A failed send is logged and counted; the remaining recipients are still
    attempted.
    """
    recipients = contacts.raw()
    if not recipients:
        return ActionOutcome(
            action=ActionName.EMAIL_NOTIFY,
            status=ActionStatus.SKIPPED,
            detail="no email contacts configured",
        )

    body = notification_body(event.username)
    reply_address = f"no_reply@{domain}"
    delivered = 0
    failures = 0
    for to_address in recipients:
        try:
            transport.send(None, to_address, from_name, reply_address, EMAIL_SUBJECT, body, None)
            delivered += 1
        except TransportError as exc:
            failures += 1
            logger.error("Registration email for %s to %s failed: %s", event.username, to_address, exc)
        except Exception:
            failures += 1
            logger.exception("Registration email for %s to %s failed", event.username, to_address)

    status = ActionStatus.FAILED if failures and not delivered else ActionStatus.SUCCEEDED
    return ActionOutcome(
        action=ActionName.EMAIL_NOTIFY,
        status=status,
        delivered=delivered,
        failures=failures,
        detail=f"{failures} of {len(recipients)} send(s) failed" if failures else "",
    )


def send_welcome_message(
    event: AccountCreated,
    *,
    spec: WelcomeMessageSpec,
    router: MessageRouter,
    domain: str,
) -> ActionOutcome:
    """Route the expanded welcome template to the new account.

    Raises:
        TemplateParseError: Before anything is routed, if the raw template is
            malformed.
    """
    messages = expand_welcome(account_address(event.username, domain), spec, domain)
    for message in messages:
        router.route(message)
    return ActionOutcome(
        action=ActionName.WELCOME_MESSAGE,
        status=ActionStatus.SUCCEEDED,
        delivered=len(messages),
    )


def enroll_in_group(
    event: AccountCreated,
    *,
    group_name: str | None,
    groups: GroupStore,
    domain: str,
) -> ActionOutcome:
    """Add the new account to the configured group.

    Raises:
        ConfigurationMissingError: If no group name is configured.
        GroupNotFoundError: From the group store, if the group does not exist.
    """
    if not group_name:
        raise ConfigurationMissingError(GROUP_NAME)

    group = groups.get_group(group_name)
    group.members.add(account_address(event.username, domain))
    return ActionOutcome(
        action=ActionName.GROUP_ENROLLMENT,
        status=ActionStatus.SUCCEEDED,
        delivered=1,
        detail=group_name,
    )


def assign_privacy_list(
    event: AccountCreated,
    *,
    document: str | None,
    name: str | None,
    cache: PrivacyListCache,
    privacy_lists: PrivacyListStore,
) -> ActionOutcome:
    """Create the default privacy list for the new account from the template.

    An unparseable template is skipped, not treated as a failure.

    Raises:
        ConfigurationMissingError: If the template or its name is not set.
    """
    if not document:
        raise ConfigurationMissingError(PRIVACY_LIST_DOCUMENT)
    if not name:
        raise ConfigurationMissingError(PRIVACY_LIST_NAME)

    template = cache.get(document, name)
    if template is None:
        return ActionOutcome(
            action=ActionName.PRIVACY_LIST,
            status=ActionStatus.SKIPPED,
            detail="privacy list template could not be parsed",
        )

    privacy_list = privacy_lists.create_list(event.username, name, template)
    privacy_lists.set_default(event.username, privacy_list)
    logger.debug("Assigned default privacy list %r to %s", name, event.username)
    return ActionOutcome(
        action=ActionName.PRIVACY_LIST,
        status=ActionStatus.SUCCEEDED,
        delivered=1,
        detail=name,
    )


def schedule_lockout(
    event: AccountCreated,
    *,
    delay_seconds: int,
    lockouts: LockoutStore,
) -> ActionOutcome:
    """Disable the account *delay_seconds* after it was created, with no end."""
    if delay_seconds <= 0:
        return ActionOutcome(
            action=ActionName.AUTOMATIC_LOCKOUT,
            status=ActionStatus.SKIPPED,
            detail="lockout delay is not positive",
        )

    pending = PendingLockout(
        username=event.username,
        start_time=event.created_at + timedelta(seconds=delay_seconds),
    )
    lockouts.disable(pending.username, pending.start_time, pending.end_time)
    logger.info("Scheduled lockout of %s at %s", pending.username, pending.start_time.isoformat())
    return ActionOutcome(
        action=ActionName.AUTOMATIC_LOCKOUT,
        status=ActionStatus.SUCCEEDED,
        delivered=1,
        detail=pending.start_time.isoformat(),
    )
