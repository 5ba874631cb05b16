"""Registration event pipeline.

Runs the enabled registration actions for each new account, in a fixed
order, and isolates failures so one broken action never blocks the rest.
The pipeline is a terminal event consumer: it never raises to the event
source.
"""

import logging
from collections.abc import Callable
from typing import Any

from herald.audit.registration_logger import RegistrationAuditLog
from herald.contacts import ContactBook
from herald.errors import HeraldError
from herald.events import AccountEventDispatcher
from herald.integrations.collaborators import (
    EmailTransport,
    GroupStore,
    LockoutStore,
    MessageRouter,
    PrivacyListStore,
)
from herald.orchestrator import actions
from herald.privacy_cache import PrivacyListCache
from herald.properties import PropertyStore
from herald.schemas.registration import (
    AccountCreated,
    ActionName,
    ActionOutcome,
    ActionStatus,
    RegistrationConfig,
    RegistrationResult,
)
from herald.settings import RegistrationSettings

logger = logging.getLogger(__name__)

ACTION_ORDER = (
    ActionName.IM_NOTIFY,
    ActionName.EMAIL_NOTIFY,
    ActionName.WELCOME_MESSAGE,
    ActionName.GROUP_ENROLLMENT,
    ActionName.PRIVACY_LIST,
    ActionName.AUTOMATIC_LOCKOUT,
)


class RegistrationPipeline:
    """Reacts to account-created events with the configured side effects.

    Usage::

        pipeline = RegistrationPipeline.from_store(
            store,
            router=router,
            email_transport=transport,
            groups=groups,
            privacy_lists=privacy_lists,
            lockouts=lockouts,
            domain="example.com",
        )
        pipeline.start(dispatcher)
        ...
        pipeline.stop()
    """

    def __init__(
        self,
        *,
        settings: RegistrationSettings,
        contacts: ContactBook,
        privacy_cache: PrivacyListCache,
        router: MessageRouter,
        email_transport: EmailTransport,
        groups: GroupStore,
        privacy_lists: PrivacyListStore,
        lockouts: LockoutStore,
        domain: str,
        email_from_name: str = "Herald",
        audit_log: RegistrationAuditLog | None = None,
    ) -> None:
        self._settings = settings
        self._contacts = contacts
        self._privacy_cache = privacy_cache
        self._router = router
        self._email_transport = email_transport
        self._groups = groups
        self._privacy_lists = privacy_lists
        self._lockouts = lockouts
        self._domain = domain
        self._email_from_name = email_from_name
        self._audit_log = audit_log
        self._dispatcher: AccountEventDispatcher | None = None

    @classmethod
    def from_store(
        cls,
        store: PropertyStore,
        **kwargs: Any,
    ) -> "RegistrationPipeline":
        """Wire settings, contact lists and privacy cache over one store."""
        cache = PrivacyListCache()
        return cls(
            settings=RegistrationSettings(store, privacy_cache=cache),
            contacts=ContactBook.load(store),
            privacy_cache=cache,
            **kwargs,
        )

    @property
    def settings(self) -> RegistrationSettings:
        return self._settings

    @property
    def contacts(self) -> ContactBook:
        return self._contacts

    @property
    def privacy_cache(self) -> PrivacyListCache:
        return self._privacy_cache

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, dispatcher: AccountEventDispatcher) -> None:
        """Subscribe to account events."""
        self._settings.delete_legacy_properties()
        dispatcher.add_listener(self)
        self._dispatcher = dispatcher
        logger.info("Registration pipeline started for domain %s", self._domain)

    def stop(self) -> None:
        """Unsubscribe and drop cached state."""
        if self._dispatcher is not None:
            self._dispatcher.remove_listener(self)
            self._dispatcher = None
        self._privacy_cache.clear()
        logger.info("Registration pipeline stopped")

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def account_created(self, username: str, attributes: dict[str, Any]) -> RegistrationResult:
        """Handle an account-created event from the dispatcher."""
        return self.handle_created(AccountCreated(username=username, attributes=attributes))

    def handle_created(self, event: AccountCreated) -> RegistrationResult:
        """Run every enabled action for the new account. Never raises."""
        logger.debug("Registration pipeline: handling new account %s", event.username)
        result = RegistrationResult(username=event.username)

        try:
            config = self._settings.snapshot()
        except Exception:
            logger.exception("Unable to read registration settings for %s", event.username)
            return result

        for name in ACTION_ORDER:
            enabled, run = self._step(name, event, config)
            if not enabled:
                result.outcomes.append(
                    ActionOutcome(action=name, status=ActionStatus.SKIPPED, detail="disabled")
                )
                continue
            result.outcomes.append(self._run_action(name, event.username, run))

        failed = result.failed_actions
        if failed:
            logger.warning(
                "Registration of %s finished with %d failed action(s): %s",
                event.username,
                len(failed),
                ", ".join(failed),
            )

        if self._audit_log is not None:
            try:
                self._audit_log.log_result(event.created_at, result)
            except Exception:
                logger.exception("Unable to write registration audit entry for %s", event.username)

        return result

    def account_deleting(self, username: str, attributes: dict[str, Any]) -> None:
        pass

    def account_modified(self, username: str, attributes: dict[str, Any]) -> None:
        pass

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _run_action(
        name: ActionName,
        username: str,
        run: Callable[[], ActionOutcome],
    ) -> ActionOutcome:
        try:
            return run()
        except HeraldError as exc:
            logger.error("Registration action %s failed for %s: %s", name, username, exc)
            return ActionOutcome(action=name, status=ActionStatus.FAILED, detail=str(exc))
        except Exception as exc:
            logger.exception("Registration action %s failed for %s", name, username)
            return ActionOutcome(action=name, status=ActionStatus.FAILED, detail=repr(exc))

    def _step(
        self,
        name: ActionName,
        event: AccountCreated,
        config: RegistrationConfig,
    ) -> tuple[bool, Callable[[], ActionOutcome]]:
        """Return (enabled, runner) for one action."""
        if name == ActionName.IM_NOTIFY:
            return config.im_notify_enabled, lambda: actions.notify_im_contacts(
                event,
                contacts=self._contacts.im,
                router=self._router,
                domain=self._domain,
            )
        if name == ActionName.EMAIL_NOTIFY:
            return config.email_notify_enabled, lambda: actions.notify_email_contacts(
                event,
                contacts=self._contacts.email,
                transport=self._email_transport,
                domain=self._domain,
                from_name=self._email_from_name,
            )
        if name == ActionName.WELCOME_MESSAGE:
            return config.welcome_enabled, lambda: actions.send_welcome_message(
                event,
                spec=config.welcome,
                router=self._router,
                domain=self._domain,
            )
        if name == ActionName.GROUP_ENROLLMENT:
            return config.group_enabled, lambda: actions.enroll_in_group(
                event,
                group_name=config.group_name,
                groups=self._groups,
                domain=self._domain,
            )
        if name == ActionName.PRIVACY_LIST:
            return config.privacy_list_enabled, lambda: actions.assign_privacy_list(
                event,
                document=config.privacy_list_document,
                name=config.privacy_list_name,
                cache=self._privacy_cache,
                privacy_lists=self._privacy_lists,
            )
        if name == ActionName.AUTOMATIC_LOCKOUT:
            return config.automatic_lockout_enabled, lambda: actions.schedule_lockout(
                event,
                delay_seconds=config.automatic_lockout_after_seconds,
                lockouts=self._lockouts,
            )
        raise ValueError(f"Unknown registration action: {name}")


def build_pipeline(
    *,
    router: MessageRouter,
    groups: GroupStore,
    privacy_lists: PrivacyListStore,
    lockouts: LockoutStore,
    email_transport: EmailTransport | None = None,
) -> RegistrationPipeline:
    """Build a pipeline from process settings (herald.config).

    The property store, audit log, server domain and, unless one is passed
    in, the SMTP transport all come from configuration. The host supplies
    its own router and stores.
    """
    from herald import config
    from herald.integrations.smtp import SmtpEmailTransport
    from herald.properties import JsonPropertyStore

    if email_transport is None:
        email_transport = SmtpEmailTransport(
            config.SMTP_HOST,
            config.SMTP_PORT,
            username=config.SMTP_USERNAME or None,
            password=config.SMTP_PASSWORD or None,
            starttls=config.SMTP_STARTTLS,
            default_sender=config.SMTP_DEFAULT_SENDER,
        )

    return RegistrationPipeline.from_store(
        JsonPropertyStore.load(config.PROPERTIES_PATH),
        router=router,
        email_transport=email_transport,
        groups=groups,
        privacy_lists=privacy_lists,
        lockouts=lockouts,
        domain=config.SERVER_DOMAIN,
        email_from_name=config.EMAIL_FROM_NAME,
        audit_log=RegistrationAuditLog(config.AUDIT_LOG_PATH),
    )
