"""Typed accessor over the registration property store.

All registration behaviour is driven by string properties in a
``PropertyStore``. ``RegistrationSettings`` is the only code that knows the
key names and defaults; actions receive a ``RegistrationConfig`` snapshot
instead of reading the store themselves.
"""

import logging

from herald.privacy_cache import PrivacyListCache
from herald.properties import PropertyStore
from herald.schemas.registration import RegistrationConfig, WelcomeMessageSpec

logger = logging.getLogger(__name__)

# --- Booleans ---
IM_NOTIFY_ENABLED = "im-notify-enabled"
EMAIL_NOTIFY_ENABLED = "email-notify-enabled"
WELCOME_ENABLED = "welcome-enabled"
GROUP_ENABLED = "group-enabled"
PRIVACY_LIST_ENABLED = "privacy-list-enabled"
WEB_ENABLED = "web-enabled"
CAPTCHA_ENABLED = "captcha-enabled"
CAPTCHA_NOSCRIPT = "captcha-noscript"

# --- Strings ---
IM_CONTACTS = "im-contacts"
EMAIL_CONTACTS = "email-contacts"
WELCOME_MESSAGE = "welcome-message"
WELCOME_MESSAGE_RAW = "welcome-message-raw"
WELCOME_MESSAGE_FROM = "welcome-message-from"
GROUP_NAME = "group-name"
PRIVACY_LIST_DOCUMENT = "privacy-list-document"
PRIVACY_LIST_NAME = "privacy-list-name"
HEADER_TEXT = "header-text"
CAPTCHA_PUBLIC_KEY = "captcha-public-key"
CAPTCHA_PRIVATE_KEY = "captcha-private-key"

# --- Numeric ---
AUTOMATIC_LOCKOUT_AFTER_SECONDS = "automatic-lockout-after-seconds"

# Written by the first release of the plugin; removed on start.
LEGACY_KEYS = ("registration.notification.contact", "registration.notification.enabled")

BOOLEAN_KEYS = (
    IM_NOTIFY_ENABLED,
    EMAIL_NOTIFY_ENABLED,
    WELCOME_ENABLED,
    GROUP_ENABLED,
    PRIVACY_LIST_ENABLED,
    WEB_ENABLED,
    CAPTCHA_ENABLED,
    CAPTCHA_NOSCRIPT,
)
STRING_KEYS = (
    IM_CONTACTS,
    EMAIL_CONTACTS,
    WELCOME_MESSAGE,
    WELCOME_MESSAGE_RAW,
    WELCOME_MESSAGE_FROM,
    GROUP_NAME,
    PRIVACY_LIST_DOCUMENT,
    PRIVACY_LIST_NAME,
    HEADER_TEXT,
    CAPTCHA_PUBLIC_KEY,
    CAPTCHA_PRIVATE_KEY,
)
NUMERIC_KEYS = (AUTOMATIC_LOCKOUT_AFTER_SECONDS,)
ALL_KEYS = BOOLEAN_KEYS + STRING_KEYS + NUMERIC_KEYS

DEFAULT_WELCOME_MESSAGE = "Welcome to the server!"
DEFAULT_HEADER_TEXT = "Web Sign-In"
SIGN_UP_PATH = "registration/sign-up.jsp"


class RegistrationSettings:
    """Read/write access to registration properties with typed defaults.

    Usage::

        settings = RegistrationSettings(store, privacy_cache=cache)
        settings.set_welcome_enabled(True)
        config = settings.snapshot()
    """

    def __init__(
        self,
        store: PropertyStore,
        *,
        privacy_cache: PrivacyListCache | None = None,
    ) -> None:
        self._store = store
        self._privacy_cache = privacy_cache

    @property
    def store(self) -> PropertyStore:
        return self._store

    # ------------------------------------------------------------------
    # Generic helpers
    # ------------------------------------------------------------------

    def get_boolean(self, key: str, default: bool = False) -> bool:
        value = self._store.get(key)
        if value is None:
            return default
        return value.strip().lower() == "true"

    def set_boolean(self, key: str, enabled: bool) -> None:
        self._store.set(key, "true" if enabled else "false")

    def get_string(self, key: str, default: str | None = None) -> str | None:
        value = self._store.get(key)
        return default if value is None else value

    def get_int(self, key: str, default: int) -> int:
        value = self._store.get(key)
        if value is None:
            return default
        try:
            return int(value.strip())
        except ValueError:
            logger.warning("Property %s is not a number (%r), using %d", key, value, default)
            return default

    def set_value(self, key: str, value: str) -> None:
        """Set a raw property value. Invalidates the privacy cache when needed."""
        self._store.set(key, value)
        if key == PRIVACY_LIST_DOCUMENT:
            self._invalidate_privacy_cache()

    def unset_value(self, key: str) -> None:
        self._store.delete(key)
        if key == PRIVACY_LIST_DOCUMENT:
            self._invalidate_privacy_cache()

    def delete_legacy_properties(self) -> None:
        for key in LEGACY_KEYS:
            self._store.delete(key)

    def _invalidate_privacy_cache(self) -> None:
        if self._privacy_cache is not None:
            self._privacy_cache.invalidate()

    # ------------------------------------------------------------------
    # Toggles
    # ------------------------------------------------------------------

    def im_notification_enabled(self) -> bool:
        return self.get_boolean(IM_NOTIFY_ENABLED)

    def set_im_notification_enabled(self, enabled: bool) -> None:
        self.set_boolean(IM_NOTIFY_ENABLED, enabled)

    def email_notification_enabled(self) -> bool:
        return self.get_boolean(EMAIL_NOTIFY_ENABLED)

    def set_email_notification_enabled(self, enabled: bool) -> None:
        self.set_boolean(EMAIL_NOTIFY_ENABLED, enabled)

    def welcome_enabled(self) -> bool:
        return self.get_boolean(WELCOME_ENABLED)

    def set_welcome_enabled(self, enabled: bool) -> None:
        self.set_boolean(WELCOME_ENABLED, enabled)

    def group_enabled(self) -> bool:
        return self.get_boolean(GROUP_ENABLED)

    def set_group_enabled(self, enabled: bool) -> None:
        self.set_boolean(GROUP_ENABLED, enabled)

    def privacy_list_enabled(self) -> bool:
        return self.get_boolean(PRIVACY_LIST_ENABLED)

    def set_privacy_list_enabled(self, enabled: bool) -> None:
        self.set_boolean(PRIVACY_LIST_ENABLED, enabled)

    def web_enabled(self) -> bool:
        return self.get_boolean(WEB_ENABLED)

    def set_web_enabled(self, enabled: bool) -> None:
        self.set_boolean(WEB_ENABLED, enabled)

    def captcha_enabled(self) -> bool:
        return self.get_boolean(CAPTCHA_ENABLED)

    def set_captcha_enabled(self, enabled: bool) -> None:
        self.set_boolean(CAPTCHA_ENABLED, enabled)

    def captcha_noscript(self) -> bool:
        return self.get_boolean(CAPTCHA_NOSCRIPT, default=True)

    def set_captcha_noscript(self, enabled: bool) -> None:
        self.set_boolean(CAPTCHA_NOSCRIPT, enabled)

    # ------------------------------------------------------------------
    # Welcome message
    # ------------------------------------------------------------------

    def welcome_message(self) -> str:
        return self.get_string(WELCOME_MESSAGE, DEFAULT_WELCOME_MESSAGE)

    def set_welcome_message(self, message: str) -> None:
        self._store.set(WELCOME_MESSAGE, message)

    def welcome_raw_message(self) -> str | None:
        return self.get_string(WELCOME_MESSAGE_RAW)

    def set_welcome_raw_message(self, document: str) -> None:
        self._store.set(WELCOME_MESSAGE_RAW, document)

    def welcome_message_from(self) -> str | None:
        return self.get_string(WELCOME_MESSAGE_FROM)

    def set_welcome_message_from(self, address: str) -> None:
        self._store.set(WELCOME_MESSAGE_FROM, address)

    def welcome_spec(self) -> WelcomeMessageSpec:
        raw = self.welcome_raw_message()
        sender = self.welcome_message_from()
        return WelcomeMessageSpec(
            body=self.welcome_message(),
            raw_document=raw or None,
            sender=sender or None,
        )

    # ------------------------------------------------------------------
    # Group and privacy list
    # ------------------------------------------------------------------

    def group_name(self) -> str | None:
        return self.get_string(GROUP_NAME)

    def set_group_name(self, name: str) -> None:
        self._store.set(GROUP_NAME, name)

    def privacy_list_document(self) -> str | None:
        return self.get_string(PRIVACY_LIST_DOCUMENT)

    def set_privacy_list_document(self, document: str) -> None:
        self.set_value(PRIVACY_LIST_DOCUMENT, document)

    def privacy_list_name(self) -> str | None:
        return self.get_string(PRIVACY_LIST_NAME)

    def set_privacy_list_name(self, name: str) -> None:
        self._store.set(PRIVACY_LIST_NAME, name)

    # ------------------------------------------------------------------
    # Lockout
    # ------------------------------------------------------------------

    def automatic_lockout_after(self) -> int:
        """Seconds after registration at which the account is disabled."""
        return self.get_int(AUTOMATIC_LOCKOUT_AFTER_SECONDS, -1)

    def set_automatic_lockout_after(self, seconds: int) -> None:
        self._store.set(AUTOMATIC_LOCKOUT_AFTER_SECONDS, str(seconds))

    def is_automatic_lockout_enabled(self) -> bool:
        return self.automatic_lockout_after() > 0

    # ------------------------------------------------------------------
    # Web sign-up page
    # ------------------------------------------------------------------

    def header_text(self) -> str:
        return self.get_string(HEADER_TEXT, DEFAULT_HEADER_TEXT)

    def set_header_text(self, text: str) -> None:
        self._store.set(HEADER_TEXT, text)

    def captcha_public_key(self) -> str | None:
        return self.get_string(CAPTCHA_PUBLIC_KEY)

    def set_captcha_public_key(self, key: str) -> None:
        self._store.set(CAPTCHA_PUBLIC_KEY, key)

    def captcha_private_key(self) -> str | None:
        return self.get_string(CAPTCHA_PRIVATE_KEY)

    def set_captcha_private_key(self, key: str) -> None:
        self._store.set(CAPTCHA_PRIVATE_KEY, key)

    @staticmethod
    def web_registration_url(domain: str, admin_port: int) -> str:
        return f"http://{domain}:{admin_port}/plugins/{SIGN_UP_PATH}"

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self) -> RegistrationConfig:
        """Read every registration property once into an immutable config."""
        return RegistrationConfig(
            im_notify_enabled=self.im_notification_enabled(),
            email_notify_enabled=self.email_notification_enabled(),
            welcome_enabled=self.welcome_enabled(),
            group_enabled=self.group_enabled(),
            privacy_list_enabled=self.privacy_list_enabled(),
            web_enabled=self.web_enabled(),
            captcha_enabled=self.captcha_enabled(),
            captcha_noscript=self.captcha_noscript(),
            welcome=self.welcome_spec(),
            group_name=self.group_name() or None,
            privacy_list_document=self.privacy_list_document() or None,
            privacy_list_name=self.privacy_list_name() or None,
            header_text=self.header_text(),
            captcha_public_key=self.captcha_public_key(),
            captcha_private_key=self.captcha_private_key(),
            automatic_lockout_after_seconds=self.automatic_lockout_after(),
        )
