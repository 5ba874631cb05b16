"""Tests for the registration settings accessor (herald/settings.py)."""

from herald.privacy_cache import PrivacyListCache
from herald.properties import InMemoryPropertyStore
from herald.settings import (
    AUTOMATIC_LOCKOUT_AFTER_SECONDS,
    DEFAULT_HEADER_TEXT,
    DEFAULT_WELCOME_MESSAGE,
    GROUP_NAME,
    IM_NOTIFY_ENABLED,
    LEGACY_KEYS,
    PRIVACY_LIST_DOCUMENT,
    WELCOME_MESSAGE_RAW,
    RegistrationSettings,
)

PRIVACY_XML = '<list name="default"><item type="jid" value="spam@evil.com" action="deny" order="1"/></list>'


class TestDefaults:
    def test_snapshot_defaults(self, store):
        config = RegistrationSettings(store).snapshot()

        assert config.im_notify_enabled is False
        assert config.email_notify_enabled is False
        assert config.welcome_enabled is False
        assert config.group_enabled is False
        assert config.privacy_list_enabled is False
        assert config.web_enabled is False
        assert config.captcha_enabled is False
        assert config.captcha_noscript is True
        assert config.welcome.body == DEFAULT_WELCOME_MESSAGE
        assert config.welcome.raw_document is None
        assert config.welcome.sender is None
        assert config.header_text == DEFAULT_HEADER_TEXT
        assert config.automatic_lockout_after_seconds == -1
        assert config.automatic_lockout_enabled is False

    def test_no_properties_written_by_reads(self, store):
        RegistrationSettings(store).snapshot()
        assert list(store.items()) == []


class TestBooleans:
    def test_setter_writes_true_false(self, store):
        settings = RegistrationSettings(store)
        settings.set_im_notification_enabled(True)
        assert store.get(IM_NOTIFY_ENABLED) == "true"
        settings.set_im_notification_enabled(False)
        assert store.get(IM_NOTIFY_ENABLED) == "false"

    def test_reads_case_insensitively(self):
        store = InMemoryPropertyStore({IM_NOTIFY_ENABLED: "TRUE"})
        assert RegistrationSettings(store).im_notification_enabled() is True

    def test_garbage_is_false(self):
        store = InMemoryPropertyStore({IM_NOTIFY_ENABLED: "yes please"})
        assert RegistrationSettings(store).im_notification_enabled() is False


class TestLockout:
    def test_positive_delay_enables(self, store):
        settings = RegistrationSettings(store)
        settings.set_automatic_lockout_after(60)
        assert store.get(AUTOMATIC_LOCKOUT_AFTER_SECONDS) == "60"
        assert settings.is_automatic_lockout_enabled() is True
        assert settings.snapshot().automatic_lockout_enabled is True

    def test_zero_disables(self, store):
        settings = RegistrationSettings(store)
        settings.set_automatic_lockout_after(0)
        assert settings.is_automatic_lockout_enabled() is False

    def test_unparseable_falls_back_to_disabled(self):
        store = InMemoryPropertyStore({AUTOMATIC_LOCKOUT_AFTER_SECONDS: "soon"})
        settings = RegistrationSettings(store)
        assert settings.automatic_lockout_after() == -1
        assert settings.is_automatic_lockout_enabled() is False


class TestWelcomeSpec:
    def test_empty_raw_document_treated_as_unset(self):
        store = InMemoryPropertyStore({WELCOME_MESSAGE_RAW: ""})
        assert RegistrationSettings(store).welcome_spec().raw_document is None

    def test_sender_override(self, store):
        settings = RegistrationSettings(store)
        settings.set_welcome_message("Hello there")
        settings.set_welcome_message_from("welcome@example.com")
        spec = settings.welcome_spec()
        assert spec.body == "Hello there"
        assert spec.sender == "welcome@example.com"


class TestPrivacyCacheInvalidation:
    def test_setting_document_invalidates_cache(self, store):
        cache = PrivacyListCache()
        settings = RegistrationSettings(store, privacy_cache=cache)
        settings.set_privacy_list_document(PRIVACY_XML)
        cache.get(settings.privacy_list_document(), "default")
        assert cache.is_set is True

        settings.set_privacy_list_document(PRIVACY_XML.replace("spam", "junk"))

        assert cache.is_set is False
        assert store.get(PRIVACY_LIST_DOCUMENT).startswith("<list")

    def test_raw_set_and_unset_invalidate(self, store):
        cache = PrivacyListCache()
        settings = RegistrationSettings(store, privacy_cache=cache)
        generation = cache.generation

        settings.set_value(PRIVACY_LIST_DOCUMENT, PRIVACY_XML)
        settings.unset_value(PRIVACY_LIST_DOCUMENT)

        assert cache.generation == generation + 2

    def test_other_keys_do_not_invalidate(self, store):
        cache = PrivacyListCache()
        settings = RegistrationSettings(store, privacy_cache=cache)
        generation = cache.generation
        settings.set_value(GROUP_NAME, "newcomers")
        assert cache.generation == generation


class TestMisc:
    def test_delete_legacy_properties(self):
        store = InMemoryPropertyStore({key: "x" for key in LEGACY_KEYS} | {GROUP_NAME: "g"})
        RegistrationSettings(store).delete_legacy_properties()
        assert dict(store.items()) == {GROUP_NAME: "g"}

    def test_web_registration_url(self):
        url = RegistrationSettings.web_registration_url("example.com", 9090)
        assert url == "http://example.com:9090/plugins/registration/sign-up.jsp"

    def test_header_and_captcha_keys(self, store):
        settings = RegistrationSettings(store)
        settings.set_header_text("Join us")
        settings.set_captcha_public_key("pub")
        settings.set_captcha_private_key("priv")
        settings.set_captcha_noscript(False)
        config = settings.snapshot()
        assert config.header_text == "Join us"
        assert config.captcha_public_key == "pub"
        assert config.captcha_private_key == "priv"
        assert config.captcha_noscript is False
