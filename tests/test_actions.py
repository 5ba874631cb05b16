"""Tests for the individual registration actions (herald/orchestrator/actions.py).

Collaborators are MagicMocks; each test checks the side effect an action
asks for and the outcome it reports.
"""

from datetime import timedelta
from unittest.mock import MagicMock, call

import pytest

from herald.contacts import ContactBook
from herald.errors import (
    ConfigurationMissingError,
    GroupNotFoundError,
    TemplateParseError,
    TransportError,
)
from herald.orchestrator.actions import (
    EMAIL_SUBJECT,
    NOTIFICATION_SUBJECT,
    assign_privacy_list,
    enroll_in_group,
    notify_email_contacts,
    notify_im_contacts,
    schedule_lockout,
    send_welcome_message,
)
from herald.privacy_cache import PrivacyListCache
from herald.schemas.registration import AccountCreated, ActionName, ActionStatus, WelcomeMessageSpec

DOMAIN = "example.com"
PRIVACY_XML = '<list><item type="jid" value="spam@evil.com" action="deny" order="1"/></list>'


@pytest.fixture
def event(created_at):
    return AccountCreated(username="alice", created_at=created_at)


@pytest.fixture
def book(store):
    return ContactBook.load(store)


# --- IM notify ---


class TestNotifyIm:
    def test_one_message_per_contact_sorted(self, event, book):
        for name in ("carol", "bob"):
            book.im.add(name)
        router = MagicMock()

        outcome = notify_im_contacts(event, contacts=book.im, router=router, domain=DOMAIN)

        routed = [c.args[0] for c in router.route.call_args_list]
        assert [m.to for m in routed] == ["bob@example.com", "carol@example.com"]
        assert all(m.subject == NOTIFICATION_SUBJECT for m in routed)
        assert all(m.sender == DOMAIN for m in routed)
        assert "'alice'" in routed[0].body
        assert outcome.status == ActionStatus.SUCCEEDED
        assert outcome.delivered == 2

    def test_no_contacts_skipped(self, event, book):
        router = MagicMock()
        outcome = notify_im_contacts(event, contacts=book.im, router=router, domain=DOMAIN)
        assert outcome.status == ActionStatus.SKIPPED
        router.route.assert_not_called()


# --- Email notify ---


class TestNotifyEmail:
    def test_sends_in_insertion_order(self, event, book):
        book.email.add("z@example.com")
        book.email.add("a@example.com")
        transport = MagicMock()

        outcome = notify_email_contacts(
            event, contacts=book.email, transport=transport, domain=DOMAIN, from_name="Herald"
        )

        recipients = [c.args[1] for c in transport.send.call_args_list]
        assert recipients == ["z@example.com", "a@example.com"]
        first = transport.send.call_args_list[0]
        assert first == call(
            None,
            "z@example.com",
            "Herald",
            "no_reply@example.com",
            EMAIL_SUBJECT,
            " A new user with the username 'alice' just registered.",
            None,
        )
        assert outcome.status == ActionStatus.SUCCEEDED
        assert outcome.delivered == 2

    def test_failure_does_not_stop_other_recipients(self, event, book, caplog):
        for address in ("a@example.com", "b@example.com", "c@example.com"):
            book.email.add(address)
        transport = MagicMock()
        transport.send.side_effect = [None, TransportError("relay down"), None]

        outcome = notify_email_contacts(
            event, contacts=book.email, transport=transport, domain=DOMAIN, from_name="Herald"
        )

        assert transport.send.call_count == 3
        assert outcome.status == ActionStatus.SUCCEEDED
        assert outcome.delivered == 2
        assert outcome.failures == 1
        assert "relay down" in caplog.text

    def test_unexpected_error_also_isolated(self, event, book):
        book.email.add("a@example.com")
        book.email.add("b@example.com")
        transport = MagicMock()
        transport.send.side_effect = [RuntimeError("boom"), None]

        outcome = notify_email_contacts(
            event, contacts=book.email, transport=transport, domain=DOMAIN, from_name="Herald"
        )
        assert outcome.delivered == 1
        assert outcome.failures == 1

    def test_all_failed_reports_failed(self, event, book):
        book.email.add("a@example.com")
        transport = MagicMock()
        transport.send.side_effect = TransportError("nope")

        outcome = notify_email_contacts(
            event, contacts=book.email, transport=transport, domain=DOMAIN, from_name="Herald"
        )
        assert outcome.status == ActionStatus.FAILED


# --- Welcome ---


class TestWelcome:
    def test_plain_welcome(self, event):
        router = MagicMock()
        outcome = send_welcome_message(
            event, spec=WelcomeMessageSpec(body="Hi!"), router=router, domain=DOMAIN
        )
        msg = router.route.call_args.args[0]
        assert msg.to == "alice@example.com"
        assert msg.body == "Hi!"
        assert outcome.delivered == 1

    def test_malformed_routes_nothing(self, event):
        router = MagicMock()
        spec = WelcomeMessageSpec(body="Hi!", raw_document="<messages><message></messages>")
        with pytest.raises(TemplateParseError):
            send_welcome_message(event, spec=spec, router=router, domain=DOMAIN)
        router.route.assert_not_called()


# --- Group ---


class TestGroup:
    def test_adds_member(self, event, group):
        groups = MagicMock()
        groups.get_group.return_value = group

        outcome = enroll_in_group(event, group_name="newcomers", groups=groups, domain=DOMAIN)

        groups.get_group.assert_called_once_with("newcomers")
        assert group.members == {"alice@example.com"}
        assert outcome.status == ActionStatus.SUCCEEDED

    def test_missing_group_name(self, event):
        with pytest.raises(ConfigurationMissingError):
            enroll_in_group(event, group_name=None, groups=MagicMock(), domain=DOMAIN)

    def test_group_not_found_propagates(self, event):
        groups = MagicMock()
        groups.get_group.side_effect = GroupNotFoundError("ghosts")
        with pytest.raises(GroupNotFoundError) as exc_info:
            enroll_in_group(event, group_name="ghosts", groups=groups, domain=DOMAIN)
        assert exc_info.value.group_name == "ghosts"
        groups.get_group.assert_called_once_with("ghosts")


# --- Privacy list ---


class TestPrivacyList:
    def test_creates_and_sets_default(self, event):
        privacy_lists = MagicMock()
        outcome = assign_privacy_list(
            event,
            document=PRIVACY_XML,
            name="default",
            cache=PrivacyListCache(),
            privacy_lists=privacy_lists,
        )

        owner, name, template = privacy_lists.create_list.call_args.args
        assert owner == "alice"
        assert name == "default"
        assert template.tag == "list"
        privacy_lists.set_default.assert_called_once_with(
            "alice", privacy_lists.create_list.return_value
        )
        assert outcome.status == ActionStatus.SUCCEEDED

    def test_unparseable_template_skipped(self, event):
        privacy_lists = MagicMock()
        outcome = assign_privacy_list(
            event,
            document="<list>",
            name="default",
            cache=PrivacyListCache(),
            privacy_lists=privacy_lists,
        )
        assert outcome.status == ActionStatus.SKIPPED
        privacy_lists.create_list.assert_not_called()

    def test_missing_name(self, event):
        with pytest.raises(ConfigurationMissingError, match="privacy-list-name"):
            assign_privacy_list(
                event,
                document=PRIVACY_XML,
                name=None,
                cache=PrivacyListCache(),
                privacy_lists=MagicMock(),
            )

    def test_missing_document(self, event):
        with pytest.raises(ConfigurationMissingError, match="privacy-list-document"):
            assign_privacy_list(
                event,
                document=None,
                name="default",
                cache=PrivacyListCache(),
                privacy_lists=MagicMock(),
            )


# --- Lockout ---


class TestLockout:
    def test_schedules_after_delay(self, event, created_at):
        lockouts = MagicMock()
        outcome = schedule_lockout(event, delay_seconds=60, lockouts=lockouts)

        lockouts.disable.assert_called_once_with("alice", created_at + timedelta(seconds=60), None)
        assert outcome.action == ActionName.AUTOMATIC_LOCKOUT
        assert outcome.status == ActionStatus.SUCCEEDED

    @pytest.mark.parametrize("delay", [0, -1])
    def test_non_positive_delay_does_nothing(self, event, delay):
        lockouts = MagicMock()
        outcome = schedule_lockout(event, delay_seconds=delay, lockouts=lockouts)
        lockouts.disable.assert_not_called()
        assert outcome.status == ActionStatus.SKIPPED
