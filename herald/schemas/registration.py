"""Schemas for the registration event pipeline.

Covers the full lifecycle:
  account created event -> config snapshot -> actions -> result -> audit log
"""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# --- Events ---


class AccountCreated(BaseModel):
    """A new account has been created in the identity store."""

    username: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


# --- Config snapshot ---


class WelcomeMessageSpec(BaseModel):
    """Template for the post-registration message."""

    model_config = ConfigDict(frozen=True)

    body: str
    raw_document: str | None = None
    sender: str | None = None  # overrides the server address when set


class RegistrationConfig(BaseModel):
    """Immutable view of the registration settings, taken once per event."""

    model_config = ConfigDict(frozen=True)

    im_notify_enabled: bool = False
    email_notify_enabled: bool = False
    welcome_enabled: bool = False
    group_enabled: bool = False
    privacy_list_enabled: bool = False
    web_enabled: bool = False
    captcha_enabled: bool = False
    captcha_noscript: bool = True

    welcome: WelcomeMessageSpec
    group_name: str | None = None
    privacy_list_document: str | None = None
    privacy_list_name: str | None = None
    header_text: str = "Web Sign-In"
    captcha_public_key: str | None = None
    captcha_private_key: str | None = None
    automatic_lockout_after_seconds: int = -1

    @property
    def automatic_lockout_enabled(self) -> bool:
        return self.automatic_lockout_after_seconds > 0


# --- Outbound data ---


class OutboundMessage(BaseModel):
    """A message ready to hand to the message router."""

    to: str
    sender: str
    subject: str | None = None
    body: str | None = None
    message_type: str = "normal"
    stanza: str | None = None  # serialized XML when expanded from a raw template


class PendingLockout(BaseModel):
    """A scheduled disable time for one account."""

    username: str
    start_time: datetime
    end_time: datetime | None = None


# --- Results ---


class ActionName(StrEnum):
    """Registration actions, in the order the pipeline runs them."""

    IM_NOTIFY = "im_notify"
    EMAIL_NOTIFY = "email_notify"
    WELCOME_MESSAGE = "welcome_message"
    GROUP_ENROLLMENT = "group_enrollment"
    PRIVACY_LIST = "privacy_list"
    AUTOMATIC_LOCKOUT = "automatic_lockout"


class ActionStatus(StrEnum):
    """Outcome of one action for one registration."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"  # disabled, or nothing to do
    FAILED = "failed"


class ActionOutcome(BaseModel):
    """What one action did for one registration."""

    action: ActionName
    status: ActionStatus
    delivered: int = Field(default=0, ge=0)  # messages/emails/calls that went out
    failures: int = Field(default=0, ge=0)
    detail: str = ""


class RegistrationResult(BaseModel):
    """Result of running the pipeline for one account."""

    username: str
    outcomes: list[ActionOutcome] = Field(default_factory=list)

    def outcome(self, action: ActionName) -> ActionOutcome | None:
        for outcome in self.outcomes:
            if outcome.action == action:
                return outcome
        return None

    @property
    def failed_actions(self) -> list[ActionName]:
        return [o.action for o in self.outcomes if o.status == ActionStatus.FAILED]


class RegistrationAuditEntry(BaseModel):
    """A single audit record for one handled registration event."""

    timestamp: datetime
    username: str
    created_at: datetime
    outcomes: list[ActionOutcome] = Field(default_factory=list)
