"""CLI entry point for administering Herald registration actions.

Commands:
    herald config         — show, set, or unset registration properties
    herald contacts       — manage IM and email notification contacts
    herald privacy-list   — load the default privacy-list template
    herald welcome        — preview the welcome message for a user
    herald check-address  — validate an email address
    herald audit          — show recently handled registrations
"""

import logging
import sys
from pathlib import Path

import click

from herald.config import ADMIN_CONSOLE_PORT, AUDIT_LOG_PATH, PROPERTIES_PATH, SERVER_DOMAIN

logger = logging.getLogger("herald")


def _load_settings(ctx: click.Context):
    """Open the property store named on the command line."""
    from herald.properties import JsonPropertyStore
    from herald.settings import RegistrationSettings

    store = JsonPropertyStore.load(ctx.obj["properties_path"])
    return RegistrationSettings(store)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option(
    "--properties",
    "properties_path",
    default=PROPERTIES_PATH,
    show_default=True,
    help="Path to the registration property file.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, properties_path: str) -> None:
    """Herald — side effects for newly registered accounts."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    ctx.ensure_object(dict)
    ctx.obj["properties_path"] = properties_path


# ------------------------------------------------------------------
# herald config
# ------------------------------------------------------------------


@cli.group()
def config() -> None:
    """Show or change registration properties."""


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Print the effective registration settings."""
    settings = _load_settings(ctx)
    snapshot = settings.snapshot()

    click.echo("Actions:")
    click.echo(f"  IM notification:     {_on_off(snapshot.im_notify_enabled)}")
    click.echo(f"  Email notification:  {_on_off(snapshot.email_notify_enabled)}")
    click.echo(f"  Welcome message:     {_on_off(snapshot.welcome_enabled)}")
    click.echo(f"  Group enrollment:    {_on_off(snapshot.group_enabled)}")
    click.echo(f"  Default privacy list: {_on_off(snapshot.privacy_list_enabled)}")
    if snapshot.automatic_lockout_enabled:
        click.echo(f"  Automatic lockout:   after {snapshot.automatic_lockout_after_seconds}s")
    else:
        click.echo("  Automatic lockout:   off")

    click.echo("\nWelcome message:")
    if snapshot.welcome.raw_document:
        click.echo("  (raw XML template)")
    else:
        click.echo(f"  {snapshot.welcome.body}")
    if snapshot.welcome.sender:
        click.echo(f"  From: {snapshot.welcome.sender}")

    click.echo(f"\nGroup: {snapshot.group_name or '(unset)'}")
    click.echo(f"Privacy list name: {snapshot.privacy_list_name or '(unset)'}")

    click.echo("\nWeb sign-up:")
    click.echo(f"  Enabled: {_on_off(snapshot.web_enabled)}")
    click.echo(f"  Header:  {snapshot.header_text}")
    click.echo(f"  CAPTCHA: {_on_off(snapshot.captcha_enabled)}")
    click.echo(f"  URL:     {settings.web_registration_url(SERVER_DOMAIN, ADMIN_CONSOLE_PORT)}")


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Set a registration property."""
    from herald.settings import (
        ALL_KEYS,
        BOOLEAN_KEYS,
        EMAIL_CONTACTS,
        IM_CONTACTS,
        NUMERIC_KEYS,
    )

    if key not in ALL_KEYS:
        click.echo(f"Error: Unknown property: {key}", err=True)
        sys.exit(1)
    if key in (IM_CONTACTS, EMAIL_CONTACTS):
        click.echo("Error: Use 'herald contacts add/remove' to change contact lists.", err=True)
        sys.exit(1)
    if key in BOOLEAN_KEYS:
        if value.lower() not in ("true", "false"):
            click.echo(f"Error: {key} must be 'true' or 'false'.", err=True)
            sys.exit(1)
        value = value.lower()
    if key in NUMERIC_KEYS:
        try:
            int(value)
        except ValueError:
            click.echo(f"Error: {key} must be a whole number of seconds.", err=True)
            sys.exit(1)

    settings = _load_settings(ctx)
    settings.set_value(key, value)
    click.echo(f"Set {key}.")


@config.command("unset")
@click.argument("key")
@click.pass_context
def config_unset(ctx: click.Context, key: str) -> None:
    """Remove a registration property, restoring its default."""
    from herald.settings import ALL_KEYS

    if key not in ALL_KEYS:
        click.echo(f"Error: Unknown property: {key}", err=True)
        sys.exit(1)
    settings = _load_settings(ctx)
    settings.unset_value(key)
    click.echo(f"Unset {key}.")


def _on_off(value: bool) -> str:
    return "on" if value else "off"


# ------------------------------------------------------------------
# herald contacts
# ------------------------------------------------------------------

_KIND = click.Choice(["im", "email"], case_sensitive=False)


@cli.group()
def contacts() -> None:
    """Manage notification contacts."""


def _load_contacts(ctx: click.Context):
    from herald.contacts import ContactBook

    settings = _load_settings(ctx)
    return ContactBook.load(settings.store)


@contacts.command("list")
@click.option("--kind", type=click.Choice(["im", "email", "all"], case_sensitive=False), default="all")
@click.pass_context
def contacts_list(ctx: click.Context, kind: str) -> None:
    """List notification contacts (sorted)."""
    book = _load_contacts(ctx)
    sections = []
    if kind in ("im", "all"):
        sections.append(("IM contacts", book.im.list()))
    if kind in ("email", "all"):
        sections.append(("Email contacts", book.email.list()))

    for title, entries in sections:
        click.echo(f"{title} ({len(entries)}):")
        if not entries:
            click.echo("  (none)")
        for entry in entries:
            click.echo(f"  {entry}")


@contacts.command("add")
@click.argument("kind", type=_KIND)
@click.argument("contact")
@click.pass_context
def contacts_add(ctx: click.Context, kind: str, contact: str) -> None:
    """Add a notification contact."""
    from herald.validation import is_valid_address

    if kind == "email" and not is_valid_address(contact.strip()):
        click.echo(f"Error: Not a valid email address: {contact}", err=True)
        sys.exit(1)

    book = _load_contacts(ctx)
    target = book.im if kind == "im" else book.email
    if target.add(contact):
        click.echo(f"Added '{contact.strip()}' to {kind} contacts.")
    else:
        click.echo(f"'{contact.strip()}' is already in {kind} contacts.")


@contacts.command("remove")
@click.argument("kind", type=_KIND)
@click.argument("contact")
@click.pass_context
def contacts_remove(ctx: click.Context, kind: str, contact: str) -> None:
    """Remove a notification contact."""
    book = _load_contacts(ctx)
    target = book.im if kind == "im" else book.email
    if target.remove(contact):
        click.echo(f"Removed '{contact.strip()}' from {kind} contacts.")
    else:
        click.echo(f"'{contact.strip()}' is not in {kind} contacts.")


# ------------------------------------------------------------------
# herald privacy-list
# ------------------------------------------------------------------


@cli.group("privacy-list")
def privacy_list() -> None:
    """Manage the default privacy list given to new accounts."""


@privacy_list.command("load")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--name", default=None, help="Name of the privacy list to create.")
@click.pass_context
def privacy_list_load(ctx: click.Context, path: Path, name: str | None) -> None:
    """Store the privacy-list template read from PATH."""
    from herald.errors import TemplateParseError
    from herald.templates import parse_document

    document = path.read_text()
    settings = _load_settings(ctx)
    settings.set_privacy_list_document(document)
    if name:
        settings.set_privacy_list_name(name)
    click.echo(f"Stored privacy list template from {path}.")

    try:
        parse_document(document, what="privacy list")
    except TemplateParseError as exc:
        click.echo(f"Warning: {exc}", err=True)
        click.echo("New accounts will not receive a privacy list until this is fixed.", err=True)


# ------------------------------------------------------------------
# herald welcome
# ------------------------------------------------------------------


@cli.group()
def welcome() -> None:
    """Inspect the welcome message."""


@welcome.command("preview")
@click.argument("username")
@click.pass_context
def welcome_preview(ctx: click.Context, username: str) -> None:
    """Show the message(s) USERNAME would receive on registration."""
    from herald.errors import TemplateParseError
    from herald.orchestrator.actions import account_address
    from herald.templates import expand_welcome

    settings = _load_settings(ctx)
    try:
        messages = expand_welcome(
            account_address(username, SERVER_DOMAIN),
            settings.welcome_spec(),
            SERVER_DOMAIN,
        )
    except TemplateParseError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if not settings.welcome_enabled():
        click.echo("Note: welcome messages are currently disabled.")
    for i, message in enumerate(messages, 1):
        click.echo(f"\n[{i}/{len(messages)}] to={message.to} from={message.sender}")
        if message.stanza:
            click.echo(f"  {message.stanza}")
            continue
        if message.subject:
            click.echo(f"  Subject: {message.subject}")
        click.echo(f"  {message.body}")


# ------------------------------------------------------------------
# herald check-address
# ------------------------------------------------------------------


@cli.command("check-address")
@click.argument("address")
def check_address(address: str) -> None:
    """Check that ADDRESS looks like an email address."""
    from herald.validation import is_valid_address

    if is_valid_address(address):
        click.echo(f"{address}: valid")
    else:
        click.echo(f"{address}: invalid")
        sys.exit(1)


# ------------------------------------------------------------------
# herald audit
# ------------------------------------------------------------------


@cli.command()
@click.option("--limit", "-n", default=20, show_default=True, help="Max entries to show.")
@click.option("--user", "username", default=None, help="Only show this account.")
def audit(limit: int, username: str | None) -> None:
    """Show recently handled registrations."""
    from herald.audit.registration_logger import RegistrationAuditLog

    entries = RegistrationAuditLog(AUDIT_LOG_PATH).read_entries(username=username, limit=limit)
    if not entries:
        click.echo("No registrations recorded.")
        return

    for entry in entries:
        click.echo(f"{entry.timestamp:%Y-%m-%d %H:%M:%S} {entry.username}")
        for outcome in entry.outcomes:
            line = f"  {outcome.action.value}: {outcome.status.value}"
            if outcome.detail:
                line += f" ({outcome.detail})"
            click.echo(line)
