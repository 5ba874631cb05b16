"""Error taxonomy for the registration pipeline.

Every action-local failure is one of these. The pipeline catches them at the
action boundary, logs them, and carries on with the next action.
"""


class HeraldError(Exception):
    """Base class for registration pipeline errors."""


class TemplateParseError(HeraldError):
    """A welcome or privacy-list XML document could not be parsed."""

    def __init__(self, what: str, detail: str) -> None:
        super().__init__(f"Unable to parse {what}: {detail}")
        self.what = what
        self.detail = detail


class GroupNotFoundError(HeraldError):
    """The configured registration group does not exist."""

    def __init__(self, group_name: str) -> None:
        super().__init__(f"Group not found: {group_name}")
        self.group_name = group_name


class TransportError(HeraldError):
    """An IM or email delivery attempt failed."""


class ConfigurationMissingError(HeraldError):
    """An enabled action needs a configuration value that is not set."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Missing required configuration value: {key}")
        self.key = key
