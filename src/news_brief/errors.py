"""Exception types raised across the brief pipeline."""


class NewsBriefError(Exception):
    """Base class for all News Brief errors."""


class FetchError(NewsBriefError):
    """The news source could not be reached or returned an unusable response."""


class NotFoundError(NewsBriefError):
    """A referenced entity (topic, user) does not exist."""


class NoSubscriptionsError(NewsBriefError):
    """The user has no topic subscriptions, so there is nothing to brief."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User {user_id} has no topic subscriptions")
        self.user_id = user_id


class LlmError(NewsBriefError):
    """The language model call failed or returned an unrecognized response."""
