"""Exception types shared across the enrichment pipeline."""


class CollegebotError(Exception):
    """Base class for all pipeline errors."""


class LocationValidationError(CollegebotError, ValueError):
    """A map location write is missing a required field.

    Attributes:
        field: Name of the missing field (or fields).
    """

    def __init__(self, field: str, message: str | None = None) -> None:
        self.field = field
        super().__init__(message or f"Missing required field: {field}")


class GeocodingError(CollegebotError):
    """The geocoding gateway could not resolve an address."""


class AgentStreamError(CollegebotError):
    """The analysis agent stream failed or ended unexpectedly.

    Attributes:
        retryable: Whether re-running the pass may succeed.
    """

    def __init__(self, message: str, retryable: bool = True) -> None:
        self.retryable = retryable
        super().__init__(message)


class ChatNotFoundError(CollegebotError):
    """A chat id does not exist for the given student."""

    def __init__(self, student_id: str, chat_id: str) -> None:
        self.student_id = student_id
        self.chat_id = chat_id
        super().__init__(f"Chat {chat_id} not found for student {student_id}")
