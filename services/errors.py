"""Error taxonomy for the scheduler API and the natural-language pipeline."""


class SchedulerError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    public_message = "Internal server error"


class ValidationError(SchedulerError):
    """Bad request shape; the message is returned to the caller verbatim."""

    status_code = 400

    @property
    def public_message(self):
        return str(self)


class ProviderError(SchedulerError):
    """The language-model call failed or returned unusable content."""

    public_message = "Failed to interpret request"


class InterpretationError(SchedulerError):
    """The model's text was not a JSON object with an ``actions`` list."""

    public_message = "Failed to interpret request"
