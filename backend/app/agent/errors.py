class GenerationError(Exception):
    """Base class for failures of a single article generation."""


class GenerationUpstreamError(GenerationError):
    """The text-generation provider errored, timed out or returned nothing."""


class GenerationInvalid(GenerationError):
    """The provider answered, but the text is not a usable article payload."""

    def __init__(self, reason: str, detail: str = ""):
        self.reason = reason
        self.detail = detail
        message = f"AI returned invalid output ({reason})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
