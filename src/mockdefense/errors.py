"""Exception taxonomy for the defense pipeline."""


class MockDefenseError(Exception):
    """Base class for all mockdefense errors."""


class ConfigurationError(MockDefenseError):
    """A required credential or setting is missing.

    Raised before any I/O. Not retryable without operator intervention.
    """


class UpstreamError(MockDefenseError):
    """The embedding or generation provider failed or returned an empty result.

    The core never retries; callers decide their own retry policy.
    """


class GenerationError(UpstreamError):
    """The generative agent failed during a conversation turn.

    The transcript is left untouched, so the same input can be re-sent.
    """


class SessionNotReadyError(MockDefenseError):
    """The session is still preparing its document."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Session {session_id} is still preparing. "
            "Please wait for document processing to complete."
        )
        self.session_id = session_id


class NotFoundError(MockDefenseError):
    """The session or document does not exist or belongs to another user."""


class IndexUnavailableError(MockDefenseError):
    """The similarity index is not provisioned or cannot answer queries.

    Internal: the vector store returns this as a value and degrades to a
    fallback scan. It never reaches callers of the vector store.
    """
