"""Error types raised by the profile engine."""


class ResponseValidationError(ValueError):
    """Raised when a questionnaire response vector is malformed or out of range."""
    pass


class TaxonomyError(ValueError):
    """Raised when the domain/triad/trait taxonomy is inconsistent."""
    pass


class ScoringConfigError(ValueError):
    """Raised for aggregation-table overrides that do not fit the taxonomy."""
    pass


class ComputationError(RuntimeError):
    """Raised when a single framework module fails to produce a result."""

    def __init__(self, framework: str, message: str):
        super().__init__(f"{framework}: {message}")
        self.framework = framework


class CollaboratorError(Exception):
    """Base class for text-generation collaborator failures."""
    pass


class CollaboratorUnavailableError(CollaboratorError):
    """Transient failure (timeout, transport error, 429 or 5xx). Retried."""
    pass


class CollaboratorRequestError(CollaboratorError):
    """The collaborator rejected the request (non-retryable 4xx)."""
    pass


class MalformedResponseError(CollaboratorError):
    """The collaborator answered, but the payload carries no usable content."""
    pass


class PersistenceError(Exception):
    """Raised by session/profile stores. Callers treat it as non-fatal."""
    pass


class SessionStateError(ValueError):
    """Raised for an operation that is illegal in the session's current state."""
    pass


class SessionNotFoundError(KeyError):
    """Raised when a refinement session id is unknown."""
    pass
