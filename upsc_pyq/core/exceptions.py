class ServiceError(Exception):
    """Base class for service-related errors."""
    pass


class SearchFailed(ServiceError):
    """Raised when the question store cannot be queried."""
    pass


class QuestionNotFound(ServiceError):
    """Raised when a question does not exist or is not visible to the caller."""
    pass


class AuthenticationRequired(ServiceError):
    """Raised when an operation needs a signed-in user and there is none."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class InvalidAnswer(ServiceError):
    """Raised when a submitted answer is rejected before any network call."""
    pass


class ImportValidationError(ServiceError):
    """Raised when a CSV row fails validation. Nothing has been inserted."""

    def __init__(self, message: str, row_number: int = None, value: str = None):
        super().__init__(message)
        self.row_number = row_number
        self.value = value


class ImportFailed(ServiceError):
    """Raised when a batch insert fails part way through an import.

    Batches inserted before the failure are kept.
    """

    def __init__(self, message: str, imported: int, total: int):
        super().__init__(message)
        self.imported = imported
        self.total = total


class AIIntegrationError(ServiceError):
    """Raised when there is an issue with an LLM provider."""
    pass


class AIResponseParseError(AIIntegrationError):
    """Raised when an LLM reply does not have the expected shape."""
    pass


class ScoringUnavailable(ServiceError):
    """Raised when the semantic similarity dependency could not produce a score."""
    pass


class StorageError(ServiceError):
    """Raised when a write to the question store fails."""
    pass
