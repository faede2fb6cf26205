"""
Custom exception hierarchy for graphiti-memory.

Transport clients raise these internally and convert them into tagged
failure results at their public boundary. All exceptions inherit from
GraphitiMemoryError for easy catching.
"""


class GraphitiMemoryError(Exception):
    """
    Base exception for all graphiti-memory errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, context: dict | None = None):
        """
        Initialize graphiti-memory error.
        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ConfigurationError(GraphitiMemoryError):
    """
    Configuration errors.
    Raised when no backend URL is configured for the active transport.
    """

    pass


class TransportError(GraphitiMemoryError):
    """
    Non-2xx HTTP responses and connection failures.
    The status code and response body are preserved in the message.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str = "",
        context: dict | None = None,
    ):
        super().__init__(message, context)
        self.status_code = status_code
        self.body = body


class SessionExpiredError(TransportError):
    """
    The server rejected the session token.
    Retried once internally before being reported.
    """

    pass


class ProtocolError(GraphitiMemoryError):
    """
    JSON-RPC error frames and malformed or unparseable responses.
    """

    pass


class RequestTimeoutError(GraphitiMemoryError):
    """
    A backend call exceeded the per-call timeout ceiling.
    """

    pass


class ValidationError(GraphitiMemoryError):
    """
    Validation errors.
    Raised when caller input is missing or invalid.
    """

    pass
