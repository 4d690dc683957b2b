"""Domain-level exceptions for the natural-language command API."""


class ConfigurationError(RuntimeError):
    """Raised when the configured provider or its credentials are unusable."""


class SchemaLoadError(Exception):
    """Raised when a single operation of the API description cannot be parsed."""


class NlCommandError(Exception):
    """Base class for request-scoped failures reported back to the caller."""

    retryable = False


class NotReadyError(NlCommandError):
    """Raised when a command arrives before the orchestrator finished initializing."""

    retryable = True


class UnknownOperationError(NlCommandError):
    def __init__(self, operation_id: str) -> None:
        self.operation_id = operation_id
        super().__init__(f"Unknown function returned by model: {operation_id}")


class UnsupportedMethodError(NlCommandError):
    def __init__(self, http_method: str, operation_id: str) -> None:
        self.http_method = http_method
        self.operation_id = operation_id
        super().__init__(f"Unsupported HTTP method {http_method} for operation {operation_id}")


class MissingPathParameterError(NlCommandError):
    def __init__(self, path_template: str, names: list[str]) -> None:
        self.path_template = path_template
        self.names = names
        super().__init__(f"Missing path parameters for {path_template}: {', '.join(names)}")


class UpstreamFailureError(NlCommandError):
    """Raised when a model provider or the REST backend fails at the transport level."""

    def __init__(
        self,
        message: str,
        *,
        upstream: str,
        status_code: int | None = None,
        detail: str | None = None,
    ) -> None:
        self.upstream = upstream
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)

    def __str__(self) -> str:
        text = f"[{self.upstream}] {super().__str__()}"
        if self.status_code is not None:
            text += f" (status {self.status_code})"
        if self.detail:
            text += f": {self.detail}"
        return text


class EmptyModelReplyError(NlCommandError):
    """Raised when a summarization call returns no usable text."""
