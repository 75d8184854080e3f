"""Exceptions raised while extracting invoice data.

Hierarchy::

    InvoiceExtractorError
    ├── InvalidInputError
    ├── UnsupportedCategoryError
    ├── ConfigurationError
    │   └── MissingKeyError
    ├── SubmissionError
    ├── TemplateNotFoundError
    ├── NoTaskIssuedError
    ├── TransportError
    ├── TaskFailedError
    ├── PollTimeoutError
    └── EmptyExtractionError

Only ``SubmissionError`` is eligible for the facade-level retry. Status
failures (``TaskFailedError``, ``PollTimeoutError``, ``EmptyExtractionError``)
are surfaced as-is because retrying them would resubmit the document.
"""

from __future__ import annotations

from collections.abc import Iterable


class InvoiceExtractorError(Exception):
    """Base exception for invoice extraction errors"""  # noqa: D415


class InvalidInputError(InvoiceExtractorError):
    """Raised when the document or file name fails a precondition check"""  # noqa: D415

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid input: {reason}")


class UnsupportedCategoryError(InvoiceExtractorError):
    """Raised when an invoice category has no extraction template"""  # noqa: D415

    def __init__(self, category: object, supported: Iterable[str]):
        self.category = category
        self.supported = tuple(supported)
        super().__init__(
            f"Unsupported invoice type: {category}. "
            f"Supported types: {', '.join(self.supported)}"
        )


class ConfigurationError(InvoiceExtractorError):
    """Raised when the static configuration is inconsistent"""  # noqa: D415


class MissingKeyError(ConfigurationError):
    """Raised when the API key required by the HTTP transport is missing"""  # noqa: D415


class SubmissionError(InvoiceExtractorError):
    """Raised when the service or the network rejects a document upload"""  # noqa: D415

    def __init__(self, message: str, *, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class TemplateNotFoundError(InvoiceExtractorError):
    """Raised when a template-scoped upload is answered with 404"""  # noqa: D415

    def __init__(self, template_id: str, detail: str = ""):
        self.template_id = template_id
        message = f"Upload failed: 404 - template {template_id} not found"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class NoTaskIssuedError(InvoiceExtractorError):
    """Raised when an upload acknowledgement carries no task handle"""  # noqa: D415


class TransportError(InvoiceExtractorError):
    """Raised when a status query fails in transport or returns garbage"""  # noqa: D415

    def __init__(self, message: str, *, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class TaskFailedError(InvoiceExtractorError):
    """Raised when the service reports a task as FAILED"""  # noqa: D415

    def __init__(self, handle: str, status_message: str | None):
        self.handle = handle
        self.status_message = status_message or "Unknown error"
        super().__init__(f"Task failed: {self.status_message}")


class PollTimeoutError(InvoiceExtractorError):
    """Raised when a task does not reach a terminal state within budget"""  # noqa: D415

    def __init__(self, handle: str, attempts: int):
        self.handle = handle
        self.attempts = attempts
        super().__init__(
            f"Task {handle} did not complete within timeout period "
            f"({attempts} status checks)"
        )


class EmptyExtractionError(InvoiceExtractorError):
    """Raised when a task completes but yields no usable fields"""  # noqa: D415


__all__ = [
    "ConfigurationError",
    "EmptyExtractionError",
    "InvalidInputError",
    "InvoiceExtractorError",
    "MissingKeyError",
    "NoTaskIssuedError",
    "PollTimeoutError",
    "SubmissionError",
    "TaskFailedError",
    "TemplateNotFoundError",
    "TransportError",
    "UnsupportedCategoryError",
]
