"""Structured field extraction for scanned utility invoices."""

import importlib.metadata
import logging

from invoice_extractor.client import ExtractionClient, merge_task_fields
from invoice_extractor.config import FrozenConfig, resolve_config
from invoice_extractor.core.types import (
    BoundingBox,
    ConnectionReport,
    ExtractedField,
    ExtractionMetadata,
    ExtractionRequest,
    ExtractionResult,
    InvoiceCategory,
    TaskSnapshot,
    TaskStatus,
)
from invoice_extractor.exceptions import (
    ConfigurationError,
    EmptyExtractionError,
    InvalidInputError,
    InvoiceExtractorError,
    MissingKeyError,
    NoTaskIssuedError,
    PollTimeoutError,
    SubmissionError,
    TaskFailedError,
    TemplateNotFoundError,
    TransportError,
    UnsupportedCategoryError,
)
from invoice_extractor.facade import (
    InvoiceExtractor,
    check_connection,
    extract_invoice_data,
)
from invoice_extractor.normalizer import normalize_fields, summarize_confidence
from invoice_extractor.poller import TaskPoller
from invoice_extractor.retry import with_retry
from invoice_extractor.telemetry import TelemetryContext, TelemetryReporter
from invoice_extractor.templates import TemplateResolver
from invoice_extractor.transport import ExtractionTransport, KoncileTransport

try:
    __version__ = importlib.metadata.version("invoice-extractor")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Prevent 'No handler found' warnings when the host app configures no logging.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [  # noqa: RUF022
    # Entry points
    "extract_invoice_data",
    "check_connection",
    "InvoiceExtractor",
    # Components
    "ExtractionClient",
    "TaskPoller",
    "TemplateResolver",
    "with_retry",
    "normalize_fields",
    "summarize_confidence",
    "merge_task_fields",
    # Transport
    "ExtractionTransport",
    "KoncileTransport",
    # Configuration
    "FrozenConfig",
    "resolve_config",
    # Telemetry
    "TelemetryContext",
    "TelemetryReporter",
    # Types
    "BoundingBox",
    "ConnectionReport",
    "ExtractedField",
    "ExtractionMetadata",
    "ExtractionRequest",
    "ExtractionResult",
    "InvoiceCategory",
    "TaskSnapshot",
    "TaskStatus",
    # Exceptions
    "InvoiceExtractorError",
    "InvalidInputError",
    "UnsupportedCategoryError",
    "ConfigurationError",
    "MissingKeyError",
    "SubmissionError",
    "TemplateNotFoundError",
    "NoTaskIssuedError",
    "TransportError",
    "TaskFailedError",
    "PollTimeoutError",
    "EmptyExtractionError",
]
