"""Core data types for the invoice extractor."""

from .types import (
    BoundingBox,
    ConnectionReport,
    ExtractedField,
    ExtractionMetadata,
    ExtractionRequest,
    ExtractionResult,
    InvoiceCategory,
    TaskHandle,
    TaskSnapshot,
    TaskStatus,
    TemplateId,
)

__all__ = [
    "BoundingBox",
    "ConnectionReport",
    "ExtractedField",
    "ExtractionMetadata",
    "ExtractionRequest",
    "ExtractionResult",
    "InvoiceCategory",
    "TaskHandle",
    "TaskSnapshot",
    "TaskStatus",
    "TemplateId",
]
