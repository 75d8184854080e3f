"""Single entry point used by the rest of the application.

``extract_invoice_data`` never raises: every failure, from a blank file name
to a task the service rejected, comes back as an ``ExtractionResult`` with
``success=False`` and a readable ``error``.
"""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import TYPE_CHECKING

from invoice_extractor.client import ExtractionClient
from invoice_extractor.config import FrozenConfig, load_frozen_config
from invoice_extractor.core.types import (
    ConnectionReport,
    ExtractionMetadata,
    ExtractionRequest,
    ExtractionResult,
    InvoiceCategory,
)
from invoice_extractor.exceptions import SubmissionError
from invoice_extractor.normalizer import normalize_fields, summarize_confidence
from invoice_extractor.poller import TaskPoller
from invoice_extractor.retry import with_retry
from invoice_extractor.telemetry import TelemetryContext, TelemetryContextProtocol
from invoice_extractor.templates import TemplateResolver
from invoice_extractor.transport import ExtractionTransport, KoncileTransport
from invoice_extractor.validation import require_document

if TYPE_CHECKING:
    from invoice_extractor.retry import SleepFunc

log = logging.getLogger(__name__)

# Only failures while handing the document over are worth resubmitting
RETRYABLE_ERRORS: tuple[type[Exception], ...] = (SubmissionError,)


def _elapsed_ms(start: float) -> int:
    return round((perf_counter() - start) * 1000)


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__


class InvoiceExtractor:
    """Reusable extraction facade bound to one configuration.

    Safe to share between concurrent extractions: it holds only read-only
    configuration, the template table and the transport.

    Args:
        config: Frozen configuration; resolved from the environment if omitted.
        transport: Service adapter; a ``KoncileTransport`` is built from
            ``config`` on first use when omitted.
        sleep: Awaitable sleep used between polls and retries.
        logger: Destination for diagnostics of every component.
        telemetry: Telemetry context shared by every component.
    """

    def __init__(
        self,
        config: FrozenConfig | None = None,
        *,
        transport: ExtractionTransport | None = None,
        sleep: SleepFunc = asyncio.sleep,
        logger: logging.Logger | None = None,
        telemetry: TelemetryContextProtocol | None = None,
    ):
        self.config = config or load_frozen_config()
        self._resolver = TemplateResolver(self.config.templates)
        self._transport = transport
        self._sleep = sleep
        self._log = logger or log
        self._telemetry = telemetry or TelemetryContext()

    @property
    def transport(self) -> ExtractionTransport:
        if self._transport is None:
            self._transport = KoncileTransport.from_config(
                self.config, logger=self._log
            )
        return self._transport

    def _build_client(self) -> ExtractionClient:
        poller = TaskPoller(
            self.transport,
            interval=self.config.poll_interval,
            max_attempts=self.config.max_poll_attempts,
            sleep=self._sleep,
            logger=self._log,
            telemetry=self._telemetry,
        )
        return ExtractionClient(
            self.transport,
            poller=poller,
            logger=self._log,
            telemetry=self._telemetry,
        )

    async def extract(
        self,
        document: bytes,
        file_name: str,
        category: InvoiceCategory | str,
    ) -> ExtractionResult:
        """Extract, normalize and summarize the fields of one invoice."""
        start = perf_counter()
        self._log.info("Starting extraction for %s invoice: %s", category, file_name)

        try:
            with self._telemetry("extraction.run", category=str(category)):
                require_document(document, file_name)
                request = ExtractionRequest(document, file_name, category)
                template_id = self._resolver.resolve(request.category)
                client = self._build_client()
                raw_fields = await with_retry(
                    lambda: client.extract_with_template(
                        request.content, request.file_name, template_id
                    ),
                    max_attempts=self.config.max_retries,
                    base_delay=self.config.retry_base_delay,
                    retry_on=RETRYABLE_ERRORS,
                    sleep=self._sleep,
                    logger=self._log,
                    telemetry=self._telemetry,
                )
                fields = normalize_fields(raw_fields, self.config.fallback_confidence)
                metadata = ExtractionMetadata(
                    confidence=summarize_confidence(
                        fields, self.config.fallback_confidence
                    ),
                    fields_extracted=len(fields),
                )
        except Exception as e:
            elapsed = _elapsed_ms(start)
            self._log.error("Extraction failed after %dms: %s", elapsed, e)
            return ExtractionResult.failure(_describe(e), elapsed)

        elapsed = _elapsed_ms(start)
        self._log.info("Extraction completed in %dms", elapsed)
        return ExtractionResult(
            success=True,
            data=fields,
            processing_time_ms=elapsed,
            metadata=metadata,
        )

    async def check_connection(self) -> ConnectionReport:
        """Probe the service without raising."""
        start = perf_counter()
        try:
            connected = await self.transport.probe()
        except Exception as e:
            self._log.error("Connection test failed: %s", e)
            return ConnectionReport(
                connected=False,
                api_key_configured=bool(self.config.api_key),
                api_url=self.config.api_url,
                response_time_ms=_elapsed_ms(start),
                error=_describe(e),
            )
        return ConnectionReport(
            connected=connected,
            api_key_configured=bool(self.config.api_key),
            api_url=self.config.api_url,
            response_time_ms=_elapsed_ms(start),
            error=None if connected else "Service did not accept the probe request",
        )


async def extract_invoice_data(
    document: bytes,
    file_name: str,
    category: InvoiceCategory | str,
    *,
    config: FrozenConfig | None = None,
    transport: ExtractionTransport | None = None,
    logger: logging.Logger | None = None,
    telemetry: TelemetryContextProtocol | None = None,
) -> ExtractionResult:
    """Extract structured fields from a utility invoice.

    Args:
        document: Raw bytes of the scanned invoice.
        file_name: Original file name, forwarded to the service.
        category: ``"electricity"``, ``"gas"`` or ``"water"``.
        config: Optional frozen configuration; resolved if omitted.
        transport: Optional service adapter, mainly for tests.
        logger: Optional logger for all components.
        telemetry: Optional telemetry context for all components.

    Returns:
        An ``ExtractionResult``; never raises for extraction failures.

    Example:
        ```python
        result = await extract_invoice_data(pdf_bytes, "bill.pdf", "gas")
        if result.success:
            print(result.data["NET A PAYER"].value)
        ```
    """
    start = perf_counter()
    try:
        extractor = InvoiceExtractor(
            config, transport=transport, logger=logger, telemetry=telemetry
        )
    except Exception as e:
        (logger or log).error("Extractor setup failed: %s", e)
        return ExtractionResult.failure(_describe(e), _elapsed_ms(start))
    return await extractor.extract(document, file_name, category)


async def check_connection(
    *,
    config: FrozenConfig | None = None,
    transport: ExtractionTransport | None = None,
    logger: logging.Logger | None = None,
) -> ConnectionReport:
    """Report whether the extraction service is reachable with our key."""
    start = perf_counter()
    try:
        extractor = InvoiceExtractor(config, transport=transport, logger=logger)
    except Exception as e:
        (logger or log).error("Connection test failed: %s", e)
        return ConnectionReport(
            connected=False,
            api_key_configured=bool(config.api_key) if config else False,
            api_url=config.api_url if config else "",
            response_time_ms=_elapsed_ms(start),
            error=_describe(e),
        )
    return await extractor.check_connection()
