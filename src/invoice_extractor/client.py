"""Extraction orchestration: submit → poll → merge.

A direct, single-call extraction is the degenerate case of this workflow in
which the first status poll is already terminal.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import TYPE_CHECKING, Any

from invoice_extractor.core.types import TaskSnapshot, TemplateId
from invoice_extractor.exceptions import (
    EmptyExtractionError,
    NoTaskIssuedError,
    TemplateNotFoundError,
)
from invoice_extractor.poller import TaskPoller
from invoice_extractor.telemetry import TelemetryContext, TelemetryContextProtocol

if TYPE_CHECKING:
    from invoice_extractor.transport import ExtractionTransport

log = logging.getLogger(__name__)

GENERAL_FIELDS_KEY = "General_fields"
LINE_FIELDS_KEY = "Line_fields"


def merge_task_fields(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten general and line fields from a terminal task payload.

    General fields carry one value per key. Line fields carry a list per key
    of which only the first row is kept; empty lists are skipped. Line
    fields are merged after general fields, so they win on a shared key.
    """
    merged: dict[str, Any] = {}

    general = payload.get(GENERAL_FIELDS_KEY)
    if isinstance(general, Mapping):
        merged.update(general)

    lines = payload.get(LINE_FIELDS_KEY)
    if isinstance(lines, Mapping):
        for key, rows in lines.items():
            if isinstance(rows, list | tuple):
                if rows:
                    merged[key] = rows[0]
            elif rows is not None:
                merged[key] = rows

    return merged


class ExtractionClient:
    """Runs one document through the extraction service.

    Args:
        transport: Adapter for the external service.
        poller: Task poller; one is built over ``transport`` when omitted.
        logger: Destination for progress diagnostics.
        telemetry: Context receiving submit/poll/fallback scopes.
    """

    def __init__(
        self,
        transport: ExtractionTransport,
        *,
        poller: TaskPoller | None = None,
        logger: logging.Logger | None = None,
        telemetry: TelemetryContextProtocol | None = None,
    ):
        self._transport = transport
        self._log = logger or log
        self._telemetry = telemetry or TelemetryContext()
        self._poller = poller or TaskPoller(
            transport, logger=self._log, telemetry=self._telemetry
        )

    async def extract_with_template(
        self, content: bytes, file_name: str, template_id: TemplateId
    ) -> dict[str, Any]:
        """Extract raw fields using a category template.

        If the service does not know ``template_id``, the document is
        submitted once more without a template so the service can classify
        it itself. That fallback happens at most once per call.
        """
        self._log.info(
            "Extracting data using template %s for file: %s", template_id, file_name
        )
        try:
            return await self._run(content, file_name, template_id)
        except TemplateNotFoundError as e:
            self._log.warning(
                "Template %s failed, trying auto-classification: %s", template_id, e
            )
            self._telemetry.count("extraction.fallback", template_id=template_id)
            return await self.extract_with_auto_classification(content, file_name)

    async def extract_with_auto_classification(
        self, content: bytes, file_name: str
    ) -> dict[str, Any]:
        """Extract raw fields letting the service pick the template."""
        self._log.info("Using auto-classification for extraction")
        return await self._run(content, file_name, None)

    async def _run(
        self, content: bytes, file_name: str, template_id: TemplateId | None
    ) -> dict[str, Any]:
        with self._telemetry("extraction.submit", scoped=template_id is not None):
            handles = await self._transport.submit_document(
                content, file_name, template_id
            )
        if not handles:
            raise NoTaskIssuedError("No task IDs returned from upload")
        if len(handles) > 1:
            self._log.warning(
                "Upload issued %d tasks; only %s is processed, ignoring %s",
                len(handles),
                handles[0],
                ", ".join(handles[1:]),
            )

        snapshot = await self._poller.poll_until_terminal(handles[0])
        return self._fields_from(snapshot)

    def _fields_from(self, snapshot: TaskSnapshot) -> dict[str, Any]:
        fields = merge_task_fields(snapshot.payload)
        if not fields:
            raise EmptyExtractionError(
                f"No extracted data found in task result for {snapshot.handle}"
            )
        self._log.info(
            "Successfully extracted %d fields from task %s",
            len(fields),
            snapshot.handle,
        )
        return fields
