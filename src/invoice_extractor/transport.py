"""Transport to the external document-intelligence service.

``ExtractionTransport`` is the seam the orchestrator depends on. The
``KoncileTransport`` adapter implements it over HTTP with ``httpx`` and is
responsible for classifying wire failures into the package's exceptions:

- upload: 404 with a template → ``TemplateNotFoundError``; any other HTTP or
  network failure → ``SubmissionError``
- status: any HTTP, network or decoding failure → ``TransportError``
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import importlib.metadata
import logging
import re
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx

from invoice_extractor import constants
from invoice_extractor.core.types import TaskHandle, TaskSnapshot
from invoice_extractor.exceptions import (
    MissingKeyError,
    SubmissionError,
    TemplateNotFoundError,
    TransportError,
)

if TYPE_CHECKING:
    from invoice_extractor.config import FrozenConfig

log = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w\-.]")
_ERROR_BODY_LIMIT = 500


@runtime_checkable
class ExtractionTransport(Protocol):
    """Operations the orchestrator needs from the extraction service."""

    async def submit_document(
        self, content: bytes, file_name: str, template_id: str | None = None
    ) -> tuple[TaskHandle, ...]:
        """Upload a document and return the task handles issued for it."""
        ...

    async def get_task_status(self, handle: TaskHandle) -> TaskSnapshot:
        """Return the current status of a task."""
        ...

    async def probe(self) -> bool:
        """Return True when the service answers an authenticated request."""
        ...


def sanitize_file_name(file_name: str) -> str:
    """Replace characters the upload endpoint rejects with underscores."""
    return _UNSAFE_FILENAME_CHARS.sub("_", file_name.strip())


def _user_agent() -> str:
    try:
        version = importlib.metadata.version("invoice-extractor")
    except importlib.metadata.PackageNotFoundError:
        version = "development"
    return f"invoice-extractor/{version}"


def _body_excerpt(response: httpx.Response) -> str:
    try:
        text = response.text
    except (UnicodeDecodeError, httpx.ResponseNotRead):
        return "<unreadable body>"
    return text[:_ERROR_BODY_LIMIT] or response.reason_phrase


class KoncileTransport:
    """HTTP adapter for the Koncile extraction API.

    A fresh ``httpx.AsyncClient`` is opened for each call unless one is
    injected, so no connection is held between poll iterations.
    """

    def __init__(
        self,
        *,
        api_key: str | None,
        api_url: str = constants.DEFAULT_API_URL,
        upload_timeout: float = constants.UPLOAD_TIMEOUT,
        request_timeout: float = constants.REQUEST_TIMEOUT,
        probe_timeout: float = constants.PROBE_TIMEOUT,
        probe_template_id: str = constants.DEFAULT_TEMPLATES["electricity"],
        client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
    ):
        if not api_key:
            raise MissingKeyError(
                "KONCILE_API_KEY is required to talk to the extraction service"
            )
        self._api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.upload_timeout = upload_timeout
        self.request_timeout = request_timeout
        self.probe_timeout = probe_timeout
        self.probe_template_id = probe_template_id
        self._client = client
        self._log = logger or log

    @classmethod
    def from_config(
        cls,
        config: FrozenConfig,
        *,
        client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
    ) -> KoncileTransport:
        return cls(
            api_key=config.api_key,
            api_url=config.api_url,
            upload_timeout=config.upload_timeout,
            request_timeout=config.request_timeout,
            probe_timeout=config.probe_timeout,
            probe_template_id=config.templates.get(
                "electricity", constants.DEFAULT_TEMPLATES["electricity"]
            ),
            client=client,
            logger=logger,
        )

    def __repr__(self) -> str:
        return f"KoncileTransport(api_url={self.api_url!r}, api_key='[REDACTED]')"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
            "User-Agent": _user_agent(),
        }

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(follow_redirects=True) as client:
            yield client

    async def submit_document(
        self, content: bytes, file_name: str, template_id: str | None = None
    ) -> tuple[TaskHandle, ...]:
        """Upload ``content`` and return the issued task handles.

        An acknowledgement without a usable ``task_ids`` list yields an empty
        tuple; deciding what that means is left to the caller.
        """
        params = {"template_id": template_id} if template_id else None
        safe_name = sanitize_file_name(file_name)
        files = {"files": (safe_name, content, "application/octet-stream")}
        self._log.info(
            "Uploading file: %s%s",
            safe_name,
            f" with template {template_id}" if template_id else " (auto-classification)",
        )
        self._log.debug("File buffer size: %d bytes", len(content))

        try:
            async with self._session() as client:
                response = await client.post(
                    f"{self.api_url}{constants.UPLOAD_PATH}",
                    params=params,
                    files=files,
                    headers=self._headers(),
                    timeout=self.upload_timeout,
                )
        except httpx.TimeoutException as e:
            raise SubmissionError(
                "Upload timeout - the file is taking too long to process. "
                "Please try with a smaller file or check your internet connection."
            ) from e
        except httpx.HTTPError as e:
            raise SubmissionError(f"Upload failed: Network Error - {e}") from e

        if response.status_code == httpx.codes.NOT_FOUND and template_id:
            raise TemplateNotFoundError(template_id, _body_excerpt(response))
        if response.is_error:
            raise SubmissionError(
                f"Upload failed: {response.status_code} - {_body_excerpt(response)}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError:
            self._log.warning("Upload acknowledgement was not valid JSON")
            return ()

        task_ids = body.get("task_ids") if isinstance(body, dict) else None
        if not isinstance(task_ids, list):
            self._log.warning("Upload acknowledgement carried no task_ids list")
            return ()
        handles = tuple(str(t) for t in task_ids if t not in (None, ""))
        self._log.info("Upload successful, got task IDs: %s", ", ".join(handles))
        return handles

    async def get_task_status(self, handle: TaskHandle) -> TaskSnapshot:
        """Fetch the task result and classify its status."""
        try:
            async with self._session() as client:
                response = await client.get(
                    f"{self.api_url}{constants.TASK_RESULTS_PATH}",
                    params={"task_id": handle},
                    headers=self._headers(),
                    timeout=self.request_timeout,
                )
        except httpx.HTTPError as e:
            raise TransportError(f"Task status check failed: {e}") from e

        if response.is_error:
            raise TransportError(
                f"Task status check failed: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body: Any = response.json()
        except ValueError as e:
            raise TransportError("Task status response was not valid JSON") from e
        if not isinstance(body, dict):
            raise TransportError(
                f"Task status response has unexpected shape: {type(body).__name__}"
            )

        snapshot = TaskSnapshot.from_response(handle, body)
        self._log.debug("Task %s status: %s", handle, snapshot.raw_status)
        return snapshot

    async def probe(self) -> bool:
        """Fetch a known template; any 2xx answer counts as connected."""
        self._log.info("Testing extraction service connection")
        try:
            async with self._session() as client:
                response = await client.get(
                    f"{self.api_url}{constants.TEMPLATE_PATH}",
                    params={"template_id": self.probe_template_id},
                    headers=self._headers(),
                    timeout=self.probe_timeout,
                )
        except httpx.HTTPError as e:
            self._log.error("Connection test failed: %s", e)
            return False

        connected = response.is_success
        self._log.info(
            "Connection test %s (status: %d)",
            "successful" if connected else "failed",
            response.status_code,
        )
        return connected
