"""Extraction facade: validation, retry policy and result envelope."""

import pytest

from invoice_extractor.core.types import InvoiceCategory
from invoice_extractor.exceptions import (
    NoTaskIssuedError,
    SubmissionError,
    TemplateNotFoundError,
    TransportError,
)
from invoice_extractor.facade import InvoiceExtractor, check_connection
from invoice_extractor.transport import KoncileTransport
from tests.helpers import RecordingSleep, ScriptedTransport, make_config, status

pytestmark = pytest.mark.unit

DOC = b"%PDF-1.7 fake invoice"
DONE = status(
    "DONE",
    general={
        "NET A PAYER": {"value": "120.500", "confidence_score": 0.97},
        "Fournisseur": {"value": "EDF", "confidence": 0.81},
    },
)


def make_extractor(transport, sleep=None, **config_overrides):
    return InvoiceExtractor(
        make_config(**config_overrides),
        transport=transport,
        sleep=sleep or RecordingSleep(),
    )


@pytest.mark.asyncio
async def test_successful_extraction_builds_data_and_metadata():
    transport = ScriptedTransport(statuses=[DONE])

    result = await make_extractor(transport).extract(DOC, "bill.pdf", "electricity")

    assert result.success is True
    assert result.error is None
    assert result.data["NET A PAYER"].value == "120.500"
    assert result.metadata.fields_extracted == 2
    assert result.metadata.confidence == 0.89
    assert result.processing_time_ms >= 0
    assert transport.submit_calls[0][2] == "18982"


@pytest.mark.asyncio
async def test_category_enum_and_configured_templates_are_honoured():
    transport = ScriptedTransport(statuses=[DONE])
    extractor = make_extractor(
        transport, templates={"electricity": "1", "gas": "2", "water": "3"}
    )

    await extractor.extract(DOC, "bill.pdf", InvoiceCategory.WATER)

    assert transport.submit_calls[0][2] == "3"


@pytest.mark.asyncio
async def test_unsupported_category_fails_without_network_calls():
    transport = ScriptedTransport()

    result = await make_extractor(transport).extract(DOC, "bill.pdf", "telecom")

    assert result.success is False
    assert "Unsupported invoice type: telecom" in result.error
    assert transport.network_calls == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(("document", "file_name"), [(b"", "bill.pdf"), (DOC, "  ")])
async def test_invalid_input_fails_without_network_calls(document, file_name):
    transport = ScriptedTransport()

    result = await make_extractor(transport).extract(document, file_name, "gas")

    assert result.success is False
    assert result.error.startswith("Invalid input")
    assert transport.network_calls == 0


@pytest.mark.asyncio
async def test_submission_errors_are_retried_with_backoff():
    sleep = RecordingSleep()
    transport = ScriptedTransport(
        submissions=[
            SubmissionError("Upload failed: 503 - busy"),
            SubmissionError("Upload failed: 503 - busy"),
            ("task-1",),
        ],
        statuses=[DONE],
    )

    result = await make_extractor(
        transport, sleep, retry_base_delay=1.0, max_retries=3
    ).extract(DOC, "bill.pdf", "gas")

    assert result.success is True
    assert len(transport.submit_calls) == 3
    assert sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_exhausted_retries_surface_the_last_submission_error():
    transport = ScriptedTransport(
        submissions=[SubmissionError("Upload failed: 500 - internal")]
    )

    result = await make_extractor(transport, max_retries=2).extract(
        DOC, "bill.pdf", "gas"
    )

    assert result.success is False
    assert result.error == "Upload failed: 500 - internal"
    assert len(transport.submit_calls) == 2


@pytest.mark.asyncio
async def test_template_not_found_is_not_retried_after_a_failed_fallback():
    transport = ScriptedTransport(
        submissions=[TemplateNotFoundError("18983"), ()],
    )

    result = await make_extractor(transport).extract(DOC, "bill.pdf", "gas")

    assert result.success is False
    assert result.error == "No task IDs returned from upload"
    assert [call[2] for call in transport.submit_calls] == ["18983", None]


@pytest.mark.asyncio
async def test_poll_timeout_is_reported_and_not_resubmitted():
    transport = ScriptedTransport(statuses=[status("IN PROGRESS")])

    result = await make_extractor(transport, max_poll_attempts=3).extract(
        DOC, "bill.pdf", "water"
    )

    assert result.success is False
    assert "did not complete within timeout period" in result.error
    assert len(transport.submit_calls) == 1
    assert len(transport.status_calls) == 3


@pytest.mark.asyncio
async def test_status_transport_failure_is_reported_without_resubmission():
    transport = ScriptedTransport(
        statuses=[TransportError("Task status check failed: 502")]
    )

    result = await make_extractor(transport, max_poll_attempts=2).extract(
        DOC, "bill.pdf", "water"
    )

    assert result.success is False
    assert result.error == "Task status check failed: 502"
    assert len(transport.submit_calls) == 1


@pytest.mark.asyncio
async def test_oversized_confidence_falls_back_instead_of_failing():
    transport = ScriptedTransport(
        statuses=[
            status(
                "DONE",
                general={
                    "NET A PAYER": {"value": "120.500", "confidence_score": 0.97},
                    "Index": {"value": "2", "confidence_score": 10**400},
                },
            )
        ]
    )

    result = await make_extractor(transport, fallback_confidence=0.9).extract(
        DOC, "bill.pdf", "gas"
    )

    assert result.success is True
    assert result.data["Index"].confidence == 0.9
    assert result.metadata.fields_extracted == 2


@pytest.mark.asyncio
async def test_unexpected_errors_never_escape():
    transport = ScriptedTransport(submissions=[RuntimeError()])

    result = await make_extractor(transport).extract(DOC, "bill.pdf", "gas")

    assert result.success is False
    assert result.error == "RuntimeError"


@pytest.mark.asyncio
async def test_empty_upload_acknowledgement_is_not_retried():
    transport = ScriptedTransport(submissions=[()])

    result = await make_extractor(transport).extract(DOC, "bill.pdf", "gas")

    assert result.success is False
    assert result.error == str(NoTaskIssuedError("No task IDs returned from upload"))
    assert len(transport.submit_calls) == 1


def test_default_transport_is_built_from_config():
    extractor = InvoiceExtractor(make_config(api_url="https://svc.test/"))

    assert isinstance(extractor.transport, KoncileTransport)
    assert extractor.transport.api_url == "https://svc.test"


@pytest.mark.asyncio
async def test_missing_api_key_surfaces_as_a_failed_result():
    extractor = InvoiceExtractor(make_config(api_key=None))

    result = await extractor.extract(DOC, "bill.pdf", "gas")

    assert result.success is False
    assert "KONCILE_API_KEY" in result.error


class TestCheckConnection:
    @pytest.mark.asyncio
    async def test_reachable_service(self):
        report = await check_connection(
            config=make_config(), transport=ScriptedTransport(probe_result=True)
        )

        assert report.connected is True
        assert report.api_key_configured is True
        assert report.api_url == "https://koncile.test"
        assert report.error is None

    @pytest.mark.asyncio
    async def test_rejected_probe(self):
        report = await check_connection(
            config=make_config(), transport=ScriptedTransport(probe_result=False)
        )

        assert report.connected is False
        assert report.error

    @pytest.mark.asyncio
    async def test_probe_exception_is_captured(self):
        transport = ScriptedTransport(probe_result=OSError("unreachable"))

        report = await check_connection(config=make_config(), transport=transport)

        assert report.connected is False
        assert report.error == "unreachable"

    @pytest.mark.asyncio
    async def test_missing_key_is_reported_without_raising(self):
        report = await check_connection(config=make_config(api_key=None))

        assert report.connected is False
        assert report.api_key_configured is False
        assert "KONCILE_API_KEY" in report.error

    @pytest.mark.asyncio
    async def test_setup_failure_still_reports_a_configured_key(self):
        config = make_config(templates={"gas": "2"})

        report = await check_connection(config=config, transport=ScriptedTransport())

        assert report.connected is False
        assert report.api_key_configured is True
        assert "No extraction template configured" in report.error
