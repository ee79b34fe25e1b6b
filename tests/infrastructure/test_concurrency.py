"""Tests for the optimistic-concurrency guard."""

import pytest

from agro_refdata.domain.errors import ErrorKind
from agro_refdata.domain.operations import OperationContext, OperationKind
from agro_refdata.domain.transport import TransportResponse
from agro_refdata.exceptions import ConcurrencyConflictError, TransportError
from agro_refdata.infrastructure.concurrency import ConcurrencyGuard, extract_version
from tests.fakes import error_response

_CONTEXT = OperationContext("Pais", OperationKind.UPDATE, description="update Pais id=5")


class TestAttachToken:
    def test_token_is_sent_as_if_match(self) -> None:
        headers = ConcurrencyGuard().attach_token({"X-Trace": "1"}, "AAAB")
        assert headers == {"X-Trace": "1", "If-Match": "AAAB"}

    def test_absent_token_is_pass_through(self) -> None:
        assert ConcurrencyGuard().attach_token(None, None) == {}
        assert ConcurrencyGuard().attach_token({"X-Trace": "1"}, "") == {"X-Trace": "1"}


class TestInterpretResponse:
    def test_success_returns_response(self) -> None:
        response = TransportResponse(status_code=200, body={"id": 5})
        result = ConcurrencyGuard().interpret_response(
            response, context=_CONTEXT, submitted_payload={"nome": "Brasil"}
        )
        assert result is response

    def test_412_becomes_conflict_with_current_version(self) -> None:
        payload = {"nome": "Brasil"}
        outcome = error_response(412, {"errorCode": "CONCURRENCY_CONFLICT"}, {"ETag": '"v9"'})

        with pytest.raises(ConcurrencyConflictError) as exc_info:
            ConcurrencyGuard().interpret_response(
                outcome, context=_CONTEXT, submitted_payload=payload, submitted_version="v7"
            )

        error = exc_info.value
        assert error.kind is ErrorKind.CONFLICT
        assert error.classification.retryable is False
        assert error.current_version == "v9"
        assert error.submitted_version == "v7"
        assert error.submitted_payload is payload
        assert error.status_code == 412
        assert error.attempts == 1

    def test_other_failures_are_reraised_unchanged(self) -> None:
        outcome = error_response(500)
        with pytest.raises(TransportError) as exc_info:
            ConcurrencyGuard().interpret_response(outcome, context=_CONTEXT, submitted_payload={})
        assert exc_info.value is outcome


class TestExtractVersion:
    def test_weak_etag_is_unquoted(self) -> None:
        response = TransportResponse(status_code=200, headers={"etag": 'W/"abc"'})
        assert extract_version(response) == "abc"

    def test_body_row_version(self) -> None:
        response = TransportResponse(status_code=412, body={"rowVersion": "AAAAAAAAB9E="})
        assert extract_version(response) == "AAAAAAAAB9E="

    def test_missing_version(self) -> None:
        assert extract_version(TransportResponse(status_code=412, body="text")) is None
