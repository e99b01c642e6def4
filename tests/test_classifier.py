from __future__ import annotations

import asyncio

import pytest

from site_audit.classifier import classify_failure, classify_response, classify_status, transport_error
from site_audit.errors import TransportError
from site_audit.models import StatusCategory


@pytest.mark.parametrize(
    "status,expected",
    [
        (200, StatusCategory.OK),
        (204, StatusCategory.OK),
        (299, StatusCategory.OK),
        (300, StatusCategory.REDIRECT),
        (301, StatusCategory.REDIRECT),
        (399, StatusCategory.REDIRECT),
        (400, StatusCategory.BROKEN),
        (404, StatusCategory.BROKEN),
        (503, StatusCategory.BROKEN),
        (0, StatusCategory.UNKNOWN),
        (101, StatusCategory.UNKNOWN),
        (None, StatusCategory.UNKNOWN),
    ],
)
def test_classify_status(status, expected):
    assert classify_status(status) is expected


def test_transport_failure_is_error():
    assert classify_status(None, failed=True) is StatusCategory.ERROR
    assert classify_status(200, failed=True) is StatusCategory.ERROR


def test_redirect_target_is_resolved():
    result = classify_response("https://a.com/old/page", 301, "/new")
    assert result.category is StatusCategory.REDIRECT
    assert result.redirect_target == "https://a.com/new"


def test_location_ignored_outside_redirects():
    result = classify_response("https://a.com/", 200, "/elsewhere")
    assert result.category is StatusCategory.OK
    assert result.redirect_target is None


def test_classify_failure():
    result = classify_failure("https://a.com/", asyncio.TimeoutError())
    assert result.status == 0
    assert result.category is StatusCategory.ERROR
    assert result.error == "timeout"

    result = classify_failure("https://a.com/", ConnectionRefusedError("refused"))
    assert result.error == "refused"
    assert result.to_dict() == {"url": "https://a.com/", "status": 0, "type": "error", "error": "refused"}


def test_transport_error_wraps_client_failures():
    cause = asyncio.TimeoutError()
    error = transport_error("https://a.com/", cause)

    assert isinstance(error, TransportError)
    assert error.reason == "timeout"
    assert error.__cause__ is cause
    assert classify_failure("https://a.com/", error).error == "timeout"
