from __future__ import annotations

import pytest
import requests

from pos_billing.api import PosApiClient
from pos_billing.errors import TransientFailure, ValidationRejected


class FakeResponse:
    def __init__(self, status_code=200, body=None, reason="OK", invalid_json=False):
        self.status_code = status_code
        self.reason = reason
        self._body = body
        self._invalid_json = invalid_json

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._invalid_json:
            raise ValueError("Expecting value")
        return self._body


class FakeSession:
    def __init__(self, *responses, error=None):
        self.headers = {}
        self.responses = list(responses)
        self.error = error
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.responses.pop(0)


def _client(session, token=None):
    return PosApiClient(base_url="http://pos.test/api/", token=token, timeout=3, session=session)


def test_fetch_menu_unwraps_data_and_sends_filter():
    session = FakeSession(FakeResponse(body={"success": True, "data": [{"_id": "bc1"}]}))

    items = _client(session).fetch_menu()

    assert items == [{"_id": "bc1"}]
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("GET", "http://pos.test/api/menu")
    assert kwargs["params"] == {"available": "true"}
    assert kwargs["timeout"] == 3


def test_fetch_menu_accepts_bare_list():
    session = FakeSession(FakeResponse(body=[{"_id": "bc1"}, {"_id": "nan1"}]))
    assert len(_client(session).fetch_menu()) == 2


def test_bearer_token_header():
    session = FakeSession()
    _client(session, token="abc123")
    assert session.headers["Authorization"] == "Bearer abc123"
    assert session.headers["Content-Type"] == "application/json"


def test_create_bill_posts_payload_with_idempotency_key():
    session = FakeSession(FakeResponse(201, body={"success": True, "data": {"billNumber": "B-1001"}}))

    bill = _client(session).create_bill({"items": []}, idempotency_key="k-1")

    assert bill == {"billNumber": "B-1001"}
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("POST", "http://pos.test/api/bills")
    assert kwargs["json"] == {"items": []}
    assert kwargs["headers"] == {"Idempotency-Key": "k-1"}


def test_create_bill_accepts_legacy_bill_envelope():
    session = FakeSession(FakeResponse(201, body={"message": "Bill created successfully", "bill": {"billNumber": "B1"}}))
    assert _client(session).create_bill({})["billNumber"] == "B1"


def test_client_error_maps_to_validation_rejected():
    session = FakeSession(FakeResponse(400, body={"success": False, "message": "Customer name is required"}, reason="Bad Request"))

    with pytest.raises(ValidationRejected) as info:
        _client(session).create_bill({})

    assert info.value.message == "Customer name is required"
    assert info.value.status_code == 400
    assert not info.value.retryable


def test_server_error_maps_to_transient_failure():
    session = FakeSession(FakeResponse(500, body={"message": "Failed to create bill"}, reason="Internal Server Error"))

    with pytest.raises(TransientFailure) as info:
        _client(session).create_bill({})

    assert info.value.status_code == 500
    assert info.value.retryable


def test_error_without_json_body_uses_status_line():
    session = FakeSession(FakeResponse(404, reason="Not Found", invalid_json=True))

    with pytest.raises(ValidationRejected) as info:
        _client(session).printer_status()

    assert info.value.message == "HTTP 404: Not Found"


@pytest.mark.parametrize("error", [requests.Timeout("read timed out"), requests.ConnectionError("refused")])
def test_transport_errors_are_transient(error):
    with pytest.raises(TransientFailure):
        _client(FakeSession(error=error)).fetch_menu()


def test_invalid_json_on_success_is_transient():
    session = FakeSession(FakeResponse(200, invalid_json=True))
    with pytest.raises(TransientFailure):
        _client(session).printer_status()


def test_print_bill_posts_printer_config():
    session = FakeSession(FakeResponse(body={"success": True, "message": "Bill printed successfully"}))

    response = _client(session).print_bill("64f0", {"printerName": "TVS RP3160"})

    assert response["success"] is True
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("POST", "http://pos.test/api/printer/print/64f0")
    assert kwargs["json"] == {"printerConfig": {"printerName": "TVS RP3160"}}
