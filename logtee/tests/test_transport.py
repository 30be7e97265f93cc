"""Tests for logtee.transport module."""

import json

import pytest
import requests
import responses

from fakes import make_record
from logtee.errors import ConfigError
from logtee.transport import ExportResult, HttpTransport, classify_status, resolve_endpoint

COLLECTOR_URL = "https://collector.example.com/v1/logs"


@pytest.fixture
def transport():
    t = HttpTransport(COLLECTOR_URL, service_name="checkout", headers={"X-Api-Key": "secret"})
    yield t
    t.close()


class TestResolveEndpoint:
    """Tests for resolve_endpoint()."""

    def test_full_url_unchanged(self):
        assert resolve_endpoint("http://host:4318/logs") == "http://host:4318/logs"

    def test_secure_scheme_added(self):
        assert resolve_endpoint("host:4318") == "https://host:4318"

    def test_insecure_scheme_added(self):
        assert resolve_endpoint("host:4318", insecure=True) == "http://host:4318"

    @pytest.mark.parametrize("bad", ["", "   ", "ftp://host/x", "http://"])
    def test_rejects_bad_addresses(self, bad):
        with pytest.raises(ConfigError) as exc_info:
            resolve_endpoint(bad)
        assert exc_info.value.option == "remote_endpoint"


class TestClassifyStatus:

    @pytest.mark.parametrize("status,expected", [
        (200, ExportResult.OK),
        (204, ExportResult.OK),
        (408, ExportResult.RETRYABLE),
        (429, ExportResult.RETRYABLE),
        (500, ExportResult.RETRYABLE),
        (503, ExportResult.RETRYABLE),
        (400, ExportResult.FATAL),
        (401, ExportResult.FATAL),
        (413, ExportResult.FATAL),
    ])
    def test_mapping(self, status, expected):
        assert classify_status(status) is expected


class TestHttpTransportSend:
    """Tests for HttpTransport.send()."""

    @responses.activate
    def test_success_posts_json_batch(self, transport):
        responses.add(responses.POST, COLLECTOR_URL, status=200)

        batch = (make_record("first", user="alice"), make_record("second"))
        assert transport.send(batch) is ExportResult.OK

        assert len(responses.calls) == 1
        request = responses.calls[0].request
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["X-Api-Key"] == "secret"

        payload = json.loads(request.body)
        assert payload["service"] == "checkout"
        assert [r["body"] for r in payload["records"]] == ["first", "second"]
        assert payload["records"][0]["attributes"] == [["user", "alice"]]

    @responses.activate
    def test_server_error_is_retryable(self, transport):
        responses.add(responses.POST, COLLECTOR_URL, status=503)
        assert transport.send((make_record(),)) is ExportResult.RETRYABLE

    @responses.activate
    def test_client_error_is_fatal(self, transport):
        responses.add(responses.POST, COLLECTOR_URL, status=400, json={"error": "bad batch"})
        assert transport.send((make_record(),)) is ExportResult.FATAL

    @responses.activate
    def test_connection_error_is_retryable(self, transport):
        responses.add(responses.POST, COLLECTOR_URL, body=requests.ConnectionError("refused"))
        assert transport.send((make_record(),)) is ExportResult.RETRYABLE

    @responses.activate
    def test_timeout_is_retryable(self, transport):
        responses.add(responses.POST, COLLECTOR_URL, body=requests.Timeout("slow"))
        assert transport.send((make_record(),)) is ExportResult.RETRYABLE

    def test_empty_batch_is_fatal(self, transport):
        assert transport.send(()) is ExportResult.FATAL

    def test_unserializable_batch_is_fatal(self, transport, monkeypatch):
        def boom(batch):
            raise TypeError("cannot encode")

        monkeypatch.setattr(transport, "serialize", boom)
        assert transport.send((make_record(),)) is ExportResult.FATAL

    @responses.activate
    def test_opaque_context_is_stringified(self, transport):
        responses.add(responses.POST, COLLECTOR_URL, status=200)

        record = make_record()
        record = record.__class__(
            timestamp=record.timestamp,
            severity=record.severity,
            body=record.body,
            context=object(),
        )
        assert transport.send((record,)) is ExportResult.OK
        payload = json.loads(responses.calls[0].request.body)
        assert isinstance(payload["records"][0]["context"], str)


class TestHttpTransportClose:
    """Tests for HttpTransport.close()."""

    def test_close_without_send(self):
        transport = HttpTransport(COLLECTOR_URL)
        transport.close()
        assert transport.closed

    @responses.activate
    def test_close_is_idempotent(self):
        responses.add(responses.POST, COLLECTOR_URL, status=200)
        transport = HttpTransport(COLLECTOR_URL)
        transport.send((make_record(),))

        transport.close()
        transport.close()
        assert transport.closed

    def test_send_after_close_is_fatal(self):
        transport = HttpTransport(COLLECTOR_URL)
        transport.close()
        assert transport.send((make_record(),)) is ExportResult.FATAL

    def test_no_session_created_after_close(self):
        transport = HttpTransport(COLLECTOR_URL)
        transport.close()

        assert transport._get_session() is None
        transport.send((make_record(),))
        assert transport._session is None

    def test_context_manager_closes(self):
        with HttpTransport(COLLECTOR_URL) as transport:
            pass
        assert transport.closed


class TestInsecureTransport:

    def test_insecure_disables_verification(self):
        transport = HttpTransport("collector:4318", insecure=True)
        try:
            assert transport.endpoint == "http://collector:4318"
            assert transport._get_session().verify is False
        finally:
            transport.close()

    def test_secure_by_default(self):
        transport = HttpTransport("collector:4318")
        try:
            assert transport.endpoint == "https://collector:4318"
            assert transport._get_session().verify is True
        finally:
            transport.close()
