import io

import pytest

from authhttp import service as service_module
from authhttp.errors import TransportError
from authhttp.service import HttpService, RequestOutcome
from authhttp.transport import ProxyConfig


class _TrackedStream(io.BytesIO):
    def __init__(self, data: bytes, log: list[str], name: str, fail_read: bool = False):
        super().__init__(data)
        self._log = log
        self._name = name
        self._fail_read = fail_read
        log.append(f"open:{name}")

    def read(self, *args):
        if self._fail_read:
            raise ConnectionResetError("reset mid-read")
        return super().read(*args)

    def close(self):
        if not self.closed:
            self._log.append(f"close:{self._name}")
        super().close()


class FakeConnection:
    """Stands in for transport.Connection and records every open/close."""

    def __init__(
        self,
        url,
        body: bytes = b"",
        status: int = 200,
        error_body: bytes | None = None,
        fail: bool = False,
        fail_read: bool = False,
    ):
        self.url = url
        self.events: list[str] = []
        self.headers: dict[str, str] = {}
        self.do_output = False
        self.written = b""
        self.response_code = None
        self.closed = False
        self._body = body
        self._status = status
        self._error_body = error_body
        self._fail = fail
        self._fail_read = fail_read

    def set_header(self, name, value):
        self.headers[name] = value

    def output_stream(self):
        conn = self

        class _Out(io.BytesIO):
            def close(self):
                if not self.closed:
                    conn.written = self.getvalue()
                    conn.events.append("close:output")
                super().close()

        self.events.append("open:output")
        return _Out()

    def input_stream(self):
        if self._fail:
            if self._error_body is not None:
                self.response_code = self._status
                raise TransportError("http error", url=self.url, status=self._status)
            raise TransportError("connection reset", url=self.url)
        self.response_code = self._status
        return _TrackedStream(self._body, self.events, "input", fail_read=self._fail_read)

    def error_stream(self):
        if self._error_body is None:
            return None
        return _TrackedStream(self._error_body, self.events, "error")

    def close(self):
        self.closed = True
        self.events.append("close:connection")

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


def _service(conn: FakeConnection, observer=None) -> HttpService:
    def opener(url, proxy):
        assert isinstance(proxy, ProxyConfig)
        return conn

    return HttpService(ProxyConfig.direct(), observer=observer, opener=opener)


def _all_closed(events: list[str]) -> bool:
    opened = {e.split(":", 1)[1] for e in events if e.startswith("open:")}
    closed = {e.split(":", 1)[1] for e in events if e.startswith("close:")}
    return opened <= closed and "connection" in closed


def test_post_writes_utf8_body_and_headers():
    conn = FakeConnection("http://h/p", body=b"a=1")
    result = _service(conn).post("http://h/p", "a=1", "application/x-www-form-urlencoded")

    assert result == "a=1"
    assert conn.do_output is True
    assert conn.written == b"a=1"
    assert conn.headers["Content-Type"] == "application/x-www-form-urlencoded; charset=utf-8"
    assert conn.headers["Content-Length"] == "3"
    assert _all_closed(conn.events)


def test_post_content_length_counts_bytes_not_characters():
    conn = FakeConnection("http://h/p", body=b"{}")
    _service(conn).post("http://h/p", "é€", "application/json")

    assert conn.written == "é€".encode("utf-8")
    assert conn.headers["Content-Length"] == "5"


def test_get_returns_body_with_status():
    conn = FakeConnection("http://h/p", body="héllo".encode("utf-8"), status=200)
    outcome = _service(conn).get_outcome("http://h/p")

    assert outcome == RequestOutcome(body="héllo", status=200)
    assert "Authorization" not in conn.headers
    assert _all_closed(conn.events)


def test_get_sets_authorization_when_given():
    conn = FakeConnection("http://h/p", body=b"ok")
    _service(conn).get("http://h/p", "Bearer abc")

    assert conn.headers["Authorization"] == "Bearer abc"


def test_error_page_is_returned_as_data():
    conn = FakeConnection("http://h/p", status=500, error_body=b"error detail", fail=True)
    outcome = _service(conn).get_outcome("http://h/p")

    assert outcome.body == "error detail"
    assert outcome.status == 500
    assert _all_closed(conn.events)


def test_post_error_page_is_returned_as_data():
    conn = FakeConnection("http://h/p", status=403, error_body=b'{"error":"Forbidden"}', fail=True)
    result = _service(conn).post("http://h/p", "{}", "application/json")

    assert result == '{"error":"Forbidden"}'
    assert conn.events.index("close:output") < conn.events.index("open:error")


def test_failure_without_error_body_propagates():
    conn = FakeConnection("http://h/p", fail=True)

    with pytest.raises(TransportError, match="connection reset"):
        _service(conn).get("http://h/p")
    assert _all_closed(conn.events)


def test_empty_error_page_propagates_original_error():
    conn = FakeConnection("http://h/p", status=502, error_body=b"", fail=True)

    with pytest.raises(TransportError, match="http error") as excinfo:
        _service(conn).get_outcome("http://h/p")
    assert excinfo.value.status == 502
    assert _all_closed(conn.events)


def test_read_failure_closes_stream_and_propagates():
    conn = FakeConnection("http://h/p", body=b"partial", fail_read=True)

    with pytest.raises(TransportError, match="could not read response") as excinfo:
        _service(conn).get("http://h/p")
    assert isinstance(excinfo.value.__cause__, ConnectionResetError)
    assert _all_closed(conn.events)


def test_invalid_utf8_is_replaced_not_raised():
    conn = FakeConnection("http://h/p", body=b"ok\xff")
    assert _service(conn).get("http://h/p") == "ok\ufffd"


def test_observer_never_sees_secrets():
    lines: list[str] = []
    conn = FakeConnection("http://h/p", body=b"ok")
    _service(conn, observer=lines.append).get("http://h/p", "Bearer secret-token")

    conn = FakeConnection("http://h/p", body=b"ok")
    _service(conn, observer=lines.append).post("http://h/p", "password=hunter2", "text/plain")

    assert lines
    assert not any("secret-token" in line for line in lines)
    assert not any("hunter2" in line for line in lines)
    assert any("Successful read, server response was 200" in line for line in lines)


def test_observer_reports_failure():
    lines: list[str] = []
    conn = FakeConnection("http://h/p", fail=True)

    with pytest.raises(TransportError):
        _service(conn, observer=lines.append).get("http://h/p")
    assert any(line.startswith("Request failed") for line in lines)


def test_missing_arguments_are_rejected():
    service = _service(FakeConnection("http://h/p"))

    with pytest.raises(ValueError):
        service.post("http://h/p", None, "text/plain")
    with pytest.raises(ValueError):
        service.post("http://h/p", "x", None)
    with pytest.raises(ValueError):
        service.get(None)


def test_service_requires_proxy():
    with pytest.raises(ValueError, match="ProxyConfig.direct"):
        HttpService(None)


def test_from_env_reads_proxy_and_debug(monkeypatch, capsys):
    monkeypatch.setenv("AUTHHTTP_PROXY", "http://proxy.local:3128")
    monkeypatch.setenv("AUTHHTTP_DEBUG", "yes")

    service = HttpService.from_env()
    assert service.proxy == ProxyConfig.http("proxy.local", 3128)

    conn = FakeConnection("http://h/p", body=b"ok")
    monkeypatch.setattr(service_module, "open_connection", lambda url, proxy: conn)
    debug_service = HttpService.from_env()
    assert debug_service.get("http://h/p") == "ok"

    err = capsys.readouterr().err
    assert "[authhttp] Opening connection to http://h/p" in err
    assert "[authhttp] Successful read, server response was 200" in err
