"""Unit tests for ProbeExecutor."""

import socket
import threading
import time
from unittest.mock import MagicMock, patch

import pytest
import requests

from pulse.core.probe_catalog import BodyContains, ExactBody, HTTPProbe, StatusIn, TCPTarget
from pulse.core.types import ProbeOutcome
from pulse.services.probe_executor import ProbeExecutor


def make_session_factory(status_code=200, chunks=(), error=None):
    """Build a session factory whose request() returns a canned response."""
    response = MagicMock()
    response.__enter__.return_value = response
    response.status_code = status_code
    response.iter_content.return_value = iter(chunks)

    session = MagicMock()
    session.__enter__.return_value = session
    if error is not None:
        session.request.side_effect = error
    else:
        session.request.return_value = response

    factory = MagicMock(return_value=session)
    return factory, session, response


class TestHTTPProbes:
    """Test suite for HTTP probe execution."""

    def test_status_match(self):
        """Test a 204 from generate_204 is a match."""
        factory, session, response = make_session_factory(status_code=204)
        probe = HTTPProbe("https://www.google.com/generate_204", "HEAD", 3, StatusIn(204, 204))

        assert ProbeExecutor(session_factory=factory).execute(probe) == ProbeOutcome.MATCHED
        # HEAD never reads a body
        response.iter_content.assert_not_called()

    def test_redirect_is_unmatched(self):
        """Test a portal redirect counts as an answer that did not match."""
        factory, session, _ = make_session_factory(status_code=302)
        probe = HTTPProbe("http://example.com/", "HEAD", 3, StatusIn(200, 299))

        assert ProbeExecutor(session_factory=factory).execute(probe) == ProbeOutcome.RESPONDED_UNMATCHED

    def test_request_arguments(self):
        """Test probes use the declared method and timeout and never follow redirects."""
        factory, session, _ = make_session_factory(status_code=204)
        probe = HTTPProbe("https://www.google.com/generate_204", "HEAD", 2.5, StatusIn(204, 204))

        ProbeExecutor(session_factory=factory).execute(probe)

        args, kwargs = session.request.call_args
        assert args == ("HEAD", "https://www.google.com/generate_204")
        assert kwargs["timeout"] == 2.5
        assert kwargs["allow_redirects"] is False
        assert kwargs["stream"] is True
        assert kwargs["headers"]["Cache-Control"] == "no-cache"

    def test_exact_body_match(self):
        """Test the NCSI body (with trailing newline) matches."""
        factory, _, _ = make_session_factory(status_code=200, chunks=[b"Microsoft ", b"NCSI\n"])
        probe = HTTPProbe("http://www.msftncsi.com/ncsi.txt", "GET", 3, ExactBody("Microsoft NCSI"))

        assert ProbeExecutor(session_factory=factory).execute(probe) == ProbeOutcome.MATCHED

    def test_portal_body_is_unmatched(self):
        """Test a login page served with 200 is reported as unmatched."""
        factory, _, _ = make_session_factory(status_code=200, chunks=[b"<html>Please log in</html>"])
        probe = HTTPProbe("http://www.msftncsi.com/ncsi.txt", "GET", 3, ExactBody("Microsoft NCSI"))

        assert ProbeExecutor(session_factory=factory).execute(probe) == ProbeOutcome.RESPONDED_UNMATCHED

    def test_body_contains_match(self):
        """Test the Cloudflare trace body matches on substring."""
        factory, _, _ = make_session_factory(status_code=200, chunks=[b"fl=1\nh=www.cloudflare.com\n"])
        probe = HTTPProbe("https://www.cloudflare.com/cdn-cgi/trace", "GET", 3, BodyContains("h="))

        assert ProbeExecutor(session_factory=factory).execute(probe) == ProbeOutcome.MATCHED

    def test_body_read_is_capped(self):
        """Test only the first max_body_bytes are considered."""
        factory, _, _ = make_session_factory(status_code=200, chunks=[b"aaaa", b"aaaa", b"h=late"])
        probe = HTTPProbe("https://www.cloudflare.com/cdn-cgi/trace", "GET", 3, BodyContains("h="))

        executor = ProbeExecutor(session_factory=factory, max_body_bytes=8)
        assert executor.execute(probe) == ProbeOutcome.RESPONDED_UNMATCHED

    def test_invalid_utf8_does_not_raise(self):
        """Test undecodable bytes are replaced instead of failing the probe."""
        factory, _, _ = make_session_factory(status_code=200, chunks=[b"\xff\xfe h="])
        probe = HTTPProbe("https://www.cloudflare.com/cdn-cgi/trace", "GET", 3, BodyContains("h="))

        assert ProbeExecutor(session_factory=factory).execute(probe) == ProbeOutcome.MATCHED

    @pytest.mark.parametrize(
        "error",
        [
            requests.exceptions.ConnectTimeout("timed out"),
            requests.exceptions.ReadTimeout("timed out"),
            requests.exceptions.ConnectionError("refused"),
            requests.exceptions.SSLError("bad cert"),
            OSError("network unreachable"),
        ],
    )
    def test_transport_errors_are_no_response(self, error):
        """Test every transport failure degrades to NO_RESPONSE."""
        factory, _, _ = make_session_factory(error=error)
        probe = HTTPProbe("https://www.google.com/generate_204", "HEAD", 3, StatusIn(204, 204))

        assert ProbeExecutor(session_factory=factory).execute(probe) == ProbeOutcome.NO_RESPONSE


class TestTCPProbes:
    """Test suite for TCP connect probes."""

    def test_connects_to_listening_socket(self):
        """Test a reachable listener reports connected."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server:
            server.bind(("127.0.0.1", 0))
            server.listen(1)
            port = server.getsockname()[1]

            assert ProbeExecutor().connect(TCPTarget("127.0.0.1", port), timeout=1.0) is True

    def test_refused_connection(self):
        """Test a closed port reports not connected."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind(("127.0.0.1", 0))
            port = s.getsockname()[1]
        # Socket closed: nothing listens on the port now

        assert ProbeExecutor().connect(TCPTarget("127.0.0.1", port), timeout=1.0) is False

    def test_hanging_connect_is_cut_at_deadline(self):
        """Test a connect that never returns in time is reported as not connected."""
        release = threading.Event()
        late_socket = MagicMock()
        closed = threading.Event()
        late_socket.close.side_effect = lambda: closed.set()

        def hanging_connect(address, timeout=None):
            release.wait(5)
            return late_socket

        with patch("pulse.services.probe_executor.socket.create_connection", side_effect=hanging_connect):
            start = time.monotonic()
            result = ProbeExecutor().connect(TCPTarget("www.example.com", 443), timeout=0.1)
            elapsed = time.monotonic() - start

            assert result is False
            assert elapsed < 1.0

            # The loser's late connection is closed and does not change the result
            release.set()
            assert closed.wait(2)
            assert result is False

    def test_dns_failure(self):
        """Test name resolution errors report not connected."""
        with patch(
            "pulse.services.probe_executor.socket.create_connection",
            side_effect=socket.gaierror("Name or service not known"),
        ):
            assert ProbeExecutor().connect(TCPTarget("no-such-host.invalid", 443), timeout=1.0) is False
