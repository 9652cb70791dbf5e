"""
Probe Catalog - Declarative reachability targets.

HTTP probes span several vendors (Google, Cloudflare, Microsoft, IANA) and
match on status, exact body or substring. Raw TCP targets are checked
without HTTP, and the IP literals without DNS.
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple, Union

from pulse.core.constants import HTTP_PROBE_TIMEOUT, TCP_PROBE_TIMEOUT


@dataclass(frozen=True)
class StatusIn:
    """Status code must fall in [low, high] (inclusive)."""

    low: int
    high: int

    def matches(self, status_code: int, body: str) -> bool:
        return self.low <= status_code <= self.high


@dataclass(frozen=True)
class ExactBody:
    """Body, with surrounding whitespace trimmed, must equal `text`."""

    text: str

    def matches(self, status_code: int, body: str) -> bool:
        return body.strip() == self.text


@dataclass(frozen=True)
class BodyContains:
    """Body must contain `text`."""

    text: str

    def matches(self, status_code: int, body: str) -> bool:
        return self.text in body


Expectation = Union[StatusIn, ExactBody, BodyContains]


@dataclass(frozen=True)
class HTTPProbe:
    url: str
    method: str  # "HEAD" or "GET"
    timeout: float
    expectation: Expectation

    def __post_init__(self):
        if self.method not in ("HEAD", "GET"):
            raise ValueError(f"Unsupported probe method: {self.method}")


@dataclass(frozen=True)
class TCPTarget:
    host: str
    port: int

    def __str__(self):
        return f"{self.host}:{self.port}"


DEFAULT_HTTP_PROBES: Tuple[HTTPProbe, ...] = (
    # Google: tiny empty 204
    HTTPProbe("https://www.google.com/generate_204", "HEAD", HTTP_PROBE_TIMEOUT, StatusIn(204, 204)),
    # Cloudflare: small diagnostic text body
    HTTPProbe("https://www.cloudflare.com/cdn-cgi/trace", "GET", HTTP_PROBE_TIMEOUT, BodyContains("h=")),
    # Microsoft NCSI / ConnectTest (HTTP, no TLS)
    HTTPProbe(
        "http://www.msftconnecttest.com/connecttest.txt",
        "GET",
        HTTP_PROBE_TIMEOUT,
        ExactBody("Microsoft Connect Test"),
    ),
    HTTPProbe("http://www.msftncsi.com/ncsi.txt", "GET", HTTP_PROBE_TIMEOUT, ExactBody("Microsoft NCSI")),
    # IANA example.com (HTTP, no TLS dependency)
    HTTPProbe("http://example.com/", "HEAD", HTTP_PROBE_TIMEOUT, StatusIn(200, 299)),
)

DEFAULT_TCP_TARGETS: Tuple[TCPTarget, ...] = (
    # Cloudflare + Google by IP, no DNS involved
    TCPTarget("1.1.1.1", 443),
    TCPTarget("8.8.8.8", 443),
    # Microsoft edges via DNS (works in regions where Google may be blocked)
    TCPTarget("www.microsoft.com", 443),
    TCPTarget("www.bing.com", 443),
)


@dataclass(frozen=True)
class ProbeCatalog:
    """The full set of probes run by one evaluation."""

    http_probes: Tuple[HTTPProbe, ...] = DEFAULT_HTTP_PROBES
    tcp_targets: Tuple[TCPTarget, ...] = DEFAULT_TCP_TARGETS
    tcp_timeout: float = TCP_PROBE_TIMEOUT

    @classmethod
    def default(cls) -> "ProbeCatalog":
        return cls()

    def with_timeouts(
        self, http_timeout: Optional[float] = None, tcp_timeout: Optional[float] = None
    ) -> "ProbeCatalog":
        """Return a copy with every HTTP probe and/or the TCP timeout overridden."""
        http_probes = self.http_probes
        if http_timeout is not None:
            http_probes = tuple(replace(p, timeout=float(http_timeout)) for p in self.http_probes)
        return replace(
            self,
            http_probes=http_probes,
            tcp_timeout=float(tcp_timeout) if tcp_timeout is not None else self.tcp_timeout,
        )

    @property
    def size(self) -> int:
        return len(self.http_probes) + len(self.tcp_targets)

    @property
    def max_timeout(self) -> float:
        timeouts = [p.timeout for p in self.http_probes]
        if self.tcp_targets:
            timeouts.append(self.tcp_timeout)
        return max(timeouts, default=0.0)
