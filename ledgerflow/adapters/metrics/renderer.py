"""Metrics renderer adapters (Prometheus + Fake)."""

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from ledgerflow.core.protocols.metrics import MetricsRenderer


def split_content_type(raw: str) -> tuple[str, str]:
    """Return (media type with parameters, charset) for a Content-Type header value."""
    media, charset = [], "utf-8"
    for part in (p.strip() for p in raw.split(";")):
        key, _, value = part.partition("=")
        if key.lower() == "charset" and value:
            charset = value.strip()
        else:
            media.append(part)
    return "; ".join(media), charset


class PrometheusMetricsRenderer(MetricsRenderer):
    """Serialize a CollectorRegistry in Prometheus text exposition format."""

    def __init__(self, registry: CollectorRegistry) -> None:
        self._registry = registry
        self._content_type, self._charset = split_content_type(CONTENT_TYPE_LATEST)

    @property
    def content_type(self) -> str:
        return self._content_type

    @property
    def charset(self) -> str:
        return self._charset

    def generate(self) -> bytes:
        return generate_latest(self._registry)


class FakeMetricsRenderer(MetricsRenderer):
    """In-memory spy implementing the MetricsRenderer protocol."""

    def __init__(self, body: bytes = b"# fake metrics\n") -> None:
        self.body = body
        self.generate_calls: int = 0

    @property
    def content_type(self) -> str:
        return "text/plain"

    @property
    def charset(self) -> str:
        return "utf-8"

    def generate(self) -> bytes:
        self.generate_calls += 1
        return self.body
