"""
Idempotent Prometheus metric registration.

Relay metric modules can be imported more than once in a process (uvicorn
--reload, test collection); a second registration under the same name
returns the collector already in the default registry.
"""

from prometheus_client import REGISTRY, Counter, Gauge, Histogram


def _registered(metric_class, name: str, doc: str, *args, **kwargs):
    try:
        return metric_class(name, doc, *args, **kwargs)
    except ValueError:
        # Duplicated timeseries in the registry
        return REGISTRY._names_to_collectors[name]


def _get_or_create_counter(
    name: str, doc: str, labels: list[str] | None = None
) -> Counter:
    """Counter `name`, labelled by `labels` when given."""
    return _registered(Counter, name, doc, labels or [])


def _get_or_create_gauge(
    name: str, doc: str, labels: list[str] | None = None
) -> Gauge:
    """Gauge `name`, labelled by `labels` when given."""
    return _registered(Gauge, name, doc, labels or [])


def _get_or_create_histogram(
    name: str, doc: str, buckets: tuple[float, ...]
) -> Histogram:
    """Unlabelled histogram `name` with explicit latency buckets."""
    return _registered(Histogram, name, doc, buckets=buckets)
