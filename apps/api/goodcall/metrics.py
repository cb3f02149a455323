from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

auth_login_attempts_total = Counter(
    "auth_login_attempts_total",
    "Login attempts by outcome",
    ["outcome"],
)

auth_account_lockouts_total = Counter(
    "auth_account_lockouts_total",
    "Accounts locked after repeated failed logins",
)

soft_deletes_total = Counter(
    "soft_deletes_total",
    "Deletes rewritten into soft deletes",
    ["model"],
)

soft_delete_restores_total = Counter(
    "soft_delete_restores_total",
    "Soft-deleted rows restored",
    ["model"],
)

realtime_connections = Gauge(
    "realtime_connections",
    "Open realtime sockets",
)

realtime_events_total = Counter(
    "realtime_events_total",
    "Realtime events emitted by event and fan-out scope",
    ["event", "scope"],
)


_UUID_RE = re.compile(
    r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}\b"
)
_INT_RE = re.compile(r"/\d+\b")
_PATH_PARAM_RE = re.compile(r"\{[^{}]+\}")


def _normalize_route_template(path: str) -> str:
    return _PATH_PARAM_RE.sub("{id}", path)


def _sanitize_path(path: str) -> str:
    without_uuids = _UUID_RE.sub("{id}", path)
    return _INT_RE.sub("/{id}", without_uuids)


def _mount_prefix(route: object, path: str) -> str:
    # routers included under a prefix may match with a template relative to that prefix
    path_regex = getattr(route, "path_regex", None)
    if path_regex is None or path_regex.match(path):
        return ""
    pattern = path_regex.pattern.removeprefix("^")
    found = re.match(r"(?P<_mount_prefix>/.*?)" + pattern, path)
    return found.group("_mount_prefix") if found else ""


def resolve_http_path_label(request: Request) -> str:
    path = request.scope.get("path", request.url.path)
    route = request.scope.get("route")
    if route is not None:
        template = getattr(route, "path_format", None) or getattr(route, "path", None)
        if isinstance(template, str) and template:
            return _normalize_route_template(_mount_prefix(route, path) + template)
    return _sanitize_path(path)


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    status_str = str(status)
    http_requests_total.labels(method=method, path=path, status=status_str).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_login_attempt(outcome: str) -> None:
    auth_login_attempts_total.labels(outcome=outcome).inc()


def observe_account_lockout() -> None:
    auth_account_lockouts_total.inc()


def observe_soft_delete(model: str) -> None:
    soft_deletes_total.labels(model=model).inc()


def observe_restore(model: str) -> None:
    soft_delete_restores_total.labels(model=model).inc()


def set_realtime_connections(count: int) -> None:
    realtime_connections.set(count)


def observe_realtime_event(event: str, scope: str) -> None:
    realtime_events_total.labels(event=event, scope=scope).inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
