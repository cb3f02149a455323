from contextlib import asynccontextmanager
import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from starlette.exceptions import HTTPException as StarletteHTTPException

from goodcall.api.routes import router as api_router
from goodcall.context import get_correlation_id
from goodcall.core.config import get_settings
from goodcall.core.context import RequestContextMiddleware
from goodcall.core.events import DomainEvent, event_bus
from goodcall.logging import configure_logging
from goodcall.middleware.correlation_id import CorrelationIdMiddleware
from goodcall.middleware.rate_limit import LoginRateLimitMiddleware
from goodcall.middleware.request_logging import RequestLoggingMiddleware
from goodcall.otel import get_fastapi_server_request_hook, setup_otel
from goodcall.realtime.api import router as realtime_router
from goodcall.realtime.hub import hub


configure_logging()
logger = logging.getLogger("goodcall.lifecycle")
_subscriptions_registered = False

_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMITED",
}

# domain event prefix -> realtime event broadcast to every socket
_BROADCAST_EVENTS = {
    "sale": "sale_update",
    "goal": "goal_update",
    "user": "user_update",
}
_ACTIONS = ["created", "updated", "deleted", "restored"]


def error_response(request: Request, *, status_code: int, code: str, message: str, details: Any = None) -> JSONResponse:
    correlation_id = get_correlation_id() or getattr(request.state, "correlation_id", None)
    return JSONResponse(
        status_code=status_code,
        content={"code": code, "message": message, "details": details, "correlation_id": correlation_id},
    )


def _on_system_started(event: DomainEvent) -> None:
    logger.info("system_event", extra={"event_name": event.name})


def _on_broadcast_event(event: DomainEvent) -> None:
    envelope = event.payload
    realtime_event = _BROADCAST_EVENTS[event.name.split(".", 1)[0]]
    body = envelope.get("payload", {})
    try:
        hub.dispatch_broadcast(
            realtime_event,
            {"action": body.get("action"), "data": body.get("data"), "timestamp": envelope.get("occurred_at")},
        )
    except Exception as exc:
        logger.exception("realtime_dispatch_failed", extra={"event_name": event.name, "error": str(exc)[:500]})


def _on_notification_created(event: DomainEvent) -> None:
    body = event.payload.get("payload", {})
    user_id = body.get("user_id")
    if not isinstance(user_id, str):
        return
    try:
        hub.dispatch_to_user(user_id, "notification", body.get("data"))
    except Exception as exc:
        logger.exception("realtime_dispatch_failed", extra={"event_name": event.name, "error": str(exc)[:500]})


def register_subscriptions() -> None:
    global _subscriptions_registered
    if _subscriptions_registered:
        return
    event_bus.subscribe("system.started", _on_system_started)
    for prefix in _BROADCAST_EVENTS:
        for action in _ACTIONS:
            event_bus.subscribe(f"{prefix}.{action}", _on_broadcast_event)
    event_bus.subscribe("notification.created", _on_notification_created)
    _subscriptions_registered = True


@asynccontextmanager
async def lifespan(app: FastAPI):
    register_subscriptions()
    event_bus.publish("system.started", {"service": "api"})
    yield


app = FastAPI(title="GoodCall CRM API", version="0.1.0", lifespan=lifespan)
app.add_middleware(LoginRateLimitMiddleware)
app.add_middleware(RequestContextMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.include_router(api_router)
app.include_router(realtime_router)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    details = None if isinstance(exc.detail, str) else exc.detail
    response = error_response(
        request,
        status_code=exc.status_code,
        code=_ERROR_CODES.get(exc.status_code, "ERROR"),
        message=message,
        details=details,
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        request,
        status_code=422,
        code="VALIDATION_ERROR",
        message="Request validation failed",
        details=jsonable_encoder(exc.errors()),
    )


settings = get_settings()
if settings.otel_enabled:
    setup_otel("goodcall-api", True)

if not getattr(app, "_is_instrumented_by_opentelemetry", False):
    FastAPIInstrumentor().instrument_app(app, server_request_hook=get_fastapi_server_request_hook())
