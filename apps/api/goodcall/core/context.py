from dataclasses import dataclass

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from goodcall.context import reset_client_meta, set_client_meta


@dataclass
class RequestContext:
    request_id: str
    correlation_id: str
    user_id: str | None
    ip_address: str | None
    user_agent: str | None


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        correlation_id = getattr(request.state, "correlation_id", None)
        request.state.context = RequestContext(
            request_id=correlation_id or "",
            correlation_id=correlation_id or "",
            user_id=None,
            ip_address=_client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
        tokens = set_client_meta(request.state.context.ip_address, request.state.context.user_agent)
        try:
            response = await call_next(request)
        finally:
            reset_client_meta(tokens)
        response.headers["x-request-id"] = request.state.context.request_id
        return response
