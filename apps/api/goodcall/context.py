from __future__ import annotations

from contextvars import ContextVar, Token

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
client_ip_var: ContextVar[str | None] = ContextVar("client_ip", default=None)
user_agent_var: ContextVar[str | None] = ContextVar("user_agent", default=None)


def set_correlation_id(value: str | None) -> Token[str | None]:
    return correlation_id_var.set(value)


def reset_correlation_id(token: Token[str | None]) -> None:
    correlation_id_var.reset(token)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def set_client_meta(ip_address: str | None, user_agent: str | None) -> tuple[Token[str | None], Token[str | None]]:
    return client_ip_var.set(ip_address), user_agent_var.set(user_agent)


def reset_client_meta(tokens: tuple[Token[str | None], Token[str | None]]) -> None:
    ip_token, agent_token = tokens
    client_ip_var.reset(ip_token)
    user_agent_var.reset(agent_token)


def get_client_ip() -> str | None:
    return client_ip_var.get()


def get_user_agent() -> str | None:
    return user_agent_var.get()


def get_log_context() -> dict[str, str | None]:
    return {"correlation_id": get_correlation_id()}
