from __future__ import annotations

from contextvars import ContextVar, Token
import logging
from typing import Optional

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")
_tenant_slug_var: ContextVar[str] = ContextVar("tenant_slug", default="")


def set_request_id(request_id: Optional[str]) -> Token[str]:
    return _request_id_var.set(request_id or "")


def reset_request_id(token: Token[str]) -> None:
    _request_id_var.reset(token)


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    value = _request_id_var.get()
    return value if value else default


def get_request_id_value(default: str = "no-request") -> str:
    value = _request_id_var.get()
    return value if value else default


# The tenant slug here only tags log records. Services receive the tenant
# explicitly through TenantContext.
def bind_tenant_slug(slug: Optional[str]) -> Token[str]:
    return _tenant_slug_var.set(slug or "")


def reset_tenant_slug(token: Token[str]) -> None:
    _tenant_slug_var.reset(token)


def get_tenant_slug_value(default: str = "-") -> str:
    value = _tenant_slug_var.get()
    return value if value else default


def with_request_id_header(
    headers: Optional[dict[str, str]] = None,
) -> Optional[dict[str, str]]:
    request_id = get_request_id()
    if not request_id:
        return headers
    merged = dict(headers or {})
    merged.setdefault("request_id", request_id)
    return merged


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = get_request_id_value()
        if not hasattr(record, "tenant"):
            record.tenant = get_tenant_slug_value()
        return True


def attach_request_context_filter(logger: Optional[logging.Logger] = None) -> None:
    target = logger or logging.getLogger()
    for handler in target.handlers:
        handler.addFilter(RequestContextFilter())
