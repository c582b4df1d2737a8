"""
Pure ASGI tenant resolution middleware.

Extracts the business slug for every HTTP request. Tenant-scoped paths
without a slug are answered with 400 TENANT_REQUIRED before any route
code runs. The slug is bound to a ContextVar for log correlation and
reset when the request ends, on error paths too.
"""

import logging
from typing import Iterable, Optional

from starlette.datastructures import Headers, QueryParams
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from ..core.config import settings
from ..core.exceptions import TenantRequiredException
from ..core.request_context import bind_tenant_slug, reset_tenant_slug
from ..core.tenant import is_tenant_agnostic, resolve_tenant_slug
from ..errors import PROBLEM_MEDIA_TYPE, _problem

logger = logging.getLogger(__name__)


class TenantResolutionMiddlewareASGI:
    def __init__(
        self,
        app: ASGIApp,
        agnostic_paths: Optional[Iterable[str]] = None,
        ignored_subdomains: Optional[Iterable[str]] = None,
    ) -> None:
        self.app = app
        self.agnostic_paths = frozenset(agnostic_paths or settings.tenant_agnostic_paths)
        self.ignored_subdomains = frozenset(ignored_subdomains or settings.tenant_ignored_subdomains)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        headers = Headers(scope=scope)
        slug = resolve_tenant_slug(
            headers.get("host"),
            headers.get(settings.tenant_header),
            QueryParams(scope.get("query_string", b"")).get(settings.tenant_query_param),
            self.ignored_subdomains,
        )

        if not slug and scope.get("method") != "OPTIONS" and not is_tenant_agnostic(
            path, self.agnostic_paths
        ):
            exc = TenantRequiredException()
            logger.info("Rejected request without business context", extra={"path": path})
            response = JSONResponse(
                _problem(
                    status=exc.status_code,
                    detail=exc.message,
                    instance=path,
                    code=exc.code,
                ),
                status_code=exc.status_code,
                media_type=PROBLEM_MEDIA_TYPE,
            )
            await response(scope, receive, send)
            return

        scope.setdefault("state", {})["tenant_slug"] = slug
        token = bind_tenant_slug(slug)
        try:
            await self.app(scope, receive, send)
        finally:
            reset_tenant_slug(token)
