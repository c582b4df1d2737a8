"""
Tenant dependency.

The middleware has already rejected tenant-scoped requests that carry no
slug; this dependency turns the slug into a TenantContext or a 404.
"""

import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ...core.config import settings
from ...core.exceptions import DomainException, TenantNotFoundException, TenantRequiredException
from ...core.tenant import TenantContext, resolve_tenant_slug
from ...repositories.factory import RepositoryFactory
from ..error_handling import handle_domain_exception
from .database import get_db

logger = logging.getLogger(__name__)


def get_tenant_slug(request: Request) -> str:
    slug = getattr(request.state, "tenant_slug", None) or resolve_tenant_slug(
        request.headers.get("host"),
        request.headers.get(settings.tenant_header),
        request.query_params.get(settings.tenant_query_param),
        settings.tenant_ignored_subdomains,
    )
    if not slug:
        handle_domain_exception(TenantRequiredException())
    return slug


def get_tenant_context(
    slug: str = Depends(get_tenant_slug),
    db: Session = Depends(get_db),
) -> TenantContext:
    try:
        business = RepositoryFactory.create_business_repository(db).get_by_slug(slug)
        if business is None:
            raise TenantNotFoundException(slug)
    except DomainException as e:
        handle_domain_exception(e)
    return TenantContext(
        business_id=business.id,
        slug=business.slug,
        timezone=business.timezone or settings.default_business_timezone,
    )
