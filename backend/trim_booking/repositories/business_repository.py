"""Tenant lookups."""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.business import Business
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BusinessRepository(BaseRepository[Business]):
    def __init__(self, db: Session):
        super().__init__(db, Business)

    def get_by_slug(self, slug: str) -> Optional[Business]:
        try:
            return self.db.query(Business).filter(Business.slug == slug.lower()).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting business by slug {slug}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve business: {str(e)}")

    def list_all(self) -> List[Business]:
        """Every tenant, oldest first (for cross-tenant beat jobs)."""
        try:
            return self.db.query(Business).order_by(Business.created_at, Business.id).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing businesses: {str(e)}")
            raise RepositoryException(f"Failed to list businesses: {str(e)}")
