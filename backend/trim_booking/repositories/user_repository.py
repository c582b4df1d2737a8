# backend/trim_booking/repositories/user_repository.py
"""
User repository.

Users are always looked up inside one business; the same email may exist
in several businesses as unrelated people.
"""

import logging

from sqlalchemy.orm import Session

from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)
