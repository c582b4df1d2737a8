"""
User model covering customers and staff of a business.
"""

from enum import Enum
import logging

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class UserRole(str, Enum):
    CUSTOMER = "CUSTOMER"
    BARBER = "BARBER"
    ADMIN = "ADMIN"


STAFF_ROLES = frozenset({UserRole.BARBER.value, UserRole.ADMIN.value})


class User(Base):
    """A person known to one business: a customer or a staff member."""

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    business_id = Column(String(26), ForeignKey("businesses.id"), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, default="")
    phone = Column(String(32), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.CUSTOMER.value)
    is_active = Column(Boolean, nullable=False, default=True)

    # Blacklisting (maintained by staff tooling outside the booking engine)
    blacklisted = Column(Boolean, nullable=False, default=False)
    blacklist_reason = Column(String(255), nullable=True)
    blacklisted_at = Column(DateTime(timezone=True), nullable=True)
    no_show_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    business = relationship("Business", back_populates="users")

    __table_args__ = (
        UniqueConstraint("business_id", "email", name="uq_users_business_email"),
        CheckConstraint("role IN ('CUSTOMER', 'BARBER', 'ADMIN')", name="ck_users_role"),
        CheckConstraint("no_show_count >= 0", name="ck_users_no_show_count"),
    )

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def record_no_show(self) -> None:
        self.no_show_count = (self.no_show_count or 0) + 1
        logger.info(f"User {self.id} no-show count is now {self.no_show_count}")

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.email} role={self.role} business={self.business_id}>"
