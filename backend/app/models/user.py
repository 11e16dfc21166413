"""
User model with secure password storage and a role used by the manager gate.
"""

from sqlalchemy import Column, Integer, String, Boolean, CheckConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class UserRole:
    CUSTOMER = "customer"
    MANAGER = "manager"

    ALL = (CUSTOMER, MANAGER)


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.CUSTOMER)
    is_active = Column(Boolean, default=True, nullable=False)

    # Guest bookings have no user; deleting a user keeps their bookings
    bookings = relationship("Booking", back_populates="user", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("role IN ('customer', 'manager')", name="check_user_role"),
    )

    @property
    def is_manager(self) -> bool:
        return self.role == UserRole.MANAGER

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
