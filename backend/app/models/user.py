"""
User model for admin and customer authentication
"""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from app.db.base import Base

ADMIN_ACCOUNT_TYPES = ("admin", "super_admin")


class User(Base):
    """
    User model for authentication and profile management

    Customers own orders and remittances; admins (and super admins) drive
    the order/remittance workflow.
    """
    __tablename__ = "users"

    # Primary Key
    id = Column(Integer, primary_key=True, index=True)

    # Authentication
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    # Profile Information
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(30), nullable=True)

    # Account Status
    status = Column(String(20), default='active', nullable=False, index=True)  # active, inactive, suspended
    account_type = Column(String(20), default='customer', nullable=False)  # customer, admin, super_admin

    # Timestamps
    created_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=False), server_default=func.now(), onupdate=func.now(), nullable=False)
    last_login_at = Column(DateTime(timezone=False), nullable=True)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', status='{self.status}')>"

    @property
    def full_name(self) -> str:
        """Get user's full name"""
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        elif self.first_name:
            return self.first_name
        elif self.last_name:
            return self.last_name
        return self.email

    @property
    def is_active(self) -> bool:
        """Check if user account is active"""
        return self.status == 'active'

    @property
    def is_admin(self) -> bool:
        """Admins and super admins may run workflow actions"""
        return self.account_type in ADMIN_ACCOUNT_TYPES
