"""
SQLAlchemy ORM Models
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TIMESTAMP,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from casetrack.db.database import Base

# ============================================================================
# Enums
# ============================================================================

class UserRole(str, enum.Enum):
    """User roles"""
    member = "member"
    admin = "admin"


class Permission(str, enum.Enum):
    """Grantable capabilities (admins hold all of them)"""
    add_dispute = "add_dispute"
    delete_dispute = "delete_dispute"
    upload_excel_litigation = "upload_excel_litigation"
    add_users = "add_users"
    delete_users = "delete_users"
    export_reports = "export_reports"


# ============================================================================
# Models
# ============================================================================

class Profile(Base):
    """Application profile for an identity-provider user"""
    __tablename__ = "profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)

    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.member)
    # New sign-ups wait for an administrator to enable them
    is_enabled = Column(Boolean, nullable=False, default=False, server_default="false")

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    permissions = relationship("UserPermission", back_populates="user", cascade="all, delete-orphan")
    litigation_cases = relationship("LitigationCase", back_populates="user", cascade="all, delete-orphan")


class UserPermission(Base):
    """Permission granted to a profile"""
    __tablename__ = "user_permissions"
    __table_args__ = (
        UniqueConstraint("user_id", "permission", name="uq_user_permissions_user_permission"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    permission = Column(SQLEnum(Permission), nullable=False)
    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)

    user = relationship("Profile", back_populates="permissions")


class LitigationCase(Base):
    """Litigation register entry"""
    __tablename__ = "litigation_cases"
    __table_args__ = (
        Index("ix_litigation_cases_user_created", "user_id", "created_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)

    sr_no = Column(Integer, nullable=True)
    parties = Column(String(500), nullable=False)
    forum = Column(String(200), nullable=False)
    particular = Column(String(1000), nullable=True)

    start_date = Column(Date, nullable=True)
    last_hearing_date = Column(Date, nullable=True)
    next_hearing_date = Column(Date, nullable=True)

    amount_involved = Column(Float, nullable=True)
    treatment_resolution = Column(Text, nullable=True)
    remarks = Column(Text, nullable=True)

    status = Column(String(50), nullable=False, default="Active")

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("Profile", back_populates="litigation_cases")
