"""Users and their per-user history tables."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Text
from sqlalchemy.orm import relationship

from apps.backend.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(128), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=True, index=True)
    password_hash = Column(String(255), nullable=False)
    is_admin = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    expiry_date = Column(DateTime, nullable=True)  # null: plan never expires
    login_count = Column(Integer, nullable=False, default=0)
    last_login = Column(DateTime, nullable=True)
    last_logout = Column(DateTime, nullable=True)
    phone_country_code = Column(String(8), nullable=True)
    phone_number = Column(String(32), nullable=True)
    # single-session enforcement
    token_version = Column(Integer, nullable=False, default=0)
    current_session_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    website_permissions = relationship(
        "WebsitePermission",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="WebsitePermission.id",
    )
    login_history = relationship(
        "LoginHistory", cascade="all, delete-orphan", order_by="LoginHistory.id"
    )
    cookie_insertions = relationship(
        "CookieInsertion", cascade="all, delete-orphan", order_by="CookieInsertion.id"
    )
    access_requests = relationship(
        "AccessRequest", back_populates="user", cascade="all, delete-orphan", order_by="AccessRequest.id"
    )


class LoginHistory(Base):
    __tablename__ = "login_history"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)
    ip_address = Column(String(64), nullable=True)
    browser = Column(Text, nullable=True)


class CookieInsertion(Base):
    __tablename__ = "cookie_insertions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    website = Column(String(255), nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)
    success = Column(Boolean, nullable=False, default=True)


class AccessRequest(Base):
    __tablename__ = "access_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    website = Column(String(255), nullable=False)
    reason = Column(Text, nullable=True)
    requested_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    status = Column(String(16), nullable=False, default="pending")  # pending|approved|denied
    reviewed_by = Column(String(128), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    note = Column(Text, nullable=True)

    user = relationship("User", back_populates="access_requests")
