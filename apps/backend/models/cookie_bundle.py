"""Stored cookie snapshots."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.dialects.postgresql import JSONB

from apps.backend.database import Base


class CookieBundle(Base):
    __tablename__ = "cookie_bundles"

    id = Column(Integer, primary_key=True, index=True)
    cookies = Column(JSONB, nullable=False, default=list)
    website = Column(String(255), nullable=True, index=True)
    uploaded_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    uploaded_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class WebsiteCookieBundle(Base):
    __tablename__ = "website_cookie_bundles"

    id = Column(Integer, primary_key=True, index=True)
    website = Column(String(255), nullable=False, index=True)
    cookies = Column(JSONB, nullable=False, default=list)
    version = Column(Integer, nullable=False, default=1)
    # [{version, cookies, replacedAt, replacedBy}], oldest first
    previous_versions = Column(JSONB, nullable=False, default=list)
    uploaded_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    uploaded_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    last_updated = Column(DateTime, nullable=False, default=datetime.utcnow)
    is_active = Column(Boolean, nullable=False, default=True)
    access_count = Column(Integer, nullable=False, default=0)
    last_accessed = Column(DateTime, nullable=True)
    last_accessed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        Index("ix_website_cookie_bundles_website_active", "website", "is_active"),
    )
