"""Per-user, per-website access entries."""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from apps.backend.database import Base


class WebsitePermission(Base):
    __tablename__ = "website_permissions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    website = Column(String(255), nullable=False, index=True)  # normalized hostname
    has_access = Column(Boolean, nullable=False, default=False)
    access_level = Column(String(16), nullable=False, default="read")  # read|write|admin
    expires_at = Column(DateTime, nullable=True)
    last_accessed = Column(DateTime, nullable=True)
    access_count = Column(Integer, nullable=False, default=0)
    requested_at = Column(DateTime, nullable=True)
    approved_by = Column(String(128), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    allowed_categories = Column(JSONB, nullable=True)
    auto_insert_cookies = Column(Boolean, nullable=False, default=False)
    notify_on_updates = Column(Boolean, nullable=False, default=True)

    user = relationship("User", back_populates="website_permissions")

    __table_args__ = (
        UniqueConstraint("user_id", "website", name="uq_website_permissions_user_website"),
    )
