# core/sa/models/settings.py
from datetime import datetime
from sqlalchemy import Integer, String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from .base import Base, utcnow

SETTINGS_ID = 1

class AppSettings(Base):
    """Singleton row (id 1) of process-wide settings"""
    __tablename__ = 'app_settings'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=SETTINGS_ID)
    default_user_subject_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
