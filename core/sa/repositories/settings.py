# core/sa/repositories/settings.py
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from core.sa.models import AppSettings, SETTINGS_ID

class SettingsRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self) -> AppSettings:
        """Get the singleton settings row, creating it on first read"""
        settings = self.session.get(AppSettings, SETTINGS_ID)
        if settings is not None:
            return settings

        settings = AppSettings(id=SETTINGS_ID, default_user_subject_id=None)
        self.session.add(settings)
        try:
            self.session.commit()
        except IntegrityError:
            # Another request created it first
            self.session.rollback()
            settings = self.session.get(AppSettings, SETTINGS_ID)
        return settings

    def set_default_user(self, subject_id: str | None) -> AppSettings:
        settings = self.get()
        settings.default_user_subject_id = subject_id
        self.session.commit()
        return settings
