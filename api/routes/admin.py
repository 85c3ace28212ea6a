# api/routes/admin.py

from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.sa.database import get_db
from core.services.default_viewer import DefaultViewerResolver
from api.dependencies import get_subject
from api.schemas.home import AppSettings, AppSettingsUpdate

router = APIRouter(prefix="/admin", tags=["admin"])

@router.get("/settings", response_model=AppSettings)
def get_settings(db: Session = Depends(get_db)):
    resolver = DefaultViewerResolver(db)
    row = resolver.settings.get()
    return AppSettings(
        default_user_subject_id=row.default_user_subject_id,
        effective_subject_id=resolver.configured_subject(),
    )

@router.put("/settings", response_model=AppSettings)
def update_settings(
    update: AppSettingsUpdate,
    subject: Optional[str] = Depends(get_subject),
    db: Session = Depends(get_db)
):
    """Set or clear the profile shown to anonymous visitors. Administrator only"""
    resolver = DefaultViewerResolver(db)
    row = resolver.set_default_viewer(subject, update.default_user_subject_id)
    return AppSettings(
        default_user_subject_id=row.default_user_subject_id,
        effective_subject_id=resolver.configured_subject(),
    )
