from fastapi import APIRouter, Depends
from sqlalchemy import text

from storefront.adapters.notification import LoggingNotificationDispatcher
from storefront.api.deps import get_dispatcher, require_user
from storefront.db import engine
from storefront.models.profile import Profile
from storefront.schemas.profile_schema import ProfileOut

router = APIRouter()


@router.get("/health", tags=["health"])
def health(dispatcher: LoggingNotificationDispatcher = Depends(get_dispatcher)):
    db_ok = False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            db_ok = True
    except Exception:
        db_ok = False
    notifications_ok = dispatcher.health_check()

    return {
        "status": "ok" if db_ok and notifications_ok else "degraded",
        "db": db_ok,
        "notification_adapter": notifications_ok,
    }


@router.get("/me", tags=["auth"], response_model=ProfileOut)
def me(user: Profile = Depends(require_user)):
    return user
