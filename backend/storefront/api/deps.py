import uuid
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, Response
from sqlalchemy.orm import Session

from storefront.adapters.notification import LoggingNotificationDispatcher
from storefront.config import settings
from storefront.db import get_db
from storefront.models.email_setting import EmailSettingType
from storefront.models.profile import Profile
from storefront.repositories.cart_repo import CartStorageError, JsonFileCartStorage
from storefront.repositories.email_setting_repo import EmailSettingRepository
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.profile_repo import ProfileRepository
from storefront.services.cart_service import CartEngine

CART_COOKIE = "cart_session"


def get_current_user(
    db: Session = Depends(get_db),
    x_user_id: Optional[str] = Header(None),
) -> Optional[Profile]:
    """Resolve the signed-in profile; None for anonymous callers."""
    if not x_user_id:
        return None
    return ProfileRepository(db).get(x_user_id)


def require_user(user: Optional[Profile] = Depends(get_current_user)) -> Profile:
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def require_staff(user: Profile = Depends(require_user)) -> Profile:
    if not user.role.can_manage_store:
        raise HTTPException(status_code=403, detail="Staff access required")
    return user


def get_cart_session(request: Request, response: Response) -> str:
    key = request.cookies.get(CART_COOKIE)
    if not key:
        key = uuid.uuid4().hex
        response.set_cookie(CART_COOKIE, key, httponly=True, samesite="Lax")
    return key


def get_cart(session_key: str = Depends(get_cart_session)) -> CartEngine:
    try:
        storage = JsonFileCartStorage(
            settings.CART_STORAGE_DIR,
            session_key,
            lock_timeout=settings.CART_LOCK_TIMEOUT_SECONDS,
        )
    except CartStorageError as e:
        raise HTTPException(status_code=400, detail=str(e))
    try:
        return CartEngine.load(storage)
    except CartStorageError as e:
        raise HTTPException(status_code=503, detail=str(e))


def get_order_repo(db: Session = Depends(get_db)) -> OrderRepository:
    return OrderRepository(db)


def get_dispatcher(db: Session = Depends(get_db)) -> LoggingNotificationDispatcher:
    repo = EmailSettingRepository(db)

    def recipients():
        return (
            repo.active_addresses(EmailSettingType.INTERNAL_NOTIFICATION),
            repo.active_addresses(EmailSettingType.CUSTOMER_NOTIFICATION),
        )

    return LoggingNotificationDispatcher(
        store_name=settings.STORE_NAME,
        sales_email=settings.SALES_EMAIL,
        recipients_provider=recipients,
        enabled=settings.NOTIFICATIONS_ENABLED,
    )
