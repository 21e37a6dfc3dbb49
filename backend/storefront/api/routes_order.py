import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.adapters.notification import LoggingNotificationDispatcher
from storefront.api.deps import (
    get_cart,
    get_cart_session,
    get_current_user,
    get_dispatcher,
    get_order_repo,
    require_user,
)
from storefront.db import get_db
from storefront.models.profile import Profile
from storefront.repositories.cart_repo import CartStorageError
from storefront.repositories.order_repo import OrderRepository
from storefront.schemas.order_schema import CheckoutOut, OrderDetailOut, OrderOut
from storefront.services.cart_service import CartEngine
from storefront.services.order_service import (
    CheckoutInProgress,
    CheckoutService,
    EmptyCart,
    InvalidStatusTransition,
    LineItemPersistFailure,
    NotAuthenticated,
    OrderNotFound,
    OrderPersistFailure,
    OrderService,
)

log = logging.getLogger(__name__)

router = APIRouter(tags=["orders"])


@router.post("/checkout", summary="Create order from cart (checkout)", response_model=CheckoutOut)
def checkout(
    user: Optional[Profile] = Depends(get_current_user),
    cart: CartEngine = Depends(get_cart),
    session_key: str = Depends(get_cart_session),
    dispatcher: LoggingNotificationDispatcher = Depends(get_dispatcher),
    order_repo: OrderRepository = Depends(get_order_repo),
):
    svc = CheckoutService(order_repo, dispatcher)
    try:
        result = svc.checkout(user, cart, session_key=session_key)
    except NotAuthenticated as e:
        raise HTTPException(status_code=401, detail=str(e))
    except EmptyCart as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CheckoutInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))
    except CartStorageError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except OrderPersistFailure as e:
        raise HTTPException(status_code=502, detail=str(e))
    except LineItemPersistFailure as e:
        log.critical("Order %s left without line items", e.order_number)
        raise HTTPException(
            status_code=500,
            detail={"message": str(e), "order_number": e.order_number},
        )
    return {
        "order_id": result.order_id,
        "order_number": result.order_number,
        "total_amount": result.total_amount,
        "status": result.status,
        "notified": result.notified,
    }


@router.get("", summary="List my orders", response_model=List[OrderOut])
def list_my_orders(user: Profile = Depends(require_user), db: Session = Depends(get_db)):
    svc = OrderService(db)
    return [svc.to_dict(o) for o in svc.list_for_user(user.id)]


@router.get("/{order_id}", summary="Get my order with items", response_model=OrderDetailOut)
def get_my_order(order_id: str, user: Profile = Depends(require_user), db: Session = Depends(get_db)):
    svc = OrderService(db)
    try:
        order = svc.get_for_user(user.id, order_id)
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return svc.to_dict(order, with_items=True)


@router.post("/{order_id}/cancel", summary="Cancel a pending order", response_model=OrderOut)
def cancel_my_order(order_id: str, user: Profile = Depends(require_user), db: Session = Depends(get_db)):
    svc = OrderService(db)
    try:
        order = svc.cancel_for_user(user.id, order_id)
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return svc.to_dict(order)
