from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.api.deps import require_staff
from storefront.db import get_db
from storefront.repositories.email_setting_repo import EmailSettingRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.email_setting_schema import EmailSettingIn, EmailSettingOut
from storefront.schemas.order_schema import AdminOrderOut, OrderDetailOut, OrderOut, StatusUpdateIn
from storefront.schemas.product_schema import ProductIn, ProductOut
from storefront.services.order_service import InvalidStatusTransition, OrderNotFound, OrderService

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_staff)])


# products

@router.get("/products", summary="List all products", response_model=List[ProductOut])
def list_products(db: Session = Depends(get_db)):
    return ProductRepository(db).list_all()


@router.post("/products", summary="Create product", response_model=ProductOut, status_code=201)
def create_product(payload: ProductIn, db: Session = Depends(get_db)):
    repo = ProductRepository(db)
    if repo.get_by_code(payload.code):
        raise HTTPException(status_code=409, detail="Product code already exists")
    p = repo.create(**payload.model_dump())
    db.commit()
    db.refresh(p)
    return p


@router.put("/products/{product_id}", summary="Update product", response_model=ProductOut)
def update_product(product_id: str, payload: ProductIn, db: Session = Depends(get_db)):
    repo = ProductRepository(db)
    p = repo.get(product_id)
    if not p:
        raise HTTPException(status_code=404, detail="Product not found")
    other = repo.get_by_code(payload.code)
    if other and other.id != p.id:
        raise HTTPException(status_code=409, detail="Product code already exists")
    repo.update(p, **payload.model_dump())
    db.commit()
    db.refresh(p)
    return p


@router.delete("/products/{product_id}", summary="Delete product", status_code=204)
def delete_product(product_id: str, db: Session = Depends(get_db)):
    repo = ProductRepository(db)
    p = repo.get(product_id)
    if not p:
        raise HTTPException(status_code=404, detail="Product not found")
    repo.delete(p)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Product is referenced and cannot be deleted")


# orders

@router.get("/orders", summary="List all orders", response_model=List[AdminOrderOut])
def list_orders(db: Session = Depends(get_db)):
    svc = OrderService(db)
    out = []
    for o in svc.list_all():
        data = svc.to_dict(o)
        data["buyer_name"] = o.buyer.full_name if o.buyer else None
        data["buyer_email"] = o.buyer.email if o.buyer else None
        out.append(data)
    return out


@router.get("/orders/{order_id}", summary="Get order with items", response_model=OrderDetailOut)
def get_order(order_id: str, db: Session = Depends(get_db)):
    svc = OrderService(db)
    try:
        return svc.to_dict(svc.get(order_id), with_items=True)
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/orders/{order_id}/status", summary="Change order status", response_model=OrderOut)
def update_order_status(order_id: str, payload: StatusUpdateIn, db: Session = Depends(get_db)):
    svc = OrderService(db)
    try:
        order = svc.update_status(order_id, payload.status)
    except OrderNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return svc.to_dict(order)


# notification email addresses

@router.get("/email-settings", summary="List notification emails", response_model=List[EmailSettingOut])
def list_email_settings(db: Session = Depends(get_db)):
    return EmailSettingRepository(db).list()


@router.post("/email-settings", summary="Add notification email", response_model=EmailSettingOut, status_code=201)
def create_email_setting(payload: EmailSettingIn, db: Session = Depends(get_db)):
    s = EmailSettingRepository(db).create(payload.type, payload.email, payload.active)
    db.commit()
    db.refresh(s)
    return s


@router.put("/email-settings/{setting_id}", summary="Update notification email", response_model=EmailSettingOut)
def update_email_setting(setting_id: str, payload: EmailSettingIn, db: Session = Depends(get_db)):
    repo = EmailSettingRepository(db)
    s = repo.get(setting_id)
    if not s:
        raise HTTPException(status_code=404, detail="Email setting not found")
    repo.update(s, type=payload.type, email=payload.email, active=payload.active)
    db.commit()
    db.refresh(s)
    return s


@router.delete("/email-settings/{setting_id}", summary="Remove notification email", status_code=204)
def delete_email_setting(setting_id: str, db: Session = Depends(get_db)):
    repo = EmailSettingRepository(db)
    s = repo.get(setting_id)
    if not s:
        raise HTTPException(status_code=404, detail="Email setting not found")
    repo.delete(s)
    db.commit()
