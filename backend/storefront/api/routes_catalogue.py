from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.db import get_db
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.product_schema import ProductOut, ProductPage

router = APIRouter(tags=["catalogue"])


@router.get("", summary="List products", response_model=ProductPage)
def list_products(
    q: Optional[str] = Query(None, description="search term"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    repo = ProductRepository(db)
    items, total = repo.list(q=q, page=page, size=size)
    return {"items": items, "total": total}


@router.get("/{product_id}", summary="Get product", response_model=ProductOut)
def get_product(product_id: str, db: Session = Depends(get_db)):
    p = ProductRepository(db).get_active(product_id)
    if not p:
        raise HTTPException(status_code=404, detail="Product not found")
    return p
