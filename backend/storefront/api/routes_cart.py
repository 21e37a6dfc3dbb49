from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.deps import get_cart
from storefront.db import get_db
from storefront.repositories.cart_repo import CartStorageError
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.cart_schema import AddItemIn, AddItemOut, CartOut, UpdateQuantityIn
from storefront.services.cart_service import CartEngine, ProductRef

router = APIRouter(prefix="/api/cart", tags=["cart"])


def _cart_out(cart: CartEngine) -> dict:
    return {
        "items": [
            {
                "product": {
                    "id": l.product.id,
                    "code": l.product.code,
                    "name": l.product.name,
                    "price": l.product.price,
                    "image_url": l.product.image_url,
                },
                "quantity": l.quantity,
                "line_total": l.line_total,
            }
            for l in cart.lines
        ],
        "total_items": cart.get_total_items(),
        "total_price": cart.get_total_price(),
    }


@router.get("", summary="Get cart", response_model=CartOut)
def get_cart_contents(cart: CartEngine = Depends(get_cart)):
    return _cart_out(cart)


@router.post("/items", summary="Add item to cart", response_model=AddItemOut)
def add_item(
    payload: AddItemIn,
    cart: CartEngine = Depends(get_cart),
    db: Session = Depends(get_db),
):
    product = ProductRepository(db).get_active(payload.product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    try:
        created = cart.add_to_cart(ProductRef.from_product(product), payload.quantity)
    except CartStorageError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {
        "message": "Product added to cart" if created else "Cart quantity updated",
        "created": created,
        "cart": _cart_out(cart),
    }


@router.patch("/items/{product_id}", summary="Set item quantity", response_model=CartOut)
def update_item(product_id: str, payload: UpdateQuantityIn, cart: CartEngine = Depends(get_cart)):
    try:
        cart.update_quantity(product_id, payload.quantity)
    except CartStorageError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return _cart_out(cart)


@router.delete("/items/{product_id}", summary="Remove item", response_model=CartOut)
def remove_item(product_id: str, cart: CartEngine = Depends(get_cart)):
    try:
        cart.remove_from_cart(product_id)
    except CartStorageError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return _cart_out(cart)


@router.delete("", summary="Clear cart", response_model=CartOut)
def clear_cart(cart: CartEngine = Depends(get_cart)):
    try:
        cart.clear_cart()
    except CartStorageError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return _cart_out(cart)
