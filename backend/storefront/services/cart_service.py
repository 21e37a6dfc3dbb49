import logging
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductRef:
    """Product as it was known when it went into the cart."""

    id: str
    name: str
    code: str
    price: Decimal
    image_url: str = ""

    @classmethod
    def from_product(cls, product) -> "ProductRef":
        return cls(
            id=str(product.id),
            name=product.name,
            code=product.code,
            price=Decimal(str(product.price)),
            image_url=product.image_url or "",
        )

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "price": str(self.price),
            "image_url": self.image_url,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ProductRef":
        return cls(
            id=str(data["id"]),
            name=data["name"],
            code=data.get("code", ""),
            price=Decimal(str(data["price"])),
            image_url=data.get("image_url") or "",
        )


@dataclass(frozen=True)
class CartLine:
    product: ProductRef
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.product.price * self.quantity


class CartEngine:
    """
    The buyer's in-progress selection for one cart session.

    Lines are unique per product id and always have a positive quantity.
    Every mutation is flushed to the bound storage.
    """

    def __init__(self, storage, lines: Optional[List[CartLine]] = None):
        self.storage = storage
        self._lines: List[CartLine] = list(lines or [])

    @classmethod
    def load(cls, storage) -> "CartEngine":
        """Rehydrate from storage; unreadable content yields an empty cart."""
        try:
            rows = storage.load()
            lines = cls._parse(rows or [])
        except (ValueError, TypeError, KeyError, InvalidOperation, OSError) as e:
            log.warning("Discarding unreadable cart: %s", e)
            lines = []
        return cls(storage, lines)

    def reload(self) -> None:
        """Re-read the lines from storage, dropping the in-memory copy."""
        self._lines = type(self).load(self.storage)._lines

    @staticmethod
    def _parse(rows) -> List[CartLine]:
        if not isinstance(rows, list):
            raise ValueError(f"expected a list of cart lines, got {type(rows).__name__}")
        lines: List[CartLine] = []
        for row in rows:
            product = ProductRef.from_dict(row["product"])
            if not product.price.is_finite() or product.price < 0:
                raise ValueError(f"invalid price {product.price} for product {product.id}")
            qty = int(row["quantity"])
            if qty <= 0:
                continue
            idx = next((i for i, l in enumerate(lines) if l.product.id == product.id), None)
            if idx is None:
                lines.append(CartLine(product, qty))
            else:
                lines[idx] = replace(lines[idx], quantity=lines[idx].quantity + qty)
        return lines

    def _flush(self) -> None:
        self.storage.save(
            [{"product": l.product.to_dict(), "quantity": l.quantity} for l in self._lines]
        )

    def _index(self, product_id: str) -> Optional[int]:
        return next(
            (i for i, l in enumerate(self._lines) if l.product.id == product_id), None
        )

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines)

    def snapshot(self) -> List[CartLine]:
        return list(self._lines)

    def is_empty(self) -> bool:
        return not self._lines

    # commands

    def add_to_cart(self, product: ProductRef, quantity: int = 1) -> bool:
        """Add or merge a product. Returns True if a new line was created."""
        quantity = int(quantity)
        if quantity <= 0:
            raise ValueError("Quantity must be positive")
        idx = self._index(product.id)
        if idx is None:
            self._lines.append(CartLine(product, quantity))
            created = True
            log.info("Added %s to cart (qty=%d)", product.code, quantity)
        else:
            current = self._lines[idx]
            self._lines[idx] = replace(current, quantity=current.quantity + quantity)
            created = False
            log.info(
                "Updated quantity of %s in cart %d -> %d",
                product.code,
                current.quantity,
                current.quantity + quantity,
            )
        self._flush()
        return created

    def update_quantity(self, product_id: str, quantity: int) -> None:
        quantity = int(quantity)
        if quantity <= 0:
            self.remove_from_cart(product_id)
            return
        idx = self._index(product_id)
        if idx is None:
            return
        self._lines[idx] = replace(self._lines[idx], quantity=quantity)
        self._flush()

    def remove_from_cart(self, product_id: str) -> None:
        idx = self._index(product_id)
        if idx is None:
            return
        removed = self._lines.pop(idx)
        log.info("Removed %s from cart", removed.product.code)
        self._flush()

    def clear_cart(self) -> None:
        self._lines = []
        self._flush()

    # queries

    def get_total_items(self) -> int:
        return sum(l.quantity for l in self._lines)

    def get_total_price(self) -> Decimal:
        return sum((l.line_total for l in self._lines), Decimal("0"))
