"""In-memory collaborator adapters for development and testing.

Each adapter keeps its state in plain dictionaries guarded by a lock, so the
adapters can be shared across request threads. Seed them with ``add_*``
helpers, or through the ``/orders-dev`` endpoints when the API runs locally.
"""

import threading
from dataclasses import replace
from decimal import Decimal

from orders.collaborators.port import CartStore, LineRequest, Product, ProductCatalog, User, UserDirectory
from orders.exceptions import InsufficientStock, ProductNotFound
from orders.shared.money import to_money


class InMemoryUserDirectory(UserDirectory):
    def __init__(self) -> None:
        self._users: dict[str, User] = {}

    def add_user(self, user_id: str, email: str | None = None, is_active: bool = True) -> User:
        user = User(id=str(user_id), email=email, is_active=is_active)
        self._users[user.id] = user
        return user

    def get_user(self, user_id: str) -> User | None:
        return self._users.get(str(user_id))


class InMemoryProductCatalog(ProductCatalog):
    def __init__(self) -> None:
        self._products: dict[str, Product] = {}
        self._lock = threading.Lock()

    def add_product(
        self,
        product_id: str,
        name: str,
        price: Decimal | str | float,
        stock_quantity: int = 0,
        sku: str | None = None,
        image_url: str | None = None,
        is_active: bool = True,
    ) -> Product:
        product = Product(
            id=str(product_id),
            name=name,
            price=to_money(price),
            stock_quantity=int(stock_quantity),
            sku=sku,
            image_url=image_url,
            is_active=is_active,
        )
        with self._lock:
            self._products[product.id] = product
        return product

    def get_product(self, product_id: str) -> Product | None:
        return self._products.get(str(product_id))

    def stock_of(self, product_id: str) -> int:
        product = self.get_product(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product.stock_quantity

    def has_stock(self, product_id: str, quantity: int) -> bool:
        product = self.get_product(product_id)
        return product is not None and product.stock_quantity >= quantity

    def decrease_stock(self, product_id: str, quantity: int) -> None:
        with self._lock:
            product = self._products.get(str(product_id))
            if product is None:
                raise ProductNotFound(product_id)
            if product.stock_quantity < quantity:
                raise InsufficientStock(product.id, quantity, product.stock_quantity, product.name)
            self._products[product.id] = replace(product, stock_quantity=product.stock_quantity - quantity)

    def increase_stock(self, product_id: str, quantity: int) -> None:
        with self._lock:
            product = self._products.get(str(product_id))
            if product is None:
                raise ProductNotFound(product_id)
            self._products[product.id] = replace(product, stock_quantity=product.stock_quantity + quantity)


class InMemoryCartStore(CartStore):
    def __init__(self) -> None:
        self._carts: dict[str, list[LineRequest]] = {}

    def add_line(self, user_id: str, product_id: str, quantity: int) -> None:
        self._carts.setdefault(str(user_id), []).append(LineRequest(product_id=str(product_id), quantity=quantity))

    def get_lines(self, user_id: str) -> list[LineRequest]:
        return list(self._carts.get(str(user_id), []))

    def is_empty(self, user_id: str) -> bool:
        return not self._carts.get(str(user_id))

    def clear(self, user_id: str) -> None:
        self._carts.pop(str(user_id), None)
