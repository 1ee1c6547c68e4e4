"""Collaborator ports (abstract interfaces) consumed by the Orders domain.

User accounts, the product catalogue and shopping carts live outside this
bounded context. The domain only talks to them through these narrow
contracts, so adapters can be swapped without touching order logic.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class User:
    id: str
    email: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class Product:
    """Catalogue view of a product at lookup time."""

    id: str
    name: str
    price: Decimal
    stock_quantity: int
    sku: str | None = None
    image_url: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class LineRequest:
    """A requested order line: product, quantity and an optional price override."""

    product_id: str
    quantity: int
    unit_price: Decimal | None = None


class UserDirectory(ABC):
    @abstractmethod
    def get_user(self, user_id: str) -> User | None:
        """Return the user, or ``None`` when no such user exists."""
        ...


class ProductCatalog(ABC):
    @abstractmethod
    def get_product(self, product_id: str) -> Product | None:
        """Return the product with its current price and stock, or ``None``."""
        ...

    @abstractmethod
    def has_stock(self, product_id: str, quantity: int) -> bool: ...

    @abstractmethod
    def decrease_stock(self, product_id: str, quantity: int) -> None:
        """Remove ``quantity`` units from available stock.

        Raises ``ProductNotFound`` for unknown products and
        ``InsufficientStock`` when fewer units are available.
        """
        ...

    @abstractmethod
    def increase_stock(self, product_id: str, quantity: int) -> None:
        """Return ``quantity`` units to available stock."""
        ...


class CartStore(ABC):
    @abstractmethod
    def get_lines(self, user_id: str) -> list[LineRequest]: ...

    @abstractmethod
    def is_empty(self, user_id: str) -> bool: ...

    @abstractmethod
    def clear(self, user_id: str) -> None: ...
