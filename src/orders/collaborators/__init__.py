"""Collaborator registry.

Provides get_/set_/reset_ helpers per collaborator so adapters can be swapped
at runtime. Defaults are the in-memory adapters.
"""

from orders.collaborators.memory_adapter import InMemoryCartStore, InMemoryProductCatalog, InMemoryUserDirectory
from orders.collaborators.port import CartStore, ProductCatalog, UserDirectory

_user_directory: UserDirectory | None = None
_product_catalog: ProductCatalog | None = None
_cart_store: CartStore | None = None


def get_user_directory() -> UserDirectory:
    global _user_directory
    if _user_directory is None:
        _user_directory = InMemoryUserDirectory()
    return _user_directory


def set_user_directory(directory: UserDirectory) -> None:
    global _user_directory
    _user_directory = directory


def get_product_catalog() -> ProductCatalog:
    global _product_catalog
    if _product_catalog is None:
        _product_catalog = InMemoryProductCatalog()
    return _product_catalog


def set_product_catalog(catalog: ProductCatalog) -> None:
    global _product_catalog
    _product_catalog = catalog


def get_cart_store() -> CartStore:
    global _cart_store
    if _cart_store is None:
        _cart_store = InMemoryCartStore()
    return _cart_store


def set_cart_store(store: CartStore) -> None:
    global _cart_store
    _cart_store = store


def reset_collaborators() -> None:
    """Drop all configured adapters; the next lookup builds fresh defaults."""
    global _user_directory, _product_catalog, _cart_store
    _user_directory = None
    _product_catalog = None
    _cart_store = None
