"""Repository for the Order aggregate.

Adds natural-key lookup and the filtered, paginated queries used by order
listings, search and reporting on top of Protean's standard ``get``/``add``.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError

from orders.domain import orders
from orders.exceptions import OrderNotFound
from orders.order.order import Order
from orders.shared.money import to_money

_BATCH_SIZE = 100
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC so they compare with stored timestamps."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(frozen=True)
class OrderCriteria:
    user_id: str | None = None
    statuses: tuple[str, ...] = ()
    payment_statuses: tuple[str, ...] = ()
    created_from: datetime | None = None
    created_to: datetime | None = None
    min_amount: object = None
    max_amount: object = None
    search_term: str | None = None

    def matches(self, order) -> bool:
        if self.statuses and order.status not in self.statuses:
            return False
        if self.payment_statuses and order.payment_status not in self.payment_statuses:
            return False

        created_at = as_utc(order.created_at)
        if self.created_from is not None and (created_at is None or created_at < as_utc(self.created_from)):
            return False
        if self.created_to is not None and (created_at is None or created_at > as_utc(self.created_to)):
            return False

        total = to_money(order.total_amount)
        if self.min_amount is not None and total < to_money(self.min_amount):
            return False
        if self.max_amount is not None and total > to_money(self.max_amount):
            return False

        if self.search_term:
            term = self.search_term.strip().lower()
            details = order.shipping_details
            haystack = [order.order_number]
            if details is not None:
                haystack += [details.email, details.first_name, details.last_name]
            if not any(term in value.lower() for value in haystack if value):
                return False
        return True


@dataclass(frozen=True)
class OrderPage:
    items: list
    total: int
    page: int
    size: int

    @property
    def has_next(self) -> bool:
        return (self.page + 1) * self.size < self.total


@orders.repository(part_of=Order)
class OrderRepository:
    def get_order(self, order_id) -> Order:
        try:
            return self.get(str(order_id))
        except ObjectNotFoundError as exc:
            raise OrderNotFound.by_id(order_id) from exc

    def find_by_order_number(self, order_number: str) -> Order | None:
        return self._dao.query.filter(order_number=order_number).all().first

    def get_by_order_number(self, order_number: str) -> Order:
        order = self.find_by_order_number(order_number)
        if order is None:
            raise OrderNotFound.by_number(order_number)
        return order

    def order_number_exists(self, order_number: str) -> bool:
        return self.find_by_order_number(order_number) is not None

    def _scan(self, **filters):
        """Yield every order matching the exact-match ``filters``, batch by batch."""
        query = self._dao.query
        if filters:
            query = query.filter(**filters)

        offset = 0
        while True:
            batch = query.offset(offset).limit(_BATCH_SIZE).all().items
            yield from batch
            if len(batch) < _BATCH_SIZE:
                break
            offset += _BATCH_SIZE

    def matching(self, criteria: OrderCriteria) -> list[Order]:
        """All orders matching ``criteria``, newest first."""
        filters = {}
        if criteria.user_id is not None:
            filters["user_id"] = str(criteria.user_id)
        if len(criteria.statuses) == 1:
            filters["status"] = criteria.statuses[0]

        found = [order for order in self._scan(**filters) if criteria.matches(order)]
        found.sort(key=lambda o: as_utc(o.created_at) or datetime.min.replace(tzinfo=UTC), reverse=True)
        return found

    def page(self, criteria: OrderCriteria, page: int = 0, size: int = DEFAULT_PAGE_SIZE) -> OrderPage:
        page = max(0, int(page))
        size = min(max(1, int(size)), MAX_PAGE_SIZE)
        found = self.matching(criteria)
        start = page * size
        return OrderPage(items=found[start : start + size], total=len(found), page=page, size=size)
