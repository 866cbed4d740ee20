"""
Restock Bot — Product Lifecycle.

Single owner of product state changes. The chat interpreter, the due scan
and any other caller go through ProductLifecycle, which applies the pure
transition table below and persists the result.

    stocked  --add_to_list-->  on_list
    stocked/on_list  --remind-->  reminded
    any active  --buy-->  stocked + timer reset   (recurring)
    any active  --buy-->  inactive                (one-off)
    any active  --remove-->  inactive
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from src.core.timing import Timing, project, urgency
from src.data.models import Product, ProductStatus

if TYPE_CHECKING:
    from src.data.db import ProductDB

logger = logging.getLogger(__name__)

QUICK_ADD_DAYS_UNTIL_EMPTY = 7
DEFAULT_REMIND_DAYS_BEFORE = 2
MAX_CYCLE_DAYS = 3650

_EDITABLE_FIELDS = frozenset({
    "name", "category", "days_until_empty", "remind_days_before", "shop_url", "is_recurring",
})


class ProductTransition(Enum):
    ADD_TO_LIST = "add_to_list"
    REMIND = "remind"
    BUY = "buy"
    REMOVE = "remove"


class InvalidTransition(ValueError):
    """Raised when a transition is not allowed from the product's current state."""


@dataclass
class ProductView:
    """A product together with its projection at a given instant."""

    product: Product
    timing: Timing

    @property
    def urgency(self) -> str:
        return urgency(self.product, self.timing)


def apply_transition(product: Product, transition: ProductTransition, now: datetime) -> Product:
    """Return a copy of product with transition applied. Does not persist."""
    if not product.is_active:
        raise InvalidTransition(f"Product {product.id} is no longer active")

    if transition is ProductTransition.ADD_TO_LIST:
        if product.status in ProductStatus.NEEDED:
            return replace(product)
        return replace(product, status=ProductStatus.ON_LIST)

    if transition is ProductTransition.REMIND:
        if product.status not in (ProductStatus.STOCKED, ProductStatus.ON_LIST):
            raise InvalidTransition(
                f"Cannot remind product {product.id} from status '{product.status}'"
            )
        return replace(product, status=ProductStatus.REMINDED)

    if transition is ProductTransition.BUY:
        if product.is_recurring:
            return replace(product, status=ProductStatus.STOCKED, last_restocked_at=now)
        return replace(product, is_active=False)

    if transition is ProductTransition.REMOVE:
        return replace(product, is_active=False)

    raise InvalidTransition(f"Unknown transition: {transition!r}")


def _validate_cycle(days_until_empty: int, remind_days_before: int) -> None:
    if not 0 < days_until_empty <= MAX_CYCLE_DAYS:
        raise ValueError(f"days_until_empty must be between 1 and {MAX_CYCLE_DAYS} days")
    if not 0 <= remind_days_before <= MAX_CYCLE_DAYS:
        raise ValueError(f"remind_days_before must be between 0 and {MAX_CYCLE_DAYS} days")


def sort_views(views: list[ProductView]) -> list[ProductView]:
    """Order by days remaining, then creation order."""
    return sorted(views, key=lambda v: (v.timing.days_remaining, v.product.id))


class ProductLifecycle:
    """Creates, finds and transitions products on top of ProductDB."""

    def __init__(self, db: ProductDB) -> None:
        self._db = db

    # -- creation / editing -------------------------------------------------

    def create(
        self,
        household_id: int,
        name: str,
        days_until_empty: int,
        now: datetime,
        remind_days_before: int = DEFAULT_REMIND_DAYS_BEFORE,
        is_recurring: bool = True,
        category: str | None = None,
        shop_url: str | None = None,
        status: str = ProductStatus.STOCKED,
    ) -> Product:
        """Create an active product whose cycle starts at now."""
        name = name.strip()
        if not name:
            raise ValueError("Product name is required")
        _validate_cycle(days_until_empty, remind_days_before)

        product = self._db.add_product(
            household_id=household_id,
            name=name,
            days_until_empty=days_until_empty,
            last_restocked_at=now,
            remind_days_before=remind_days_before,
            status=status,
            is_recurring=is_recurring,
            category=category,
            shop_url=shop_url,
        )
        logger.info(
            "Product added: #%d '%s' (%d days, remind %d before, %s)",
            product.id, name, days_until_empty, remind_days_before,
            "recurring" if is_recurring else "one-off",
        )
        return product

    def edit(self, product_id: int, **changes) -> Product:
        """Update descriptive/cycle fields. Status and restock time are untouched."""
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit fields: {', '.join(sorted(unknown))}")

        product = self._db.get_product(product_id)
        if product is None or not product.is_active:
            raise ValueError(f"Product {product_id} not found")

        updated = replace(product, **changes)
        updated.name = updated.name.strip()
        if not updated.name:
            raise ValueError("Product name is required")
        _validate_cycle(updated.days_until_empty, updated.remind_days_before)

        self._db.update_product(updated)
        logger.info("Product #%d edited: %s", product_id, ", ".join(sorted(changes)))
        return updated

    # -- lookup ---------------------------------------------------------------

    def find_by_name(self, household_id: int, query: str) -> Product | None:
        """First active product (creation order) whose name contains query."""
        query = query.strip()
        if not query:
            return None
        matches = self._db.find_active_by_name(household_id, query)
        if not matches:
            return None
        if len(matches) > 1:
            logger.info(
                "'%s' matched %d products in household #%d, using #%d '%s'",
                query, len(matches), household_id, matches[0].id, matches[0].name,
            )
        return matches[0]

    # -- transitions ----------------------------------------------------------

    def _transition(
        self, product: Product, transition: ProductTransition, now: datetime,
    ) -> Product:
        updated = apply_transition(product, transition, now)
        if updated != product:
            self._db.update_product(updated)
        return updated

    def add_to_list(self, product: Product, now: datetime) -> Product:
        updated = self._transition(product, ProductTransition.ADD_TO_LIST, now)
        logger.info("Product #%d '%s' on the shopping list", product.id, product.name)
        return updated

    def mark_bought(self, product: Product, now: datetime) -> Product:
        """Recurring: back to stocked with a fresh cycle. One-off: leaves the system."""
        updated = self._transition(product, ProductTransition.BUY, now)
        if updated.is_active:
            logger.info("Product #%d '%s' bought, timer reset", product.id, product.name)
        else:
            logger.info("One-off product #%d '%s' bought and removed", product.id, product.name)
        return updated

    def remove(self, product: Product, now: datetime) -> Product:
        updated = self._transition(product, ProductTransition.REMOVE, now)
        logger.info("Product #%d '%s' soft-deleted", product.id, product.name)
        return updated

    def mark_reminded(self, product: Product, now: datetime, message: str) -> Product:
        """Advance to reminded and append the dispatch log entry."""
        updated = self._transition(product, ProductTransition.REMIND, now)
        self._db.log_dispatch(product.id, message, now)
        logger.info("Product #%d '%s' marked reminded", product.id, product.name)
        return updated

    def quick_add(self, household_id: int, name: str, now: datetime) -> tuple[Product, bool]:
        """Put a matching product on the list, or create a one-off that is.

        Returns (product, created).
        """
        existing = self.find_by_name(household_id, name)
        if existing is not None:
            return self.add_to_list(existing, now), False

        product = self.create(
            household_id=household_id,
            name=name,
            days_until_empty=QUICK_ADD_DAYS_UNTIL_EMPTY,
            now=now,
            remind_days_before=DEFAULT_REMIND_DAYS_BEFORE,
            is_recurring=False,
            status=ProductStatus.ON_LIST,
        )
        return product, True

    # -- projections ----------------------------------------------------------

    def _project_all(self, products: list[Product], now: datetime) -> list[ProductView]:
        """Project each product; a row whose dates can't be computed is skipped."""
        views = []
        for p in products:
            try:
                views.append(ProductView(p, project(p, now)))
            except (OverflowError, ValueError) as exc:
                logger.error("Cannot project product #%d '%s': %s", p.id, p.name, exc)
        return views

    def views(
        self,
        household_id: int,
        now: datetime,
        statuses: tuple[str, ...] | None = None,
    ) -> list[ProductView]:
        """Active products of a household with timing, soonest-empty first."""
        products = self._db.list_active(household_id=household_id, statuses=statuses)
        return sort_views(self._project_all(products, now))

    def needed(self, household_id: int, now: datetime) -> list[ProductView]:
        """The shopping list: products on the list or already reminded."""
        return self.views(household_id, now, statuses=ProductStatus.NEEDED)

    def urgent(self, household_id: int, now: datetime) -> list[ProductView]:
        """Stocked products within their reminder lead time (or past it)."""
        return [
            v for v in self.views(household_id, now, statuses=(ProductStatus.STOCKED,))
            if v.timing.days_remaining <= v.product.remind_days_before
        ]

    def due_for_reminder(self, now: datetime) -> list[ProductView]:
        """Stocked products of every household whose remind_at has passed."""
        products = self._db.list_active(statuses=(ProductStatus.STOCKED,))
        return sort_views([
            v for v in self._project_all(products, now) if v.timing.remind_at <= now
        ])
