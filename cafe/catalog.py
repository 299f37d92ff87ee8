"""Menu catalog: existence and price lookups for orders, manager-only curation."""
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models
from .db import unit_of_work
from .errors import Conflict, InvalidInput, NotFound
from .gate import Action, require
from .schemas import ActingIdentity
from .utils import parse_price, sanitize_input

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("type", "price", "description", "image_url")


def item_exists(db: Session, name: str) -> bool:
    return db.get(models.MenuItem, name) is not None


def get_item(db: Session, name: str) -> models.MenuItem:
    item = db.get(models.MenuItem, name)
    if item is None:
        raise NotFound(f"menu item '{name}' not found")
    return item


def get_price(db: Session, name: str) -> Decimal:
    return get_item(db, name).price


def list_items(db: Session, item_type: Optional[str] = None) -> List[models.MenuItem]:
    stmt = select(models.MenuItem).order_by(models.MenuItem.item_name)
    if item_type is not None:
        stmt = stmt.where(models.MenuItem.type == item_type)
    return list(db.scalars(stmt))


def add_item(
    db: Session,
    acting: ActingIdentity,
    name: str,
    item_type: str,
    price,
    description: str = "",
    image_url: str = "",
) -> models.MenuItem:
    require(acting, Action.CATALOG_WRITE)
    name = name.strip()
    if not name:
        raise InvalidInput("item name must not be empty")
    amount = parse_price(price)
    if item_exists(db, name):
        raise Conflict(f"menu item '{name}' already exists")

    item = models.MenuItem(
        item_name=name,
        type=item_type.strip(),
        price=amount,
        description=sanitize_input(description),
        image_url=image_url.strip(),
    )
    with unit_of_work(db):
        db.add(item)
        try:
            db.flush()
        except IntegrityError as e:
            # lost a race with a concurrent insert of the same name
            raise Conflict(f"menu item '{name}' already exists") from e
    logger.info("menu item %s added at %s", name, amount)
    return item


def _coerce_field(field: str, value):
    if field == "price":
        return parse_price(value)
    if field == "description":
        return sanitize_input(value)
    return str(value).strip()


def update_field(db: Session, acting: ActingIdentity, name: str, field: str, value) -> bool:
    """Set one catalog attribute. Returns False when the value is unchanged (no write)."""
    require(acting, Action.CATALOG_WRITE)
    if field not in EDITABLE_FIELDS:
        raise InvalidInput(f"unknown menu field '{field}'")
    item = get_item(db, name)
    new_value = _coerce_field(field, value)
    if getattr(item, field) == new_value:
        return False
    with unit_of_work(db):
        setattr(item, field, new_value)
    logger.info("menu item %s: %s updated", name, field)
    return True


def delete_item(db: Session, acting: ActingIdentity, name: str):
    """Delete a menu item together with every order line that references it.

    Each affected order's total drops by the removed line prices. The line
    deletes, total adjustments and the menu row delete commit together.
    """
    from .line_items import purge_menu_item

    require(acting, Action.CATALOG_WRITE)
    item = get_item(db, name)
    with unit_of_work(db):
        removed = purge_menu_item(db, name)
        residual = db.scalar(
            select(func.count()).select_from(models.ItemStatus).where(models.ItemStatus.item_name == name)
        )
        if residual:
            raise NotFound(f"could not remove all order lines for '{name}'")
        db.delete(item)
    logger.info("menu item %s deleted; adjusted %d order(s)", name, len(removed))
    return removed
