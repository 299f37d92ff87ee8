"""Line-item tracker: the menu items on an order, their preparation status and comments.

Adding or removing a line and the matching order-total adjustment always
commit together.
"""
import logging
from collections import Counter
from decimal import Decimal
from typing import Dict, List

from sqlalchemy import select, delete, func
from sqlalchemy.orm import Session

from . import catalog, ledger, models
from .db import unit_of_work
from .errors import Conflict, NotFound
from .gate import Action
from .schemas import ActingIdentity, ItemState
from .utils import sanitize_input, utcnow

logger = logging.getLogger(__name__)


def get_line(db: Session, order_id: int, item_name: str) -> models.ItemStatus:
    line = db.get(models.ItemStatus, (order_id, item_name))
    if line is None:
        raise NotFound(f"'{item_name}' not found in order #{order_id}")
    return line


def list_by_order(db: Session, order_id: int) -> List[models.ItemStatus]:
    stmt = (
        select(models.ItemStatus)
        .where(models.ItemStatus.orderid == order_id)
        .order_by(models.ItemStatus.seq)
    )
    return list(db.scalars(stmt))


def insert_line(db: Session, order_id: int, item_name: str, comment: str = "") -> models.ItemStatus:
    """Attach a menu item to an order and raise its total. Does not commit."""
    price = catalog.get_price(db, item_name)
    if db.get(models.ItemStatus, (order_id, item_name)) is not None:
        raise Conflict(f"'{item_name}' is already on order #{order_id}")
    seq = db.scalar(
        select(func.coalesce(func.max(models.ItemStatus.seq), 0)).where(models.ItemStatus.orderid == order_id)
    )
    line = models.ItemStatus(
        orderid=order_id,
        item_name=item_name,
        last_updated=utcnow(),
        status=ItemState.IN_PROGRESS.value,
        comments=sanitize_input(comment),
        price=price,
        seq=seq + 1,
    )
    db.add(line)
    db.flush()
    ledger.adjust_total(db, order_id, price)
    return line


def delete_line(db: Session, order_id: int, item_name: str) -> Decimal:
    """Detach a line from its order and lower the total by its price. Does not commit."""
    line = get_line(db, order_id, item_name)
    price = line.price
    db.delete(line)
    db.flush()
    ledger.adjust_total(db, order_id, -price)
    return price


def add_item(db: Session, acting: ActingIdentity, order_id: int, item_name: str, comment: str = "") -> models.ItemStatus:
    with unit_of_work(db):
        ledger.load_for(db, acting, order_id, Action.ORDER_EDIT, lock=True)
        line = insert_line(db, order_id, item_name, comment)
    logger.info("%s added to order #%d at %s", item_name, order_id, line.price)
    return line


def remove_item(db: Session, acting: ActingIdentity, order_id: int, item_name: str) -> bool:
    """Remove a line. Returns True when the order was left with no positive total and got cancelled."""
    with unit_of_work(db):
        ledger.load_for(db, acting, order_id, Action.ORDER_EDIT, lock=True)
        delete_line(db, order_id, item_name)
        cancelled = ledger.drop_if_empty(db, order_id)
    logger.info("%s removed from order #%d", item_name, order_id)
    return cancelled


def set_status(db: Session, acting: ActingIdentity, order_id: int, item_name: str, ready: bool) -> bool:
    # Either direction is allowed: the kitchen may reopen a ready item.
    order = ledger.load_for(db, acting, order_id, Action.ITEM_STATUS)
    line = get_line(db, order.orderid, item_name)
    status = ItemState.READY.value if ready else ItemState.IN_PROGRESS.value
    if line.status == status:
        return False
    with unit_of_work(db):
        line.status = status
        line.last_updated = utcnow()
    logger.info("order #%d %s is now %s", order_id, item_name, status)
    return True


def set_comment(db: Session, acting: ActingIdentity, order_id: int, item_name: str, comment: str) -> bool:
    ledger.load_for(db, acting, order_id, Action.ORDER_EDIT)
    line = get_line(db, order_id, item_name)
    comment = sanitize_input(comment)
    if line.comments == comment:
        return False
    with unit_of_work(db):
        line.comments = comment
        line.last_updated = utcnow()
    return True


def purge_menu_item(db: Session, item_name: str) -> Dict[int, Decimal]:
    """Remove every line referencing a menu item and lower each order total.

    Returns the amount subtracted per order id. Does not commit.
    """
    lines = db.execute(
        select(models.ItemStatus.orderid, models.ItemStatus.price).where(models.ItemStatus.item_name == item_name)
    ).all()
    removed: Counter = Counter()
    for orderid, price in lines:
        removed[orderid] += price
    db.execute(
        delete(models.ItemStatus)
        .where(models.ItemStatus.item_name == item_name)
        .execution_options(synchronize_session="fetch")
    )
    for orderid, amount in removed.items():
        ledger.adjust_total(db, orderid, -amount)
    return dict(removed)
