"""Order ledger: orders, their running totals and paid flags.

The total is maintained incrementally. Every adjustment is a single
server-side ``total = total + delta`` update issued inside the caller's
transaction, so concurrent edits to one order cannot lose updates.
"""
import logging
from datetime import timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update, delete
from sqlalchemy.orm import Session

from . import config, models
from .db import unit_of_work
from .errors import NotFound, StoreError
from .gate import Action, OrderTarget, require
from .schemas import ActingIdentity, ItemState, OrderSummary, LineItemRead
from .utils import round_amount, utcnow

logger = logging.getLogger(__name__)


def _load(db: Session, order_id: int, lock: bool = False) -> models.Order:
    stmt = select(models.Order).where(models.Order.orderid == order_id)
    if lock:
        stmt = stmt.with_for_update()
    order = db.scalars(stmt).first()
    if order is None:
        raise NotFound(f"order #{order_id} not found")
    return order


def target_of(order: models.Order) -> OrderTarget:
    return OrderTarget(owner=order.login, paid=bool(order.paid))


def load_for(db: Session, acting: ActingIdentity, order_id: int, action: Action, lock: bool = False) -> models.Order:
    """Load an order and check that ``acting`` may perform ``action`` on it."""
    if acting is None:
        require(acting, action)
    order = _load(db, order_id, lock=lock)
    require(acting, action, target_of(order))
    return order


def order_exists(db: Session, order_id: int) -> bool:
    return db.get(models.Order, order_id) is not None


def create_order(db: Session, acting: ActingIdentity) -> int:
    require(acting, Action.ORDER_CREATE)
    with unit_of_work(db):
        order = insert_order(db, acting.login)
    logger.info("order #%d created for %s", order.orderid, acting.login)
    return order.orderid


def insert_order(db: Session, login: str) -> models.Order:
    order = models.Order(login=login, paid=False, total=Decimal("0.00"), timestamp_received=utcnow())
    db.add(order)
    db.flush()
    return order


def get_order(db: Session, acting: ActingIdentity, order_id: int) -> models.Order:
    return load_for(db, acting, order_id, Action.ORDER_READ)


def get_total(db: Session, order_id: int) -> Decimal:
    total = db.scalar(select(models.Order.total).where(models.Order.orderid == order_id))
    if total is None:
        raise NotFound(f"order #{order_id} not found")
    return round_amount(Decimal(total))


def adjust_total(db: Session, order_id: int, delta: Decimal):
    """Add ``delta`` to the order total. Joins the caller's transaction; does not commit."""
    result = db.execute(
        update(models.Order)
        .where(models.Order.orderid == order_id)
        .values(total=models.Order.total + delta)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFound(f"order #{order_id} not found")
    order = db.identity_map.get(db.identity_key(models.Order, order_id))
    if order is not None:
        db.expire(order, ["total"])


def set_paid(db: Session, acting: ActingIdentity, order_id: int, paid: bool) -> bool:
    order = load_for(db, acting, order_id, Action.ORDER_PAY)
    if bool(order.paid) == paid:
        return False
    with unit_of_work(db):
        order.paid = paid
    logger.info("order #%d marked %s by %s", order_id, "paid" if paid else "unpaid", acting.login)
    return True


def delete_order(db: Session, order_id: int):
    """Delete the order's lines, then the order row. Does not commit."""
    db.execute(delete(models.ItemStatus).where(models.ItemStatus.orderid == order_id))
    db.execute(delete(models.Order).where(models.Order.orderid == order_id))


def cancel_order(db: Session, acting: ActingIdentity, order_id: int) -> bool:
    """Cancel an order with all its lines. Returns False if the store refused."""
    try:
        with unit_of_work(db):
            load_for(db, acting, order_id, Action.ORDER_EDIT, lock=True)
            delete_order(db, order_id)
    except StoreError:
        logger.error("order #%d could not be cancelled", order_id)
        return False
    db.expire_all()
    cancelled = not order_exists(db, order_id)
    if cancelled:
        logger.info("order #%d cancelled by %s", order_id, acting.login)
    return cancelled


def drop_if_empty(db: Session, order_id: int) -> bool:
    """Zero-total rule inside an open transaction. Does not commit."""
    if get_total(db, order_id) > 0:
        return False
    delete_order(db, order_id)
    logger.info("order #%d has no positive total; cancelled", order_id)
    return True


def is_ready(db: Session, acting: ActingIdentity, order_id: int) -> bool:
    # An order with no lines counts as ready.
    load_for(db, acting, order_id, Action.ORDER_READ)
    pending = db.scalars(
        select(models.ItemStatus.item_name)
        .where(models.ItemStatus.orderid == order_id)
        .where(models.ItemStatus.status != ItemState.READY.value)
        .limit(1)
    ).first()
    return pending is None


def order_summary(db: Session, acting: ActingIdentity, order_id: int) -> OrderSummary:
    from .line_items import list_by_order

    order = get_order(db, acting, order_id)
    lines = list_by_order(db, order_id)
    return OrderSummary(
        orderid=order.orderid,
        login=order.login,
        paid=bool(order.paid),
        total=get_total(db, order_id),
        timestamp_received=order.timestamp_received,
        ready=all(line.status == ItemState.READY.value for line in lines),
        items=[LineItemRead.model_validate(line) for line in lines],
    )


def recent_orders(db: Session, acting: ActingIdentity, unpaid_only: bool = False) -> List[int]:
    """Ids of the acting user's most recent orders, oldest first."""
    require(acting, Action.ORDER_CREATE)
    stmt = select(models.Order.orderid).where(models.Order.login == acting.login)
    if unpaid_only:
        stmt = stmt.where(models.Order.paid.is_(False))
    stmt = stmt.order_by(models.Order.orderid.desc()).limit(config.get().recent_order_limit)
    return sorted(db.scalars(stmt))


def orders_since(
    db: Session, acting: ActingIdentity, hours: Optional[int] = None, unpaid_only: bool = False
) -> List[int]:
    """Ids of every order received within the last ``hours`` (staff only)."""
    require(acting, Action.ORDER_LIST_ALL)
    window = hours if hours is not None else config.get().history_hours
    cutoff = utcnow() - timedelta(hours=window)
    stmt = select(models.Order.orderid).where(models.Order.timestamp_received >= cutoff)
    if unpaid_only:
        stmt = stmt.where(models.Order.paid.is_(False))
    return list(db.scalars(stmt.order_by(models.Order.orderid)))
