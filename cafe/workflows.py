"""Order editing workflows.

A workflow applies a batch of line additions and removals to one order in a
single transaction and then enforces the zero-total rule: an order whose
total is not positive once the batch is applied is cancelled.
"""
import logging
from typing import Iterable, Optional, Tuple

from sqlalchemy.orm import Session

from . import ledger
from .db import unit_of_work
from .gate import Action, require
from .line_items import delete_line, insert_line
from .schemas import ActingIdentity

logger = logging.getLogger(__name__)

ItemRequest = Tuple[str, str]


def place_order(db: Session, acting: ActingIdentity, items: Iterable[ItemRequest]) -> Optional[int]:
    """Create an order holding ``items`` ((name, comment) pairs).

    Returns the new order id, or None when nothing with a positive price was
    ordered and the order was therefore discarded.
    """
    require(acting, Action.ORDER_CREATE)
    with unit_of_work(db):
        order = ledger.insert_order(db, acting.login)
        order_id = order.orderid
        for item_name, comment in items:
            insert_line(db, order_id, item_name, comment)
        if ledger.drop_if_empty(db, order_id):
            order_id = None
    if order_id is not None:
        logger.info("order #%d placed by %s", order_id, acting.login)
    return order_id


def edit_order(
    db: Session,
    acting: ActingIdentity,
    order_id: int,
    add: Iterable[ItemRequest] = (),
    remove: Iterable[str] = (),
) -> bool:
    """Apply additions, then removals, to an order. Returns True when the order got cancelled."""
    with unit_of_work(db):
        ledger.load_for(db, acting, order_id, Action.ORDER_EDIT, lock=True)
        for item_name, comment in add:
            insert_line(db, order_id, item_name, comment)
        for item_name in remove:
            delete_line(db, order_id, item_name)
        cancelled = ledger.drop_if_empty(db, order_id)
    if cancelled:
        logger.info("order #%d emptied by %s and cancelled", order_id, acting.login)
    return cancelled
