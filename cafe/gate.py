"""Authorization gate consulted before every core mutation.

``authorize`` is a pure function of the acting identity, the action and the
target; it never touches the store. Callers load the target (order owner and
paid flag, or profile login) and pass it in.
"""
import logging
from enum import Enum
from typing import NamedTuple, Optional, Union

from .errors import Unauthorized
from .schemas import ActingIdentity, Role

logger = logging.getLogger(__name__)


class Action(str, Enum):
    CATALOG_WRITE = "catalog:write"
    ROLE_WRITE = "role:write"
    ORDER_CREATE = "order:create"
    ORDER_EDIT = "order:edit"
    ORDER_PAY = "order:pay"
    ORDER_READ = "order:read"
    ORDER_LIST_ALL = "order:list_all"
    ITEM_STATUS = "item:status"
    PROFILE_READ = "profile:read"
    PROFILE_EDIT = "profile:edit"


class OrderTarget(NamedTuple):
    owner: str
    paid: bool


class ProfileTarget(NamedTuple):
    login: str


class Allow(NamedTuple):
    allowed: bool = True


class Deny(NamedTuple):
    reason: str
    allowed: bool = False


Decision = Union[Allow, Deny]
Target = Union[OrderTarget, ProfileTarget, None]

MANAGER_ONLY = {Action.CATALOG_WRITE, Action.ROLE_WRITE}
STAFF_ONLY = {Action.ORDER_PAY, Action.ORDER_LIST_ALL, Action.ITEM_STATUS}


def authorize(acting: Optional[ActingIdentity], action: Action, target: Target = None) -> Decision:
    if acting is None:
        return Deny("not authenticated")

    if action in MANAGER_ONLY:
        if acting.role is Role.MANAGER:
            return Allow()
        return Deny("manager role required")

    if action in STAFF_ONLY:
        if acting.role.is_staff:
            return Allow()
        return Deny("employee or manager role required")

    if action is Action.ORDER_CREATE:
        return Allow()

    if action in (Action.ORDER_READ, Action.ORDER_EDIT):
        if acting.role.is_staff:
            return Allow()
        if target is None or target.owner != acting.login:
            return Deny("order does not belong to you")
        if action is Action.ORDER_EDIT and target.paid:
            return Deny("order already paid")
        return Allow()

    if action in (Action.PROFILE_READ, Action.PROFILE_EDIT):
        if acting.role is Role.MANAGER:
            return Allow()
        if target is not None and target.login == acting.login:
            return Allow()
        return Deny("cannot access another user's profile")

    return Deny(f"unknown action {action}")


def require(acting: Optional[ActingIdentity], action: Action, target: Target = None):
    """Raise Unauthorized unless ``authorize`` allows the action."""
    decision = authorize(acting, action, target)
    if not decision.allowed:
        logger.warning(
            "denied %s for %s: %s",
            action.value,
            acting.login if acting else "<anonymous>",
            decision.reason,
        )
        raise Unauthorized(decision.reason)
