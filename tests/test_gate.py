import pytest

from cafe.gate import Action, Allow, Deny, OrderTarget, ProfileTarget, authorize, require
from cafe.errors import Unauthorized
from cafe.schemas import ActingIdentity, Role

CUSTOMER = ActingIdentity(login="alice", role=Role.CUSTOMER)
EMPLOYEE = ActingIdentity(login="barista", role=Role.EMPLOYEE)
MANAGER = ActingIdentity(login="boss", role=Role.MANAGER)

OWN_OPEN = OrderTarget(owner="alice", paid=False)
OWN_PAID = OrderTarget(owner="alice", paid=True)
OTHER_OPEN = OrderTarget(owner="bob", paid=False)


def test_anonymous_is_denied_everything():
    for action in Action:
        assert authorize(None, action, OWN_OPEN) == Deny("not authenticated")


@pytest.mark.parametrize("action", [Action.CATALOG_WRITE, Action.ROLE_WRITE])
def test_manager_only_actions(action):
    assert isinstance(authorize(MANAGER, action), Allow)
    assert isinstance(authorize(EMPLOYEE, action), Deny)
    assert isinstance(authorize(CUSTOMER, action), Deny)


def test_any_identity_creates_orders():
    for who in (CUSTOMER, EMPLOYEE, MANAGER):
        assert authorize(who, Action.ORDER_CREATE).allowed


def test_customer_edits_own_unpaid_order_only():
    assert authorize(CUSTOMER, Action.ORDER_EDIT, OWN_OPEN).allowed
    assert authorize(CUSTOMER, Action.ORDER_EDIT, OWN_PAID) == Deny("order already paid")
    assert authorize(CUSTOMER, Action.ORDER_EDIT, OTHER_OPEN) == Deny("order does not belong to you")


def test_staff_edit_any_order_regardless_of_payment():
    for who in (EMPLOYEE, MANAGER):
        for target in (OWN_OPEN, OWN_PAID, OTHER_OPEN):
            assert authorize(who, Action.ORDER_EDIT, target).allowed


def test_customer_reads_own_paid_order():
    assert authorize(CUSTOMER, Action.ORDER_READ, OWN_PAID).allowed
    assert not authorize(CUSTOMER, Action.ORDER_READ, OTHER_OPEN).allowed
    assert authorize(EMPLOYEE, Action.ORDER_READ, OTHER_OPEN).allowed


@pytest.mark.parametrize("action", [Action.ORDER_PAY, Action.ITEM_STATUS, Action.ORDER_LIST_ALL])
def test_staff_only_actions(action):
    assert not authorize(CUSTOMER, action, OWN_OPEN).allowed
    assert authorize(EMPLOYEE, action, OWN_OPEN).allowed
    assert authorize(MANAGER, action, OWN_OPEN).allowed


def test_profile_access():
    assert authorize(CUSTOMER, Action.PROFILE_EDIT, ProfileTarget("alice")).allowed
    assert not authorize(CUSTOMER, Action.PROFILE_EDIT, ProfileTarget("bob")).allowed
    # employees get no special profile rights
    assert not authorize(EMPLOYEE, Action.PROFILE_READ, ProfileTarget("alice")).allowed
    assert authorize(MANAGER, Action.PROFILE_EDIT, ProfileTarget("alice")).allowed


def test_require_raises_with_reason():
    with pytest.raises(Unauthorized, match="already paid"):
        require(CUSTOMER, Action.ORDER_EDIT, OWN_PAID)
    require(EMPLOYEE, Action.ORDER_EDIT, OWN_PAID)
