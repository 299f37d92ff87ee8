from decimal import Decimal
import pytest

from cafe import catalog, ledger, line_items, models
from cafe.errors import Conflict, NotFound, Unauthorized


def line_sum(db, order_id):
    return sum((line.price for line in line_items.list_by_order(db, order_id)), Decimal("0.00"))


def test_add_item_raises_total(db_session, alice, menu):
    order_id = ledger.create_order(db_session, alice)
    line = line_items.add_item(db_session, alice, order_id, "Latte", "oat milk")

    assert line.status == "In progress"
    assert line.comments == "oat milk"
    assert line.price == Decimal("3.50")
    assert ledger.get_total(db_session, order_id) == Decimal("3.50")


def test_add_unknown_item(db_session, alice, menu):
    order_id = ledger.create_order(db_session, alice)
    with pytest.raises(NotFound):
        line_items.add_item(db_session, alice, order_id, "Mocha", "")
    assert ledger.get_total(db_session, order_id) == Decimal("0.00")


def test_add_same_item_twice_conflicts(db_session, alice, menu):
    order_id = ledger.create_order(db_session, alice)
    line_items.add_item(db_session, alice, order_id, "Latte", "")
    with pytest.raises(Conflict):
        line_items.add_item(db_session, alice, order_id, "Latte", "extra hot")
    assert ledger.get_total(db_session, order_id) == Decimal("3.50")
    assert len(line_items.list_by_order(db_session, order_id)) == 1


def test_add_to_unknown_order(db_session, alice, menu):
    with pytest.raises(NotFound):
        line_items.add_item(db_session, alice, 777, "Latte", "")


def test_total_matches_lines_after_edits(db_session, alice, menu):
    order_id = ledger.create_order(db_session, alice)
    for name in ("Latte", "Scone", "Tea"):
        line_items.add_item(db_session, alice, order_id, name, "")
    line_items.remove_item(db_session, alice, order_id, "Scone")
    line_items.add_item(db_session, alice, order_id, "Scone", "warm")
    line_items.remove_item(db_session, alice, order_id, "Tea")

    assert ledger.get_total(db_session, order_id) == Decimal("5.75")
    assert ledger.get_total(db_session, order_id) == line_sum(db_session, order_id)


def test_remove_missing_line(db_session, alice, menu):
    order_id = ledger.create_order(db_session, alice)
    line_items.add_item(db_session, alice, order_id, "Latte", "")
    with pytest.raises(NotFound):
        line_items.remove_item(db_session, alice, order_id, "Scone")
    assert ledger.get_total(db_session, order_id) == Decimal("3.50")


def test_removing_last_item_cancels_order(db_session, alice, menu):
    order_id = ledger.create_order(db_session, alice)
    line_items.add_item(db_session, alice, order_id, "Latte", "oat milk")
    assert ledger.get_total(db_session, order_id) == Decimal("3.50")

    assert line_items.remove_item(db_session, alice, order_id, "Latte") is True
    with pytest.raises(NotFound):
        ledger.get_order(db_session, alice, order_id)
    assert db_session.query(models.ItemStatus).filter_by(orderid=order_id).count() == 0


def test_order_left_with_only_free_items_is_cancelled(db_session, alice, menu):
    order_id = ledger.create_order(db_session, alice)
    line_items.add_item(db_session, alice, order_id, "Water", "")
    line_items.add_item(db_session, alice, order_id, "Tea", "")
    # only the free item is left, total is 0.00
    assert line_items.remove_item(db_session, alice, order_id, "Tea") is True
    assert not ledger.order_exists(db_session, order_id)


def test_line_price_is_snapshotted(db_session, alice, manager, menu):
    order_id = ledger.create_order(db_session, alice)
    line_items.add_item(db_session, alice, order_id, "Latte", "")
    line_items.add_item(db_session, alice, order_id, "Scone", "")
    catalog.update_field(db_session, manager, "Latte", "price", "4.00")

    # removing subtracts what was charged, not the new catalog price
    line_items.remove_item(db_session, alice, order_id, "Latte")
    assert ledger.get_total(db_session, order_id) == Decimal("2.25")


def test_status_toggles_both_ways(db_session, alice, employee, menu):
    order_id = ledger.create_order(db_session, alice)
    line_items.add_item(db_session, alice, order_id, "Latte", "")

    assert line_items.set_status(db_session, employee, order_id, "Latte", True) is True
    assert line_items.get_line(db_session, order_id, "Latte").status == "Ready"
    assert line_items.set_status(db_session, employee, order_id, "Latte", False) is True
    assert line_items.get_line(db_session, order_id, "Latte").status == "In progress"


def test_status_change_is_staff_only(db_session, alice, menu):
    order_id = ledger.create_order(db_session, alice)
    line_items.add_item(db_session, alice, order_id, "Latte", "")
    with pytest.raises(Unauthorized):
        line_items.set_status(db_session, alice, order_id, "Latte", True)


def test_unchanged_status_and_comment_do_not_write(db_session, alice, employee, menu):
    order_id = ledger.create_order(db_session, alice)
    line_items.add_item(db_session, alice, order_id, "Latte", "oat milk")
    stamp = line_items.get_line(db_session, order_id, "Latte").last_updated

    assert line_items.set_status(db_session, employee, order_id, "Latte", False) is False
    assert line_items.set_comment(db_session, alice, order_id, "Latte", "oat milk") is False
    assert line_items.get_line(db_session, order_id, "Latte").last_updated == stamp


def test_set_comment_updates_timestamp(db_session, alice, menu):
    order_id = ledger.create_order(db_session, alice)
    line_items.add_item(db_session, alice, order_id, "Latte", "")
    stamp = line_items.get_line(db_session, order_id, "Latte").last_updated

    assert line_items.set_comment(db_session, alice, order_id, "Latte", "<b>no foam</b>") is True
    line = line_items.get_line(db_session, order_id, "Latte")
    assert line.comments == "no foam"
    assert line.last_updated >= stamp


def test_list_by_order_keeps_insertion_order(db_session, alice, menu):
    order_id = ledger.create_order(db_session, alice)
    for name in ("Tea", "Latte", "Scone"):
        line_items.add_item(db_session, alice, order_id, name, "")
    assert [l.item_name for l in line_items.list_by_order(db_session, order_id)] == ["Tea", "Latte", "Scone"]


def test_customer_cannot_edit_paid_order(db_session, alice, employee, menu):
    order_id = ledger.create_order(db_session, alice)
    line_items.add_item(db_session, alice, order_id, "Latte", "")
    ledger.set_paid(db_session, employee, order_id, True)

    with pytest.raises(Unauthorized, match="already paid"):
        line_items.add_item(db_session, alice, order_id, "Scone", "")
    with pytest.raises(Unauthorized):
        line_items.set_comment(db_session, alice, order_id, "Latte", "decaf")

    # staff may still edit it
    line_items.add_item(db_session, employee, order_id, "Scone", "")
    assert ledger.get_total(db_session, order_id) == Decimal("5.75")


def test_customer_cannot_edit_someone_elses_order(db_session, alice, bob, menu):
    order_id = ledger.create_order(db_session, alice)
    with pytest.raises(Unauthorized, match="does not belong"):
        line_items.add_item(db_session, bob, order_id, "Latte", "")
