import logging
from decimal import Decimal

import pytest

from conftest import make_product
from retailpos.pos.errors import ConfirmationRequired, SubmissionError, ValidationError
from retailpos.pos.suspend import SuspendResumeManager


@pytest.fixture
def two_lines(till, gateway):
    water = gateway.add_product(make_product(1, stock=40, tiers=((1, '4000'), (12, '3500'))))
    oil = gateway.add_product(make_product(2, stock=5, tiers=((1, '18000'), (6, '17200'))))
    till.add_product(water)
    till.update_quantity(1, 12)
    till.add_product(oil)
    till.update_quantity(2, 2)
    till.select_member(gateway.get_member(2))
    till.select_attendant(gateway.get_attendant(50))
    till.set_additional_discount('500')
    return till


def test_suspend_then_resume_restores_cart_and_total(two_lines, gateway):
    manager = SuspendResumeManager(two_lines, gateway)
    lines_before = [(l.product_id, l.quantity, l.stock) for l in two_lines.cart.lines]
    total_before = two_lines.calculation.grand_total

    record = manager.suspend(name='Table 4', notes='back in 10')
    assert len(two_lines.cart) == 0
    assert two_lines.member is None
    assert two_lines.attendant is None
    assert two_lines.additional_discount == Decimal('0')
    assert record.member_id == 2
    assert record.attendant_id == 50

    manager.resume(record)
    assert [(l.product_id, l.quantity, l.stock) for l in two_lines.cart.lines] == lines_before
    assert two_lines.calculation.grand_total == total_before
    assert two_lines.member.id == 2
    assert two_lines.attendant.id == 50
    assert record.id not in gateway.suspended


def test_suspend_empty_cart_rejected(till, gateway):
    with pytest.raises(ValidationError):
        SuspendResumeManager(till, gateway).suspend()
    assert gateway.suspended == {}


def test_resume_over_non_empty_cart_needs_confirmation(two_lines, gateway):
    manager = SuspendResumeManager(two_lines, gateway)
    record = manager.suspend()
    two_lines.add_product(gateway.find_product(1))

    with pytest.raises(ConfirmationRequired):
        manager.resume(record)
    assert len(two_lines.cart) == 1
    assert record.id in gateway.suspended

    manager.resume(record, confirm_discard=True)
    assert len(two_lines.cart) == 2


def test_resume_tolerates_deleted_member(two_lines, gateway, caplog):
    manager = SuspendResumeManager(two_lines, gateway)
    record = manager.suspend()
    del gateway.members[2]

    with caplog.at_level(logging.INFO, logger='retailpos.pos.suspend'):
        manager.resume(record)
    assert two_lines.member is None
    assert two_lines.effective_member == gateway.general
    assert len(two_lines.cart) == 2
    assert 'no longer exists' in caplog.text


def test_failed_delete_does_not_block_resume(two_lines, gateway, caplog):
    manager = SuspendResumeManager(two_lines, gateway)
    record = manager.suspend()
    gateway.fail_delete = True

    with caplog.at_level(logging.WARNING, logger='retailpos.pos.suspend'):
        manager.resume(record)
    assert len(two_lines.cart) == 2
    assert record.id in gateway.suspended
    assert 'could not delete' in caplog.text


def test_resume_by_unknown_id(till, gateway):
    with pytest.raises(SubmissionError) as exc:
        SuspendResumeManager(till, gateway).resume_by_id(999)
    assert exc.value.status == 404


def test_unreadable_snapshot_leaves_cart_alone(till, gateway):
    till.add_product(gateway.add_product(make_product(1)))
    record = gateway.create_suspended(cart_items=[{'name': 'broken'}], created_by=7)
    with pytest.raises(ValidationError):
        SuspendResumeManager(till, gateway).resume(record, confirm_discard=True)
    assert len(till.cart) == 1
