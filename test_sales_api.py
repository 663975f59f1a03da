import re
from datetime import datetime
from decimal import Decimal

import pytest

from retailpos import create_app, db
from retailpos.auth.models import User, RoleEnum
from retailpos.catalog.models import Product, PriceTier, InventoryLog
from retailpos.members.models import Member, ensure_general_customer
from retailpos.sales.invoice import next_invoice_number
from retailpos.sales.models import (
    InvoiceSequence, Sale, SaleStatus, SuspendedSale,
    Receivable, ReceivableStatus, ReceivablePayment,
)


@pytest.fixture
def app():
    app = create_app(config_name='testing')
    with app.app_context():
        db.create_all()

        cashier = User(username='cashier1', name='Sarah Cashier', role=RoleEnum.cashier)
        cashier.set_password('123')
        attendant = User(username='attendant1', name='Budi Attendant', role=RoleEnum.attendant)
        attendant.set_password('123')
        db.session.add_all([cashier, attendant])
        db.session.commit()

        ensure_general_customer(app.config['GENERAL_CUSTOMER_NAME'])
        db.session.add(Member(name='Siti Rahma', phone='081200000002',
                              discount=Decimal('10'), membership_type='GOLD'))

        water = Product(name='Mineral Water', product_code='MW600', stock=10)
        water.price_tiers = [PriceTier(min_qty=1, price=Decimal('1000')),
                             PriceTier(min_qty=3, price=Decimal('900'))]
        db.session.add(water)
        db.session.commit()

        yield app

        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    client = app.test_client()
    resp = client.post('/auth/login', json={'username': 'cashier1', 'password': '123'})
    assert resp.status_code == 200
    return client


def _ids():
    cashier = User.query.filter_by(username='cashier1').first()
    attendant = User.query.filter_by(username='attendant1').first()
    general = Member.query.filter_by(is_general=True).first()
    siti = Member.query.filter_by(name='Siti Rahma').first()
    water = Product.query.filter_by(product_code='MW600').first()
    return cashier, attendant, general, siti, water


def _stock(product_id):
    db.session.expire_all()
    return db.session.get(Product, product_id).stock


def _sale_payload(member_id, attendant_id, product_id, qty=3, total='2430', payment='3000',
                  transaction_type='PAID'):
    return {
        'member_id': member_id,
        'attendant_id': attendant_id,
        'items': [{'product_id': product_id, 'quantity': qty, 'price': '900', 'discount': '100'}],
        'total': total,
        'payment': payment,
        'change': '570',
        'tax': '0',
        'discount': '570',
        'additional_discount': '0',
        'transaction_type': transaction_type,
    }


def test_paid_sale_deducts_stock_and_numbers_invoice(client):
    _, attendant, _, siti, water = _ids()
    resp = client.post('/api/sales', json=_sale_payload(siti.id, attendant.id, water.id))
    assert resp.status_code == 201
    data = resp.get_json()
    assert re.fullmatch(r'\d{4}-0001', data['invoice_number'])
    assert data['change'] == '570.00'
    assert data['status'] == 'PAID'

    assert _stock(water.id) == 7
    log = InventoryLog.query.filter_by(product_id=water.id).first()
    assert (log.old_stock, log.new_stock) == (10, 7)

    second = client.post('/api/sales', json=_sale_payload(siti.id, attendant.id, water.id, qty=1,
                                                          total='1000', payment='1000'))
    assert second.get_json()['invoice_number'].endswith('-0002')


def test_insufficient_stock_rejects_whole_sale(client):
    _, attendant, _, siti, water = _ids()
    resp = client.post('/api/sales', json=_sale_payload(siti.id, attendant.id, water.id, qty=11))
    assert resp.status_code == 400
    assert 'Insufficient stock' in resp.get_json()['error']
    assert Sale.query.count() == 0
    assert _stock(water.id) == 10


def test_paid_sale_with_short_payment_rejected(client):
    _, attendant, _, siti, water = _ids()
    resp = client.post('/api/sales', json=_sale_payload(siti.id, attendant.id, water.id, payment='2000'))
    assert resp.status_code == 400


def test_unpaid_sale_for_general_customer_rejected(client):
    _, _, general, _, water = _ids()
    resp = client.post('/api/sales', json=_sale_payload(general.id, None, water.id, payment='0',
                                                        transaction_type='UNPAID'))
    assert resp.status_code == 400
    assert Receivable.query.count() == 0


def test_unpaid_sale_opens_receivable_with_down_payment(client):
    _, _, _, siti, water = _ids()
    resp = client.post('/api/sales', json=_sale_payload(siti.id, None, water.id, payment='430',
                                                        transaction_type='UNPAID'))
    assert resp.status_code == 201
    sale = Sale.query.one()
    assert sale.status == SaleStatus.UNPAID
    assert sale.change == Decimal('0')
    assert sale.receivable.status == ReceivableStatus.PARTIALLY_PAID
    assert sale.receivable.remaining == Decimal('2000')


def test_unknown_member_is_404(client):
    _, attendant, _, _, water = _ids()
    resp = client.post('/api/sales', json=_sale_payload(999, attendant.id, water.id))
    assert resp.status_code == 404


def test_attendant_cannot_record_sales(app):
    client = app.test_client()
    client.post('/auth/login', json={'username': 'attendant1', 'password': '123'})
    with app.app_context():
        _, attendant, _, siti, water = _ids()
        payload = _sale_payload(siti.id, attendant.id, water.id)
    assert client.post('/api/sales', json=payload).status_code == 403


def test_requires_login(app):
    assert app.test_client().get('/api/sales').status_code == 401


def test_list_sales_is_paginated(client):
    _, attendant, _, siti, water = _ids()
    for _ in range(3):
        client.post('/api/sales', json=_sale_payload(siti.id, attendant.id, water.id, qty=1,
                                                     total='1000', payment='1000'))
    data = client.get('/api/sales?limit=2').get_json()
    assert len(data['sales']) == 2
    assert data['pagination']['total'] == 3
    assert data['pagination']['total_pages'] == 2


def test_receivable_repayment(client):
    _, _, _, siti, water = _ids()
    client.post('/api/sales', json=_sale_payload(siti.id, None, water.id, payment='0',
                                                 transaction_type='UNPAID'))
    listing = client.get('/api/receivables?status=UNPAID,PARTIALLY_PAID&search=siti').get_json()
    assert len(listing['receivables']) == 1
    receivable = listing['receivables'][0]
    assert receivable['remaining'] == '2430.00'
    assert receivable['sale']['invoice_number']

    over = client.post(f"/api/receivables/{receivable['id']}/pay", json={'amount': '5000'})
    assert over.status_code == 400
    assert 'Remaining: 2430' in over.get_json()['error']

    part = client.post(f"/api/receivables/{receivable['id']}/pay", json={'amount': '430'})
    assert part.get_json()['status'] == 'PARTIALLY_PAID'

    full = client.post(f"/api/receivables/{receivable['id']}/pay", json={'amount': '2000'})
    assert full.get_json()['status'] == 'PAID'
    assert full.get_json()['remaining'] == '0.00'
    assert ReceivablePayment.query.count() == 2

    listing = client.get('/api/receivables?status=UNPAID,PARTIALLY_PAID').get_json()
    assert listing['receivables'] == []


def test_receivable_bad_status_filter(client):
    assert client.get('/api/receivables?status=OPEN').status_code == 400


def test_suspended_sales_crud(client):
    _, _, _, siti, _ = _ids()
    resp = client.post('/api/suspended-sales', json={
        'name': 'Table 4',
        'cart_items': [{'product_id': 1, 'quantity': 2}],
        'member_id': siti.id,
        'additional_discount': '500',
    })
    assert resp.status_code == 201
    parked_id = resp.get_json()['id']

    rows = client.get('/api/suspended-sales').get_json()['suspended_sales']
    assert rows[0]['cart_items'] == [{'product_id': 1, 'quantity': 2}]
    assert rows[0]['additional_discount'] == '500.00'

    assert client.delete(f'/api/suspended-sales/{parked_id}').status_code == 200
    assert client.delete(f'/api/suspended-sales/{parked_id}').status_code == 404
    assert SuspendedSale.query.count() == 0


def test_empty_suspended_sale_rejected(client):
    assert client.post('/api/suspended-sales', json={'cart_items': []}).status_code == 400


def test_product_lookup(client):
    data = client.get('/api/products?code=mw600').get_json()
    assert data['products'][0]['price_tiers'] == [
        {'min_qty': 1, 'price': '1000.00'}, {'min_qty': 3, 'price': '900.00'}]
    assert client.get('/api/products?search=water').get_json()['products'][0]['product_code'] == 'MW600'
    assert client.get('/api/products?code=nope').get_json()['products'] == []


def test_members_and_attendants(client):
    members = client.get('/api/members').get_json()['members']
    assert members[0]['is_general'] is True
    attendants = client.get('/api/attendants').get_json()['attendants']
    assert [a['name'] for a in attendants] == ['Budi Attendant']


def test_repeated_submission_token_records_one_sale(client):
    _, attendant, _, siti, water = _ids()
    payload = _sale_payload(siti.id, attendant.id, water.id)
    payload['submission_token'] = 'f3c1d2e4a5b6'

    first = client.post('/api/sales', json=payload)
    assert first.status_code == 201
    again = client.post('/api/sales', json=payload)
    assert again.status_code == 409
    assert first.get_json()['invoice_number'] in again.get_json()['error']

    assert Sale.query.count() == 1
    assert _stock(water.id) == 7


def test_inactive_attendant_cannot_be_credited(client):
    _, attendant, _, siti, water = _ids()
    attendant.is_active = False
    db.session.commit()

    resp = client.post('/api/sales', json=_sale_payload(siti.id, attendant.id, water.id))
    assert resp.status_code == 400
    assert Sale.query.count() == 0
    assert _stock(water.id) == 10


def test_invoice_series_follows_the_sale_year(app):
    db.session.add(InvoiceSequence(year=2025, last_seq=41))
    db.session.commit()

    assert next_invoice_number(db.session, datetime(2025, 12, 31, 23, 59)) == '2025-0042'
    assert next_invoice_number(db.session, datetime(2026, 1, 1, 0, 1)) == '2026-0001'
    db.session.rollback()

    assert db.session.get(InvoiceSequence, 2025).last_seq == 41
    assert db.session.get(InvoiceSequence, 2026) is None
