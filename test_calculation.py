from decimal import Decimal

from conftest import make_product
from retailpos.pos.calculation import recompute
from retailpos.pos.cart import CartStore
from retailpos.pos.records import MemberRef

GOLD = MemberRef(id=2, name='Siti', discount=Decimal('10'))


def _cart(*entries):
    cart = CartStore()
    for product, qty in entries:
        cart.add(product)
        cart.update_quantity(product.id, qty)
    return cart


def test_empty_cart_has_no_calculation():
    assert recompute([], GOLD) is None


def test_tier_and_member_discount_do_not_double_count():
    # 3 units, tiered down to 900 from a 1000 base, member takes 10 %
    cart = _cart((make_product(1, tiers=((1, '1000'), (3, '900'))), 3))
    calc = recompute(cart.lines, GOLD)

    assert calc.sub_total == Decimal('2700')
    assert calc.item_discount == Decimal('300')
    assert calc.member_discount == Decimal('270')
    assert calc.additional_discount == Decimal('0')
    assert calc.grand_total == Decimal('2430')
    assert calc.total_discount == Decimal('570')
    assert calc.tax == Decimal('0')

    line = calc.items[0]
    assert line.original_price == Decimal('1000')
    assert line.price_after_item_discount == Decimal('900')
    assert line.subtotal == Decimal('2700')


def test_general_customer_gets_no_member_discount():
    general = MemberRef(id=1, name='General Customer', is_general=True)
    cart = _cart((make_product(1), 2))
    calc = recompute(cart.lines, general)
    assert calc.member_discount == Decimal('0')
    assert calc.grand_total == Decimal('2000')


def test_additional_discount_reduces_grand_total():
    cart = _cart((make_product(1), 2))
    calc = recompute(cart.lines, None, Decimal('150'))
    assert calc.grand_total == Decimal('1850')
    assert calc.total_discount == Decimal('150')


def test_grand_total_never_negative():
    cart = _cart((make_product(1), 1))
    calc = recompute(cart.lines, None, Decimal('5000'))
    assert calc.grand_total == Decimal('0')


def test_grand_total_rounds_half_up_once():
    # 3 × 1005 = 3015; 2.5 % = 75.375 → 2939.625 → 2940
    member = MemberRef(id=3, name='Andi', discount=Decimal('2.5'))
    cart = _cart((make_product(1, tiers=((1, '1005'),)), 3))
    calc = recompute(cart.lines, member)
    assert calc.member_discount == Decimal('75.375')
    assert calc.grand_total == Decimal('2940')

    half = recompute(_cart((make_product(2, tiers=((1, '0.5'),)), 1)).lines)
    assert half.grand_total == Decimal('1')


def test_totals_are_exact_sums():
    cart = _cart(
        (make_product(1, tiers=((1, '4000'), (12, '3500'), (48, '3200'))), 13),
        (make_product(2, tiers=((1, '3333.33'),)), 3),
        (make_product(3, tiers=((1, '18000'), (6, '17200'))), 6),
    )
    calc = recompute(cart.lines, MemberRef(id=4, name='X', discount=Decimal('7')), Decimal('99.99'))

    assert calc.sub_total == sum(i.subtotal for i in calc.items)
    assert calc.item_discount == sum(i.item_discount for i in calc.items)
    assert calc.total_discount == calc.item_discount + calc.member_discount + calc.additional_discount
    assert calc.grand_total >= 0
    assert calc.grand_total == calc.grand_total.to_integral_value()


def test_recompute_is_pure():
    cart = _cart((make_product(1, tiers=((1, '1000'), (3, '900'))), 4))
    assert recompute(cart.lines, GOLD, Decimal('10')) == recompute(cart.lines, GOLD, Decimal('10'))


def test_product_without_tiers_prices_at_zero():
    cart = _cart((make_product(1, tiers=()), 2))
    calc = recompute(cart.lines)
    assert calc.sub_total == Decimal('0')
    assert calc.grand_total == Decimal('0')


def test_to_dict_uses_strings_for_money():
    cart = _cart((make_product(1), 1))
    data = recompute(cart.lines).to_dict()
    assert data['grand_total'] == '1000'
    assert data['items'][0]['original_price'] == '1000'
