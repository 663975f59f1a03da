from decimal import Decimal

from retailpos.pos.pricing import PriceTier, resolve_price, tiers_from_dicts

TIERS = (PriceTier(1, Decimal('1000')), PriceTier(10, Decimal('900')))


def test_quantity_below_second_tier_uses_base_price():
    assert resolve_price(TIERS, 5) == Decimal('1000')


def test_quantity_at_breakpoint_uses_tier_price():
    assert resolve_price(TIERS, 10) == Decimal('900')
    assert resolve_price(TIERS, 250) == Decimal('900')


def test_no_tiers_prices_at_zero():
    assert resolve_price((), 3) == Decimal('0')


def test_unsorted_tiers_are_sorted_first():
    tiers = (PriceTier(48, Decimal('3200')), PriceTier(1, Decimal('4000')),
             PriceTier(12, Decimal('3500')))
    assert resolve_price(tiers, 1) == Decimal('4000')
    assert resolve_price(tiers, 12) == Decimal('3500')
    assert resolve_price(tiers, 47) == Decimal('3500')
    assert resolve_price(tiers, 48) == Decimal('3200')


def test_quantity_below_every_breakpoint_uses_lowest_tier():
    tiers = (PriceTier(6, Decimal('17200')), PriceTier(3, Decimal('17500')))
    assert resolve_price(tiers, 1) == Decimal('17500')


def test_equal_min_qty_later_tier_wins():
    tiers = (PriceTier(1, Decimal('1000')), PriceTier(5, Decimal('950')),
             PriceTier(5, Decimal('920')))
    assert resolve_price(tiers, 5) == Decimal('920')


def test_greatest_breakpoint_not_above_quantity():
    tiers = (PriceTier(1, Decimal('10')), PriceTier(3, Decimal('9')),
             PriceTier(7, Decimal('8')), PriceTier(20, Decimal('7')))
    for qty in range(1, 30):
        eligible = [t for t in tiers if t.min_qty <= qty]
        expected = max(eligible, key=lambda t: t.min_qty).price
        assert resolve_price(tiers, qty) == expected


def test_tiers_from_dicts_reads_string_prices():
    tiers = tiers_from_dicts([{'min_qty': 1, 'price': '4000.00'}, {'min_qty': '12', 'price': 3500}])
    assert tiers == (PriceTier(1, Decimal('4000.00')), PriceTier(12, Decimal('3500')))
    assert tiers_from_dicts(None) == ()
