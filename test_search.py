import threading

from conftest import make_product
from retailpos.pos.search import Debouncer, LatestOnly, lookup_scanned_product


def test_only_latest_ticket_is_applied():
    latest = LatestOnly()
    applied = []
    first = latest.issue()
    second = latest.issue()
    assert latest.accept(second, 'new', applied.append)
    assert not latest.accept(first, 'old', applied.append)
    assert applied == ['new']


def test_debouncer_runs_only_last_call_of_burst():
    calls = []
    done = threading.Event()

    def record(value):
        calls.append(value)
        done.set()

    debouncer = Debouncer(0.05)
    for value in ('s', 'si', 'sit'):
        debouncer.call(record, value)
    assert done.wait(2)
    debouncer.cancel()
    assert calls == ['sit']


def test_debouncer_cancel():
    calls = []
    debouncer = Debouncer(0.05)
    timer = debouncer.call(calls.append, 'x')
    debouncer.cancel()
    timer.join(1)
    assert calls == []


def test_scan_prefers_exact_code(gateway):
    gateway.add_product(make_product(1, name='MW600 Holder', code='HOLD1'))
    water = gateway.add_product(make_product(2, name='Mineral Water', code='MW600'))
    assert lookup_scanned_product(gateway, ' mw600 ') == water


def test_scan_falls_back_to_exact_name(gateway):
    gateway.add_product(make_product(1, name='Instant Noodles Large', code='IN002'))
    noodles = gateway.add_product(make_product(2, name='Instant Noodles', code='IN001'))
    assert lookup_scanned_product(gateway, 'instant noodles') == noodles


def test_scan_partial_match_is_not_enough(gateway):
    gateway.add_product(make_product(1, name='Instant Noodles', code='IN001'))
    assert lookup_scanned_product(gateway, 'noodle') is None
    assert lookup_scanned_product(gateway, '   ') is None
