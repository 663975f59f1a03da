"""
retailpos/pos/search.py
-----------------------
Search-as-you-type helpers and barcode scan lookup.

LatestOnly   every request takes a ticket; only the newest ticket's result
             may be applied, so a slow earlier response never overwrites a
             newer one.
Debouncer    delays a call; a new call within the interval replaces the
             pending one.

LatestOnly guards DebtSettlementCoordinator.search on every path. Debouncer
serves a front end running in the same process as the till core (through
search_as_you_type); the /pos HTTP routes run one query per request and
leave debouncing to the client.
"""
import logging
import threading

logger = logging.getLogger(__name__)


class LatestOnly:

    def __init__(self):
        self._lock = threading.Lock()
        self._latest = 0

    def issue(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    def is_current(self, ticket: int) -> bool:
        with self._lock:
            return ticket == self._latest

    def accept(self, ticket: int, result, apply) -> bool:
        """Call apply(result) only if `ticket` is still the newest."""
        if not self.is_current(ticket):
            logger.debug("Discarding stale result for ticket %s", ticket)
            return False
        apply(result)
        return True


class Debouncer:

    def __init__(self, interval: float = 0.3):
        self.interval = interval
        self._lock = threading.Lock()
        self._timer = None

    def call(self, fn, *args, **kwargs):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.interval, fn, args=args, kwargs=kwargs)
            self._timer.daemon = True
            self._timer.start()
            return self._timer

    def cancel(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


def lookup_scanned_product(gateway, term: str, limit: int = 20):
    """
    Resolve a scanned or typed term to one product.
    Exact product code first, then an exact (case-insensitive) code or name
    among the search results. Returns None when nothing matches exactly.
    """
    term = (term or '').strip()
    if not term:
        return None

    product = gateway.find_product_by_code(term)
    if product is not None:
        return product

    wanted = term.lower()
    for candidate in gateway.search_products(term, limit):
        if candidate.product_code.lower() == wanted or candidate.name.lower() == wanted:
            return candidate
    return None
