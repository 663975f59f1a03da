"""
retailpos/pos/routes.py
-----------------------
JSON endpoints behind the cashier screen.

Each request rebuilds the cashier's TransactionSession from the Flask
session, applies one action and stores the state back, so the cart
survives between requests the same way a session cart does.
"""
from functools import wraps

from flask import request, jsonify, session, current_app, g

from retailpos.auth.decorators import cashier_required
from retailpos.pos import pos
from retailpos.pos.debt import DebtSettlementCoordinator
from retailpos.pos.errors import ConfirmationRequired, SubmissionError, ValidationError
from retailpos.pos.gateway import DatabaseGateway
from retailpos.pos.search import lookup_scanned_product
from retailpos.pos.session import TransactionSession
from retailpos.pos.settlement import SettlementCoordinator
from retailpos.pos.suspend import SuspendResumeManager

STATE_KEY = 'pos_state'


# ── Helpers ───────────────────────────────────────────────────────

def _gateway():
    return DatabaseGateway(current_app.config['GENERAL_CUSTOMER_NAME'])


def _load_state(gateway) -> TransactionSession:
    data = session.get(STATE_KEY)
    if data and data.get('cashier_id') == session['user_id']:
        try:
            return TransactionSession.from_dict(data)
        except (KeyError, TypeError, ValueError, ArithmeticError):
            current_app.logger.warning(
                f"Discarding unreadable till state for user {session['user_id']}")
    return TransactionSession(session['user_id'], gateway.general_customer())


def till_action(f):
    """Load the open transaction into g.till, run the view, save it back."""
    @wraps(f)
    @cashier_required
    def decorated(*args, **kwargs):
        g.gateway = _gateway()
        g.till = _load_state(g.gateway)
        try:
            return f(*args, **kwargs)
        finally:
            session[STATE_KEY] = g.till.to_dict()
    return decorated


def _payload() -> dict:
    return request.get_json(silent=True) or {}


def _int_field(data, key, required=True):
    value = data.get(key)
    if value is None or value == '':
        if required:
            raise ValidationError(f'{key} is required.')
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{key} must be an integer.')


def _state_response(status=200, **extra):
    body = g.till.snapshot()
    body.update(extra)
    return jsonify(body), status


# ── Error handlers ────────────────────────────────────────────────

@pos.errorhandler(ConfirmationRequired)
def confirmation_required(exc):
    return jsonify({'error': str(exc), 'confirmation_required': True}), 409


@pos.errorhandler(ValidationError)
def validation_error(exc):
    return jsonify({'error': str(exc)}), 400


@pos.errorhandler(SubmissionError)
def submission_error(exc):
    return jsonify({'error': str(exc)}), exc.status or 400


# ── State & cart ──────────────────────────────────────────────────

@pos.route('/')
@till_action
def state():
    return _state_response()


@pos.route('/products')
@cashier_required
def search_products():
    term = request.args.get('search', '').strip()
    if not term:
        return jsonify({'products': []})
    limit = current_app.config['PRODUCT_SEARCH_LIMIT']
    rows = _gateway().search_products(term, limit)
    return jsonify({'products': [p.to_dict() for p in rows]})


@pos.route('/scan', methods=['POST'])
@till_action
def scan():
    term = (_payload().get('term') or '').strip()
    if not term:
        raise ValidationError('Enter a product code or name.')
    product = lookup_scanned_product(g.gateway, term, current_app.config['PRODUCT_SEARCH_LIMIT'])
    if product is None:
        return jsonify({'error': f'No product with code or name "{term}".'}), 404
    g.till.add_product(product)
    return _state_response()


@pos.route('/cart/add', methods=['POST'])
@till_action
def cart_add():
    product_id = _int_field(_payload(), 'product_id')
    product = g.gateway.find_product(product_id)
    if product is None:
        return jsonify({'error': 'Product not found.'}), 404
    g.till.add_product(product)
    return _state_response()


@pos.route('/cart/update', methods=['POST'])
@till_action
def cart_update():
    data = _payload()
    g.till.update_quantity(_int_field(data, 'product_id'), _int_field(data, 'quantity'))
    return _state_response()


@pos.route('/cart/remove', methods=['POST'])
@till_action
def cart_remove():
    g.till.remove_product(_int_field(_payload(), 'product_id'))
    return _state_response()


@pos.route('/member', methods=['POST'])
@till_action
def select_member():
    member_id = _int_field(_payload(), 'member_id', required=False)
    member = None
    if member_id is not None:
        member = g.gateway.get_member(member_id)
        if member is None:
            return jsonify({'error': 'Member not found.'}), 404
    g.till.select_member(member)
    return _state_response()


@pos.route('/attendant', methods=['POST'])
@till_action
def select_attendant():
    attendant_id = _int_field(_payload(), 'attendant_id', required=False)
    attendant = None
    if attendant_id is not None:
        attendant = g.gateway.get_attendant(attendant_id)
        if attendant is None:
            return jsonify({'error': 'Attendant not found.'}), 404
    g.till.select_attendant(attendant)
    return _state_response()


@pos.route('/payment', methods=['POST'])
@till_action
def set_payment():
    g.till.set_payment(_payload().get('amount'))
    return _state_response()


@pos.route('/discount', methods=['POST'])
@till_action
def set_discount():
    g.till.set_additional_discount(_payload().get('amount'))
    return _state_response()


@pos.route('/reset', methods=['POST'])
@till_action
def reset():
    g.till.reset()
    return _state_response()


# ── Settlement ────────────────────────────────────────────────────

@pos.route('/settle/<kind>', methods=['POST'])
@till_action
def settle(kind):
    coordinator = SettlementCoordinator(g.till, g.gateway)
    if kind == 'paid':
        coordinator.initiate_paid()
    elif kind == 'unpaid':
        coordinator.initiate_unpaid()
    elif kind == 'cancel':
        coordinator.cancel()
    elif kind == 'confirm':
        outcome = coordinator.confirm()
        current_app.logger.info(
            f"Till {session['user_id']}: {outcome.transaction_type} sale {outcome.sale.invoice_number}")
        return _state_response(201, outcome=outcome.to_dict())
    else:
        return jsonify({'error': f'Unknown settlement action "{kind}".'}), 404
    return _state_response()


# ── Suspended sales ───────────────────────────────────────────────

@pos.route('/suspend', methods=['POST'])
@till_action
def suspend():
    data = _payload()
    record = SuspendResumeManager(g.till, g.gateway).suspend(
        name=data.get('name'), notes=data.get('notes'))
    return _state_response(201, suspended=record.to_dict())


@pos.route('/suspended')
@cashier_required
def suspended_list():
    rows = SuspendResumeManager(None, _gateway()).list_suspended()
    return jsonify({'suspended_sales': [r.to_dict() for r in rows]})


@pos.route('/suspended/<int:suspended_id>/resume', methods=['POST'])
@till_action
def resume(suspended_id):
    confirm = bool(_payload().get('confirm', False))
    SuspendResumeManager(g.till, g.gateway).resume_by_id(suspended_id, confirm_discard=confirm)
    return _state_response()


# ── Debt repayment ────────────────────────────────────────────────

def _debts(gateway):
    return DebtSettlementCoordinator(
        gateway, session['user_id'],
        statuses=current_app.config['RECEIVABLE_OPEN_STATUSES'],
        debounce_seconds=current_app.config['SEARCH_DEBOUNCE_SECONDS'],
    )


@pos.route('/debts')
@cashier_required
def debts():
    rows = _debts(_gateway()).search(request.args.get('search', ''))
    return jsonify({'receivables': [r.to_dict() for r in rows]})


@pos.route('/debts/<int:receivable_id>/pay', methods=['POST'])
@cashier_required
def pay_debt(receivable_id):
    data = _payload()
    coordinator = _debts(_gateway())
    coordinator.last_fragment = (data.get('search') or '').strip()
    updated = coordinator.pay_by_id(receivable_id, data.get('amount'))
    return jsonify({
        'receivable':  updated.to_dict(),
        'receivables': [r.to_dict() for r in coordinator.results],
    })
