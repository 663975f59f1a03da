"""
retailpos/sales/routes.py
-------------------------
JSON data API for sales, suspended sales and receivables.
"""
from flask import request, jsonify, session, current_app

from retailpos.auth.decorators import login_required, cashier_required
from retailpos.sales import sales
from retailpos.sales import services


def _error(exc, status):
    return jsonify({'error': str(exc)}), status


# ── SALES ─────────────────────────────────────────────────────────

@sales.route('/sales', methods=['POST'])
@cashier_required
def create_sale():
    payload = request.get_json(silent=True) or {}
    try:
        sale = services.record_sale(payload, cashier_id=session['user_id'])
    except services.DuplicateSaleError as exc:
        current_app.logger.warning(f"Duplicate sale submission refused: {exc}")
        return _error(exc, 409)
    except LookupError as exc:
        current_app.logger.warning(f"Sale rejected (missing reference): {exc}")
        return _error(exc, 404)
    except ValueError as exc:
        current_app.logger.warning(f"Sale rejected: {exc}")
        return _error(exc, 400)
    return jsonify(sale.to_dict()), 201


@sales.route('/sales')
@login_required
def list_sales():
    page  = max(request.args.get('page', 1, type=int), 1)
    limit = min(max(request.args.get('limit', 10, type=int), 1), 100)
    rows, total = services.list_sales(
        page=page, limit=limit,
        cashier_id=request.args.get('cashier_id', type=int),
        member_id=request.args.get('member_id', type=int),
    )
    return jsonify({
        'sales': [s.to_dict() for s in rows],
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'total_pages': (total + limit - 1) // limit,
        },
    })


# ── SUSPENDED SALES ───────────────────────────────────────────────

@sales.route('/suspended-sales')
@login_required
def list_suspended():
    return jsonify({'suspended_sales': [s.to_dict() for s in services.list_suspended_sales()]})


@sales.route('/suspended-sales', methods=['POST'])
@login_required
def create_suspended():
    data = request.get_json(silent=True) or {}
    try:
        parked = services.create_suspended_sale(
            cart_items=data.get('cart_items'),
            created_by=session['user_id'],
            name=data.get('name'),
            notes=data.get('notes'),
            member_id=data.get('member_id'),
            attendant_id=data.get('attendant_id'),
            additional_discount=data.get('additional_discount'),
        )
    except (LookupError, ValueError, TypeError) as exc:
        return _error(exc, 400)
    return jsonify(parked.to_dict()), 201


@sales.route('/suspended-sales/<int:suspended_id>', methods=['DELETE'])
@cashier_required
def delete_suspended(suspended_id):
    try:
        services.delete_suspended_sale(suspended_id)
    except LookupError as exc:
        return _error(exc, 404)
    return jsonify({'message': 'Suspended sale deleted successfully'})


# ── RECEIVABLES ───────────────────────────────────────────────────

@sales.route('/receivables')
@cashier_required
def list_receivables():
    try:
        rows = services.search_receivables(
            statuses=request.args.get('status', ''),
            search=request.args.get('search', '').strip(),
        )
    except ValueError as exc:
        return _error(exc, 400)
    return jsonify({'receivables': [r.to_dict() for r in rows]})


@sales.route('/receivables/<int:receivable_id>/pay', methods=['POST'])
@cashier_required
def pay_receivable(receivable_id):
    data = request.get_json(silent=True) or {}
    try:
        receivable = services.pay_receivable(receivable_id, data.get('amount'),
                                             cashier_id=session['user_id'])
    except LookupError as exc:
        return _error(exc, 404)
    except ValueError as exc:
        current_app.logger.warning(f"Receivable {receivable_id} payment rejected: {exc}")
        return _error(exc, 400)
    return jsonify(receivable.to_dict())
