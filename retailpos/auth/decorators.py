"""
retailpos/auth/decorators.py
----------------------------
Reusable route-protection decorators.
Usage:
    from retailpos.auth.decorators import login_required, cashier_required

    @pos.route('/cart/add', methods=['POST'])
    @cashier_required
    def add():
        ...
"""
from functools import wraps
from flask import session, abort


def login_required(f):
    """
    Reject unauthenticated requests with 401.
    Checks for 'user_id' key in the Flask session.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        if 'user_id' not in session:
            abort(401)
        return f(*args, **kwargs)
    return decorated


def cashier_required(f):
    """
    Allow access only to users who may run the till (cashier or admin).
    Unauthenticated users get 401, attendants get 403.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        if 'user_id' not in session:
            abort(401)
        if session.get('role') not in ('admin', 'cashier'):
            abort(403)
        return f(*args, **kwargs)
    return decorated


def admin_required(f):
    """
    Allow access only to users with role == 'admin'.
    Implies login_required.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        if 'user_id' not in session:
            abort(401)
        if session.get('role') != 'admin':
            abort(403)
        return f(*args, **kwargs)
    return decorated
