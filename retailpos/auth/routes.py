from flask import request, session, jsonify, current_app
from retailpos import db
from retailpos.auth import auth
from retailpos.auth.models import User
from retailpos.auth.decorators import login_required


@auth.route('/login', methods=['POST'])
def login():
    """Validate credentials and populate the session."""
    data = request.get_json(silent=True) or request.form
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''

    if not username or not password:
        return jsonify({'error': 'Username and password are required.'}), 400

    user = User.query.filter_by(username=username, is_active=True).first()
    if user is None or not user.check_password(password):
        # Same message for both fields
        current_app.logger.warning(f"Failed login attempt for username: {username}")
        return jsonify({'error': 'Invalid username or password.'}), 401

    # ── Populate session ──
    session.clear()
    session['user_id'] = user.id
    session['role']    = user.role.value
    session.permanent  = True             # respect PERMANENT_SESSION_LIFETIME

    current_app.logger.info(f"User {user.username} logged in successfully.")
    return jsonify({'id': user.id, 'name': user.name, 'role': user.role.value})


@auth.route('/logout', methods=['POST'])
def logout():
    """Clear the session (an open cart is discarded with it)."""
    session.clear()
    return jsonify({'message': 'Logged out'})


@auth.route('/me')
@login_required
def me():
    user = db.session.get(User, session['user_id'])
    if user is None:
        session.clear()
        return jsonify({'error': 'Session user no longer exists'}), 401
    return jsonify({'id': user.id, 'name': user.name, 'role': user.role.value})
