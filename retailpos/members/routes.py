from flask import request, jsonify, abort
from retailpos import db
from retailpos.auth.decorators import login_required
from retailpos.auth.models import User, RoleEnum
from retailpos.members import members
from retailpos.members.models import Member


@members.route('/members')
@login_required
def list_members():
    q = request.args.get('search', '').strip()
    query = Member.query
    if q:
        # Search by phone or name
        query = query.filter(
            (Member.phone.ilike(f'%{q}%')) |
            (Member.name.ilike(f'%{q}%'))
        )
    results = query.order_by(Member.is_general.desc(), Member.name.asc()).all()
    return jsonify({'members': [m.to_dict() for m in results]})


@members.route('/members/<int:member_id>')
@login_required
def member_detail(member_id):
    member = db.session.get(Member, member_id)
    if member is None:
        abort(404)
    return jsonify(member.to_dict())


@members.route('/attendants')
@login_required
def list_attendants():
    rows = (User.query
            .filter_by(role=RoleEnum.attendant, is_active=True)
            .order_by(User.name.asc())
            .all())
    return jsonify({'attendants': [{'id': u.id, 'name': u.name} for u in rows]})
