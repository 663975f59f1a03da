from flask import request, jsonify, current_app, abort
from retailpos import db
from retailpos.catalog import catalog
from retailpos.catalog.models import Product
from retailpos.auth.decorators import login_required


def find_by_code(code: str):
    """Exact (case-insensitive) product-code match among active products."""
    return (Product.query
            .filter(Product.is_active.is_(True),
                    db.func.lower(Product.product_code) == code.lower())
            .first())


def search(term: str, limit: int):
    """Free-text search on name or product code, active products only."""
    pattern = f'%{term}%'
    return (Product.query
            .filter(Product.is_active.is_(True),
                    Product.name.ilike(pattern) | Product.product_code.ilike(pattern))
            .order_by(Product.name.asc())
            .limit(limit)
            .all())


@catalog.route('/products')
@login_required
def products():
    code  = request.args.get('code', '').strip()
    term  = request.args.get('search', '').strip()
    limit = request.args.get('limit', type=int) or current_app.config['PRODUCT_SEARCH_LIMIT']

    if code:
        product = find_by_code(code)
        return jsonify({'products': [product.to_dict()] if product else []})
    if not term:
        return jsonify({'products': []})
    return jsonify({'products': [p.to_dict() for p in search(term, limit)]})


@catalog.route('/products/<int:product_id>')
@login_required
def product_detail(product_id):
    product = db.session.get(Product, product_id)
    if product is None or not product.is_active:
        abort(404)
    return jsonify(product.to_dict())
