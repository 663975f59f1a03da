from datetime import datetime
from retailpos import db


class Product(db.Model):
    """A sellable product with quantity-based price tiers."""
    __tablename__ = 'products'

    id           = db.Column(db.Integer, primary_key=True)
    name         = db.Column(db.String(200), nullable=False, index=True)
    product_code = db.Column(db.String(100), unique=True, nullable=False, index=True)
    stock        = db.Column(db.Integer, nullable=False, default=0)
    is_active    = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at   = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at   = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )

    # Kept in insertion order; the price resolver does its own stable sort
    price_tiers = db.relationship('PriceTier', backref='product', lazy='select',
                                  cascade='all, delete-orphan',
                                  order_by='PriceTier.id')

    __table_args__ = (
        db.CheckConstraint('stock >= 0', name='check_stock_non_negative'),
    )

    def to_dict(self) -> dict:
        return {
            'id':           self.id,
            'name':         self.name,
            'product_code': self.product_code,
            'stock':        self.stock,
            'price_tiers':  [t.to_dict() for t in self.price_tiers],
        }

    def __repr__(self):
        return f"<Product {self.product_code!r} {self.name!r}>"


class PriceTier(db.Model):
    """Unit price that applies from `min_qty` units upward."""
    __tablename__ = 'price_tiers'

    id         = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id', ondelete='CASCADE'),
                           nullable=False, index=True)
    min_qty    = db.Column(db.Integer, nullable=False, default=1)
    price      = db.Column(db.Numeric(12, 2), nullable=False)

    __table_args__ = (
        db.CheckConstraint('min_qty >= 1', name='check_tier_min_qty_positive'),
        db.CheckConstraint('price >= 0', name='check_tier_price_non_negative'),
    )

    def to_dict(self) -> dict:
        return {'min_qty': self.min_qty, 'price': str(self.price)}

    def __repr__(self):
        return f"<PriceTier P:{self.product_id} {self.min_qty}+ @ {self.price}>"


class InventoryLog(db.Model):
    """
    Audit trail for stock changes.
    Tracks old vs new stock, who changed it, and why.
    """
    __tablename__ = 'inventory_logs'

    id          = db.Column(db.Integer, primary_key=True)
    product_id  = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    old_stock   = db.Column(db.Integer, nullable=False)
    new_stock   = db.Column(db.Integer, nullable=False)
    changed_by  = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    reason      = db.Column(db.String(255), nullable=False)
    timestamp   = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    product = db.relationship('Product', backref=db.backref('logs', lazy='select'))
    user    = db.relationship('User', lazy='select')

    def __repr__(self):
        return f"<Log Product:{self.product_id} {self.old_stock}->{self.new_stock} ({self.reason})>"
