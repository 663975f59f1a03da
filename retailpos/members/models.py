from datetime import datetime
from decimal import Decimal
from retailpos import db


class Member(db.Model):
    """
    A customer known to the store.

    Exactly one row carries is_general=True: the walk-in placeholder used
    when the cashier picks nobody. It has no discount and may never buy
    on credit.
    """
    __tablename__ = 'members'

    id              = db.Column(db.Integer, primary_key=True)
    name            = db.Column(db.String(100), nullable=False, index=True)
    phone           = db.Column(db.String(20), nullable=True, index=True)
    discount        = db.Column(db.Numeric(5, 2), nullable=False, default=0)   # percent
    membership_type = db.Column(db.String(20), nullable=False, default='RETAIL')
    is_general      = db.Column(db.Boolean, nullable=False, default=False)
    created_at      = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('discount >= 0 AND discount <= 100', name='check_member_discount_valid'),
    )

    def to_dict(self) -> dict:
        return {
            'id':              self.id,
            'name':            self.name,
            'phone':           self.phone,
            'discount':        str(self.discount),
            'membership_type': self.membership_type,
            'is_general':      self.is_general,
        }

    def __repr__(self):
        return f"<Member {self.name} ({self.membership_type}) {self.discount}%>"


def ensure_general_customer(name: str) -> Member:
    """Return the general-customer row, creating it on first use."""
    member = Member.query.filter_by(is_general=True).first()
    if member is None:
        member = Member(name=name, discount=Decimal('0'),
                        membership_type='RETAIL', is_general=True)
        db.session.add(member)
        db.session.commit()
    return member
