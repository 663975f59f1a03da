"""
retailpos/pos/__init__.py
-------------------------
Cashier transaction screen: cart, tiered pricing, settlement, suspended
sales and debt repayment.
URL prefix: /pos

The core modules (pricing, cart, calculation, session, settlement, suspend,
debt, search) only talk to a PosGateway and can be used without a request.
"""
from flask import Blueprint

pos = Blueprint('pos', __name__)

from retailpos.pos import routes  # noqa: E402, F401
