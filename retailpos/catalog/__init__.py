"""
retailpos/catalog/__init__.py
-----------------------------
Product catalogue lookup API (products and their price tiers).
URL prefix: /api
"""
from flask import Blueprint

catalog = Blueprint('catalog', __name__)

from retailpos.catalog import routes  # noqa: E402, F401
from retailpos.catalog import models  # noqa: E402, F401
