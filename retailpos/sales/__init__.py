"""
retailpos/sales/__init__.py
---------------------------
Sales data API: finalized sales, suspended (parked) sales and receivables.
URL prefix: /api
"""
from flask import Blueprint

sales = Blueprint('sales', __name__)

from retailpos.sales import routes  # noqa: E402, F401
from retailpos.sales import models  # noqa: E402, F401
