from flask import Blueprint

auth = Blueprint('auth', __name__)

from retailpos.auth import routes   # noqa: F401, E402
from retailpos.auth import models   # noqa: F401, E402
