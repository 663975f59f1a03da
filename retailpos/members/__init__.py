from flask import Blueprint

members = Blueprint('members', __name__)

from retailpos.members import routes  # noqa: E402, F401
from retailpos.members import models  # noqa: E402, F401
