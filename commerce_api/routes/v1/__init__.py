"""
Routes v1 - Blueprint principal
Enveloppe uniforme: {ok: true, data} / {ok: false, title, message}
"""

from flask import Blueprint

# Blueprint principal v1
v1_bp = Blueprint('v1', __name__)

# Import des sous-modules après création du blueprint
from commerce_api.routes.v1 import carts
from commerce_api.routes.v1 import orders
from commerce_api.routes.v1 import payments
from commerce_api.routes.v1 import accounts
