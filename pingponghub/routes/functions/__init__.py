"""Server functions — blueprint registration."""
from flask import Blueprint

functions_bp = Blueprint('functions', __name__)

# Route modules register their routes by importing functions_bp.
# These imports MUST come after functions_bp is defined.
from pingponghub.routes.functions import match_making, calculate_elo, award_badge  # noqa: E402, F401
