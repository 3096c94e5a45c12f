"""Rating recalculation after a match is completed."""
from flask import current_app, jsonify

from pingponghub.auth_utils import function_auth_required
from pingponghub.routes.functions import functions_bp
from pingponghub.routes.functions.helpers import _json_payload, _required_id
from pingponghub.services.elo import calculate_elo_rating
from pingponghub.services.notifier import get_notifier


@functions_bp.route('/calculate-elo', methods=['POST'])
@function_auth_required
def calculate_elo():
    data = _json_payload()
    match_id, winner_id = _required_id(data, 'match_id', 'winner_id')

    result = calculate_elo_rating(match_id, winner_id)

    current_app.logger.info(
        'rated match %s: player1 %+d, player2 %+d',
        match_id, result['player1_change'], result['player2_change'],
    )
    notifier = get_notifier()
    notifier.emit('match_rated', result)
    return jsonify({'success': True, 'result': result})
