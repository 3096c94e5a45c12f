"""Quick match: find suitable opponents by rating and location."""
from flask import current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from pingponghub.app import db
from pingponghub.auth_utils import function_auth_required
from pingponghub.errors import DependencyFailure, NotFound
from pingponghub.models import Profile
from pingponghub.routes.functions import functions_bp
from pingponghub.routes.functions.helpers import (
    _coerce_bool, _json_payload, _required_id, _parse_number, _parse_match_type,
)
from pingponghub.services.matchmaking import (
    create_quick_challenge, filter_by_distance, find_candidates, rank_candidates,
)
from pingponghub.services.notifier import get_notifier


@functions_bp.route('/match-making', methods=['POST'])
@function_auth_required
def match_making():
    data = _json_payload()
    user_id = _required_id(data, 'user_id')
    rating_range = _parse_number(
        data, 'rating_range', current_app.config['MATCHMAKING_DEFAULT_RATING_RANGE'],
    )
    max_distance_km = _parse_number(
        data, 'max_distance_km', current_app.config['MATCHMAKING_DEFAULT_MAX_DISTANCE_KM'],
        allow_zero=True,
    )
    match_type = _parse_match_type(data)
    auto_create_challenge = _coerce_bool(data.get('auto_create_challenge'))

    player = db.session.get(Profile, user_id)
    if not player:
        raise NotFound('Player not found')

    try:
        candidates = find_candidates(
            player, rating_range, current_app.config['MATCHMAKING_CANDIDATE_LIMIT'],
        )
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception('Error fetching candidates for %s', user_id)
        raise DependencyFailure('Failed to find opponents') from None

    nearby = filter_by_distance(player, candidates, max_distance_km)
    opponents = rank_candidates(
        player, nearby, rating_range, current_app.config['MATCHMAKING_RESULT_LIMIT'],
    )

    challenge = None
    if auto_create_challenge and opponents:
        best_match = opponents[0]
        try:
            challenge = create_quick_challenge(
                player, best_match['id'], match_type,
                current_app.config['CHALLENGE_EXPIRY_HOURS'],
            )
        except SQLAlchemyError:
            current_app.logger.warning(
                'Quick challenge from %s to %s was not created',
                user_id, best_match['id'], exc_info=True,
            )
            challenge = None

    challenge_data = challenge.to_dict() if challenge else None
    if challenge_data:
        notifier = get_notifier()
        notifier.emit('challenge_created', {
            'challenge_id': challenge_data['id'],
            'challenger_id': challenge_data['challenger_id'],
            'challenged_id': challenge_data['challenged_id'],
        })
        notifier.notify_user(challenge_data['challenged_id'], 'challenge_received')

    current_app.logger.debug(
        'matchmaking user=%s candidates=%d nearby=%d returned=%d',
        user_id, len(candidates), len(nearby), len(opponents),
    )
    return jsonify({
        'success': True,
        'player_rating': player.rating_mr,
        'search_params': {
            'rating_range': rating_range,
            'max_distance_km': max_distance_km,
            'match_type': match_type,
        },
        'opponents': opponents,
        'challenge_created': challenge_data,
    })
