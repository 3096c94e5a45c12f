"""Badge eligibility check for a single user."""
from flask import current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from pingponghub.app import db
from pingponghub.auth_utils import function_auth_required
from pingponghub.models import Badge
from pingponghub.routes.functions import functions_bp
from pingponghub.routes.functions.helpers import _json_payload, _required_id
from pingponghub.services.badges import check_and_award_badges
from pingponghub.services.notifier import get_notifier


@functions_bp.route('/award-badge', methods=['POST'])
@function_auth_required
def award_badge():
    data = _json_payload()
    user_id = _required_id(data, 'user_id')

    awarded_ids = check_and_award_badges(user_id)

    awarded_badges = []
    if awarded_ids:
        # Details are best effort; the grant itself is already committed.
        try:
            rows = Badge.query.filter(Badge.id.in_(awarded_ids)).all()
            awarded_badges = [badge.to_dict() for badge in rows]
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.warning(
                'Could not load details for badges %s', awarded_ids, exc_info=True,
            )

        notifier = get_notifier()
        notifier.emit('badge_awarded', {'user_id': user_id, 'badge_ids': awarded_ids})
        notifier.notify_user(user_id, 'badge_earned', badge_ids=awarded_ids)

    return jsonify({
        'success': True,
        'awarded_badge_ids': awarded_ids,
        'awarded_badges': awarded_badges,
    })
