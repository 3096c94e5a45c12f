"""Quick-match opponent search.

Candidates come from a rating band around the requesting player, are
trimmed by distance when both sides have coordinates, then scored:

    score = 100
            - (rating_diff / rating_range) * 30
            + 20 if the candidate is online
            - 2 * level_diff
            + 10 if the candidate has played more than 10 matches

The score is floored at 0 and has no ceiling.
"""
from sqlalchemy import and_

from pingponghub.app import db
from pingponghub.models import Challenge, Profile
from pingponghub.services.geo import distance_between
from pingponghub.services.notifier import add_notification
from pingponghub.services.progression import rating_tier
from pingponghub.time_utils import hours_from_now, utcnow_naive

BASE_SCORE = 100
RATING_WEIGHT = 30
ONLINE_BONUS = 20
LEVEL_PENALTY = 2
ACTIVITY_BONUS = 10
ACTIVITY_MIN_MATCHES = 10

QUICK_CHALLENGE_BEST_OF = 3
QUICK_CHALLENGE_MESSAGE = 'Quick match challenge from matchmaking!'


def calculate_match_score(player, opponent, rating_range):
    score = BASE_SCORE

    rating_diff = abs(player.rating_mr - opponent.rating_mr)
    score -= (rating_diff / rating_range) * RATING_WEIGHT

    if opponent.is_online:
        score += ONLINE_BONUS

    level_diff = abs((player.level or 0) - (opponent.level or 0))
    score -= level_diff * LEVEL_PENALTY

    if (opponent.total_matches or 0) > ACTIVITY_MIN_MATCHES:
        score += ACTIVITY_BONUS

    return max(0, score)


def find_candidates(player, rating_range, limit):
    """Profiles inside the rating band, excluding the player."""
    min_rating = player.rating_mr - rating_range
    max_rating = player.rating_mr + rating_range
    return Profile.query.filter(
        Profile.id != player.id,
        Profile.rating_mr >= min_rating,
        Profile.rating_mr <= max_rating,
    ).order_by(
        Profile.created_at.asc(),
        Profile.id.asc(),
    ).limit(limit).all()


def filter_by_distance(player, candidates, max_distance_km):
    """Drop candidates known to be too far; keep those without coordinates."""
    if not player.has_location or not max_distance_km or max_distance_km <= 0:
        return list(candidates)
    kept = []
    for candidate in candidates:
        distance = distance_between(player, candidate)
        if distance is None or distance <= max_distance_km:
            kept.append(candidate)
    return kept


def rank_candidates(player, candidates, rating_range, limit):
    """Score candidates and return the best ``limit`` as opponent dicts."""
    scored = []
    for candidate in candidates:
        data = candidate.to_opponent_dict()
        distance = distance_between(player, candidate)
        data['match_score'] = calculate_match_score(player, candidate, rating_range)
        data['distance_km'] = round(distance, 1) if distance is not None else None
        data['rating_tier'] = rating_tier(candidate.rating_mr)
        scored.append(data)
    scored.sort(key=lambda item: item['match_score'], reverse=True)
    return scored[:limit]


def expire_stale_challenges(challenger_id):
    """Mark the player's pending challenges past their expiry as expired."""
    Challenge.query.filter(and_(
        Challenge.challenger_id == challenger_id,
        Challenge.status == 'PENDING',
        Challenge.expires_at < utcnow_naive(),
    )).update({'status': 'EXPIRED'}, synchronize_session=False)


def pending_challenge_exists(challenger_id, challenged_id):
    return Challenge.query.filter_by(
        challenger_id=challenger_id,
        challenged_id=challenged_id,
        status='PENDING',
    ).first() is not None


def create_quick_challenge(player, opponent_id, match_type, expiry_hours):
    """Challenge the best opponent unless a pending challenge already exists.

    Returns the committed ``Challenge`` or None. Database errors propagate to
    the caller after the session is rolled back.
    """
    try:
        expire_stale_challenges(player.id)
        if pending_challenge_exists(player.id, opponent_id):
            db.session.commit()
            return None

        challenge = Challenge(
            challenger_id=player.id,
            challenged_id=opponent_id,
            match_type=match_type,
            best_of=QUICK_CHALLENGE_BEST_OF,
            message=QUICK_CHALLENGE_MESSAGE,
            status='PENDING',
            expires_at=hours_from_now(expiry_hours),
        )
        db.session.add(challenge)
        db.session.flush()
        add_notification(
            opponent_id, 'CHALLENGE_RECEIVED',
            f'{player.name or player.username or "A player"} challenged you',
            body=QUICK_CHALLENGE_MESSAGE,
            data={'challenge_id': challenge.id, 'match_type': match_type},
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return challenge
