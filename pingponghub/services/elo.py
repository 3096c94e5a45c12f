"""
ELO rating engine for PingpongHub singles matches.

- Start: 1000 MR.
- K-factor: 32 for new players (< 30 matches), 24 for intermediate
  (< 100), 16 for veterans. A match uses the K of its less experienced
  participant so both players move by the same amount.
- Zero-sum: the winner gains exactly what the loser drops.
- Formula: E = 1 / (1 + 10^((opponent - player) / 400))
           delta = round(K * (1 - E_winner))
"""
import math

from sqlalchemy.exc import SQLAlchemyError

from pingponghub.app import db
from pingponghub.errors import DependencyFailure, NotFound
from pingponghub.models import Match, Profile, RatingHistory
from pingponghub.services.notifier import add_notification
from pingponghub.time_utils import utcnow_naive


class RatingUpdateError(DependencyFailure):
    """The rating routine refused the update."""


def get_k_factor(total_matches):
    if total_matches < 30:
        return 32
    if total_matches < 100:
        return 24
    return 16


def expected_score(player_rating, opponent_rating):
    """Win probability of ``player_rating`` against ``opponent_rating``."""
    return 1.0 / (1.0 + math.pow(10, (opponent_rating - player_rating) / 400.0))


def calculate_rating_delta(winner_rating, loser_rating, winner_matches, loser_matches):
    """Points moved from loser to winner. Always >= 0."""
    k = get_k_factor(min(winner_matches, loser_matches))
    return int(round(k * (1.0 - expected_score(winner_rating, loser_rating))))


def _record_result(profile, won):
    profile.total_matches = (profile.total_matches or 0) + 1
    if won:
        profile.wins = (profile.wins or 0) + 1
        profile.current_streak = max(profile.current_streak or 0, 0) + 1
        profile.best_streak = max(profile.best_streak or 0, profile.current_streak)
    else:
        profile.losses = (profile.losses or 0) + 1
        profile.current_streak = 0


def _lock_match(match_id):
    return (
        Match.query.filter_by(id=match_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def _lock_players(*player_ids):
    """Lock both profiles in id order so concurrent ratings cannot deadlock."""
    rows = (
        Profile.query.filter(Profile.id.in_(player_ids))
        .order_by(Profile.id.asc())
        .with_for_update()
        .populate_existing()
        .all()
    )
    return {row.id: row for row in rows}


def _claim_match(match, winner_id):
    """Mark the match COMPLETED only if nobody else has finished it first."""
    claimed = Match.query.filter(
        Match.id == match.id,
        Match.status.notin_(('COMPLETED', 'CANCELLED')),
    ).update(
        {
            Match.status: 'COMPLETED',
            Match.winner_id: winner_id,
            Match.completed_at: match.completed_at or utcnow_naive(),
        },
        synchronize_session=False,
    )
    if claimed != 1:
        raise RatingUpdateError('Match has already been rated')


def calculate_elo_rating(match_id, winner_id):
    """Apply the rating update for a finished match and return the changes.

    The match and both profiles are row-locked for the update and the
    match is claimed with a conditional status change. Commits on success;
    any failure rolls the whole update back.
    """
    try:
        match = _lock_match(match_id)
        if not match:
            raise NotFound('Match not found')
        if match.player1_id == match.player2_id:
            raise RatingUpdateError('Match players must be different')
        if winner_id not in (match.player1_id, match.player2_id):
            raise RatingUpdateError('Winner must be one of the match players')
        if match.status == 'COMPLETED':
            raise RatingUpdateError('Match has already been rated')
        if match.status == 'CANCELLED':
            raise RatingUpdateError('Cancelled matches cannot be rated')

        players = _lock_players(match.player1_id, match.player2_id)
        player1 = players.get(match.player1_id)
        player2 = players.get(match.player2_id)
        if player1 is None or player2 is None:
            raise RatingUpdateError('Match players are missing')

        player1_won = winner_id == player1.id
        winner, loser = (player1, player2) if player1_won else (player2, player1)
        delta = calculate_rating_delta(
            winner.rating_mr, loser.rating_mr,
            winner.total_matches or 0, loser.total_matches or 0,
        )

        player1_old, player2_old = player1.rating_mr, player2.rating_mr
        player1_change = delta if player1_won else -delta
        player2_change = -player1_change

        _claim_match(match, winner_id)

        for profile, old_rating, change in (
            (player1, player1_old, player1_change),
            (player2, player2_old, player2_change),
        ):
            profile.rating_mr = old_rating + change
            _record_result(profile, won=profile.id == winner_id)
            db.session.add(RatingHistory(
                user_id=profile.id,
                match_id=match.id,
                old_rating=old_rating,
                new_rating=profile.rating_mr,
                rating_change=change,
                reason='match_result',
            ))
            add_notification(
                profile.id, 'MATCH_RESULT',
                'Match won' if profile.id == winner_id else 'Match lost',
                body=f'Your rating changed by {change:+d} to {profile.rating_mr} MR.',
                data={'match_id': match.id, 'rating_change': change},
            )

        match.player1_rating_before = player1_old
        match.player2_rating_before = player2_old
        match.player1_rating_change = player1_change
        match.player2_rating_change = player2_change
        db.session.commit()
    except (NotFound, RatingUpdateError):
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise RatingUpdateError('Failed to update ratings') from exc

    return {
        'match_id': match_id,
        'winner_id': winner_id,
        'player1_old_rating': player1_old,
        'player1_new_rating': player1_old + player1_change,
        'player1_change': player1_change,
        'player2_old_rating': player2_old,
        'player2_new_rating': player2_old + player2_change,
        'player2_change': player2_change,
    }
