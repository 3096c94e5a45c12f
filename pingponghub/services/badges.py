"""Badge catalogue and eligibility checks.

A badge's target comes from its ``requirement`` (``{"metric", "target"}``)
or, when that is empty, from its code: ``MATCH_25`` means 25 total matches,
``WIN_10`` ten wins, ``STREAK_5`` a best streak of five, ``RATING_1500`` a
rating of 1500, ``LEVEL_10`` level ten. ``FIRST_MATCH`` and ``FIRST_WIN``
are the one-off starters. Anything else (social or special badges) is
granted by hand and never picked up here.
"""
from sqlalchemy.exc import SQLAlchemyError

from pingponghub.app import db
from pingponghub.errors import DependencyFailure, NotFound
from pingponghub.models import BADGE_CATEGORIES, Badge, Profile, UserBadge
from pingponghub.services.notifier import add_notification
from pingponghub.services.progression import level_from_xp

PROFILE_METRICS = {
    'total_matches': 'total_matches',
    'wins': 'wins',
    'best_streak': 'best_streak',
    'rating_mr': 'rating_mr',
    'level': 'level',
}

_CODE_PREFIXES = [
    ('MATCH_', 'total_matches'),
    ('WIN_', 'wins'),
    ('STREAK_', 'best_streak'),
    ('RATING_', 'rating_mr'),
    ('LEVEL_', 'level'),
]

DEFAULT_BADGES = [
    {'code': 'FIRST_MATCH', 'name': 'First Rally', 'category': 'COMPETITION',
     'description': 'Play your first match.', 'xp_reward': 50},
    {'code': 'FIRST_WIN', 'name': 'First Blood', 'category': 'COMPETITION',
     'description': 'Win your first match.', 'xp_reward': 100},
    {'code': 'MATCH_10', 'name': 'Regular', 'category': 'COMPETITION',
     'description': 'Play 10 matches.', 'xp_reward': 150},
    {'code': 'MATCH_50', 'name': 'Table Veteran', 'category': 'COMPETITION',
     'description': 'Play 50 matches.', 'xp_reward': 400},
    {'code': 'MATCH_100', 'name': 'Centurion', 'category': 'COMPETITION',
     'description': 'Play 100 matches.', 'xp_reward': 800},
    {'code': 'WIN_10', 'name': 'Winner', 'category': 'PERFORMANCE',
     'description': 'Win 10 matches.', 'xp_reward': 200},
    {'code': 'WIN_50', 'name': 'Champion', 'category': 'PERFORMANCE',
     'description': 'Win 50 matches.', 'xp_reward': 600},
    {'code': 'STREAK_3', 'name': 'Hat Trick', 'category': 'PERFORMANCE',
     'description': 'Win 3 matches in a row.', 'xp_reward': 150},
    {'code': 'STREAK_5', 'name': 'On Fire', 'category': 'PERFORMANCE',
     'description': 'Win 5 matches in a row.', 'xp_reward': 300},
    {'code': 'STREAK_10', 'name': 'Unstoppable', 'category': 'PERFORMANCE',
     'description': 'Win 10 matches in a row.', 'xp_reward': 750},
    {'code': 'RATING_1200', 'name': 'Gold Paddle', 'category': 'PERFORMANCE',
     'description': 'Reach 1200 MR.', 'xp_reward': 250},
    {'code': 'RATING_1500', 'name': 'Platinum Paddle', 'category': 'PERFORMANCE',
     'description': 'Reach 1500 MR.', 'xp_reward': 500},
    {'code': 'RATING_1800', 'name': 'Master Paddle', 'category': 'PERFORMANCE',
     'description': 'Reach 1800 MR.', 'xp_reward': 1000},
    {'code': 'LEVEL_5', 'name': 'Rising Star', 'category': 'SPECIAL',
     'description': 'Reach level 5.', 'xp_reward': 200},
    {'code': 'LEVEL_10', 'name': 'Club Legend', 'category': 'SPECIAL',
     'description': 'Reach level 10.', 'xp_reward': 500},
]


def _parse_target(raw, default):
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def badge_target(badge):
    """Return ``(metric, target)`` for a badge, or ``(None, 0)`` if not measurable."""
    requirement = badge.requirement or {}
    metric = str(requirement.get('metric') or '').strip().lower()
    if metric in PROFILE_METRICS:
        return metric, _parse_target(requirement.get('target'), 0)

    code = str(badge.code or '').strip().upper()
    if code == 'FIRST_MATCH':
        return 'total_matches', 1
    if code == 'FIRST_WIN':
        return 'wins', 1
    for prefix, prefix_metric in _CODE_PREFIXES:
        if code.startswith(prefix):
            fallback = 1000 if prefix_metric == 'rating_mr' else 1
            return prefix_metric, _parse_target(code[len(prefix):], fallback)
    return None, 0


def badge_progress(profile, badge):
    metric, target = badge_target(badge)
    if not metric or target <= 0:
        return {'current': 0, 'target': 0, 'percent': 0}
    current = getattr(profile, PROFILE_METRICS[metric]) or 0
    if badge.code in ('FIRST_MATCH', 'FIRST_WIN'):
        current = min(1, current)
    percent = min(100, int(round(current / target * 100)))
    return {'current': current, 'target': target, 'percent': percent}


def is_badge_earned(profile, badge):
    progress = badge_progress(profile, badge)
    return progress['target'] > 0 and progress['current'] >= progress['target']


def check_and_award_badges(user_id):
    """Grant every newly satisfied badge to ``user_id`` and return their ids.

    XP rewards can raise the player's level, which can satisfy level
    badges in turn, so evaluation repeats until nothing new qualifies.
    """
    profile = db.session.get(Profile, user_id)
    if not profile:
        raise NotFound('Player not found')

    try:
        held_ids = {
            row.badge_id for row in UserBadge.query.filter_by(user_id=profile.id).all()
        }
        catalogue = Badge.query.order_by(Badge.code.asc()).all()
        starting_level = profile.level or 1
        awarded = []

        while True:
            newly_earned = [
                badge for badge in catalogue
                if badge.id not in held_ids and is_badge_earned(profile, badge)
            ]
            if not newly_earned:
                break
            for badge in newly_earned:
                db.session.add(UserBadge(user_id=profile.id, badge_id=badge.id))
                held_ids.add(badge.id)
                awarded.append(badge.id)
                profile.xp = (profile.xp or 0) + (badge.xp_reward or 0)
                add_notification(
                    profile.id, 'BADGE_EARNED', f'Badge earned: {badge.name}',
                    body=badge.description, data={'badge_id': badge.id, 'code': badge.code},
                )
            profile.level = max(profile.level or 1, level_from_xp(profile.xp))

        if profile.level > starting_level:
            add_notification(
                profile.id, 'LEVEL_UP', f'Level {profile.level} reached',
                data={'level': profile.level, 'previous_level': starting_level},
            )
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise DependencyFailure('Failed to award badges') from exc

    return awarded


def seed_badges(definitions=None, commit=True):
    """Upsert badge definitions by code. Returns created/updated counts."""
    definitions = DEFAULT_BADGES if definitions is None else definitions
    created = 0
    updated = 0
    for raw in definitions:
        code = str(raw.get('code') or '').strip().upper()
        if not code:
            raise ValueError('Badge definition is missing a code')
        badge = Badge.query.filter_by(code=code).first()
        is_new = badge is None
        if is_new:
            badge = Badge(code=code)
            db.session.add(badge)
            created += 1
        else:
            updated += 1

        # Existing badges keep any field the definition leaves out.
        if is_new or raw.get('name'):
            badge.name = raw.get('name') or code.replace('_', ' ').title()
        if is_new or 'description' in raw:
            badge.description = raw.get('description')
        if is_new or 'icon_url' in raw:
            badge.icon_url = raw.get('icon_url')
        if is_new or 'category' in raw:
            category = str(raw.get('category') or 'COMPETITION').strip().upper()
            if category not in BADGE_CATEGORIES:
                raise ValueError(f'Unknown badge category for {code}: {category}')
            badge.category = category
        if is_new or 'requirement' in raw:
            badge.requirement = raw.get('requirement') or {}
        if is_new or 'xp_reward' in raw:
            badge.xp_reward = int(raw.get('xp_reward') or 0)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return {'created': created, 'updated': updated}
