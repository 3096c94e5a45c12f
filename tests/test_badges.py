"""Tests for badge eligibility, progression and the award-badge function."""
import json

from pingponghub.app import db
from pingponghub.models import Badge, Notification, Profile, UserBadge
from pingponghub.services.badges import badge_progress, badge_target, seed_badges
from pingponghub.services.progression import level_from_xp, rating_tier, xp_for_level


def _award(client, headers, **body):
    return client.post('/functions/v1/award-badge', json=body, headers=headers)


def test_level_curve_matches_xp_thresholds():
    assert xp_for_level(1) == 0
    assert xp_for_level(2) == 250
    assert xp_for_level(5) == 1000
    assert xp_for_level(6) == 1800
    assert xp_for_level(11) == 6500
    assert level_from_xp(0) == 1
    assert level_from_xp(249) == 1
    assert level_from_xp(250) == 2
    assert level_from_xp(10 ** 9) == 100


def test_rating_tiers():
    assert rating_tier(950) == 'Bronze'
    assert rating_tier(1000) == 'Silver'
    assert rating_tier(1399) == 'Gold'
    assert rating_tier(2500) == 'Legend'


def test_badge_target_reads_requirement_then_code():
    assert badge_target(Badge(code='WIN_25')) == ('wins', 25)
    assert badge_target(Badge(code='FIRST_MATCH')) == ('total_matches', 1)
    assert badge_target(Badge(code='RATING_X')) == ('rating_mr', 1000)
    custom = Badge(code='CLUB_HERO')
    custom.requirement = {'metric': 'total_matches', 'target': 30}
    assert badge_target(custom) == ('total_matches', 30)
    assert badge_target(Badge(code='FRIENDLY_FACE')) == (None, 0)


def test_badge_progress_percentages():
    profile = Profile(total_matches=5, wins=12, best_streak=0, rating_mr=1000, level=1)
    assert badge_progress(profile, Badge(code='MATCH_10')) == {
        'current': 5, 'target': 10, 'percent': 50,
    }
    assert badge_progress(profile, Badge(code='FIRST_WIN')) == {
        'current': 1, 'target': 1, 'percent': 100,
    }
    assert badge_progress(profile, Badge(code='WIN_10'))['percent'] == 100


def test_seed_badges_upserts_by_code(app):
    first = seed_badges()
    assert first['created'] > 0 and first['updated'] == 0
    second = seed_badges([{'code': 'first_match', 'name': 'Renamed', 'xp_reward': 5}])
    assert second == {'created': 0, 'updated': 1}
    badge = Badge.query.filter_by(code='FIRST_MATCH').one()
    assert badge.name == 'Renamed'
    assert badge.xp_reward == 5


def test_award_badge_requires_user_id(client, auth_headers):
    res = _award(client, auth_headers)
    assert res.status_code == 400
    assert json.loads(res.data)['error'] == 'user_id is required'


def test_award_badge_unknown_user_returns_404(client, auth_headers):
    res = _award(client, auth_headers, user_id='nobody')
    assert res.status_code == 404


def test_award_badge_grants_new_badges_once(client, auth_headers, make_profile, seeded_badges):
    player = make_profile(total_matches=12, wins=10, best_streak=5, rating_mr=1210)

    first = _award(client, auth_headers, user_id=player.id)
    assert first.status_code == 200
    body = json.loads(first.data)
    assert body['success'] is True
    codes = {badge['code'] for badge in body['awarded_badges']}
    assert codes == {
        'FIRST_MATCH', 'FIRST_WIN', 'MATCH_10', 'WIN_10',
        'STREAK_3', 'STREAK_5', 'RATING_1200', 'LEVEL_5',
    }
    assert set(body['awarded_badge_ids']) == {badge['id'] for badge in body['awarded_badges']}

    second = _award(client, auth_headers, user_id=player.id)
    assert json.loads(second.data)['awarded_badge_ids'] == []
    assert json.loads(second.data)['awarded_badges'] == []
    assert UserBadge.query.filter_by(user_id=player.id).count() == 8


def test_award_badge_adds_xp_and_levels_up(client, auth_headers, make_profile, seeded_badges):
    player = make_profile(total_matches=12, wins=10, best_streak=5, rating_mr=1210)

    _award(client, auth_headers, user_id=player.id)
    profile = db.session.get(Profile, player.id)
    # 1200 XP from the first pass reaches level 5, whose badge adds 200 more
    assert profile.xp == 1400
    assert profile.level == 5
    assert Notification.query.filter_by(user_id=player.id, notif_type='LEVEL_UP').count() == 1
    assert Notification.query.filter_by(
        user_id=player.id, notif_type='BADGE_EARNED',
    ).count() == 8


def test_award_badge_emits_realtime_event(client, auth_headers, make_profile, seeded_badges):
    from pingponghub.services.notifier import get_notifier
    player = make_profile(total_matches=1)

    body = json.loads(_award(client, auth_headers, user_id=player.id).data)
    events = dict(get_notifier().events)
    assert events['badge_awarded'] == {'user_id': player.id, 'badge_ids': body['awarded_badge_ids']}


def test_award_badge_for_new_player_yields_nothing(client, auth_headers, make_profile, seeded_badges):
    player = make_profile()
    body = json.loads(_award(client, auth_headers, user_id=player.id).data)
    assert body == {'success': True, 'awarded_badge_ids': [], 'awarded_badges': []}


def test_seed_badges_keeps_fields_missing_from_update(app):
    seed_badges()
    original = Badge.query.filter_by(code='FIRST_WIN').one()
    name, description = original.name, original.description

    assert seed_badges([{'code': 'FIRST_WIN', 'xp_reward': 10}]) == {'created': 0, 'updated': 1}
    badge = Badge.query.filter_by(code='FIRST_WIN').one()
    assert badge.xp_reward == 10
    assert badge.name == name
    assert badge.description == description
    assert badge.category == 'COMPETITION'


def test_award_badge_detail_failure_returns_empty_details(
    client, auth_headers, make_profile, seeded_badges, monkeypatch,
):
    from sqlalchemy.exc import SQLAlchemyError
    import pingponghub.routes.functions.award_badge as award_badge_route

    class _FailingQuery:
        def filter(self, *args, **kwargs):
            raise SQLAlchemyError('badge lookup failed')

    class _UnreadableBadge:
        id = Badge.id
        query = _FailingQuery()

    monkeypatch.setattr(award_badge_route, 'Badge', _UnreadableBadge)
    player = make_profile(total_matches=1)

    res = _award(client, auth_headers, user_id=player.id)
    assert res.status_code == 200
    body = json.loads(res.data)
    assert len(body['awarded_badge_ids']) == 1
    assert body['awarded_badges'] == []
    assert UserBadge.query.filter_by(user_id=player.id).count() == 1
