import json
import uuid
from pingponghub.app import db
from pingponghub.time_utils import utcnow_naive, isoformat_or_none

DEFAULT_RATING = 1000

BADGE_CATEGORIES = ('COMPETITION', 'PERFORMANCE', 'SOCIAL', 'SPECIAL')


def _new_id():
    return str(uuid.uuid4())


def _safe_json(raw_value, fallback=None):
    if fallback is None:
        fallback = {}
    if not raw_value:
        return fallback
    try:
        return json.loads(raw_value)
    except (TypeError, ValueError):
        return fallback


class Profile(db.Model):
    """A player. Rating, progression and location used by the server functions."""
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    email = db.Column(db.String(120), unique=True, nullable=True)
    name = db.Column(db.String(120), nullable=False, default='')
    username = db.Column(db.String(80), unique=True, nullable=True)
    avatar_url = db.Column(db.String(500), nullable=True)
    city = db.Column(db.String(100), nullable=True)
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    rating_mr = db.Column(db.Integer, default=DEFAULT_RATING, nullable=False)
    level = db.Column(db.Integer, default=1, nullable=False)
    xp = db.Column(db.Integer, default=0, nullable=False)
    total_matches = db.Column(db.Integer, default=0, nullable=False)
    wins = db.Column(db.Integer, default=0, nullable=False)
    losses = db.Column(db.Integer, default=0, nullable=False)
    current_streak = db.Column(db.Integer, default=0, nullable=False)
    best_streak = db.Column(db.Integer, default=0, nullable=False)
    is_online = db.Column(db.Boolean, default=False, nullable=False)
    last_active_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(
        db.DateTime, default=lambda: utcnow_naive(), onupdate=lambda: utcnow_naive(),
    )

    __table_args__ = (
        db.Index('ix_profile_rating_mr', 'rating_mr'),
    )

    @property
    def has_location(self):
        return self.latitude is not None and self.longitude is not None

    def to_dict(self):
        return {
            'id': self.id, 'email': self.email, 'name': self.name,
            'username': self.username, 'avatar_url': self.avatar_url,
            'city': self.city, 'latitude': self.latitude, 'longitude': self.longitude,
            'rating_mr': self.rating_mr, 'level': self.level, 'xp': self.xp,
            'total_matches': self.total_matches, 'wins': self.wins,
            'losses': self.losses, 'current_streak': self.current_streak,
            'best_streak': self.best_streak, 'is_online': self.is_online,
            'last_active_at': isoformat_or_none(self.last_active_at),
            'created_at': isoformat_or_none(self.created_at),
            'updated_at': isoformat_or_none(self.updated_at),
        }

    def to_opponent_dict(self):
        """Public subset returned to other players by matchmaking."""
        return {
            'id': self.id, 'name': self.name, 'username': self.username,
            'avatar_url': self.avatar_url, 'rating_mr': self.rating_mr,
            'level': self.level, 'city': self.city,
            'latitude': self.latitude, 'longitude': self.longitude,
            'is_online': self.is_online, 'total_matches': self.total_matches,
            'wins': self.wins,
        }


class Match(db.Model):
    """A singles match between two players."""
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    player1_id = db.Column(db.String(36), db.ForeignKey('profile.id'), nullable=False)
    player2_id = db.Column(db.String(36), db.ForeignKey('profile.id'), nullable=False)
    winner_id = db.Column(db.String(36), db.ForeignKey('profile.id'), nullable=True)
    match_type = db.Column(db.String(20), default='RANKED', nullable=False)
    status = db.Column(db.String(20), default='IN_PROGRESS', nullable=False)
    best_of = db.Column(db.Integer, default=3, nullable=False)
    player1_rating_before = db.Column(db.Integer, nullable=True)
    player2_rating_before = db.Column(db.Integer, nullable=True)
    player1_rating_change = db.Column(db.Integer, nullable=True)
    player2_rating_change = db.Column(db.Integer, nullable=True)
    started_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    player1 = db.relationship('Profile', foreign_keys=[player1_id])
    player2 = db.relationship('Profile', foreign_keys=[player2_id])
    winner = db.relationship('Profile', foreign_keys=[winner_id])

    def to_dict(self):
        return {
            'id': self.id, 'player1_id': self.player1_id,
            'player2_id': self.player2_id, 'winner_id': self.winner_id,
            'type': self.match_type, 'status': self.status, 'best_of': self.best_of,
            'player1_rating_before': self.player1_rating_before,
            'player2_rating_before': self.player2_rating_before,
            'player1_rating_change': self.player1_rating_change,
            'player2_rating_change': self.player2_rating_change,
            'started_at': isoformat_or_none(self.started_at),
            'completed_at': isoformat_or_none(self.completed_at),
            'created_at': isoformat_or_none(self.created_at),
        }


class Challenge(db.Model):
    """An invitation from one player to another to play a match."""
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    challenger_id = db.Column(db.String(36), db.ForeignKey('profile.id'), nullable=False)
    challenged_id = db.Column(db.String(36), db.ForeignKey('profile.id'), nullable=False)
    match_type = db.Column(db.String(20), default='RANKED', nullable=False)
    best_of = db.Column(db.Integer, default=3, nullable=False)
    message = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), default='PENDING', nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    responded_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    # Lookups by ordered pair + status; not unique.
    __table_args__ = (
        db.Index('ix_challenge_pair_status', 'challenger_id', 'challenged_id', 'status'),
    )

    challenger = db.relationship('Profile', foreign_keys=[challenger_id])
    challenged = db.relationship('Profile', foreign_keys=[challenged_id])

    def to_dict(self):
        return {
            'id': self.id, 'challenger_id': self.challenger_id,
            'challenged_id': self.challenged_id, 'match_type': self.match_type,
            'best_of': self.best_of, 'message': self.message,
            'status': self.status,
            'expires_at': isoformat_or_none(self.expires_at),
            'responded_at': isoformat_or_none(self.responded_at),
            'created_at': isoformat_or_none(self.created_at),
        }


class Badge(db.Model):
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    code = db.Column(db.String(50), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    icon_url = db.Column(db.String(500), nullable=True)
    category = db.Column(db.String(20), default='COMPETITION', nullable=False)
    requirement_json = db.Column(db.Text, default='{}')
    xp_reward = db.Column(db.Integer, default=0, nullable=False)

    @property
    def requirement(self):
        return _safe_json(self.requirement_json, {})

    @requirement.setter
    def requirement(self, value):
        self.requirement_json = json.dumps(value or {})

    def to_dict(self):
        return {
            'id': self.id, 'code': self.code, 'name': self.name,
            'description': self.description, 'icon_url': self.icon_url,
            'category': self.category, 'requirement': self.requirement,
            'xp_reward': self.xp_reward,
        }


class UserBadge(db.Model):
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    user_id = db.Column(db.String(36), db.ForeignKey('profile.id'), nullable=False)
    badge_id = db.Column(db.String(36), db.ForeignKey('badge.id'), nullable=False)
    earned_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    __table_args__ = (
        db.UniqueConstraint('user_id', 'badge_id', name='uq_user_badge_user_badge'),
    )

    user = db.relationship('Profile', backref='user_badges')
    badge = db.relationship('Badge')

    def to_dict(self):
        return {
            'id': self.id, 'user_id': self.user_id, 'badge_id': self.badge_id,
            'earned_at': isoformat_or_none(self.earned_at),
            'badge': self.badge.to_dict() if self.badge else None,
        }


class RatingHistory(db.Model):
    """One row per player per rating change."""
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey('profile.id'), nullable=False)
    match_id = db.Column(db.String(36), db.ForeignKey('match.id'), nullable=True)
    old_rating = db.Column(db.Integer, nullable=False)
    new_rating = db.Column(db.Integer, nullable=False)
    rating_change = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(30), default='match_result', nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    def to_dict(self):
        return {
            'id': self.id, 'user_id': self.user_id, 'match_id': self.match_id,
            'old_rating': self.old_rating, 'new_rating': self.new_rating,
            'rating_change': self.rating_change, 'reason': self.reason,
            'created_at': isoformat_or_none(self.created_at),
        }


class Notification(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey('profile.id'), nullable=False)
    notif_type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    body = db.Column(db.Text, nullable=True)
    data_json = db.Column(db.Text, default='{}')
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    user = db.relationship('Profile', backref='notifications')

    def to_dict(self):
        return {
            'id': self.id, 'user_id': self.user_id, 'type': self.notif_type,
            'title': self.title, 'body': self.body,
            'data': _safe_json(self.data_json, {}),
            'is_read': self.is_read,
            'created_at': isoformat_or_none(self.created_at),
        }
