"""Realtime notifier selected once at startup.

``SocketIONotifier`` broadcasts to connected clients, ``LogNotifier`` only
writes the event to the app log (tests, workers without a socket server).
"""
import json
from collections import deque

from flask import current_app

from pingponghub.app import db, socketio
from pingponghub.models import Notification
from pingponghub.time_utils import utcnow_naive

_EXTENSION_KEY = 'pingponghub.notifier'


class Notifier:
    name = 'base'

    def emit(self, event, payload):
        raise NotImplementedError

    def notify_user(self, user_id, reason, **extra):
        payload = {'user_id': user_id, 'reason': reason, 'updated_at': utcnow_naive().isoformat()}
        payload.update(extra)
        self.emit('notification_update', payload)


class SocketIONotifier(Notifier):
    name = 'socketio'

    def __init__(self, server):
        self.server = server

    def emit(self, event, payload):
        self.server.emit(event, payload)


class LogNotifier(Notifier):
    name = 'log'

    def __init__(self, logger, buffer_size=100):
        self.logger = logger
        # Only the most recent events are kept.
        self.events = deque(maxlen=max(1, buffer_size))

    def emit(self, event, payload):
        self.events.append((event, payload))
        self.logger.debug('realtime event %s: %s', event, payload)


def add_notification(user_id, notif_type, title, body=None, data=None):
    """Stage an in-app notification row; the caller commits."""
    notification = Notification(
        user_id=user_id,
        notif_type=notif_type,
        title=title,
        body=body,
        data_json=json.dumps(data or {}),
    )
    db.session.add(notification)
    return notification


def build_notifier(app):
    kind = str(app.config.get('REALTIME_NOTIFIER') or 'socketio').strip().lower()
    if kind == 'socketio':
        return SocketIONotifier(socketio)
    if kind != 'log':
        app.logger.warning('Unknown REALTIME_NOTIFIER %r, falling back to log', kind)
    return LogNotifier(app.logger, app.config.get('REALTIME_LOG_BUFFER') or 100)


def init_notifier(app):
    notifier = build_notifier(app)
    app.extensions[_EXTENSION_KEY] = notifier
    return notifier


def get_notifier():
    return current_app.extensions[_EXTENSION_KEY]
