"""Tests for app startup helpers, config and CORS handling."""
import pytest

from pingponghub.app import _parse_allowed_origins, create_app
from pingponghub.config import _env_bool, _env_int, _normalize_database_url
from pingponghub.services.notifier import LogNotifier, get_notifier


def test_parse_allowed_origins_handles_wildcard_and_lists():
    assert _parse_allowed_origins(None) == '*'
    assert _parse_allowed_origins(' * ') == '*'
    assert _parse_allowed_origins('https://a.example, https://b.example,') == [
        'https://a.example', 'https://b.example',
    ]
    assert _parse_allowed_origins(['', 'https://a.example']) == ['https://a.example']


def test_env_helpers_fall_back_on_bad_values(monkeypatch):
    monkeypatch.setenv('PPH_FLAG', 'yes')
    monkeypatch.setenv('PPH_NUM', 'not-a-number')
    assert _env_bool('PPH_FLAG') is True
    assert _env_bool('PPH_MISSING', default=True) is True
    assert _env_int('PPH_NUM', 7) == 7


def test_normalize_database_url_rewrites_postgres_scheme():
    assert _normalize_database_url('postgres://u:p@h/db') == 'postgresql://u:p@h/db'
    assert _normalize_database_url('sqlite:///x.db') == 'sqlite:///x.db'


def test_production_rejects_default_secret_key(monkeypatch):
    from pingponghub.config import ProductionConfig
    monkeypatch.setattr(ProductionConfig, 'SECRET_KEY', 'dev-secret-key-change-in-prod')
    monkeypatch.setattr(ProductionConfig, 'SQLALCHEMY_DATABASE_URI', 'sqlite:///:memory:')
    with pytest.raises(RuntimeError, match='SECRET_KEY'):
        create_app('production')


def test_testing_app_uses_log_notifier(app):
    assert isinstance(get_notifier(), LogNotifier)


def test_health_endpoint(client):
    res = client.get('/health')
    assert res.status_code == 200
    assert res.get_json() == {'status': 'ok'}


@pytest.mark.parametrize('path', [
    '/functions/v1/match-making',
    '/functions/v1/calculate-elo',
    '/functions/v1/award-badge',
])
def test_preflight_returns_bare_ok_with_cors_headers(client, path):
    res = client.options(path, headers={
        'Origin': 'http://localhost:8081',
        'Access-Control-Request-Method': 'POST',
        'Access-Control-Request-Headers': 'authorization, x-client-info, apikey, content-type',
    })
    assert res.status_code == 200
    assert res.headers.get('Access-Control-Allow-Origin') in ('*', 'http://localhost:8081')
    allowed = res.headers.get('Access-Control-Allow-Headers', '').lower()
    for header in ('authorization', 'x-client-info', 'apikey', 'content-type'):
        assert header in allowed


def test_function_responses_carry_cors_origin(client, auth_headers):
    res = client.post('/functions/v1/award-badge', json={}, headers={
        **auth_headers, 'Origin': 'http://localhost:8081',
    })
    assert res.status_code == 400
    assert res.headers.get('Access-Control-Allow-Origin') in ('*', 'http://localhost:8081')


def test_functions_require_bearer_token(client):
    res = client.post('/functions/v1/award-badge', json={'user_id': 'x'})
    assert res.status_code == 401
    assert res.get_json()['error'] == 'Authentication required'


def test_functions_reject_tampered_token(client):
    res = client.post('/functions/v1/award-badge', json={'user_id': 'x'}, headers={
        'Authorization': 'Bearer not.a.jwt',
    })
    assert res.status_code == 401
    assert res.get_json()['error'] == 'Invalid token'


def test_jwt_check_can_be_disabled(app, client):
    app.config['FUNCTIONS_VERIFY_JWT'] = False
    res = client.post('/functions/v1/award-badge', json={'user_id': 'missing-user'})
    assert res.status_code == 404


def test_unexpected_errors_return_generic_500(app, client, auth_headers, monkeypatch):
    import pingponghub.routes.functions.award_badge as award_badge_route

    def _boom(user_id):
        raise RuntimeError('database exploded')

    monkeypatch.setattr(award_badge_route, 'check_and_award_badges', _boom)
    res = client.post('/functions/v1/award-badge', json={'user_id': 'u1'}, headers=auth_headers)
    assert res.status_code == 500
    assert res.get_json() == {'error': 'Internal server error'}


def test_unknown_route_returns_json_404(client):
    res = client.get('/functions/v1/does-not-exist')
    assert res.status_code == 404
    assert 'error' in res.get_json()


def test_log_notifier_keeps_only_recent_events(app):
    notifier = LogNotifier(app.logger, buffer_size=3)
    for i in range(5):
        notifier.emit('tick', {'n': i})
    assert [payload['n'] for _, payload in notifier.events] == [2, 3, 4]


def test_log_notifier_buffer_size_comes_from_config():
    from pingponghub.services.notifier import build_notifier
    app = create_app('testing')
    app.config['REALTIME_LOG_BUFFER'] = 7
    assert build_notifier(app).events.maxlen == 7
