import pytest
from pingponghub.app import create_app, db


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    """Bearer headers signed the way the mobile client's session token is."""
    from pingponghub.auth_utils import generate_token
    token = generate_token('test-caller')
    return {'Authorization': f'Bearer {token}', 'Content-Type': 'application/json'}


@pytest.fixture
def make_profile(app):
    """Factory that inserts a Profile and returns it."""
    from pingponghub.models import Profile
    counter = {'n': 0}

    def _make(**fields):
        counter['n'] += 1
        fields.setdefault('name', f'Player {counter["n"]}')
        fields.setdefault('username', f'player{counter["n"]}')
        profile = Profile(**fields)
        db.session.add(profile)
        db.session.commit()
        return profile
    return _make


@pytest.fixture
def seeded_badges(app):
    from pingponghub.services.badges import seed_badges
    return seed_badges()
