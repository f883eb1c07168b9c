"""
Pytest fixtures for Sleeper System testing.

Provides a test database, the fate engine and Flask client wired to it,
scripted dice, and a sample campaign with a GM, two players and their
characters.
"""

import pytest

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from sleeper.database import make_engine
from sleeper.database.schema import (
    Base,
    UserRecord,
    CampaignRecord,
    CampaignMemberRecord,
    CharacterRecord,
    DicePoolRecord,
    PoolDieRecord,
    ChallengeRecord,
)
from sleeper.mechanics import FateEngine, ScriptedDiceSource
from sleeper.realtime.hub import EventHub


# ============== SHARED TEST DATABASE ==============

# Create a module-level test engine that will be shared
_test_engine = None
_test_session_factory = None


def get_test_engine():
    """Get or create the shared test engine."""
    global _test_engine
    if _test_engine is None:
        _test_engine = create_engine("sqlite:///:memory:", echo=False)
        Base.metadata.create_all(_test_engine)
    return _test_engine


def get_test_session_factory():
    """Get or create the shared session factory."""
    global _test_session_factory
    if _test_session_factory is None:
        _test_session_factory = sessionmaker(bind=get_test_engine())
    return _test_session_factory


def reset_test_database():
    """Reset the test database (drop and recreate all tables)."""
    engine = get_test_engine()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)


def mock_get_session():
    """Session from the test database."""
    return get_test_session_factory()()


# ============== DATABASE FIXTURES ==============

@pytest.fixture(scope="function", autouse=True)
def reset_db():
    """Reset the database before each test."""
    reset_test_database()
    yield


@pytest.fixture(scope="function")
def test_session():
    """Create a database session for testing."""
    session = mock_get_session()
    yield session
    session.close()


@pytest.fixture
def file_session_factory(tmp_path):
    """Session factory over a SQLite file, for tests that run real threads.

    In-memory SQLite gives every thread its own empty database.
    """
    engine = make_engine(f"sqlite:///{tmp_path / 'concurrency.db'}")
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine)
    engine.dispose()


# ============== ENGINE FIXTURES ==============

@pytest.fixture
def dice():
    """Scripted dice; tests queue the faces they need."""
    return ScriptedDiceSource()


@pytest.fixture
def hub():
    event_hub = EventHub()
    yield event_hub
    event_hub.close()


@pytest.fixture
def engine(dice, hub):
    """Fate engine on the shared test database."""
    return FateEngine(session_factory=mock_get_session, hub=hub, dice=dice)


@pytest.fixture
def recorder(hub):
    """Subscribe a fake socket to campaign 1 and collect its frames."""
    return FrameRecorder(hub)


class FrameRecorder:
    """Stands in for a subscriber socket."""

    def __init__(self, hub):
        self.hub = hub
        self.frames = []

    def subscribe(self, campaign_id, user_id=None):
        return self.hub.register(campaign_id, self.frames.append, user_id=user_id)

    def events(self):
        from sleeper.realtime.events import decode_frame

        self.hub.wait_idle()
        return [event for frame in self.frames for event in decode_frame(frame)]


# ============== FLASK FIXTURES ==============

@pytest.fixture(scope="function")
def app(dice, hub):
    """Create a Flask app configured for testing."""
    from sleeper.web.app import create_app

    flask_app = create_app(session_factory=mock_get_session, dice_source=dice, hub=hub)
    flask_app.config["TESTING"] = True
    yield flask_app


@pytest.fixture(scope="function")
def client(app):
    """Create a test client for the Flask app."""
    return app.test_client()


@pytest.fixture
def login(client):
    """Act as a user: ``login(user)`` sets the identity cookie."""
    def _login(user):
        client.set_cookie("sleeper_user_id", str(user.id))
        return client
    return _login


# ============== SAMPLE DATA FIXTURES ==============

def seed_campaign(session):
    """Create users, a campaign, memberships and two characters."""
    admin = UserRecord(username="admin", system_role="admin")
    gm = UserRecord(username="gm", system_role="game_master")
    alice = UserRecord(username="alice", system_role="player")
    bob = UserRecord(username="bob", system_role="player")
    outsider = UserRecord(username="outsider", system_role="player")
    session.add_all([admin, gm, alice, bob, outsider])
    session.flush()

    campaign = CampaignRecord(name="The Long Night", gm_user_id=gm.id, current_day=1)
    session.add(campaign)
    session.flush()

    for user in (gm, alice, bob):
        session.add(CampaignMemberRecord(campaign_id=campaign.id, user_id=user.id))

    aria = CharacterRecord(
        campaign_id=campaign.id,
        user_id=alice.id,
        name="Aria",
        skill_name="Lockpicking",
        skill_modifier=1,
        weakness_name="Heights",
        weakness_modifier=-1,
        max_daily_dice=3,
    )
    bram = CharacterRecord(
        campaign_id=campaign.id,
        user_id=bob.id,
        name="Bram",
        skill_modifier=2,
        max_daily_dice=3,
    )
    session.add_all([aria, bram])
    session.commit()

    return {
        "admin": admin,
        "gm": gm,
        "alice": alice,
        "bob": bob,
        "outsider": outsider,
        "campaign": campaign,
        "aria": aria,
        "bram": bram,
    }


def add_pool(session, character, values, day=None, used=()):
    """Insert a pool directly, bypassing the engine."""
    campaign = session.get(CampaignRecord, character.campaign_id)
    pool = DicePoolRecord(
        character_id=character.id,
        campaign_day=day if day is not None else campaign.current_day,
        dice=[
            PoolDieRecord(die_result=value, position=index, is_used=index in used)
            for index, value in enumerate(values)
        ],
    )
    session.add(pool)
    session.commit()
    return pool


def add_challenge(session, campaign, creator, difficulty=0, group=False, active=True):
    challenge = ChallengeRecord(
        campaign_id=campaign.id,
        created_by_user_id=creator.id,
        description="Climb the bell tower",
        difficulty_modifier=difficulty,
        is_group_challenge=group,
        is_active=active,
    )
    session.add(challenge)
    session.commit()
    return challenge


@pytest.fixture
def world(test_session):
    """Sample campaign on the shared test database."""
    return seed_campaign(test_session)
