"""
Integration test fixtures. Overrides get_db and get_redis for API tests.
"""
import fakeredis
import pytest


@pytest.fixture
def api_client(mongo_db, redis_server):
    """FastAPI TestClient on mongomock and a per-request fakeredis client."""
    from fastapi.testclient import TestClient
    from learnhub.main import app
    from learnhub.deps import get_db, get_redis

    # a fresh client per request keeps connections on the request's event loop
    app.dependency_overrides[get_db] = lambda: mongo_db
    app.dependency_overrides[get_redis] = lambda: fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)
    # no context manager: startup would connect to the real services
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Bearer headers for a user document created with make_user."""
    from learnhub.auth.jwt import create_access_token

    def _headers(user):
        token = create_access_token({"sub": user["_id"], "role": user["role"]})
        return {"Authorization": f"Bearer {token}"}
    return _headers
