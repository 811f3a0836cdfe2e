import pytest
from fastapi.testclient import TestClient

from app.api.deps import (
    get_avatar_storage,
    get_awardee_repository,
    get_feature_request_repository,
)
from app.api.routes import awardees as awardee_routes
from app.main import app
from app.services.repositories import (
    InMemoryAwardeeRepository,
    InMemoryFeatureRequestRepository,
)
from app.services.storage import InMemoryAvatarStorage
from tests.helpers.collaborators import make_profile


@pytest.fixture
def awardee_repo():
    return InMemoryAwardeeRepository(
        [
            make_profile(),
            make_profile(id="awd-hidden", slug="hidden", name="Hidden Person", is_public=False),
            make_profile(id="awd-no-email", slug="no-email", name="No Email", email=None),
        ]
    )


@pytest.fixture
def request_repo():
    return InMemoryFeatureRequestRepository()


@pytest.fixture
def avatar_storage():
    return InMemoryAvatarStorage()


@pytest.fixture
def client(awardee_repo, request_repo, avatar_storage):
    """Test client wired to in-memory repositories and storage."""
    app.dependency_overrides[get_awardee_repository] = lambda: awardee_repo
    app.dependency_overrides[get_feature_request_repository] = lambda: request_repo
    app.dependency_overrides[get_avatar_storage] = lambda: avatar_storage
    awardee_routes._rate_limiter.reset()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        awardee_routes._rate_limiter.reset()
