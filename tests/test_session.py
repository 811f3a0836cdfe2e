"""End-to-end pass through verify, edit and feature request using local backends."""

from __future__ import annotations

import pytest

from app.models.feature_request import FeatureRequestStatus
from app.services.repositories import (
    InMemoryAwardeeRepository,
    InMemoryFeatureRequestRepository,
)
from app.services.self_service.errors import SelfServiceError, WorkflowStateError
from app.services.self_service.ports import ImageFile
from app.services.self_service.session import SelfServiceSession
from app.services.storage import InMemoryAvatarStorage
from tests.helpers.collaborators import make_profile


@pytest.fixture
def backends():
    return {
        "awardees": InMemoryAwardeeRepository([make_profile()]),
        "requests": InMemoryFeatureRequestRepository(),
        "storage": InMemoryAvatarStorage(),
    }


def test_full_flow_saves_profile_and_records_feature_request(backends):
    session = SelfServiceSession.local("awd-ada", **backends)
    assert session.masked_email == "Ad*****@Example.com"

    assert session.verify("ada.obi@example.com").verified
    session.editor.update(tagline="Building payments rails", github="https://github.com/adaobi")
    session.editor.choose_image(ImageFile("me.png", b"png-bytes", "image/png"))
    workflow = session.save_profile()

    stored = backends["awardees"].get("awd-ada")
    assert stored.tagline == "Building payments rails"
    assert stored.social_links["github"] == "https://github.com/adaobi"
    assert stored.avatar_url.startswith("memory://avatars/awd-ada-")
    assert stored.image_url == stored.avatar_url
    assert len(backends["storage"].objects) == 1

    workflow.choose("yes")
    workflow.choose_article(False)
    workflow.set_contact("ada@kora.africa", "+2348012345678")
    outcome = workflow.submit()

    assert outcome.redirect_url == "/awardees/ada-obi"
    [request] = backends["requests"].list()
    assert request.id == outcome.request.id
    assert request.awardee_name == "Ada Obi"
    assert request.status is FeatureRequestStatus.PENDING
    assert request.needs_article_written is True
    assert request.amount == 40000
    assert request.currency == "NGN"


def test_declining_feature_leaves_no_request(backends):
    session = SelfServiceSession.local("awd-ada", **backends)
    session.verify("Ada.Obi@Example.com")
    workflow = session.save_profile()

    outcome = workflow.submit()

    assert outcome.skipped
    assert backends["requests"].list() == []


def test_wrong_email_blocks_saving(backends):
    session = SelfServiceSession.local("awd-ada", **backends)

    assert not session.verify("someone@else.com").verified
    with pytest.raises(WorkflowStateError):
        session.save_profile()
    with pytest.raises(WorkflowStateError):
        session.require_feature_request()


def test_unknown_awardee_cannot_start(backends):
    with pytest.raises(SelfServiceError) as excinfo:
        SelfServiceSession.local("awd-missing", **backends)

    assert excinfo.value.code == "404_AWARDEE_NOT_FOUND"
