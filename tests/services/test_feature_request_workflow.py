from __future__ import annotations

import pytest

from app.models.feature_request import FeatureRequestStatus
from app.services.self_service.errors import (
    FeatureRequestSubmitError,
    WorkflowStateError,
    WorkflowValidationError,
)
from app.services.self_service.feature_requests import FeatureRequestWorkflow, WantsFeatured
from app.services.self_service.profile_editor import SavedProfile
from tests.helpers.collaborators import FakeSink

SAVED = SavedProfile(
    awardee_id="awd-ada",
    awardee_name="Ada Obi",
    slug="ada-obi",
    public_url="/awardees/ada-obi",
)


def _workflow(sink: FakeSink | None = None) -> FeatureRequestWorkflow:
    return FeatureRequestWorkflow(saved=SAVED, sink=sink or FakeSink(), amount=40000, currency="NGN")


def test_declining_skips_without_calling_sink():
    sink = FakeSink()
    workflow = _workflow(sink)
    workflow.choose("no")

    outcome = workflow.submit()

    assert outcome.skipped
    assert outcome.redirect_url == "/awardees/ada-obi"
    assert sink.calls == []


@pytest.mark.parametrize(
    ("email", "whatsapp"),
    [("", "+2348012345678"), ("ada@kora.africa", ""), ("  ", "  ")],
)
def test_missing_contact_details_block_submission(email, whatsapp):
    sink = FakeSink()
    workflow = _workflow(sink)
    workflow.choose(WantsFeatured.YES)
    workflow.set_contact(email, whatsapp)

    with pytest.raises(WorkflowValidationError):
        workflow.submit()

    assert sink.calls == []


def test_own_article_requires_content():
    workflow = _workflow()
    workflow.choose("yes")
    workflow.choose_article(True, "   ")
    workflow.set_contact("ada@kora.africa", "+2348012345678")

    with pytest.raises(WorkflowValidationError):
        workflow.submit()


def test_ghostwritten_request_is_pending_and_needs_article():
    sink = FakeSink()
    workflow = _workflow(sink)
    workflow.choose("yes")
    workflow.choose_article(False)
    workflow.set_contact(" ada@kora.africa ", "+2348012345678")

    outcome = workflow.submit()

    request = outcome.request
    assert request is not None
    assert request.status is FeatureRequestStatus.PENDING
    assert request.payment_status is None
    assert request.needs_article_written is True
    assert request.has_own_article is False
    assert request.article_content is None
    assert request.contact_email == "ada@kora.africa"
    assert request.amount == 40000
    assert request.currency == "NGN"
    assert sink.calls[0]["status"] == "pending"
    assert outcome.redirect_url == "/awardees/ada-obi"


def test_own_article_is_sent_verbatim():
    sink = FakeSink()
    workflow = _workflow(sink)
    workflow.choose("yes")
    workflow.choose_article(True, "My journey building Kora Labs...")
    workflow.set_contact("ada@kora.africa", "+2348012345678")

    request = workflow.submit().request

    assert request.needs_article_written is False
    assert request.article_content == "My journey building Kora Labs..."


def test_repeat_submissions_create_distinct_requests():
    sink = FakeSink()
    workflow = _workflow(sink)
    workflow.choose("yes")
    workflow.set_contact("ada@kora.africa", "+2348012345678")

    first = workflow.submit().request
    second = workflow.submit().request

    assert first.id != second.id
    assert len(sink.calls) == 2
    assert [r.id for r in workflow.submitted] == [first.id, second.id]


def test_sink_failure_surfaces_retryable_error():
    workflow = _workflow(FakeSink(fail=True))
    workflow.choose("yes")
    workflow.set_contact("ada@kora.africa", "+2348012345678")

    with pytest.raises(FeatureRequestSubmitError) as excinfo:
        workflow.submit()

    assert excinfo.value.user_message == "Failed to submit request. Please try again."
    assert workflow.last_error == "Failed to submit request"
    assert not workflow.busy


def test_submit_while_in_flight_is_rejected():
    sink = FakeSink()
    workflow = _workflow(sink)
    workflow.choose("yes")
    workflow.set_contact("ada@kora.africa", "+2348012345678")
    workflow._busy.acquire()
    try:
        with pytest.raises(WorkflowStateError):
            workflow.submit()
    finally:
        workflow._busy.release()

    assert sink.calls == []
