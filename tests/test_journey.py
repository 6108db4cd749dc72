"""Tests for the journey step tracker."""

import pytest

from probatedesk.core.errors import ValidationError
from probatedesk.db.enums import JourneyStatus, PortalStatus
from probatedesk.db.models import MatterStepProgress
from probatedesk.services import journey_service


def _ledger(db, matter_id) -> dict[str, str]:
    rows = db.query(MatterStepProgress).filter(MatterStepProgress.matter_id == matter_id).all()
    return {row.step_key: row.status for row in rows}


def test_normalize_state_reads_legacy_values():
    state = journey_service.normalize_state({"will-search": "completed", "review-info": {"status": "in_progress"}})
    assert state["will-search"]["status"] == "done"
    assert state["review-info"]["status"] == "in_progress"
    assert state["file-court"]["status"] == "not_started"


def test_normalize_state_tolerates_garbage():
    assert journey_service.normalize_state(None) == journey_service.default_state()
    state = journey_service.normalize_state({"review-info": 7, "unknown-step": "done"})
    assert "unknown-step" not in state
    assert state["review-info"]["status"] == "not_started"


def test_merge_never_lowers():
    assert journey_service.merge_statuses("done", "in_progress") == JourneyStatus.DONE
    assert journey_service.merge_statuses("not_started", "in_progress") == JourneyStatus.IN_PROGRESS


def test_progress_and_next_step():
    state = journey_service.default_state()
    assert journey_service.progress_percent(state) == 0
    assert journey_service.next_step(state).id == "review-info"

    state["review-info"]["status"] = "done"
    assert journey_service.next_step(state).id == "will-search"
    assert journey_service.progress_percent(state) == 14

    for step_id in journey_service.STEP_IDS:
        state[step_id]["status"] = "done"
    assert journey_service.progress_percent(state) == 100
    assert journey_service.next_step(state).id == "file-court"


def test_set_step_status_merges_one_step(db, matter):
    journey_service.ensure_step_progress(db, matter)
    db.commit()

    state = journey_service.set_step_status(db, matter, "assets-debts", "in_progress", matter.user_id)
    assert state["assets-debts"]["status"] == "in_progress"
    assert state["assets-debts"]["updatedAt"] is not None
    assert state["review-info"]["status"] == "not_started"

    ledger = _ledger(db, matter.id)
    assert ledger["assets-debts"] == "in_progress"
    assert len(ledger) == len(journey_service.STEP_IDS)


def test_set_step_status_accepts_completed_alias(db, matter):
    state = journey_service.set_step_status(db, matter, "review-info", "completed")
    assert state["review-info"]["status"] == "done"


def test_set_step_status_is_advisory(db, matter):
    journey_service.set_step_status(db, matter, "review-info", "done")
    state = journey_service.set_step_status(db, matter, "review-info", "not_started")
    assert state["review-info"]["status"] == "not_started"


def test_set_step_status_rejects_unknown_input(db, matter):
    with pytest.raises(ValidationError) as exc:
        journey_service.set_step_status(db, matter, "nope", "done")
    assert "step_id" in exc.value.fields

    with pytest.raises(ValidationError) as exc:
        journey_service.set_step_status(db, matter, "review-info", "finished")
    assert "status" in exc.value.fields


def test_sync_raises_steps_to_portal_status(db, matter):
    journey_service.set_step_status(db, matter, "sign-notarize", "done")
    matter.portal_status = PortalStatus.WILL_SEARCH_SENT.value
    state = journey_service.sync_with_portal_status(db, matter)
    db.commit()

    assert state["review-info"]["status"] == "done"
    assert state["will-search"]["status"] == "done"
    # Manually completed steps are never lowered by the sync
    assert state["sign-notarize"]["status"] == "done"
    assert _ledger(db, matter.id)["will-search"] == "done"


def test_implied_state_for_final_status():
    implied = journey_service.implied_state(PortalStatus.DONE.value)
    assert set(implied.values()) == {JourneyStatus.DONE}
