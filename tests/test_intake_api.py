"""End-to-end intake flow over HTTP: screening, autosave, submit, resume."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from probatedesk.db.enums import RightFitStatus
from probatedesk.db.models import Matter
from probatedesk.services import matter_service, resume_token_service

ELIGIBLE_ANSWERS = {
    "estateInBC": "yes",
    "isExecutor": "yes",
    "willStraightforward": "yes",
    "assetsCommon": "yes",
}


@pytest.mark.asyncio
async def test_right_fit_eligible(authed_client, client_user, db):
    response = await authed_client.post("/intake/right-fit", json={"answers": ELIGIBLE_ANSWERS})

    assert response.status_code == 200
    data = response.json()
    assert data["decision"] == {"status": "eligible", "reasons": [], "referral_message": None}
    matter = db.get(Matter, uuid.UUID(data["matter_id"]))
    assert matter.user_id == client_user.id


@pytest.mark.asyncio
async def test_right_fit_not_fit_is_a_normal_response(authed_client):
    response = await authed_client.post(
        "/intake/right-fit",
        json={"answers": {**ELIGIBLE_ANSWERS, "estateInBC": "no", "isExecutor": "no"}},
    )

    assert response.status_code == 200
    decision = response.json()["decision"]
    assert decision["status"] == "not_fit"
    assert len(decision["reasons"]) == 2
    assert decision["referral_message"]


@pytest.mark.asyncio
async def test_right_fit_rejects_unknown_answer(authed_client):
    response = await authed_client.post(
        "/intake/right-fit", json={"answers": {**ELIGIBLE_ANSWERS, "estateInBC": "maybe"}}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_not_fit_screening_starts_fresh_matter_after_progress(authed_client, client_user, db):
    progressed = matter_service.create_matter(db, user_id=client_user.id)
    db.commit()
    advanced = await authed_client.post(
        f"/portal/matters/{progressed.id}/status", json={"status": "will_search_prepping"}
    )
    assert advanced.status_code == 200

    response = await authed_client.post(
        "/intake/right-fit", json={"answers": {**ELIGIBLE_ANSWERS, "estateInBC": "no"}}
    )

    assert response.status_code == 200
    assert response.json()["decision"]["status"] == "not_fit"
    assert response.json()["matter_id"] != str(progressed.id)
    db.refresh(progressed)
    assert progressed.right_fit_status is None


@pytest.mark.asyncio
async def test_anonymous_draft_submit_and_resume(client, intake_payload, outbox):
    saved = await client.post(
        "/intake/draft",
        json={"client_key": "browser-key-1", "answers": {"welcome": intake_payload["welcome"]}},
    )
    assert saved.status_code == 200
    matter_id = saved.json()["matter_id"]

    more = await client.post(
        "/intake/draft",
        json={"client_key": "browser-key-1", "matter_id": matter_id, "answers": intake_payload},
    )
    assert more.status_code == 200
    assert more.json()["payload"]["deceased"]["fullName"] == "Alex Deceased"

    submitted = await client.post("/intake/submit", json={"client_key": "browser-key-1"})
    assert submitted.status_code == 200
    body = submitted.json()
    assert body["matter_id"] == matter_id
    assert body["path_type"] == "probate"
    assert body["case_code"]
    assert body["resume_link"].startswith("https://portal.test/resume/")
    assert outbox[-1].template == "intake_submitted"

    token = body["resume_link"].rsplit("/", 1)[1]
    resumed = await client.get(f"/resume/{token}")
    assert resumed.status_code == 200
    assert resumed.json()["matter_id"] == matter_id
    assert resumed.json()["submitted"] is True

    again = await client.post("/intake/submit", json={"client_key": "browser-key-1"})
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_anonymous_caller_cannot_use_claimed_matter(client, matter):
    response = await client.post(
        "/intake/draft",
        json={"client_key": matter.client_key, "matter_id": str(matter.id), "answers": {}},
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_draft(authed_client, matter):
    response = await authed_client.get(f"/intake/draft/{matter.id}")
    assert response.status_code == 200
    assert response.json()["email"] == "executor@test.com"


@pytest.mark.asyncio
async def test_submit_not_fit_matter_is_conflict(authed_client, db, matter):
    matter.right_fit_status = RightFitStatus.NOT_FIT.value
    db.commit()
    response = await authed_client.post(
        "/intake/submit", json={"client_key": matter.client_key, "matter_id": str(matter.id)}
    )
    assert response.status_code == 409


# =============================================================================
# Resume links
# =============================================================================

@pytest.mark.asyncio
async def test_issue_resume_token(authed_client, matter, outbox):
    response = await authed_client.post(
        f"/matters/{matter.id}/resume-token", json={"email": "executor@test.com"}
    )
    assert response.status_code == 200
    assert "expires_at" in response.json()
    assert outbox[-1].template == "resume_token"


@pytest.mark.asyncio
async def test_expired_link_is_gone(client, db, matter):
    issued = resume_token_service.issue(
        db, matter.id, "executor@test.com", now=datetime.now(timezone.utc) - timedelta(hours=25)
    )
    response = await client.get(f"/resume/{issued.token}")
    assert response.status_code == 410


@pytest.mark.asyncio
async def test_unknown_link_is_not_found(client):
    response = await client.get("/resume/does-not-exist")
    assert response.status_code == 404
    assert response.json()["detail"] == "This link is invalid. Please start again to get a new one."


@pytest.mark.asyncio
async def test_request_link_answers_the_same_for_unknown_address(client, matter, outbox):
    known = await client.post("/resume/request-link", json={"email": "executor@test.com"})
    unknown = await client.post("/resume/request-link", json={"email": "nobody@test.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json() == {"sent": True}
    assert [e.to for e in outbox] == ["executor@test.com"]


@pytest.mark.asyncio
async def test_request_link_is_rate_limited(client, matter):
    statuses = [
        (await client.post("/resume/request-link", json={"email": "executor@test.com"})).status_code
        for _ in range(6)
    ]
    assert statuses[:5] == [200] * 5
    assert statuses[5] == 429
