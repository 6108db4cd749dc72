"""Ops console endpoints."""

from datetime import date, time, timedelta

import pytest

from probatedesk.db.enums import AuditAction
from probatedesk.db.models import AuditLog
from probatedesk.services import matter_service, scheduling_service


@pytest.mark.asyncio
async def test_search_matters(ops_client, matter, user_factory, db):
    other = matter_service.create_matter(db, user_id=user_factory().id)
    db.commit()

    everything = (await ops_client.get("/ops/matters")).json()
    assert everything["total"] == 2

    by_email = (await ops_client.get("/ops/matters", params={"q": "executor@test"})).json()
    assert [m["id"] for m in by_email["items"]] == [str(matter.id)]

    by_code = (await ops_client.get("/ops/matters", params={"q": other.case_code})).json()
    assert str(other.id) in [m["id"] for m in by_code["items"]]


@pytest.mark.asyncio
async def test_matter_detail(ops_client, matter):
    response = await ops_client.get(f"/ops/matters/{matter.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["summary"]["case_code"] == matter.case_code
    assert data["status"]["portal_status"] == "intake_complete"
    assert data["documents"]["will_search"] is None
    assert data["callbacks"] == []
    assert data["requisitions"] == []


@pytest.mark.asyncio
async def test_status_override_can_move_backward(ops_client, ops_user, db, matter):
    matter.portal_status = "waiting_for_grant"
    db.commit()

    response = await ops_client.post(
        f"/ops/matters/{matter.id}/status-override",
        json={"status": "notices_waiting_21_days", "reason": "Filed against the wrong registry"},
    )
    assert response.status_code == 200
    assert response.json()["portal_status"] == "notices_waiting_21_days"

    entry = (
        db.query(AuditLog)
        .filter(AuditLog.matter_id == matter.id, AuditLog.action == AuditAction.STATUS_OVERRIDE.value)
        .one()
    )
    assert entry.actor_user_id == ops_user.id
    assert entry.meta["from"] == "waiting_for_grant"
    assert entry.meta["reason"] == "Filed against the wrong registry"


@pytest.mark.asyncio
async def test_status_override_unknown_status(ops_client, matter):
    response = await ops_client.post(
        f"/ops/matters/{matter.id}/status-override", json={"status": "limbo"}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_soft_delete_hides_matter(ops_client, authed_client, matter):
    response = await ops_client.delete(f"/ops/matters/{matter.id}")
    assert response.status_code == 204

    assert (await ops_client.get(f"/ops/matters/{matter.id}")).status_code == 404
    assert (await authed_client.get(f"/portal/matters/{matter.id}/status")).status_code == 404


@pytest.mark.asyncio
async def test_slot_admin(ops_client, db, matter, client_user):
    day = date.today() + timedelta(days=7)
    await ops_client.post(
        "/ops/slots",
        json={"slots": [{"slot_date": day.isoformat(), "slot_time": "09:00:00"}] * 2},
    )
    slots = (await ops_client.get("/ops/slots")).json()
    assert len(slots) == 1
    assert slots[0]["booked"] is False

    slot, _ = scheduling_service.list_slots(db)[0]
    scheduling_service.book_callback(db, matter, client_user.id, slot.id, "+16045550100")

    blocked = await ops_client.delete(f"/ops/slots/{slots[0]['id']}")
    assert blocked.status_code == 409


@pytest.mark.asyncio
async def test_callback_admin(ops_client, db, matter, client_user):
    day = date.today() + timedelta(days=7)
    scheduling_service.create_slots(db, [(day, time(14, 0))])
    slot, _ = scheduling_service.list_slots(db)[0]
    callback = scheduling_service.book_callback(db, matter, client_user.id, slot.id, "+16045550100")

    scheduled = (await ops_client.get("/ops/callbacks", params={"status": "scheduled"})).json()
    assert [c["id"] for c in scheduled] == [str(callback.id)]

    done = await ops_client.patch(f"/ops/callbacks/{callback.id}", json={"status": "completed"})
    assert done.status_code == 200
    assert done.json()["status"] == "completed"

    again = await ops_client.patch(f"/ops/callbacks/{callback.id}", json={"status": "no_show"})
    assert again.status_code == 409
