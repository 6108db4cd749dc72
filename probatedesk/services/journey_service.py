"""Journey service - per-step checklist state layered over portal status.

Step statuses are advisory UI state. They are stored twice: as a mapping on
Matter.journey_status and as one MatterStepProgress ledger row per step.
Phase transitions merge the statuses implied by the new portal status into
both, never lowering a step.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from probatedesk.core.errors import ValidationError
from probatedesk.core.portal_status import has_reached_status
from probatedesk.db.enums import AuditAction, JourneyStatus, PortalStatus
from probatedesk.db.models import Matter, MatterStepProgress
from probatedesk.services import audit_service
from probatedesk.services.upsert import insert_missing, upsert_current


@dataclass(frozen=True)
class JourneyStepDefinition:
    """Static checklist step definition."""

    id: str
    title: str
    subtitle: str
    started_at: PortalStatus  # Portal status that implies in_progress
    done_at: PortalStatus  # Portal status that implies done


# ============================================================================
# STEP DEFINITIONS (Authoritative)
# ============================================================================

JOURNEY_STEPS: tuple[JourneyStepDefinition, ...] = (
    JourneyStepDefinition(
        id="review-info",
        title="Review your basic info",
        subtitle="Confirm the key facts before any paperwork goes out.",
        started_at=PortalStatus.INTAKE_COMPLETE,
        done_at=PortalStatus.WILL_SEARCH_PREPPING,
    ),
    JourneyStepDefinition(
        id="will-search",
        title="Will search",
        subtitle="Order the BC wills notice search and keep the receipt.",
        started_at=PortalStatus.WILL_SEARCH_PREPPING,
        done_at=PortalStatus.WILL_SEARCH_SENT,
    ),
    JourneyStepDefinition(
        id="executors-beneficiaries",
        title="Executors and beneficiaries",
        subtitle="List everyone the court expects to see on the schedules.",
        started_at=PortalStatus.NOTICES_IN_PROGRESS,
        done_at=PortalStatus.NOTICES_WAITING_21_DAYS,
    ),
    JourneyStepDefinition(
        id="assets-debts",
        title="Assets and debts",
        subtitle="Summarize property, accounts, and outstanding debts.",
        started_at=PortalStatus.PROBATE_PACKAGE_PREPPING,
        done_at=PortalStatus.PROBATE_PACKAGE_READY,
    ),
    JourneyStepDefinition(
        id="review-forms",
        title="Review and download court forms",
        subtitle="Preview every form before you sign anything.",
        started_at=PortalStatus.PROBATE_PACKAGE_READY,
        done_at=PortalStatus.PROBATE_FILING_READY,
    ),
    JourneyStepDefinition(
        id="sign-notarize",
        title="Sign and notarize",
        subtitle="Meet a commissioner or notary to swear the affidavits.",
        started_at=PortalStatus.PROBATE_FILING_READY,
        done_at=PortalStatus.PROBATE_FILING_IN_PROGRESS,
    ),
    JourneyStepDefinition(
        id="file-court",
        title="File with the court",
        subtitle="Deliver the packet and pay the filing fee.",
        started_at=PortalStatus.PROBATE_FILING_IN_PROGRESS,
        done_at=PortalStatus.PROBATE_FILED,
    ),
)

STEP_IDS: tuple[str, ...] = tuple(step.id for step in JOURNEY_STEPS)

STATUS_WEIGHT: dict[JourneyStatus, int] = {
    JourneyStatus.NOT_STARTED: 0,
    JourneyStatus.IN_PROGRESS: 1,
    JourneyStatus.DONE: 2,
}

# Legacy spelling accepted from stored rows and older clients
_STATUS_ALIASES = {"completed": JourneyStatus.DONE}


def get_step(step_id: str) -> JourneyStepDefinition | None:
    return next((step for step in JOURNEY_STEPS if step.id == step_id), None)


def canonicalize_status(value: Any) -> JourneyStatus:
    """Coerce a stored value; anything unknown reads as not_started."""
    if isinstance(value, JourneyStatus):
        return value
    if isinstance(value, str):
        if value in _STATUS_ALIASES:
            return _STATUS_ALIASES[value]
        try:
            return JourneyStatus(value)
        except ValueError:
            pass
    return JourneyStatus.NOT_STARTED


def merge_statuses(primary: Any, secondary: Any) -> JourneyStatus:
    """The further-along of two statuses."""
    a = canonicalize_status(primary)
    b = canonicalize_status(secondary)
    return b if STATUS_WEIGHT[b] > STATUS_WEIGHT[a] else a


def default_state() -> dict[str, dict[str, Any]]:
    return {step_id: {"status": JourneyStatus.NOT_STARTED.value, "updatedAt": None} for step_id in STEP_IDS}


def normalize_state(value: Any) -> dict[str, dict[str, Any]]:
    """Read a stored journey mapping (entries may be bare strings or dicts)."""
    state = default_state()
    if not isinstance(value, dict):
        return state
    for step_id in STEP_IDS:
        stored = value.get(step_id)
        if stored is None:
            continue
        if isinstance(stored, str):
            state[step_id] = {"status": canonicalize_status(stored).value, "updatedAt": None}
        elif isinstance(stored, dict):
            state[step_id] = {
                "status": canonicalize_status(stored.get("status")).value,
                "updatedAt": stored.get("updatedAt"),
            }
    return state


def progress_percent(state: dict[str, dict[str, Any]]) -> int:
    done = sum(
        1 for step_id in STEP_IDS
        if canonicalize_status(state.get(step_id, {}).get("status")) == JourneyStatus.DONE
    )
    return round(done / len(STEP_IDS) * 100)


def next_step(state: dict[str, dict[str, Any]]) -> JourneyStepDefinition:
    """First step not yet done (the last step once everything is done)."""
    for step in JOURNEY_STEPS:
        if canonicalize_status(state.get(step.id, {}).get("status")) != JourneyStatus.DONE:
            return step
    return JOURNEY_STEPS[-1]


def implied_state(portal_status: str | None) -> dict[str, JourneyStatus]:
    """Step statuses implied by having reached a portal status."""
    implied: dict[str, JourneyStatus] = {}
    for step in JOURNEY_STEPS:
        if has_reached_status(portal_status, step.done_at):
            implied[step.id] = JourneyStatus.DONE
        elif has_reached_status(portal_status, step.started_at):
            implied[step.id] = JourneyStatus.IN_PROGRESS
        else:
            implied[step.id] = JourneyStatus.NOT_STARTED
    return implied


def _write_ledger_row(db: Session, matter_id: UUID, step_id: str, status: JourneyStatus, now: datetime) -> None:
    upsert_current(
        db,
        MatterStepProgress,
        key={"matter_id": matter_id, "step_key": step_id},
        values={
            "status": status.value,
            "completed_at": now if status == JourneyStatus.DONE else None,
        },
    )


def ensure_step_progress(db: Session, matter: Matter) -> None:
    """Create any missing ledger rows from the stored mapping. Does not commit."""
    state = normalize_state(matter.journey_status)
    if not matter.journey_status:
        matter.journey_status = state
    insert_missing(
        db,
        MatterStepProgress,
        [
            {"matter_id": matter.id, "step_key": step_id, "status": state[step_id]["status"]}
            for step_id in STEP_IDS
        ],
        index_elements=["matter_id", "step_key"],
    )


def list_step_progress(db: Session, matter_id: UUID) -> list[MatterStepProgress]:
    rows = db.query(MatterStepProgress).filter(MatterStepProgress.matter_id == matter_id).all()
    order = {step_id: idx for idx, step_id in enumerate(STEP_IDS)}
    return sorted(rows, key=lambda row: order.get(row.step_key, len(order)))


def sync_with_portal_status(db: Session, matter: Matter, now: datetime | None = None) -> dict[str, dict[str, Any]]:
    """
    Raise step statuses to what matter.portal_status implies.

    Runs inside the caller's transaction (does not commit) so the portal
    status and the journey never diverge.
    """
    now = now or datetime.now(timezone.utc)
    state = normalize_state(matter.journey_status)
    for step_id, implied in implied_state(matter.portal_status).items():
        current = canonicalize_status(state[step_id]["status"])
        merged = merge_statuses(current, implied)
        if merged != current:
            state[step_id] = {"status": merged.value, "updatedAt": now.isoformat()}
            _write_ledger_row(db, matter.id, step_id, merged, now)
    matter.journey_status = state
    return state


def set_step_status(
    db: Session,
    matter: Matter,
    step_id: str,
    status: str,
    actor_user_id: UUID | None = None,
) -> dict[str, dict[str, Any]]:
    """
    Overwrite one step's status (other steps untouched) and commit.

    Advisory: no forward-only check here; portal status stays authoritative.
    """
    if get_step(step_id) is None:
        raise ValidationError("Unknown journey step", fields={"step_id": f"Unknown step '{step_id}'"})
    if status not in {s.value for s in JourneyStatus} and status not in _STATUS_ALIASES:
        raise ValidationError("Unknown journey status", fields={"status": f"Unknown status '{status}'"})

    canonical = canonicalize_status(status)
    now = datetime.now(timezone.utc)
    state = normalize_state(matter.journey_status)
    state[step_id] = {"status": canonical.value, "updatedAt": now.isoformat()}
    matter.journey_status = state
    _write_ledger_row(db, matter.id, step_id, canonical, now)
    db.commit()
    db.refresh(matter)

    audit_service.log_event(
        db,
        matter.id,
        AuditAction.JOURNEY_STEP_UPDATED,
        actor_user_id=actor_user_id,
        meta={"step_id": step_id, "status": canonical.value},
    )
    return state
