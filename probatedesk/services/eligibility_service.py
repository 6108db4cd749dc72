"""Eligibility (right-fit) screening.

Pure decision logic: every rule is checked independently and all matching
reasons are collected. Persisting the verdict is matter_service's job.
"""

from dataclasses import dataclass, field
from typing import Literal

from probatedesk.db.enums import RightFitStatus

EligibilityStatus = Literal["eligible", "not_fit"]

REASON_OUTSIDE_BC = "The estate is not located in British Columbia."
REASON_NOT_EXECUTOR = "You are not the named executor or court-appointed administrator."
REASON_WILL_NOT_STRAIGHTFORWARD = "The will may be contested or is not straightforward."
REASON_COMPLEX_ASSETS = "The estate includes assets that need specialized legal advice."

REFERRAL_MESSAGE = (
    "Your situation needs more than document preparation. "
    "We recommend speaking with a BC probate lawyer; we can refer you to a partner firm."
)


@dataclass(frozen=True)
class EligibilityAnswers:
    """Screening answers as submitted by the client."""

    estate_in_bc: str
    is_executor: str
    will_straightforward: str
    assets_common: str
    complex_assets_notes: str = ""

    def as_dict(self) -> dict[str, str]:
        return {
            "estateInBC": self.estate_in_bc,
            "isExecutor": self.is_executor,
            "willStraightforward": self.will_straightforward,
            "assetsCommon": self.assets_common,
            "complexAssetsNotes": self.complex_assets_notes or "",
        }


@dataclass(frozen=True)
class EligibilityDecision:
    status: EligibilityStatus
    reasons: list[str] = field(default_factory=list)

    @property
    def right_fit_status(self) -> RightFitStatus:
        return RightFitStatus.ELIGIBLE if self.status == "eligible" else RightFitStatus.NOT_FIT

    @property
    def referral_message(self) -> str | None:
        return REFERRAL_MESSAGE if self.status == "not_fit" else None


def evaluate(answers: EligibilityAnswers) -> EligibilityDecision:
    """Map screening answers to a verdict. Total and side-effect free."""
    reasons: list[str] = []

    if answers.estate_in_bc == "no":
        reasons.append(REASON_OUTSIDE_BC)
    if answers.is_executor == "no":
        reasons.append(REASON_NOT_EXECUTOR)
    if answers.will_straightforward == "no":
        reasons.append(REASON_WILL_NOT_STRAIGHTFORWARD)
    # "no" alone is not disqualifying; the client must describe what is unusual
    if answers.assets_common == "no" and (answers.complex_assets_notes or "").strip():
        reasons.append(REASON_COMPLEX_ASSETS)

    if reasons:
        return EligibilityDecision(status="not_fit", reasons=reasons)
    return EligibilityDecision(status="eligible", reasons=[])
