"""
Admission decision — admit now or queue.

Two distinct predicates:
  * auto-approve *eligibility* (ScoreBreakdown.auto_approve_eligible) is the
    score threshold alone;
  * should_auto_approve() also requires capacity, keeping `capacity_buffer`
    seats free for manual and referral admissions.
Both are pure; persisting the resulting status is the caller's job.
"""
from dataclasses import dataclass

APPROVED = 'approved'
PENDING = 'pending'
AT_CAPACITY = 'at_capacity'
REJECTED = 'rejected'


@dataclass(frozen=True)
class AdmissionDecision:
    status: str
    spots_remaining: int
    reason: str


def spots_remaining(current_approved: int, beta_cap: int) -> int:
    return max(0, beta_cap - current_approved)


def should_auto_approve(capped_score, current_approved, beta_cap, auto_approval) -> bool:
    """Score meets the threshold and approvals are below cap minus buffer."""
    if capped_score < auto_approval.threshold:
        return False
    return current_approved < beta_cap - auto_approval.capacity_buffer


def decide_admission(breakdown, current_approved, beta_cap, auto_approval,
                     honeypot=False, email_confirmed=None) -> AdmissionDecision:
    """
    Status for a freshly scored application.

    email_confirmed is None when there is no signed-in identity to check;
    only an explicit False blocks auto-approval.
    """
    remaining = spots_remaining(current_approved, beta_cap)
    verified = email_confirmed is not False or not auto_approval.require_email_verification

    if (should_auto_approve(breakdown.capped_total, current_approved, beta_cap, auto_approval)
            and not honeypot and verified):
        return AdmissionDecision(APPROVED, max(0, remaining - 1), 'auto_approved')

    if current_approved >= beta_cap:
        return AdmissionDecision(AT_CAPACITY, 0, 'beta_full')

    if honeypot:
        reason = 'honeypot'
    elif not verified and breakdown.capped_total >= auto_approval.threshold:
        reason = 'email_unverified'
    elif breakdown.capped_total < auto_approval.threshold:
        reason = 'below_threshold'
    else:
        reason = 'capacity_reserved'
    return AdmissionDecision(PENDING, remaining, reason)
