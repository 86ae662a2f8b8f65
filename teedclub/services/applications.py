"""
Waitlist application store — submission, queue rank, status transitions.

Scoring and the admission decision are pure (teedclub.waitlist); this module
owns the database side: uniqueness by email, beta capacity counts, invite-code
redemption, granting beta access, and ranking the waiting pool.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, time, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from teedclub.config import DEFAULT_BETA_CAP, DEFAULT_INVITE_QUOTA
from teedclub.database import get_session
from teedclub.logging_config import email_hash
from teedclub.models.application import WaitlistApplication
from teedclub.models.feature_flags import FeatureFlags, FEATURE_FLAGS_ID
from teedclub.models.invite_code import InviteCode
from teedclub.models.profile import Profile
from teedclub.services.lookups import lookup_signals
from teedclub.waitlist.admission import (
    APPROVED, AT_CAPACITY, PENDING, REJECTED,
    AdmissionDecision, decide_admission, spots_remaining,
)
from teedclub.waitlist.queue import QueuePosition, apply_referral_boost, project_queue_position
from teedclub.waitlist.validation import honeypot_triggered

logger = logging.getLogger('services.applications')

# Applicants still in line. at_capacity rows wait alongside pending ones.
WAITING_STATUSES = (PENDING, AT_CAPACITY)

MESSAGES = {
    'public_beta': 'Welcome to Teed.club! Public beta is now open.',
    'invite_code': 'Invite code accepted! Welcome to Teed.club beta.',
    'auto_approved': "Congratulations! You've been approved for Teed.club beta access.",
    'beta_full': "Beta is currently at capacity. You've been added to the waitlist.",
    'email_unverified': ('Please verify your email to complete your application. '
                         'Check your inbox for a confirmation link.'),
    'pending': "Thank you for your interest! You've been added to the waitlist.",
}


class DuplicateApplicationError(Exception):
    def __init__(self, email):
        self.email = email
        super().__init__('An application already exists for this email')


class ApplicationNotFoundError(Exception):
    pass


class InsufficientCapacityError(Exception):
    def __init__(self, remaining, requested):
        self.remaining = remaining
        self.requested = requested
        super().__init__(
            f'Insufficient capacity. Only {remaining} slots available, '
            f'but trying to approve {requested} applications.'
        )


@dataclass
class SubmissionResult:
    status: str
    score: float
    spots_remaining: int
    message: str
    reason: str = ''
    breakdown: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self):
        return {
            'status': self.status,
            'score': self.score,
            'spots_remaining': self.spots_remaining,
            'message': self.message,
        }


def _utcnow():
    return datetime.now(timezone.utc)


# ── Capacity ──────────────────────────────────────────────────────────────────

def get_beta_settings(session) -> Tuple[int, bool]:
    """(beta_cap, public_beta_enabled) from the feature_flags row."""
    flags = session.get(FeatureFlags, FEATURE_FLAGS_ID)
    if flags is None:
        return DEFAULT_BETA_CAP, False
    return (flags.beta_cap or DEFAULT_BETA_CAP), bool(flags.public_beta_enabled)


def count_approved(session) -> int:
    return session.query(func.count(Profile.id)).filter(Profile.beta_access.is_(True)).scalar() or 0


def _grant_beta_access(session, email, display_name):
    """Create or update the member profile with beta access."""
    profile = session.query(Profile).filter(Profile.email == email).first()
    if profile is None:
        profile = Profile(
            email=email,
            display_name=display_name or email.split('@')[0],
            invite_quota=DEFAULT_INVITE_QUOTA,
            invites_used=0,
        )
        session.add(profile)
    profile.beta_access = True
    return profile


def _redeem_invite(session, code) -> bool:
    invite = session.get(InviteCode, code.strip())
    if invite is None or not invite.redeemable:
        return False
    invite.uses += 1
    return True


# ── Submission ────────────────────────────────────────────────────────────────

def submit_application(
    answers,
    engine,
    email_confirmed: Optional[bool] = None,
    referred_by: Optional[str] = None,
    signal_lookup: Callable = lookup_signals,
) -> SubmissionResult:
    """
    Score and store a new application and decide admit-now vs. queue.

    email_confirmed is the signed-in user's verification state, or None for
    an anonymous applicant (which does not block auto-approval).

    Raises DuplicateApplicationError if the email already applied.
    """
    email = str(answers.email).lower()
    tag = {'email_hash': email_hash(email)}
    honeypot = honeypot_triggered(answers)
    if honeypot:
        logger.warning("Honeypot field filled on waitlist submission", extra=tag)

    session = get_session()
    try:
        if session.query(WaitlistApplication.id).filter(WaitlistApplication.email == email).first():
            raise DuplicateApplicationError(email)

        profile, equipment = signal_lookup(email)
        breakdown = engine.score(answers, profile=profile, equipment=equipment)
        score = breakdown.capped_total

        beta_cap, public_beta = get_beta_settings(session)
        current_approved = count_approved(session)
        remaining = spots_remaining(current_approved, beta_cap)
        logger.info("Application scored %s; capacity %d/%d", score, current_approved, beta_cap, extra=tag)

        if public_beta and not honeypot:
            decision = AdmissionDecision(APPROVED, remaining, 'public_beta')
        elif answers.invite_code and not honeypot and _redeem_invite(session, answers.invite_code):
            decision = AdmissionDecision(APPROVED, max(0, remaining - 1), 'invite_code')
        else:
            decision = decide_admission(
                breakdown, current_approved, beta_cap,
                engine.config_loader.get().auto_approval,
                honeypot=honeypot, email_confirmed=email_confirmed,
            )

        now = _utcnow()
        if decision.status == APPROVED:
            _grant_beta_access(session, email, answers.display_name)

        referrer = None
        if referred_by and referred_by.lower() != email:
            referrer = session.query(WaitlistApplication).filter(
                WaitlistApplication.email == referred_by.lower()
            ).first()
            if referrer is not None:
                referrer.referral_count = (referrer.referral_count or 0) + 1

        session.add(WaitlistApplication(
            email=email,
            display_name=answers.display_name,
            city_region=answers.city_region,
            answers=answers.to_record(),
            score=score,
            score_breakdown=breakdown.to_dict(),
            status=decision.status,
            referred_by=referrer.email if referrer is not None else None,
            created_at=now,
            approved_at=now if decision.status == APPROVED else None,
        ))
        session.commit()
    except DuplicateApplicationError:
        session.rollback()
        raise
    except IntegrityError:
        session.rollback()
        raise DuplicateApplicationError(email)
    except Exception:
        session.rollback()
        logger.error("Failed to store waitlist application", exc_info=True, extra=tag)
        raise
    finally:
        session.close()

    logger.info("Application %s (%s)", decision.status, decision.reason, extra=tag)
    message = MESSAGES.get(decision.reason, MESSAGES['pending'])
    return SubmissionResult(
        status=decision.status,
        score=score,
        spots_remaining=decision.spots_remaining,
        message=message,
        reason=decision.reason,
        breakdown=breakdown.to_dict(),
    )


# ── Queue ─────────────────────────────────────────────────────────────────────

def _start_of_today(now=None):
    now = now or _utcnow()
    return datetime.combine(now.date(), time.min, tzinfo=timezone.utc)


def get_queue_position(email: str, config, now=None) -> Tuple[Dict[str, Any], Optional[QueuePosition]]:
    """
    (application, position) for an applicant.

    position is None once the application has left the queue (approved or
    rejected). Raises ApplicationNotFoundError for unknown emails.
    """
    session = get_session()
    try:
        application = session.query(WaitlistApplication).filter(
            WaitlistApplication.email == (email or '').lower()
        ).first()
        if application is None:
            raise ApplicationNotFoundError(email)
        if application.status not in WAITING_STATUSES:
            return application.to_dict(), None

        waiting_ids = [row.id for row in session.query(WaitlistApplication.id).filter(
            WaitlistApplication.status.in_(WAITING_STATUSES)
        ).order_by(
            WaitlistApplication.score.desc(),
            WaitlistApplication.created_at.asc(),
            WaitlistApplication.id.asc(),
        )]
        raw_rank = waiting_ids.index(application.id) + 1

        filled_today = session.query(func.count(WaitlistApplication.id)).filter(
            WaitlistApplication.status == APPROVED,
            WaitlistApplication.approved_at >= _start_of_today(now),
        ).scalar() or 0

        spots = config.queue.referral_boost_spots
        referrals = application.referral_count or 0
        position = project_queue_position(
            rank=apply_referral_boost(raw_rank, referrals, spots),
            total=len(waiting_ids),
            wave_capacity=config.queue.daily_wave_cap,
            wave_filled_today=filled_today,
            referral_count=referrals,
            spots_per_referral=spots,
            score=application.score,
        )
        return application.to_dict(), position
    finally:
        session.close()


# ── Status transitions ───────────────────────────────────────────────────────

def approve_applications(application_ids: List[int]) -> List[Dict[str, Any]]:
    """Approve waiting applications if capacity allows all of them."""
    session = get_session()
    try:
        beta_cap, _ = get_beta_settings(session)
        remaining = beta_cap - count_approved(session)
        if remaining < len(application_ids):
            raise InsufficientCapacityError(remaining, len(application_ids))

        applications = session.query(WaitlistApplication).filter(
            WaitlistApplication.id.in_(application_ids),
            WaitlistApplication.status.in_(WAITING_STATUSES),
        ).all()

        now = _utcnow()
        approved = []
        for application in applications:
            application.status = APPROVED
            application.approved_at = now
            _grant_beta_access(session, application.email, application.display_name)
            approved.append({'id': application.id, 'email': application.email})
        session.commit()
    except InsufficientCapacityError:
        raise
    except Exception:
        session.rollback()
        logger.error("Bulk approval failed", exc_info=True)
        raise
    finally:
        session.close()

    logger.info("Bulk approved %d of %d applications", len(approved), len(application_ids))
    return approved


def reject_application(application_id: int) -> Dict[str, Any]:
    session = get_session()
    try:
        application = session.get(WaitlistApplication, application_id)
        if application is None:
            raise ApplicationNotFoundError(application_id)
        application.status = REJECTED
        session.commit()
        return application.to_dict()
    except ApplicationNotFoundError:
        raise
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def record_referral(referrer_email: str) -> int:
    """Credit a referral to an applicant; returns their new referral count."""
    session = get_session()
    try:
        application = session.query(WaitlistApplication).filter(
            WaitlistApplication.email == (referrer_email or '').lower()
        ).first()
        if application is None:
            raise ApplicationNotFoundError(referrer_email)
        application.referral_count = (application.referral_count or 0) + 1
        count = application.referral_count
        session.commit()
        return count
    except ApplicationNotFoundError:
        raise
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def pending_scores() -> List[float]:
    """Capped scores of everyone still in line, for admin statistics."""
    session = get_session()
    try:
        return [row.score for row in session.query(WaitlistApplication.score).filter(
            WaitlistApplication.status.in_(WAITING_STATUSES)
        )]
    finally:
        session.close()


def capacity_snapshot() -> Dict[str, Any]:
    session = get_session()
    try:
        beta_cap, public_beta = get_beta_settings(session)
        approved = count_approved(session)
    finally:
        session.close()
    return {
        'beta_cap': beta_cap,
        'approved': approved,
        'spots_remaining': spots_remaining(approved, beta_cap),
        'public_beta_enabled': public_beta,
    }
