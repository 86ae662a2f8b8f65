"""
Profile and equipment lookups that feed the scoring signals.

A failed lookup is logged and treated as "signal absent" (None); scoring then
runs without that dimension.
"""
import logging
from typing import Optional

from teedclub.database import get_session
from teedclub.logging_config import email_hash
from teedclub.models.equipment import BagEquipment
from teedclub.models.profile import Profile
from teedclub.waitlist.signals import EquipmentSignal, ProfileSignal

logger = logging.getLogger('services.lookups')


def profile_signal_from_row(profile: Profile) -> ProfileSignal:
    return ProfileSignal(
        email=profile.email,
        user_id=profile.id,
        display_name=profile.display_name,
        bio=profile.bio,
        location=profile.location,
        handicap=profile.handicap,
        favorite_club=profile.favorite_club,
        avatar_url=profile.avatar_url,
    )


def lookup_profile_signal(email: str) -> Optional[ProfileSignal]:
    """Profile by email, or None if missing or the lookup fails."""
    if not email:
        return None
    session = get_session()
    try:
        profile = session.query(Profile).filter(Profile.email == email.lower()).first()
        if profile is None:
            return None
        return profile_signal_from_row(profile)
    except Exception:
        logger.warning("Profile lookup failed", exc_info=True,
                       extra={'email_hash': email_hash(email)})
        return None
    finally:
        session.close()


def lookup_equipment_signal(user_id: Optional[str]) -> Optional[EquipmentSignal]:
    """Aggregate a member's bag. No rows → a zero signal; failure → None."""
    if not user_id:
        return None
    session = get_session()
    try:
        items = session.query(BagEquipment).filter(BagEquipment.user_id == user_id).all()
        brands = {item.brand.strip().lower() for item in items if item.brand and item.brand.strip()}
        return EquipmentSignal(
            item_count=len(items),
            has_photo=any((item.photo_count or 0) > 0 for item in items),
            unique_brands=len(brands),
        )
    except Exception:
        logger.warning("Equipment lookup failed for user %s", user_id, exc_info=True)
        return None
    finally:
        session.close()


def lookup_signals(email: str):
    """(profile_signal, equipment_signal) for an applicant; either may be None."""
    profile = lookup_profile_signal(email)
    equipment = lookup_equipment_signal(profile.user_id) if profile else None
    return profile, equipment
