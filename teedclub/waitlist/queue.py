"""
Queue projection — display metrics for an applicant's place in line.

Recomputed on every view from the latest rank/capacity snapshot; nothing
here is stored.
"""
from dataclasses import asdict, dataclass
from typing import Optional, Tuple

DEFAULT_SPOTS_PER_REFERRAL = 5


@dataclass(frozen=True)
class QueuePosition:
    position: int
    total_waiting: int
    ahead_of_you: int
    behind_you: int
    referral_count: int
    referral_boost: int
    wave_cap: int
    wave_filled_today: int
    estimated_days: Optional[int]
    estimated_wait: str
    score: Optional[float] = None

    def to_dict(self):
        return asdict(self)


def apply_referral_boost(raw_rank: int, referral_count: int,
                         spots_per_referral: int = DEFAULT_SPOTS_PER_REFERRAL) -> int:
    """Move a rank up by the referral boost; never below 1, never worse than raw."""
    boost = max(0, referral_count) * max(0, spots_per_referral)
    return max(1, raw_rank - boost)


def estimate_days(ahead_of_you: int, wave_capacity: int, wave_filled_today: int) -> Optional[int]:
    """
    Whole days until admission if waves keep filling at capacity.

    Today's remaining seats go first; after that each day admits one full wave.
    None when no wave is scheduled (capacity 0).
    """
    if wave_capacity <= 0:
        return None
    remaining_today = max(0, wave_capacity - wave_filled_today)
    if ahead_of_you < remaining_today:
        return 0
    return 1 + (ahead_of_you - remaining_today) // wave_capacity


def format_wait_time(days: Optional[int]) -> str:
    if days is None:
        return 'Not scheduled'
    if days <= 0:
        return 'Today!'
    if days == 1:
        return 'Tomorrow'
    if days < 7:
        return f'{days} days'
    if days < 14:
        return '1 week'
    if days < 30:
        return f'{days // 7} weeks'
    if days < 60:
        return '1 month'
    return f'{days // 30} months'


def project_queue_position(
    rank: int,
    total: int,
    wave_capacity: int,
    wave_filled_today: int,
    referral_count: int,
    spots_per_referral: int = DEFAULT_SPOTS_PER_REFERRAL,
    score: Optional[float] = None,
) -> QueuePosition:
    """
    Queue metrics for one applicant.

    `rank` is 1-based among `total` pending applicants and already includes the
    referral boost; the boost is reported separately for display.
    """
    if total < 1 or not 1 <= rank <= total:
        raise ValueError(f'rank {rank} is outside 1..{total}')
    if referral_count < 0 or wave_filled_today < 0:
        raise ValueError('counts must be non-negative')

    ahead = rank - 1
    days = estimate_days(ahead, wave_capacity, wave_filled_today)
    return QueuePosition(
        position=rank,
        total_waiting=total,
        ahead_of_you=ahead,
        behind_you=total - rank,
        referral_count=referral_count,
        referral_boost=referral_count * spots_per_referral,
        wave_cap=wave_capacity,
        wave_filled_today=wave_filled_today,
        estimated_days=days,
        estimated_wait=format_wait_time(days),
        score=score,
    )


def potential_position(position: int, referral_count: int, target_referrals: int = 3,
                       spots_per_referral: int = DEFAULT_SPOTS_PER_REFERRAL) -> int:
    """Where the applicant would be after reaching target_referrals."""
    missing = max(0, target_referrals - referral_count)
    return max(1, position - missing * spots_per_referral)


def calculate_movement(current: int, previous: Optional[int]) -> Tuple[str, int]:
    """('up' | 'down' | 'none', spots) between two views."""
    if previous is None:
        return 'none', 0
    diff = previous - current
    if diff > 0:
        return 'up', diff
    if diff < 0:
        return 'down', -diff
    return 'none', 0


def urgency_level(remaining: int) -> str:
    if remaining <= 5:
        return 'critical'
    if remaining <= 10:
        return 'high'
    if remaining <= 20:
        return 'medium'
    return 'low'
