"""
Waitlist scoring — turns one application into a bounded point total.

Each dimension has its own small function that returns an already-capped
value; score_answers() adds them up and applies the total cap. Weights come
from ScoringConfig, so nothing here hardcodes points.

Values the config doesn't know about (a new role, an unmapped frequency)
score 0 rather than raising, so form/config drift degrades to a neutral score.
"""
import logging
import re
import statistics
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from teedclub.logging_config import email_hash
from teedclub.waitlist.admission import should_auto_approve
from teedclub.waitlist.config_loader import ConfigSource
from teedclub.waitlist.scoring_config import ScoringConfig, config_from_dict
from teedclub.waitlist.signals import EquipmentSignal, ProfileSignal

logger = logging.getLogger('waitlist.scoring')

SOCIAL_MEDIA_CHANNELS = frozenset({'instagram', 'tiktok', 'youtube'})

DIMENSIONS = (
    'role',
    'share_channels',
    'learn_channels',
    'uses',
    'buy_frequency',
    'share_frequency',
    'location',
    'invite_code',
    'profile_completion',
    'equipment_engagement',
)


# ── Per-dimension scorers ────────────────────────────────────────────────────

def lookup_weight(table: Mapping[str, Any], key: Optional[str], default: float = 0) -> float:
    """Weight for key, or default when the key (or its value) isn't a number."""
    if key is None:
        return default
    value = table.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


def _lowered(values: Iterable[str]) -> List[str]:
    return [v.lower() for v in (values or []) if isinstance(v, str)]


def _any_contains(values: List[str], *needles: str) -> bool:
    return any(needle in value for value in values for needle in needles)


def _capped(points: float, table: Mapping[str, Any]) -> float:
    cap = table.get('cap')
    if isinstance(cap, bool) or not isinstance(cap, (int, float)):
        return points
    return min(points, cap)


def score_role(role: str, config: ScoringConfig) -> float:
    return lookup_weight(config.table('role'), role)


def score_share_channels(channels: Iterable[str], config: ScoringConfig) -> float:
    """reddit, golfwrx, and one flat social bonus; then capped."""
    table = config.table('share_channels')
    lowered = _lowered(channels)
    points = 0
    if 'reddit' in lowered:
        points += lookup_weight(table, 'reddit')
    if 'golfwrx' in lowered:
        points += lookup_weight(table, 'golfwrx')
    if any(c in SOCIAL_MEDIA_CHANNELS for c in lowered):
        points += lookup_weight(table, 'social_media')
    return _capped(points, table)


def score_learn_channels(channels: Iterable[str], config: ScoringConfig) -> float:
    table = config.table('learn_channels')
    lowered = _lowered(channels)
    points = 0
    if 'youtube' in lowered:
        points += lookup_weight(table, 'youtube')
    if 'reddit' in lowered:
        points += lookup_weight(table, 'reddit')
    if _any_contains(lowered, 'fitter', 'builder'):
        points += lookup_weight(table, 'fitter_builder')
    if _any_contains(lowered, 'manufacturer', 'brand'):
        points += lookup_weight(table, 'manufacturer_sites')
    return _capped(points, table)


def score_uses(uses: Iterable[str], config: ScoringConfig) -> float:
    table = config.table('uses')
    lowered = _lowered(uses)
    points = 0
    if _any_contains(lowered, 'discover', 'deep-dive', 'research'):
        points += lookup_weight(table, 'discover_deep_dive')
    if _any_contains(lowered, 'follow', 'friend'):
        points += lookup_weight(table, 'follow_friends')
    if _any_contains(lowered, 'track', 'build'):
        points += lookup_weight(table, 'track_builds')
    return _capped(points, table)


def score_frequency(frequency: str, table_name: str, config: ScoringConfig) -> float:
    """buy_frequency / share_frequency lookup."""
    return lookup_weight(config.table(table_name), frequency)


@lru_cache(maxsize=32)
def _compile_metro_pattern(cities: tuple) -> Optional[re.Pattern]:
    if not cities:
        return None
    return re.compile('|'.join(re.escape(c) for c in cities), re.IGNORECASE)


def metro_pattern(cities: Iterable[str]) -> Optional[re.Pattern]:
    """Case-insensitive alternation of the configured metro city names."""
    key = tuple(c.strip().lower() for c in cities or [] if isinstance(c, str) and c.strip())
    return _compile_metro_pattern(key)


def score_location(city_region: str, config: ScoringConfig) -> float:
    table = config.table('location')
    pattern = metro_pattern(table.get('metro_cities') or [])
    if pattern is not None and city_region and pattern.search(city_region):
        return lookup_weight(table, 'metro_bonus')
    return 0


def score_invite_code(invite_code: Optional[str], config: ScoringConfig) -> float:
    if invite_code:
        return lookup_weight(config.table('invite_code'), 'present')
    return 0


def score_profile_completion(profile: Optional[ProfileSignal], config: ScoringConfig) -> float:
    """All-or-nothing bonus once completion reaches the threshold."""
    if profile is None:
        return 0
    table = config.table('profile_completion')
    threshold = lookup_weight(table, 'threshold', default=100)
    if profile.profile_completion_percentage() >= threshold:
        return lookup_weight(table, 'bonus')
    return 0


def score_equipment_engagement(equipment: Optional[EquipmentSignal], config: ScoringConfig) -> float:
    """First item, multiple items and photo bonuses; independent and additive."""
    if equipment is None:
        return 0
    table = config.table('equipment_engagement')
    points = 0
    if equipment.item_count > 0:
        points += lookup_weight(table, 'first_item')
    multiple_threshold = table.get('multiple_items_threshold')
    if (isinstance(multiple_threshold, (int, float)) and not isinstance(multiple_threshold, bool)
            and equipment.item_count >= multiple_threshold):
        points += lookup_weight(table, 'multiple_items_bonus')
    if equipment.has_photo:
        points += lookup_weight(table, 'photo_bonus')
    return points


# ── Result ────────────────────────────────────────────────────────────────────

@dataclass
class ScoreBreakdown:
    role: float = 0
    share_channels: float = 0
    learn_channels: float = 0
    uses: float = 0
    buy_frequency: float = 0
    share_frequency: float = 0
    location: float = 0
    invite_code: float = 0
    profile_completion: float = 0
    equipment_engagement: float = 0
    total: float = 0
    capped_total: float = 0
    config_version: str = ''
    config_source: str = ''
    scored_at: str = ''
    auto_approve_eligible: bool = False
    profile_completion_percentage: Optional[float] = None
    equipment_count: Optional[int] = None

    def sub_scores(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in DIMENSIONS}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'capped_total': self.capped_total,
            'breakdown': self.sub_scores(),
            'metadata': {
                'config_version': self.config_version,
                'config_source': self.config_source,
                'scored_at': self.scored_at,
                'auto_approve_eligible': self.auto_approve_eligible,
                'profile_completion_percentage': self.profile_completion_percentage,
                'equipment_count': self.equipment_count,
            },
        }


def score_answers(
    answers,
    config: ScoringConfig,
    source: str = '',
    profile: Optional[ProfileSignal] = None,
    equipment: Optional[EquipmentSignal] = None,
    scored_at: Optional[str] = None,
) -> ScoreBreakdown:
    """Pure scoring of one application against one config."""
    result = ScoreBreakdown(
        role=score_role(answers.role, config),
        share_channels=score_share_channels(answers.share_channels, config),
        learn_channels=score_learn_channels(answers.learn_channels, config),
        uses=score_uses(answers.uses, config),
        buy_frequency=score_frequency(answers.buy_frequency, 'buy_frequency', config),
        share_frequency=score_frequency(answers.share_frequency, 'share_frequency', config),
        location=score_location(answers.city_region, config),
        invite_code=score_invite_code(answers.invite_code, config),
        profile_completion=score_profile_completion(profile, config),
        equipment_engagement=score_equipment_engagement(equipment, config),
    )
    result.total = sum(result.sub_scores().values())
    result.capped_total = min(result.total, config.total_cap)
    result.auto_approve_eligible = result.capped_total >= config.threshold
    result.config_version = config.version
    result.config_source = source
    result.scored_at = scored_at or datetime.now(timezone.utc).isoformat()
    if profile is not None:
        result.profile_completion_percentage = profile.profile_completion_percentage()
    if equipment is not None:
        result.equipment_count = equipment.item_count
    return result


# ── Engine ────────────────────────────────────────────────────────────────────

class ScoringEngine:
    """Scores applications against the loader's current config."""

    def __init__(self, config_loader):
        self.config_loader = config_loader

    def score(self, answers, profile: Optional[ProfileSignal] = None,
              equipment: Optional[EquipmentSignal] = None) -> ScoreBreakdown:
        config = self.config_loader.get()
        result = score_answers(answers, config, self.config_loader.get_source(),
                               profile=profile, equipment=equipment)
        logger.debug("Scored application: %s/%s (eligible=%s)",
                     result.capped_total, config.total_cap, result.auto_approve_eligible,
                     extra={'email_hash': email_hash(getattr(answers, 'email', ''))})
        return result

    def should_auto_approve(self, capped_score: float, current_approved: int, beta_cap: int) -> bool:
        """Threshold and capacity check against the current config."""
        return should_auto_approve(capped_score, current_approved, beta_cap,
                                   self.config_loader.get().auto_approval)

    def simulate(self, answers, overrides: Optional[Dict[str, Any]] = None,
                 profile: Optional[ProfileSignal] = None,
                 equipment: Optional[EquipmentSignal] = None) -> ScoreBreakdown:
        """Score against the current config with overrides applied. The cache is untouched."""
        base = self.config_loader.get()
        config = config_from_dict(overrides or {}, base=base.to_dict())
        return score_answers(answers, config, ConfigSource.SIMULATION,
                             profile=profile, equipment=equipment)

    def batch_score(
        self,
        applications: Iterable[Any],
        profile_lookup: Optional[Callable[[str], Optional[ProfileSignal]]] = None,
        equipment_lookup: Optional[Callable[[str], Optional[EquipmentSignal]]] = None,
    ) -> List[ScoreBreakdown]:
        """Score many applications one after another."""
        results = []
        for answers in applications:
            profile = profile_lookup(str(answers.email)) if profile_lookup else None
            equipment = None
            if equipment_lookup and profile is not None and profile.user_id:
                equipment = equipment_lookup(profile.user_id)
            results.append(self.score(answers, profile=profile, equipment=equipment))
        return results


def score_distribution(scores: Iterable[Any]) -> Dict[str, Any]:
    """
    Summary statistics over capped totals.

    Accepts ScoreBreakdown objects or plain numbers. The median is the upper
    middle element for even counts; mode ties go to the lowest score.
    """
    values = sorted(s.capped_total if isinstance(s, ScoreBreakdown) else s for s in scores)
    if not values:
        return {'count': 0, 'mean': 0, 'median': 0, 'mode': 0, 'min': 0, 'max': 0,
                'distribution': {}}

    counts = Counter(values)
    top = max(counts.values())
    return {
        'count': len(values),
        'mean': round(statistics.fmean(values), 1),
        'median': values[len(values) // 2],
        'mode': min(v for v, n in counts.items() if n == top),
        'min': values[0],
        'max': values[-1],
        'distribution': dict(sorted(counts.items())),
    }
