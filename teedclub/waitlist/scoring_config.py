"""
Scoring configuration document — weights, caps, thresholds, queue settings.

The bundled default lives in scoring_config.yaml next to this module, with a
hardcoded fallback if the YAML is missing. Remote/database/environment
documents may be partial; config_from_dict() deep-merges them onto the
default and validates the result.
"""
import copy
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger('waitlist.scoring_config')

REQUIRED_WEIGHT_CATEGORIES = (
    'role',
    'share_channels',
    'learn_channels',
    'uses',
    'buy_frequency',
    'share_frequency',
)


class InvalidConfigError(ValueError):
    """Raised when a scoring config document is structurally invalid."""


def _default_config() -> Dict[str, Any]:
    """Hardcoded fallback if YAML is missing."""
    return {
        'version': '1.0.0',
        'weights': {
            'role': {
                'fitter_builder': 3,
                'creator': 2,
                'league_captain': 1,
                'golfer': 0,
                'retailer_other': 0,
            },
            'share_channels': {'reddit': 1, 'golfwrx': 1, 'social_media': 1, 'cap': 2},
            'learn_channels': {
                'youtube': 1,
                'reddit': 1,
                'fitter_builder': 1,
                'manufacturer_sites': 1,
                'cap': 3,
            },
            'uses': {'discover_deep_dive': 1, 'follow_friends': 1, 'track_builds': 1, 'cap': 2},
            'buy_frequency': {
                'never': 0, 'yearly_1_2': 0, 'few_per_year': 1, 'monthly': 2, 'weekly_plus': 2,
            },
            'share_frequency': {
                'never': 0, 'yearly_1_2': 0, 'few_per_year': 1, 'monthly': 2, 'weekly_plus': 2,
            },
            'location': {
                'metro_bonus': 1,
                'metro_cities': [
                    'phoenix', 'scottsdale', 'tempe', 'mesa', 'chandler', 'gilbert',
                    'glendale', 'peoria', 'surprise', 'avondale', 'goodyear', 'buckeye',
                ],
            },
            'invite_code': {'present': 2},
            'profile_completion': {'threshold': 80, 'bonus': 1},
            'equipment_engagement': {
                'first_item': 1,
                'multiple_items_threshold': 5,
                'multiple_items_bonus': 2,
                'photo_bonus': 1,
            },
            'total_cap': 10,
        },
        'auto_approval': {
            'threshold': 4,
            'require_email_verification': True,
            'capacity_buffer': 10,
        },
        'queue': {
            'referral_boost_spots': 5,
            'daily_wave_cap': 10,
        },
        'metadata': {
            'last_updated': None,
            'updated_by': None,
            'description': 'Default scoring configuration',
        },
    }


def load_default_document() -> Dict[str, Any]:
    """Read the bundled YAML default, falling back to the hardcoded copy."""
    config_path = os.path.join(os.path.dirname(__file__), 'scoring_config.yaml')
    try:
        with open(config_path, 'r') as f:
            doc = yaml.safe_load(f)
        if not isinstance(doc, dict):
            raise InvalidConfigError('scoring_config.yaml is not a mapping')
        logger.debug("Default config loaded from YAML (version=%s)", doc.get('version', '?'))
        return doc
    except Exception as e:
        logger.warning("YAML config not usable (%s), using hardcoded defaults", e)
        return _default_config()


@dataclass(frozen=True)
class AutoApprovalSettings:
    threshold: float
    capacity_buffer: int
    require_email_verification: bool = True


@dataclass(frozen=True)
class QueueSettings:
    referral_boost_spots: int = 5
    daily_wave_cap: int = 10


@dataclass(frozen=True)
class ScoringConfig:
    """One immutable, versioned scoring configuration."""
    version: str
    weights: Dict[str, Any]
    auto_approval: AutoApprovalSettings
    queue: QueueSettings = field(default_factory=QueueSettings)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_cap(self) -> float:
        return self.weights.get('total_cap', 10)

    @property
    def threshold(self) -> float:
        return self.auto_approval.threshold

    def table(self, name: str) -> Dict[str, Any]:
        """Weight table for a dimension; missing tables are empty."""
        value = self.weights.get(name)
        return value if isinstance(value, dict) else {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': self.version,
            'weights': copy.deepcopy(self.weights),
            'auto_approval': {
                'threshold': self.auto_approval.threshold,
                'capacity_buffer': self.auto_approval.capacity_buffer,
                'require_email_verification': self.auto_approval.require_email_verification,
            },
            'queue': {
                'referral_boost_spots': self.queue.referral_boost_spots,
                'daily_wave_cap': self.queue.daily_wave_cap,
            },
            'metadata': dict(self.metadata),
        }


def deep_merge(base: Dict[str, Any], overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Recursively merge overrides into a copy of base. Lists are replaced, not merged."""
    merged = copy.deepcopy(base)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_config_dict(doc: Dict[str, Any]) -> None:
    """Raise InvalidConfigError if the document can't drive scoring."""
    if not isinstance(doc, dict):
        raise InvalidConfigError('config document must be a mapping')
    weights = doc.get('weights')
    auto_approval = doc.get('auto_approval')
    if not isinstance(weights, dict) or not isinstance(auto_approval, dict):
        raise InvalidConfigError('config requires weights and auto_approval sections')

    for category in REQUIRED_WEIGHT_CATEGORIES:
        if not isinstance(weights.get(category), dict):
            raise InvalidConfigError(f'missing required weight category: {category}')

    threshold = auto_approval.get('threshold')
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or threshold < 0:
        raise InvalidConfigError('auto_approval.threshold must be a non-negative number')

    total_cap = weights.get('total_cap')
    if isinstance(total_cap, bool) or not isinstance(total_cap, (int, float)) or total_cap < 0:
        raise InvalidConfigError('weights.total_cap must be a non-negative number')


def config_from_dict(doc: Dict[str, Any], base: Optional[Dict[str, Any]] = None) -> ScoringConfig:
    """Build a ScoringConfig from a (possibly partial) document merged onto base."""
    if not isinstance(doc, dict):
        raise InvalidConfigError('config document must be a mapping')
    merged = deep_merge(base if base is not None else load_default_document(), doc)
    validate_config_dict(merged)

    aa = merged['auto_approval']
    queue = merged.get('queue') or {}
    return ScoringConfig(
        version=str(merged.get('version', '0.0.0')),
        weights=merged['weights'],
        auto_approval=AutoApprovalSettings(
            threshold=aa['threshold'],
            capacity_buffer=int(aa.get('capacity_buffer', 0)),
            require_email_verification=bool(aa.get('require_email_verification', True)),
        ),
        queue=QueueSettings(
            referral_boost_spots=int(queue.get('referral_boost_spots', 5)),
            daily_wave_cap=int(queue.get('daily_wave_cap', 10)),
        ),
        metadata=dict(merged.get('metadata') or {}),
    )


def default_config() -> ScoringConfig:
    """The bundled default as a ScoringConfig."""
    return config_from_dict({}, base=load_default_document())


def bump_version(version: str) -> str:
    """Increment the patch component: '1.0.3' -> '1.0.4'."""
    parts = (version or '').split('.')
    while len(parts) < 3:
        parts.append('0')
    try:
        patch = int(parts[2]) + 1
    except ValueError:
        patch = 1
    return f'{parts[0] or "1"}.{parts[1] or "0"}.{patch}'
