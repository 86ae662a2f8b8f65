"""
Scoring config loader — source chain + TTL cache.

ScoringConfigLoader is created by the composition root (create_app) and passed
to whoever needs it; there is no module-level cache. Sources are tried in
priority order and the first valid document wins:

    remote HTTP  →  feature_flags row  →  SCORING_CONFIG env JSON

If every source fails the loader keeps serving the last config it loaded
(source 'last_known_good'), or the bundled YAML default (source 'default').
get() never raises: scoring must always have a config.

The cache is best-effort. Callers that arrive together after expiry may each
trigger a fetch; every fetch returns the same document, so that is tolerated.
"""
import json
import logging
import os
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from teedclub.waitlist.scoring_config import (
    InvalidConfigError,
    ScoringConfig,
    bump_version,
    config_from_dict,
    default_config,
    deep_merge,
)

logger = logging.getLogger('waitlist.config_loader')

DEFAULT_TTL_SECONDS = 300


class ConfigSource:
    REMOTE = 'remote'
    DATABASE = 'database'
    ENVIRONMENT = 'environment'
    LAST_KNOWN_GOOD = 'last_known_good'
    DEFAULT = 'default'
    SIMULATION = 'simulation'


# ── Sources ───────────────────────────────────────────────────────────────────
# Each source has a `name` and a `load()` returning a config document dict,
# or None when it has nothing to offer. load() may raise; the loader handles it.

class RemoteConfigSource:
    """GET a JSON config document from a config service."""
    name = ConfigSource.REMOTE

    def __init__(self, url, http_session, timeout=5.0, breaker=None):
        self.url = url
        self.http = http_session
        self.timeout = timeout
        self.breaker = breaker

    def _fetch(self):
        resp = self.http.get(self.url, timeout=self.timeout)
        resp.raise_for_status()
        doc = resp.json()
        # The config service may wrap the document: {"config": {...}}
        if isinstance(doc, dict) and isinstance(doc.get('config'), dict):
            doc = doc['config']
        return doc

    def load(self):
        if not self.url:
            return None
        if self.breaker is not None:
            return self.breaker.call(self._fetch)
        return self._fetch()


class DatabaseConfigSource:
    """Admin-edited document stored on the feature_flags singleton row."""
    name = ConfigSource.DATABASE

    def __init__(self, session_factory=None):
        self._session_factory = session_factory

    def _session(self):
        if self._session_factory is not None:
            return self._session_factory()
        from teedclub.database import get_session
        return get_session()

    def load(self):
        from teedclub.models.feature_flags import FeatureFlags, FEATURE_FLAGS_ID

        session = self._session()
        try:
            flags = session.get(FeatureFlags, FEATURE_FLAGS_ID)
            if flags is None or not flags.scoring_config:
                return None
            doc = dict(flags.scoring_config)
            # The threshold column is the authoritative admin knob
            if flags.auto_approve_threshold is not None:
                doc['auto_approval'] = dict(doc.get('auto_approval') or {},
                                            threshold=flags.auto_approve_threshold)
            return doc
        finally:
            session.close()

    def save(self, doc: Dict[str, Any]) -> None:
        from teedclub.models.feature_flags import FeatureFlags, FEATURE_FLAGS_ID

        session = self._session()
        try:
            flags = session.get(FeatureFlags, FEATURE_FLAGS_ID)
            if flags is None:
                flags = FeatureFlags(id=FEATURE_FLAGS_ID)
                session.add(flags)
            flags.scoring_config = doc
            flags.auto_approve_threshold = doc.get('auto_approval', {}).get('threshold')
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


class EnvironmentConfigSource:
    """Inline JSON document in an environment variable."""
    name = ConfigSource.ENVIRONMENT

    def __init__(self, env_var='SCORING_CONFIG', environ=None):
        self.env_var = env_var
        self.environ = environ if environ is not None else os.environ

    def load(self):
        raw = self.environ.get(self.env_var)
        if not raw:
            return None
        return json.loads(raw)


# ── Loader ────────────────────────────────────────────────────────────────────

class ScoringConfigLoader:
    """TTL-cached access to the current ScoringConfig."""

    def __init__(
        self,
        sources: Optional[List[Any]] = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        fallback: Optional[Callable[[], ScoringConfig]] = None,
    ):
        self.sources = list(sources or [])
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._fallback = fallback or default_config
        self._config: Optional[ScoringConfig] = None
        self._source: str = ConfigSource.DEFAULT
        self._fetched_at: Optional[float] = None

    def _cache_valid(self) -> bool:
        if self._config is None or self._fetched_at is None:
            return False
        return (self._clock() - self._fetched_at) < self.ttl_seconds

    def _store(self, config: ScoringConfig, source: str) -> ScoringConfig:
        self._config = config
        self._source = source
        self._fetched_at = self._clock()
        return config

    def get(self, force_refresh: bool = False) -> ScoringConfig:
        """Cached config, or walk the source chain."""
        if not force_refresh and self._cache_valid():
            return self._config

        for source in self.sources:
            try:
                doc = source.load()
                if doc is None:
                    continue
                config = config_from_dict(doc)
            except Exception as e:
                logger.warning("Scoring config source '%s' failed: %s", source.name, e)
                continue
            logger.info("Scoring config loaded (version=%s)", config.version,
                        extra={'config_source': source.name, 'config_version': config.version})
            return self._store(config, source.name)

        if self._config is not None:
            logger.warning("All scoring config sources failed; keeping last known good (version=%s)",
                           self._config.version)
            return self._store(self._config, ConfigSource.LAST_KNOWN_GOOD)

        return self._store(self._fallback(), ConfigSource.DEFAULT)

    def get_source(self) -> str:
        return self._source

    def invalidate(self) -> None:
        """Drop the cache so the next get() refetches. The last config is kept as fallback."""
        self._fetched_at = None

    def describe(self) -> Dict[str, Any]:
        """Read-only view for admin tooling."""
        config = self.get()
        return {
            'config': config.to_dict(),
            'source': self.get_source(),
            'version': config.version,
            'threshold': config.threshold,
        }

    # ── Admin writes ──────────────────────────────────────────────────

    def _writable_source(self) -> DatabaseConfigSource:
        for source in self.sources:
            if isinstance(source, DatabaseConfigSource):
                return source
        raise InvalidConfigError('no writable config source configured')

    def _persist(self, doc: Dict[str, Any], previous_version: str,
                 updated_by: Optional[str], description: Optional[str]) -> ScoringConfig:
        doc['version'] = bump_version(previous_version)
        doc['metadata'] = dict(
            doc.get('metadata') or {},
            last_updated=datetime.now(timezone.utc).isoformat(),
            updated_by=updated_by,
        )
        if description:
            doc['metadata']['description'] = description
        new_config = config_from_dict(doc)

        self._writable_source().save(new_config.to_dict())
        self.invalidate()
        logger.info("Scoring config updated to version %s by %s",
                    new_config.version, updated_by or 'unknown')
        return new_config

    def update_config(self, changes: Dict[str, Any], updated_by: Optional[str] = None,
                      description: Optional[str] = None) -> ScoringConfig:
        """Merge changes over the current config, bump the version and persist."""
        current = self.get()
        doc = deep_merge(current.to_dict(), changes or {})
        return self._persist(doc, current.version, updated_by, description)

    def reset_to_default(self, updated_by: Optional[str] = None) -> ScoringConfig:
        """Replace the stored document with the bundled default (new version number)."""
        current = self.get()
        return self._persist(self._fallback().to_dict(), current.version, updated_by,
                             'Reset to default scoring configuration')


def build_config_loader(redis_client=None, http_session=None):
    """Wire the standard source chain from teedclub.config."""
    from teedclub import config as settings
    from teedclub.services.circuit_breaker import get_breaker

    sources = []
    if settings.SCORING_CONFIG_URL:
        if http_session is None:
            from teedclub.extensions import http_session
        sources.append(RemoteConfigSource(
            settings.SCORING_CONFIG_URL,
            http_session,
            timeout=settings.SCORING_CONFIG_TIMEOUT,
            breaker=get_breaker('scoring_config', redis_client),
        ))
    sources.append(DatabaseConfigSource())
    sources.append(EnvironmentConfigSource(settings.SCORING_CONFIG_ENV_VAR))
    return ScoringConfigLoader(sources, ttl_seconds=settings.SCORING_CONFIG_TTL)
