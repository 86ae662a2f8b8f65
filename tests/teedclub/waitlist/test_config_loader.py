"""Tests for teedclub.waitlist.config_loader — source chain, TTL cache, admin writes."""
import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from teedclub.models.feature_flags import FeatureFlags, FEATURE_FLAGS_ID
from teedclub.services.circuit_breaker import CircuitBreaker, CircuitOpenError
from teedclub.waitlist.config_loader import (
    ConfigSource, DatabaseConfigSource, EnvironmentConfigSource,
    RemoteConfigSource, ScoringConfigLoader, build_config_loader,
)
from teedclub.waitlist.scoring_config import InvalidConfigError


class StaticSource:
    """Source returning a fixed document and counting loads."""

    def __init__(self, doc, name='remote'):
        self.doc = doc
        self.name = name
        self.calls = 0

    def load(self):
        self.calls += 1
        if isinstance(self.doc, Exception):
            raise self.doc
        return self.doc


def _response(payload, status=200):
    resp = MagicMock()
    resp.json.return_value = payload
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f'{status} error')
    return resp


# ---------------------------------------------------------------------------
# Source chain
# ---------------------------------------------------------------------------

class TestSourceChain:
    """First valid document wins; failures fall through."""

    def test_first_source_wins(self):
        first = StaticSource({'version': '2.0.0'}, name='remote')
        second = StaticSource({'version': '3.0.0'}, name='database')
        loader = ScoringConfigLoader([first, second])
        assert loader.get().version == '2.0.0'
        assert loader.get_source() == 'remote'
        assert second.calls == 0

    def test_none_falls_through(self):
        loader = ScoringConfigLoader([StaticSource(None), StaticSource({'version': '3.0.0'}, 'database')])
        assert loader.get().version == '3.0.0'
        assert loader.get_source() == 'database'

    def test_network_error_falls_through(self):
        loader = ScoringConfigLoader([
            StaticSource(ConnectionError('timeout')),
            StaticSource({'version': '3.0.0'}, 'database'),
        ])
        assert loader.get().version == '3.0.0'

    def test_invalid_document_falls_through(self):
        loader = ScoringConfigLoader([
            StaticSource({'auto_approval': {'threshold': -5}}),
            StaticSource({'version': '3.0.0'}, 'database'),
        ])
        assert loader.get().version == '3.0.0'

    def test_all_fail_uses_default(self):
        loader = ScoringConfigLoader([StaticSource(ConnectionError('down'))])
        config = loader.get()
        assert config.version == '1.0.0'
        assert loader.get_source() == ConfigSource.DEFAULT

    def test_no_sources_uses_default(self):
        loader = ScoringConfigLoader([])
        assert loader.get().total_cap == 10
        assert loader.get_source() == ConfigSource.DEFAULT

    def test_last_known_good_beats_default(self, fake_clock):
        source = StaticSource({'version': '2.5.0'})
        loader = ScoringConfigLoader([source], ttl_seconds=300, clock=fake_clock)
        loader.get()
        source.doc = ConnectionError('down')
        fake_clock.advance(301)
        assert loader.get().version == '2.5.0'
        assert loader.get_source() == ConfigSource.LAST_KNOWN_GOOD


# ---------------------------------------------------------------------------
# TTL cache
# ---------------------------------------------------------------------------

class TestCache:
    """Cached copy within TTL, refetch after."""

    def test_cached_within_ttl(self, fake_clock):
        source = StaticSource({'version': '2.0.0'})
        loader = ScoringConfigLoader([source], ttl_seconds=300, clock=fake_clock)
        loader.get()
        fake_clock.advance(299)
        loader.get()
        assert source.calls == 1

    def test_refetch_after_ttl(self, fake_clock):
        source = StaticSource({'version': '2.0.0'})
        loader = ScoringConfigLoader([source], ttl_seconds=300, clock=fake_clock)
        loader.get()
        source.doc = {'version': '2.0.1'}
        fake_clock.advance(300)
        assert loader.get().version == '2.0.1'
        assert source.calls == 2

    def test_force_refresh(self, fake_clock):
        source = StaticSource({'version': '2.0.0'})
        loader = ScoringConfigLoader([source], clock=fake_clock)
        loader.get()
        loader.get(force_refresh=True)
        assert source.calls == 2

    def test_invalidate(self, fake_clock):
        source = StaticSource({'version': '2.0.0'})
        loader = ScoringConfigLoader([source], clock=fake_clock)
        loader.get()
        loader.invalidate()
        loader.get()
        assert source.calls == 2

    def test_default_is_cached_too(self, fake_clock):
        source = StaticSource(ConnectionError('down'))
        loader = ScoringConfigLoader([source], clock=fake_clock)
        loader.get()
        loader.get()
        assert source.calls == 1

    def test_describe(self):
        loader = ScoringConfigLoader([StaticSource({'version': '2.0.0', 'auto_approval': {'threshold': 5}})])
        info = loader.describe()
        assert info['source'] == 'remote'
        assert info['version'] == '2.0.0'
        assert info['threshold'] == 5
        assert info['config']['weights']['total_cap'] == 10


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------

class TestRemoteConfigSource:
    """HTTP GET through the circuit breaker."""

    def test_fetches_json(self):
        http = MagicMock()
        http.get.return_value = _response({'version': '4.0.0'})
        source = RemoteConfigSource('https://config.teed.club/scoring', http, timeout=2)
        assert source.load() == {'version': '4.0.0'}
        http.get.assert_called_once_with('https://config.teed.club/scoring', timeout=2)

    def test_unwraps_envelope(self):
        http = MagicMock()
        http.get.return_value = _response({'config': {'version': '4.0.0'}, 'etag': 'x'})
        source = RemoteConfigSource('https://config.teed.club/scoring', http)
        assert source.load() == {'version': '4.0.0'}

    def test_http_error_raises(self):
        http = MagicMock()
        http.get.return_value = _response({}, status=503)
        source = RemoteConfigSource('https://config.teed.club/scoring', http)
        with pytest.raises(requests.HTTPError):
            source.load()

    def test_no_url_offers_nothing(self):
        http = MagicMock()
        assert RemoteConfigSource(None, http).load() is None
        http.get.assert_not_called()

    def test_open_breaker_short_circuits(self, fake_redis, fake_clock):
        http = MagicMock()
        http.get.side_effect = requests.ConnectionError('refused')
        breaker = CircuitBreaker('scoring_config', fake_redis, failure_threshold=2,
                                 reset_timeout=60, clock=fake_clock)
        source = RemoteConfigSource('https://config.teed.club/scoring', http, breaker=breaker)
        for _ in range(2):
            with pytest.raises(requests.ConnectionError):
                source.load()
        with pytest.raises(CircuitOpenError):
            source.load()
        assert http.get.call_count == 2

    def test_loader_survives_open_breaker(self, fake_redis, fake_clock):
        http = MagicMock()
        http.get.side_effect = requests.Timeout('slow')
        breaker = CircuitBreaker('scoring_config', fake_redis, failure_threshold=1,
                                 reset_timeout=60, clock=fake_clock)
        loader = ScoringConfigLoader(
            [RemoteConfigSource('https://config.teed.club/scoring', http, breaker=breaker)],
            clock=fake_clock,
        )
        assert loader.get().version == '1.0.0'
        loader.invalidate()
        assert loader.get().version == '1.0.0'
        assert http.get.call_count == 1


class TestDatabaseConfigSource:
    """Document stored on the feature_flags row."""

    def test_no_row(self):
        assert DatabaseConfigSource().load() is None

    def test_row_without_document(self, db_session):
        db_session.add(FeatureFlags(id=FEATURE_FLAGS_ID, beta_cap=100))
        db_session.commit()
        assert DatabaseConfigSource().load() is None

    def test_threshold_column_overrides_document(self, db_session):
        db_session.add(FeatureFlags(
            id=FEATURE_FLAGS_ID,
            scoring_config={'version': '1.2.0', 'auto_approval': {'threshold': 4}},
            auto_approve_threshold=7,
        ))
        db_session.commit()
        doc = DatabaseConfigSource().load()
        assert doc['version'] == '1.2.0'
        assert doc['auto_approval']['threshold'] == 7

    def test_save_creates_row(self, db_session):
        DatabaseConfigSource().save({'version': '1.0.1', 'auto_approval': {'threshold': 5}})
        flags = db_session.get(FeatureFlags, FEATURE_FLAGS_ID)
        assert flags.scoring_config['version'] == '1.0.1'
        assert flags.auto_approve_threshold == 5


class TestEnvironmentConfigSource:

    def test_reads_json(self):
        source = EnvironmentConfigSource(environ={'SCORING_CONFIG': json.dumps({'version': '9.0.0'})})
        assert source.load() == {'version': '9.0.0'}

    def test_unset(self):
        assert EnvironmentConfigSource(environ={}).load() is None

    def test_bad_json_is_skipped_by_loader(self):
        loader = ScoringConfigLoader([EnvironmentConfigSource(environ={'SCORING_CONFIG': '{oops'})])
        assert loader.get().version == '1.0.0'
        assert loader.get_source() == ConfigSource.DEFAULT


# ---------------------------------------------------------------------------
# Admin writes
# ---------------------------------------------------------------------------

class TestUpdateConfig:
    """update_config() / reset_to_default() persist to the database source."""

    def test_update_bumps_version_and_persists(self, db_session, config_loader):
        config = config_loader.update_config({'auto_approval': {'threshold': 6}},
                                             updated_by='admin@teed.club', description='Tighter')
        assert config.version == '1.0.1'
        assert config.threshold == 6
        assert config.metadata['updated_by'] == 'admin@teed.club'
        assert config.metadata['description'] == 'Tighter'

        reloaded = config_loader.get()
        assert reloaded.version == '1.0.1'
        assert reloaded.threshold == 6
        assert config_loader.get_source() == ConfigSource.DATABASE

    def test_update_merges_nested_tables(self, config_loader):
        config = config_loader.update_config({'weights': {'role': {'golfer': 1}}})
        assert config.table('role') == {
            'fitter_builder': 3, 'creator': 2, 'league_captain': 1, 'golfer': 1, 'retailer_other': 0,
        }

    def test_invalid_update_rejected(self, db_session, config_loader):
        with pytest.raises(InvalidConfigError):
            config_loader.update_config({'auto_approval': {'threshold': -1}})
        assert db_session.get(FeatureFlags, FEATURE_FLAGS_ID) is None

    def test_reset_to_default(self, config_loader):
        config_loader.update_config({'weights': {'total_cap': 8}})
        config = config_loader.reset_to_default(updated_by='admin@teed.club')
        assert config.version == '1.0.2'
        assert config.total_cap == 10
        assert config_loader.get().total_cap == 10

    def test_no_writable_source(self):
        loader = ScoringConfigLoader([EnvironmentConfigSource(environ={})])
        with pytest.raises(InvalidConfigError):
            loader.update_config({'auto_approval': {'threshold': 5}})


class TestBuildConfigLoader:
    """Standard wiring from teedclub.config."""

    def test_without_remote_url(self, fake_redis):
        with patch('teedclub.config.SCORING_CONFIG_URL', None):
            loader = build_config_loader(redis_client=fake_redis)
        assert [type(s) for s in loader.sources] == [DatabaseConfigSource, EnvironmentConfigSource]
        assert loader.ttl_seconds == 300

    def test_with_remote_url(self, fake_redis):
        http = MagicMock()
        with patch('teedclub.config.SCORING_CONFIG_URL', 'https://config.teed.club/scoring'):
            loader = build_config_loader(redis_client=fake_redis, http_session=http)
        remote = loader.sources[0]
        assert isinstance(remote, RemoteConfigSource)
        assert remote.http is http
        assert remote.breaker.name == 'scoring_config'
