"""
Circuit breaker for outbound calls, with state kept in Redis.

One Redis hash per service (cb:<name>) holds state, consecutive failures,
the last failure time and lifetime success/failure counters. States:
  - CLOSED    → calls pass through
  - OPEN      → calls short-circuit with CircuitOpenError
  - HALF_OPEN → reset_timeout has elapsed; the next call is a probe

If Redis is unreachable the breaker fails open (behaves as CLOSED).
"""
import logging
import time

logger = logging.getLogger('services.circuit_breaker')

CLOSED = 'closed'
OPEN = 'open'
HALF_OPEN = 'half_open'


class CircuitOpenError(Exception):
    """Raised when calling through an open circuit breaker."""
    def __init__(self, name, retry_after=None):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker '{name}' is OPEN — service unavailable")


class CircuitBreaker:
    """
    Usage:
        cb = CircuitBreaker('scoring_config', redis_client, failure_threshold=3, reset_timeout=120)
        doc = cb.call(fetch_document, url)
    """

    PREFIX = 'cb'

    def __init__(self, name, redis_client, failure_threshold=3, reset_timeout=120, clock=time.time):
        self.name = name
        self.redis = redis_client
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock

    @property
    def key(self):
        return f'{self.PREFIX}:{self.name}'

    def _read(self):
        try:
            return self.redis.hgetall(self.key) or {}
        except Exception:
            logger.debug("Redis unavailable reading breaker '%s'", self.name)
            return None

    def _write(self, **fields):
        try:
            self.redis.hset(self.key, mapping={k: str(v) for k, v in fields.items()})
        except Exception:
            logger.debug("Redis unavailable writing breaker '%s'", self.name)

    def _bump(self, counter):
        try:
            return int(self.redis.hincrby(self.key, counter, 1))
        except Exception:
            return 0

    def _seconds_since_failure(self, data):
        last = data.get('last_failure')
        if not last:
            return None
        return self._clock() - float(last)

    @property
    def state(self):
        data = self._read()
        if not data:
            return CLOSED
        current = data.get('state', CLOSED)
        if current == OPEN:
            elapsed = self._seconds_since_failure(data)
            if elapsed is not None and elapsed > self.reset_timeout:
                self._write(state=HALF_OPEN)
                return HALF_OPEN
        return current

    @property
    def failure_count(self):
        data = self._read() or {}
        return int(data.get('failures', 0) or 0)

    def call(self, func, *args, **kwargs):
        """Execute func through the breaker."""
        if self.state == OPEN:
            data = self._read() or {}
            elapsed = self._seconds_since_failure(data)
            retry_after = None if elapsed is None else max(0.0, self.reset_timeout - elapsed)
            raise CircuitOpenError(self.name, retry_after=retry_after)

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            self._on_failure(e)
            raise
        self._on_success()
        return result

    def _on_success(self):
        self._write(state=CLOSED, failures=0, last_success=self._clock())
        self._bump('total_success')

    def _on_failure(self, error):
        failures = self._bump('failures')
        self._bump('total_failure')
        fields = {'last_failure': self._clock(), 'last_error': str(error)[:200]}
        if failures >= self.failure_threshold:
            fields['state'] = OPEN
            logger.warning(
                "Circuit '%s' OPENED after %d failures (threshold=%d): %s",
                self.name, failures, self.failure_threshold, error,
            )
        else:
            logger.info("Circuit '%s' failure %d/%d: %s",
                        self.name, failures, self.failure_threshold, error)
        self._write(**fields)

    def reset(self):
        """Manually close the breaker."""
        try:
            self.redis.hset(self.key, mapping={'state': CLOSED, 'failures': '0'})
            self.redis.hdel(self.key, 'last_failure')
            logger.info("Circuit '%s' manually reset to CLOSED", self.name)
        except Exception as e:
            logger.error("Failed to reset circuit '%s': %s", self.name, e)

    def get_health(self):
        """Health snapshot for /api/health."""
        data = self._read()
        if data is None:
            data, state = {}, 'unknown'
        else:
            state = self.state
        last_success = data.get('last_success')
        last_failure = data.get('last_failure')
        return {
            'name': self.name,
            'state': state,
            'failure_count': int(data.get('failures', 0) or 0),
            'failure_threshold': self.failure_threshold,
            'reset_timeout': self.reset_timeout,
            'total_success': int(data.get('total_success', 0) or 0),
            'total_failure': int(data.get('total_failure', 0) or 0),
            'last_success': float(last_success) if last_success else None,
            'last_failure': float(last_failure) if last_failure else None,
            'last_error': data.get('last_error', ''),
        }


# ── Registry ─────────────────────────────────────────────────────────────────

_registry = {}


def get_breaker(name, redis_client=None, **kwargs):
    """Get or create a named breaker (one per name)."""
    if name not in _registry:
        if redis_client is None:
            from teedclub.extensions import redis_client as rc
            redis_client = rc
        _registry[name] = CircuitBreaker(name, redis_client, **kwargs)
    return _registry[name]


def get_all_breakers():
    return dict(_registry)


def init_breakers(redis_client):
    """Register breakers for every outbound dependency."""
    breakers = {
        'scoring_config': CircuitBreaker('scoring_config', redis_client,
                                         failure_threshold=3, reset_timeout=120),
    }
    _registry.update(breakers)
    return breakers
