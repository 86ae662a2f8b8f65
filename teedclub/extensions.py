"""
Shared client instances — Redis and the outbound HTTP session.

Both are lazy: importing this module never opens a connection, so it is safe
to import in tests and when env vars are missing.
"""
import logging

import redis
import requests
from requests.adapters import HTTPAdapter

from teedclub.config import REDIS_URL

logger = logging.getLogger('teedclub.extensions')

# ── Redis ─────────────────────────────────────────────────────────────────────
redis_client = redis.from_url(REDIS_URL, decode_responses=True)


# ── HTTP ──────────────────────────────────────────────────────────────────────
def build_http_session(pool_size=4):
    """requests.Session used for the remote scoring-config fetch."""
    session = requests.Session()
    session.headers.update({
        'Accept': 'application/json',
        'User-Agent': 'teedclub-waitlist/1.0',
    })
    adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
    session.mount('http://', adapter)
    session.mount('https://', adapter)
    return session


http_session = build_http_session()
