"""
Centralized configuration from environment variables.
"""
import os


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Redis ─────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── Scoring config sources ───────────────────────────────────────────────────
SCORING_CONFIG_URL = os.getenv('SCORING_CONFIG_URL')
SCORING_CONFIG_TIMEOUT = float(os.getenv('SCORING_CONFIG_TIMEOUT', '5'))
SCORING_CONFIG_TTL = int(os.getenv('SCORING_CONFIG_TTL', '300'))
SCORING_CONFIG_ENV_VAR = 'SCORING_CONFIG'

# ── Beta capacity ────────────────────────────────────────────────────────────
DEFAULT_BETA_CAP = int(os.getenv('DEFAULT_BETA_CAP', '150'))
DEFAULT_INVITE_QUOTA = 3

# ── Auth ─────────────────────────────────────────────────────────────────────
ADMIN_TOKEN = os.getenv('ADMIN_TOKEN')
SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-change-me')
