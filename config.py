"""
KonserTakip backend configuration.

Values come from the environment with production-safe defaults and are loaded
into Flask with ``app.config.from_object``.
"""

import logging
import os
from typing import Dict, Type


class ConfigurationError(Exception):
    """Raised when the environment holds an unusable setting."""


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


# ====================
# Config classes
# ====================
class BaseConfig:
    APP_NAME = 'KonserTakip'
    APP_VERSION = '1.0.0'
    TESTING = False
    DEBUG = False

    HOST = '0.0.0.0'
    PORT = 3000

    LOG_LEVEL = logging.INFO
    LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

    # Only proto/host/prefix are trusted from proxies; REMOTE_ADDR stays raw
    PROXY_LAYERS = 1

    # flask-limiter reads the RATELIMIT_* keys directly; the application
    # limit is one shared window per client across every path
    RATELIMIT_ENABLED = True
    RATELIMIT_APPLICATION = '100 per 15 minutes'
    RATELIMIT_STRATEGY = 'fixed-window'
    RATELIMIT_STORAGE_URI = 'memory://'
    RATELIMIT_HEADERS_ENABLED = True

    SECURITY_HEADERS = {
        'Content-Security-Policy': (
            "default-src 'self';base-uri 'self';font-src 'self' https: data:;"
            "form-action 'self';frame-ancestors 'self';img-src 'self' data:;"
            "object-src 'none';script-src 'self';script-src-attr 'none';"
            "style-src 'self' https: 'unsafe-inline';upgrade-insecure-requests"
        ),
        'Cross-Origin-Opener-Policy': 'same-origin',
        'Cross-Origin-Resource-Policy': 'same-origin',
        'Origin-Agent-Cluster': '?1',
        'Referrer-Policy': 'no-referrer',
        'Strict-Transport-Security': 'max-age=31536000; includeSubDomains',
        'X-Content-Type-Options': 'nosniff',
        'X-DNS-Prefetch-Control': 'off',
        'X-Download-Options': 'noopen',
        'X-Frame-Options': 'SAMEORIGIN',
        'X-Permitted-Cross-Domain-Policies': 'none',
        'X-XSS-Protection': '0',
    }


class ProductionConfig(BaseConfig):
    pass


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = logging.DEBUG


class TestingConfig(BaseConfig):
    TESTING = True
    RATELIMIT_ENABLED = False


CONFIGS: Dict[str, Type[BaseConfig]] = {
    'production': ProductionConfig,
    'development': DevelopmentConfig,
    'testing': TestingConfig,
}


def get_config(name: str = None) -> Type[BaseConfig]:
    """
    Return the config class for ``name`` (or ``APP_ENV``) with environment
    overrides applied.
    """
    name = (name or os.getenv('APP_ENV') or 'production').lower()
    try:
        base = CONFIGS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown configuration {name!r}, expected one of {sorted(CONFIGS)}"
        ) from None

    level_name = os.getenv('LOG_LEVEL')
    log_level = getattr(logging, level_name.upper(), base.LOG_LEVEL) if level_name else base.LOG_LEVEL

    overrides = {
        'HOST': os.getenv('HOST', base.HOST),
        'PORT': _env_int('PORT', base.PORT),
        'LOG_LEVEL': log_level,
        'PROXY_LAYERS': _env_int('PROXY_LAYERS', base.PROXY_LAYERS),
        'RATELIMIT_ENABLED': _env_bool('RATELIMIT_ENABLED', base.RATELIMIT_ENABLED),
        'RATELIMIT_APPLICATION': os.getenv('RATELIMIT_APPLICATION', base.RATELIMIT_APPLICATION),
        'RATELIMIT_STORAGE_URI': os.getenv('RATELIMIT_STORAGE_URI', base.RATELIMIT_STORAGE_URI),
    }
    return type(base.__name__, (base,), overrides)
