"""
KonserTakip API Service
Version: 1.0.0

Endpoints:
    GET /            service info
    GET /api/ip      caller's IP address as seen through proxies
    GET /api/health  liveness and uptime
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from flask import Flask, current_app, g, jsonify, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from config import get_config
from ip_resolver import IP_ERROR, IP_UNAVAILABLE, IPResolution, resolve_client_ip

logger = logging.getLogger(__name__)

UNKNOWN_USER_AGENT = 'Bilinmiyor'
BACKEND_METHOD = 'nodejs-backend'
NOT_FOUND_MESSAGE = 'Endpoint bulunamadı'
INTERNAL_ERROR_MESSAGE = 'Internal Server Error'
RATE_LIMIT_MESSAGE = 'Too many requests, please try again later.'
UNMATCHED_ENDPOINT = 'unmatched'


@dataclass(frozen=True)
class RuntimeInfo:
    """Process-level facts captured once when the app is built."""

    started_at: float = field(default_factory=time.monotonic)

    def uptime(self) -> float:
        return max(0.0, time.monotonic() - self.started_at)


# ====================
# Helpers
# ====================
def utc_timestamp() -> str:
    """ISO-8601 UTC time with milliseconds, e.g. 2026-01-01T00:00:00.000Z"""
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def current_resolution() -> IPResolution:
    """Resolve the client IP once per request."""
    if 'client_ip' not in g:
        g.client_ip = resolve_client_ip(request.headers, request.remote_addr)
    return g.client_ip


def current_client_ip() -> str:
    return current_resolution().ip


def error_body(message: str) -> dict:
    return {'success': False, 'error': message}


# ====================
# App factory
# ====================
def create_app(config_object=None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object or get_config())

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format=app.config['LOG_FORMAT']
    )

    # Keep non-ASCII text readable and key order stable in responses
    app.json.ensure_ascii = False
    app.json.sort_keys = False

    # REMOTE_ADDR must stay the raw socket peer, so X-Forwarded-For is not applied here
    layers = app.config['PROXY_LAYERS']
    app.wsgi_app = ProxyFix(
        app.wsgi_app,
        x_for=0,
        x_proto=layers,
        x_host=layers,
        x_port=layers,
        x_prefix=layers
    )

    app.extensions['runtime'] = RuntimeInfo()

    # Keyed by socket peer, never by forwarding headers; unmatched paths count too
    Limiter(
        get_remote_address,
        app=app,
        request_identifier=lambda: request.endpoint or UNMATCHED_ENDPOINT
    )
    CORS(app, supports_credentials=True)

    register_hooks(app)
    register_routes(app)
    register_error_handlers(app)
    return app


# ====================
# Request pipeline
# ====================
def register_hooks(app: Flask) -> None:

    @app.before_request
    def log_request():
        logger.debug('Incoming request | %s %s | Headers: %s', request.method, request.path, dict(request.headers))

    @app.after_request
    def apply_security_headers(response):
        for name, value in current_app.config['SECURITY_HEADERS'].items():
            response.headers.setdefault(name, value)
        return response

    @app.after_request
    def log_access(response):
        logger.info(
            f"{current_client_ip()} - "
            f"{request.method} {request.path} - "
            f"Status: {response.status_code}"
        )
        return response


# ====================
# API endpoints
# ====================
def register_routes(app: Flask) -> None:

    @app.route('/', methods=['GET'])
    def home():
        return jsonify({
            'message': f"{current_app.config['APP_NAME']} API çalışıyor!",
            'version': current_app.config['APP_VERSION'],
            'endpoints': {
                'getIP': '/api/ip',
                'health': '/api/health'
            }
        })

    @app.route('/api/ip', methods=['GET'])
    def get_ip():
        """Return the caller's IP; resolver sentinels still answer 200."""
        try:
            client_ip = current_client_ip()
            user_agent = request.headers.get('User-Agent') or UNKNOWN_USER_AGENT

            return jsonify({
                'success': True,
                'ip': client_ip,
                'userAgent': user_agent,
                'timestamp': utc_timestamp(),
                'method': BACKEND_METHOD
            })
        except Exception:
            logger.exception('IP endpoint failed')
            return jsonify({
                'success': False,
                'error': IP_UNAVAILABLE,
                'ip': IP_ERROR
            }), 500

    @app.route('/api/health', methods=['GET'])
    def health_check():
        return jsonify({
            'status': 'OK',
            'timestamp': utc_timestamp(),
            'uptime': current_app.extensions['runtime'].uptime()
        })


# ====================
# Error handling
# ====================
def register_error_handlers(app: Flask) -> None:

    # Known paths called with another method are reported as missing too
    @app.errorhandler(404)
    @app.errorhandler(405)
    def not_found(error):
        # CORS preflights are answered on any path; flask-cors adds the headers
        if request.method == 'OPTIONS' and 'Access-Control-Request-Method' in request.headers:
            return '', 204
        return jsonify(error_body(NOT_FOUND_MESSAGE)), 404

    @app.errorhandler(429)
    def rate_limited(error):
        return jsonify(error_body(RATE_LIMIT_MESSAGE)), 429

    @app.errorhandler(Exception)
    def internal_error(error):
        if isinstance(error, HTTPException):
            return jsonify(error_body(error.description)), error.code

        logger.error('Server error: %s %s', request.method, request.path, exc_info=error)
        return jsonify(error_body(INTERNAL_ERROR_MESSAGE)), 500


app = create_app()


def run() -> None:
    """Development server entry point; use a WSGI server such as gunicorn in production."""
    logger.info(f"{app.config['APP_NAME']} Backend running: http://{app.config['HOST']}:{app.config['PORT']}")
    app.run(
        host=app.config['HOST'],
        port=app.config['PORT'],
        debug=app.config['DEBUG']
    )


# ====================
# Entry point
# ====================
if __name__ == '__main__':
    run()
