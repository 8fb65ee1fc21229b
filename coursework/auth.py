"""
Bearer-token authentication for Coursework Portal.
Every /api/ route needs the LMS token; it is forwarded to the LMS API and
its claims identify the current user.
"""
import logging
import jwt
from flask import request, jsonify, g

from coursework.config import config

logger = logging.getLogger(__name__)

# Routes that don't require authentication
PUBLIC_EXACT = [
    '/api/health',
]


def decode_token(token, secret=None):
    """
    Decode an LMS JWT and return its claims, or None if unusable.

    With a secret the signature is verified (HS256). Without one the claims
    are read unverified; the LMS API still checks the token on every call.
    """
    secret = config.lms_jwt_secret if secret is None else secret
    try:
        if secret:
            return jwt.decode(token, secret, algorithms=['HS256'])
        return jwt.decode(token, options={'verify_signature': False})
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def user_from_claims(claims):
    """Current-user dict ({id, role}) from token claims."""
    user_id = claims.get('id') or claims.get('_id') or claims.get('sub')
    return {
        'id': str(user_id) if user_id is not None else None,
        'role': claims.get('role'),
    }


def init_auth(app):
    """
    Register the before_request auth hook on the Flask app.
    Call this BEFORE registering blueprints.
    """
    @app.before_request
    def check_auth():
        # Skip non-API routes
        if not request.path.startswith('/api/'):
            return None

        if request.path in PUBLIC_EXACT:
            return None

        auth_header = request.headers.get('Authorization', '')
        if not auth_header.startswith('Bearer '):
            return jsonify({'error': 'Authentication required'}), 401

        token = auth_header[7:]  # Strip 'Bearer '
        claims = decode_token(token)
        if claims is None:
            logger.warning("Rejected token on %s", request.path)
            return jsonify({'error': 'Invalid or expired token'}), 401

        g.token = token
        g.user = user_from_claims(claims)
