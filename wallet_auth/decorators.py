import logging
from functools import wraps

from flask import g, jsonify, request

from .tokens import TokenConfigurationError, bearer_token, decode_access_token

logger = logging.getLogger(__name__)


def wallet_auth_required(f):
    """Decorator for endpoints requiring a valid wallet bearer token"""
    @wraps(f)
    def wrapper(*args, **kwargs):
        token = bearer_token(request.headers.get('Authorization'))
        if not token:
            return jsonify({'error': 'Missing or invalid authorization header'}), 401

        try:
            claims = decode_access_token(token)
        except TokenConfigurationError:
            logger.error("❌ JWT_SECRET not configured - rejecting authenticated request")
            return jsonify({'error': 'Server configuration error'}), 500
        except Exception as e:
            return jsonify({'error': 'Invalid token', 'details': str(e)}), 401

        try:
            from user_profiles.user_service import user_service
            user = user_service.get_or_create_user(claims['address'])
        except Exception as e:
            logger.error(f"❌ Could not load user for token: {e}")
            return jsonify({'error': 'Invalid token', 'details': str(e)}), 401

        g.user = {'address': user['address'], 'userId': user['id']}
        return f(*args, **kwargs)
    return wrapper


def optional_wallet_auth(f):
    """Sets g.user when a valid token names a known user, never rejects"""
    @wraps(f)
    def wrapper(*args, **kwargs):
        g.user = None
        token = bearer_token(request.headers.get('Authorization'))
        if token:
            try:
                claims = decode_access_token(token)
                from user_profiles.user_service import user_service
                user = user_service.get_user_by_address(claims['address'])
                if user:
                    g.user = {'address': user['address'], 'userId': user['id']}
            except Exception as e:
                logger.debug(f"Ignoring unusable token: {e}")
        return f(*args, **kwargs)
    return wrapper
