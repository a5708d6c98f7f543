from flask import Blueprint, request, jsonify
import logging

from user_profiles.user_service import user_service
from .tokens import (
    TokenConfigurationError,
    bearer_token,
    create_access_token,
    decode_access_token,
    is_valid_address,
    verify_wallet_signature,
)

logger = logging.getLogger(__name__)

wallet_auth_bp = Blueprint('wallet_auth', __name__)


@wallet_auth_bp.route('/login', methods=['POST'])
def login():
    """Authenticate with a wallet signature and issue a bearer token"""
    try:
        data = request.get_json(silent=True) or {}
        address = data.get('address')
        message = data.get('message')
        signature = data.get('signature')

        details = []
        if not is_valid_address(address):
            details.append({'field': 'address', 'message': 'Invalid wallet address'})
        if not isinstance(message, str):
            details.append({'field': 'message', 'message': 'Message is required'})
        if not isinstance(signature, str):
            details.append({'field': 'signature', 'message': 'Signature is required'})
        if details:
            return jsonify({'error': 'Validation error', 'details': details}), 400

        if not verify_wallet_signature(address, message, signature):
            logger.warning(f"⚠️ Rejected login with bad signature for {address[:8]}...")
            return jsonify({'error': 'Invalid signature'}), 401

        user = user_service.get_or_create_user(address)
        token = create_access_token(user['address'], user['id'])

        logger.info(f"✅ Wallet login: {user['address'][:8]}...")
        return jsonify({'token': token, 'user': {'address': user['address'], 'id': user['id']}})

    except TokenConfigurationError:
        logger.error("❌ JWT_SECRET not configured - cannot issue tokens")
        return jsonify({'error': 'Server configuration error'}), 500
    except Exception as e:
        logger.error(f"❌ Login error: {e}")
        return jsonify({'error': str(e)}), 500


@wallet_auth_bp.route('/verify', methods=['POST'])
def verify():
    """Check a bearer token and return the user it belongs to"""
    token = bearer_token(request.headers.get('Authorization'))
    if not token:
        return jsonify({'error': 'No token provided'}), 401

    try:
        claims = decode_access_token(token)
        user = user_service.get_user_by_id(claims.get('userId'))
        if not user:
            return jsonify({'error': 'User not found'}), 401

        return jsonify({
            'valid': True,
            'user': {
                'id': user['id'],
                'address': user['address'],
                'username': user.get('username'),
            }
        })
    except TokenConfigurationError:
        return jsonify({'error': 'Server configuration error'}), 500
    except Exception as e:
        return jsonify({'error': 'Invalid token', 'details': str(e)}), 401
