from flask import Blueprint, request, jsonify, g
import logging

import config
from supabase_client import SupabaseQueryError, is_unique_violation, normalize_address
from validation import Validator, ValidationError
from wallet_auth.decorators import wallet_auth_required, optional_wallet_auth
from blockchain import blockchain_service
from .user_service import user_service
from .xp_service import xp_service

logger = logging.getLogger(__name__)

users_bp = Blueprint('users', __name__)
leaderboard_bp = Blueprint('leaderboard', __name__)


def _int_arg(name, default):
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default


def _is_own_address(address):
    return g.user and g.user['address'] == normalize_address(address)


@users_bp.route('/<address>', methods=['GET'])
def get_user(address):
    try:
        user = user_service.get_user_by_address(address)
        if not user:
            return jsonify({'error': 'User not found'}), 404
        return jsonify(user)
    except Exception as e:
        logger.error(f"❌ Error fetching user {address[:8]}...: {e}")
        return jsonify({'error': str(e)}), 500


@users_bp.route('/<address>', methods=['PUT'])
@wallet_auth_required
def update_user(address):
    if not _is_own_address(address):
        return jsonify({'error': 'You can only update your own profile'}), 403

    try:
        v = Validator(request.get_json(silent=True))
        v.string('username', required=False, strip=True, max_length=config.USER_CONFIG['MAX_USERNAME_LENGTH'])
        v.string('profilePic', required=False, nullable=True, min_length=0)
        for field in ('twitterHandle', 'discordId', 'githubHandle'):
            v.string(field, required=False, nullable=True, min_length=0,
                     max_length=config.USER_CONFIG['MAX_HANDLE_LENGTH'])
        v.string('email', required=False, nullable=True, min_length=0,
                 max_length=config.USER_CONFIG['MAX_EMAIL_LENGTH'])
        data = v.validate()

        if 'username' in data and user_service.is_username_taken(data['username'], address):
            return jsonify({'error': 'Username is already taken'}), 409

        user = user_service.update_user(address, data)
        return jsonify(user)
    except ValidationError as e:
        return jsonify(e.to_response()), 400
    except SupabaseQueryError as e:
        if is_unique_violation(e):
            return jsonify({'error': 'Username is already taken'}), 409
        logger.error(f"❌ Error updating user {address[:8]}...: {e}")
        return jsonify({'error': str(e)}), 500
    except Exception as e:
        logger.error(f"❌ Error updating user {address[:8]}...: {e}")
        return jsonify({'error': str(e)}), 500


@users_bp.route('/<address>/xp', methods=['GET'])
@optional_wallet_auth
def get_user_xp(address):
    try:
        xp = xp_service.get_user_xp(address)
        if not xp:
            return jsonify({
                'totalXP': 0,
                'level': 1,
                'questsCompleted': 0,
                'claimsStaked': 0,
                'tradeVolume': '0',
            })

        return jsonify({
            'totalXP': xp['totalXP'],
            'level': xp['level'],
            'questsCompleted': xp['questsCompleted'],
            'claimsStaked': xp['claimsStaked'],
            'tradeVolume': str(xp['tradeVolume']),
        })
    except Exception as e:
        logger.error(f"❌ Error fetching XP for {address[:8]}...: {e}")
        return jsonify({'error': str(e)}), 500


@users_bp.route('/<address>/completions', methods=['GET'])
@optional_wallet_auth
def get_user_completions(address):
    from quest_board.completion_service import completion_service

    try:
        user = user_service.get_user_by_address(address)
        if not user:
            return jsonify({'completions': []})

        completions = completion_service.get_user_completions(user['id'], _int_arg('limit', 50))
        return jsonify({'completions': completions})
    except Exception as e:
        logger.error(f"❌ Error fetching completions for {address[:8]}...: {e}")
        return jsonify({'error': str(e)}), 500


@users_bp.route('/<address>/completions/count', methods=['GET'])
@optional_wallet_auth
def count_user_completions(address):
    from quest_board.completion_service import completion_service

    try:
        user = user_service.get_user_by_address(address)
        if not user:
            return jsonify({'count': 0})

        return jsonify({'count': completion_service.count_user_completions(user['id'])})
    except Exception as e:
        logger.error(f"❌ Error counting completions for {address[:8]}...: {e}")
        return jsonify({'error': str(e)}), 500


@users_bp.route('/<address>/trust-balance', methods=['GET'])
def get_trust_balance(address):
    try:
        balance = blockchain_service.get_trust_balance(address)
        return jsonify({'balance': str(balance)})
    except Exception as e:
        logger.error(f"❌ Error fetching TRUST balance for {address[:8]}...: {e}")
        return jsonify({'error': str(e)}), 500


@users_bp.route('/<address>/rank', methods=['GET'])
def get_user_rank(address):
    try:
        return jsonify({'rank': xp_service.get_user_rank(address)})
    except Exception as e:
        return jsonify({'error': str(e)}), 500


@users_bp.route('/<address>/username', methods=['PUT'])
@wallet_auth_required
def update_username(address):
    if not _is_own_address(address):
        return jsonify({'error': 'You can only update your own username'}), 403

    data = request.get_json(silent=True) or {}
    username = data.get('username')

    if not isinstance(username, str) or not username.strip():
        return jsonify({'error': 'Username is required'}), 400

    trimmed = username.strip()
    try:
        if user_service.is_username_taken(trimmed, address):
            logger.info(f"⚠️ Username '{trimmed}' already taken")
            return jsonify({'error': 'Username is already taken'}), 409

        user = user_service.update_username(address, trimmed)
        logger.info(f"✅ Username updated for {address[:8]}...: {user['username']}")
        return jsonify({'username': user['username']})

    except SupabaseQueryError as e:
        # Lost a race against another request claiming the same name
        if is_unique_violation(e):
            return jsonify({'error': 'Username is already taken'}), 409
        logger.error(f"❌ Error updating username: {e}")
        return jsonify({'error': str(e) or 'Failed to update username'}), 500
    except Exception as e:
        logger.error(f"❌ Error updating username: {e}")
        return jsonify({'error': str(e) or 'Failed to update username'}), 500


@leaderboard_bp.route('', methods=['GET'])
def get_leaderboard():
    try:
        leaderboard = xp_service.get_leaderboard(_int_arg('limit', 100), _int_arg('offset', 0))
        return jsonify({'leaderboard': leaderboard})
    except Exception as e:
        logger.error(f"❌ Error fetching leaderboard: {e}")
        return jsonify({'error': str(e)}), 500
