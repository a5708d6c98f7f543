from flask import Blueprint, jsonify, g
import logging

from wallet_auth.decorators import wallet_auth_required
from wallet_auth.tokens import is_valid_address
from .analytics_service import builder_analytics_service

logger = logging.getLogger(__name__)

builder_analytics_bp = Blueprint('builder_analytics', __name__)


def _analytics_response(address):
    try:
        analytics = builder_analytics_service.get_builder_analytics(address.lower())
        return jsonify({'address': address.lower(), 'analytics': analytics})
    except Exception as e:
        logger.error(f"❌ Error building analytics for {address[:8]}...: {e}")
        return jsonify({'error': str(e)}), 500


@builder_analytics_bp.route('', methods=['GET'])
@wallet_auth_required
def get_my_analytics():
    """Analytics for the authenticated builder's own quests"""
    return _analytics_response(g.user['address'])


@builder_analytics_bp.route('/<address>', methods=['GET'])
def get_builder_analytics(address):
    if not is_valid_address(address):
        return jsonify({'error': 'Invalid wallet address'}), 400
    return _analytics_response(address)
