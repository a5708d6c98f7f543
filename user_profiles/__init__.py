from flask import Flask
from .user_service import user_service, UserService
from .xp_service import xp_service, XPService, calculate_level
from .routes import users_bp, leaderboard_bp
import logging

logger = logging.getLogger(__name__)


def init_user_profiles(app: Flask):
    """Initialize user profile, XP and leaderboard routes"""
    try:
        app.register_blueprint(users_bp, url_prefix='/api/users')
        app.register_blueprint(leaderboard_bp, url_prefix='/api/leaderboard')

        logger.info("✅ User Profiles module initialized")
        return True
    except Exception as e:
        logger.error(f"❌ User Profiles initialization failed: {e}")
        return False


__all__ = [
    'init_user_profiles',
    'user_service',
    'UserService',
    'xp_service',
    'XPService',
    'calculate_level',
]
