from flask import Flask
from .routes import wallet_auth_bp
from .decorators import wallet_auth_required, optional_wallet_auth
import logging

logger = logging.getLogger(__name__)


def init_wallet_auth(app: Flask):
    """Initialize wallet authentication routes"""
    try:
        app.register_blueprint(wallet_auth_bp, url_prefix='/api/auth')

        logger.info("✅ Wallet Auth module initialized")
        return True
    except Exception as e:
        logger.error(f"❌ Wallet Auth initialization failed: {e}")
        return False


__all__ = [
    'init_wallet_auth',
    'wallet_auth_required',
    'optional_wallet_auth',
]
