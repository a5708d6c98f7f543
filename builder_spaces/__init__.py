from flask import Flask
from .space_service import space_service, SpaceService, generate_slug
from .routes import spaces_bp
import logging

logger = logging.getLogger(__name__)


def init_builder_spaces(app: Flask):
    """Initialize builder space routes"""
    try:
        app.register_blueprint(spaces_bp, url_prefix='/api/spaces')

        logger.info("✅ Builder Spaces module initialized")
        return True
    except Exception as e:
        logger.error(f"❌ Builder Spaces initialization failed: {e}")
        return False


__all__ = [
    'init_builder_spaces',
    'space_service',
    'SpaceService',
    'generate_slug',
]
