from flask import Flask
from .analytics_service import builder_analytics_service, BuilderAnalyticsService
from .quest_sources import InProcessQuestSource, RemoteQuestSource, LocalQuestCache
from .routes import builder_analytics_bp
import logging

logger = logging.getLogger(__name__)


def init_builder_analytics(app: Flask):
    """Initialize builder analytics routes"""
    try:
        app.register_blueprint(builder_analytics_bp, url_prefix='/api/builder-analytics')

        logger.info("✅ Builder Analytics module initialized")
        return True
    except Exception as e:
        logger.error(f"❌ Builder Analytics initialization failed: {e}")
        return False


__all__ = [
    'init_builder_analytics',
    'builder_analytics_service',
    'BuilderAnalyticsService',
    'InProcessQuestSource',
    'RemoteQuestSource',
    'LocalQuestCache',
]
