from flask import Flask
from .quest_service import quest_service, QuestService
from .quest_draft_service import quest_draft_service, QuestDraftService
from .completion_service import completion_service, CompletionService, QuestCompletionError
from .verification_service import verification_service, VerificationService, RequirementType
from .routes import quests_bp, quest_drafts_bp
import logging

logger = logging.getLogger(__name__)


def init_quest_board(app: Flask):
    """Initialize quest, completion and draft routes"""
    try:
        app.register_blueprint(quests_bp, url_prefix='/api/quests')
        app.register_blueprint(quest_drafts_bp, url_prefix='/api/quest-drafts')

        logger.info("✅ Quest Board module initialized")
        return True
    except Exception as e:
        logger.error(f"❌ Quest Board initialization failed: {e}")
        return False


__all__ = [
    'init_quest_board',
    'quest_service',
    'QuestService',
    'quest_draft_service',
    'QuestDraftService',
    'completion_service',
    'CompletionService',
    'QuestCompletionError',
    'verification_service',
    'VerificationService',
    'RequirementType',
]
