"""
Where builder analytics reads quests and completions from

- InProcessQuestSource: this service's own quest and completion services
- RemoteQuestSource: another TrustQuests deployment over REST
- LocalQuestCache: a JSON file holding the quest lists the web client kept
  in local storage ("quests" and "published_quests_<address>")
"""
import json
import logging
import os

import config
from api_client import TrustQuestsApiClient
from supabase_client import normalize_address

logger = logging.getLogger(__name__)

QUEST_PAGE_SIZE = 1000


def is_creator(quest: dict, address: str) -> bool:
    creator = quest.get('creatorAddress')
    return isinstance(creator, str) and creator.lower() == normalize_address(address)


class InProcessQuestSource:
    def __init__(self, quest_service=None, completion_service=None):
        self._quest_service = quest_service
        self._completion_service = completion_service

    @property
    def quest_service(self):
        if self._quest_service is None:
            from quest_board.quest_service import quest_service
            self._quest_service = quest_service
        return self._quest_service

    @property
    def completion_service(self):
        if self._completion_service is None:
            from quest_board.completion_service import completion_service
            self._completion_service = completion_service
        return self._completion_service

    def list_quests(self, creator_address: str) -> list:
        quests = []
        offset = 0
        while True:
            page = self.quest_service.get_all_quests(
                creator_address=creator_address,
                limit=QUEST_PAGE_SIZE,
                offset=offset
            )
            quests.extend(page)
            if len(page) < QUEST_PAGE_SIZE:
                return quests
            offset += QUEST_PAGE_SIZE

    def get_quest_completions(self, quest_id: str, limit: int):
        return self.completion_service.get_quest_completions(quest_id, limit)


class RemoteQuestSource:
    def __init__(self, client: TrustQuestsApiClient):
        self.client = client

    def list_quests(self, creator_address: str) -> list:
        return self.client.get_all_quests(creator=normalize_address(creator_address), limit=QUEST_PAGE_SIZE)

    def get_quest_completions(self, quest_id: str, limit: int):
        return self.client.get_quest_completions(quest_id, limit)


class LocalQuestCache:
    def __init__(self, path: str = None):
        self.path = path or config.LOCAL_QUEST_CACHE_PATH

    def _load(self) -> dict:
        if not self.path or not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"⚠️ Error reading local quest cache {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"⚠️ Local quest cache {self.path} is not a JSON object, ignoring")
            return {}
        return data

    def list_quests(self, creator_address: str) -> list:
        """Cached quests by the creator, 'quests' entries first"""
        data = self._load()
        keys = ('quests', f"published_quests_{normalize_address(creator_address)}")

        quests = []
        for key in keys:
            entries = data.get(key)
            if not isinstance(entries, list):
                continue
            quests.extend(q for q in entries if isinstance(q, dict) and is_creator(q, creator_address))
        return quests


def default_quest_source():
    if config.TRUSTQUESTS_API_URL:
        logger.info(f"📡 Builder analytics reading quests from {config.TRUSTQUESTS_API_URL}")
        return RemoteQuestSource(TrustQuestsApiClient(config.TRUSTQUESTS_API_URL))
    return InProcessQuestSource()
