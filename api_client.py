import logging

import requests

logger = logging.getLogger(__name__)


class ApiClientError(Exception):
    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class TrustQuestsApiClient:
    """Thin client for a remote TrustQuests REST API"""

    def __init__(self, base_url: str, token: str = None, timeout: int = 15, session=None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        if token:
            self.session.headers['Authorization'] = f'Bearer {token}'

    def _get(self, path: str, params: dict = None) -> dict:
        url = f"{self.base_url}/api{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"❌ Request to {url} failed: {e}")
            raise ApiClientError(str(e)) from e

        if response.status_code != 200:
            try:
                message = response.json().get('error', response.text)
            except ValueError:
                message = response.text
            raise ApiClientError(message, response.status_code)

        return response.json()

    def get_all_quests(self, **filters) -> list:
        params = {k: v for k, v in filters.items() if v is not None}
        return self._get('/quests', params=params).get('quests', [])

    def get_quest_completions(self, quest_id: str, limit: int = 100) -> list:
        return self._get(f'/quests/{quest_id}/completions', params={'limit': limit}).get('completions')
