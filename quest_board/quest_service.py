import logging
import random
import string
import time
from datetime import datetime, timezone

import config
from supabase_client import (
    SupabaseQueryError,
    first_row,
    is_not_found,
    normalize_address,
    require_supabase_client,
    rows,
    run_query,
    to_epoch_ms,
)

logger = logging.getLogger(__name__)

QUEST_STATUSES = ('active', 'paused', 'completed', 'expired')

# API field -> published_quests column, for partial updates
UPDATABLE_FIELDS = {
    'title': 'title',
    'description': 'description',
    'xpReward': 'xp_reward',
    'iqPoints': 'iq_points',
    'trustReward': 'trust_reward',
    'maxCompletions': 'max_completions',
    'status': 'status',
    'requirements': 'requirements',
    'completedBy': 'completed_by',
    'expiresAt': 'expires_at',
    'image': 'image',
}


def generate_quest_id() -> str:
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"quest_{int(time.time() * 1000)}_{suffix}"


def to_number(value):
    if value is None or value == '':
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class QuestService:
    def __init__(self, supabase=None):
        self._supabase = supabase

    @property
    def supabase(self):
        return self._supabase or require_supabase_client()

    def get_all_quests(self, status=None, project_id=None, space_id=None, creator_address=None,
                       limit: int = 100, offset: int = 0) -> list:
        def query():
            q = self.supabase.table('published_quests') \
                .select('*') \
                .order('created_at', desc=True)
            if status:
                q = q.eq('status', status)
            if project_id:
                q = q.eq('project_id', project_id)
            if space_id:
                q = q.eq('space_id', space_id)
            if creator_address:
                q = q.eq('creator_address', normalize_address(creator_address))
            return q.range(offset, offset + limit - 1).execute()

        result = run_query(query, "fetch quests")
        return [self._map_quest_from_db(row) for row in rows(result)]

    def get_quest_by_id(self, quest_id: str):
        try:
            result = run_query(
                lambda: self.supabase.table('published_quests')
                    .select('*')
                    .eq('id', quest_id)
                    .single()
                    .execute(),
                "fetch quest"
            )
        except SupabaseQueryError as e:
            if is_not_found(e):
                return None
            raise

        row = first_row(result)
        return self._map_quest_from_db(row) if row else None

    def create_quest(self, creator_address: str, data: dict) -> dict:
        quest_id = generate_quest_id()
        insert_data = {
            'id': quest_id,
            'title': data['title'],
            'description': data['description'],
            'project_id': data.get('projectId'),
            'project_name': data.get('projectName') or data.get('projectId'),
            'space_id': data.get('spaceId') or None,
            'creator_address': normalize_address(creator_address),
            'xp_reward': data.get('xpReward') or config.QUEST_CONFIG['DEFAULT_XP_REWARD'],
            'iq_points': data.get('iqPoints') or config.QUEST_CONFIG['DEFAULT_IQ_POINTS'],
            'trust_reward': data.get('trustReward'),
            'max_completions': data.get('maxCompletions'),
            'status': 'active',
            'twitter_link': data.get('twitterLink') or None,
            'atom_id': data.get('atomId') or None,
            'atom_transaction_hash': data.get('atomTransactionHash') or None,
            'distribution_type': data.get('distributionType') or None,
            'number_of_winners': data.get('numberOfWinners') or None,
            'reward_deposit': data.get('rewardDeposit') or None,
            'reward_token': data.get('rewardToken') or None,
            'winner_prizes': data.get('winnerPrizes') or [],
            'difficulty': data.get('difficulty') or None,
            'estimated_time': data.get('estimatedTime') or None,
            'expires_at': data.get('expiresAt') or None,
            'requirements': data.get('requirements') or [],
            'completed_by': [],
            'completed_count': 0,
            'image': data.get('image') or None,
        }

        result = run_query(
            lambda: self.supabase.table('published_quests').insert(insert_data).execute(),
            "create quest"
        )
        logger.info(f"✅ Quest published: {quest_id} by {insert_data['creator_address'][:8]}...")
        return self._map_quest_from_db(first_row(result))

    def update_quest(self, quest_id: str, updates: dict) -> dict:
        update_data = {
            column: updates[field]
            for field, column in UPDATABLE_FIELDS.items()
            if updates.get(field) is not None
        }
        if 'completed_by' in update_data:
            update_data['completed_by'] = [normalize_address(a) for a in update_data['completed_by']]

        if not update_data:
            quest = self.get_quest_by_id(quest_id)
            if not quest:
                raise SupabaseQueryError('Quest not found')
            return quest

        result = run_query(
            lambda: self.supabase.table('published_quests')
                .update(update_data)
                .eq('id', quest_id)
                .execute(),
            "update quest"
        )
        row = first_row(result)
        if not row:
            raise SupabaseQueryError('Quest not found')
        return self._map_quest_from_db(row)

    def delete_quest(self, quest_id: str):
        run_query(
            lambda: self.supabase.table('published_quests').delete().eq('id', quest_id).execute(),
            "delete quest"
        )
        logger.info(f"🗑️ Quest deleted: {quest_id}")

    def get_quest_completions(self, quest_id: str) -> list:
        """Addresses that completed the quest; [] when the quest can't be read"""
        try:
            result = run_query(
                lambda: self.supabase.table('published_quests')
                    .select('completed_by')
                    .eq('id', quest_id)
                    .single()
                    .execute(),
                "fetch quest completions"
            )
        except SupabaseQueryError:
            return []

        row = first_row(result) or {}
        return row.get('completed_by') or []

    def add_quest_completion(self, quest_id: str, user_address: str) -> list:
        """Append the address to completed_by once; returns the resulting list"""
        result = run_query(
            lambda: self.supabase.table('published_quests')
                .select('completed_by')
                .eq('id', quest_id)
                .single()
                .execute(),
            "fetch quest"
        )
        completed_by = list((first_row(result) or {}).get('completed_by') or [])
        address = normalize_address(user_address)

        if address not in completed_by:
            completed_by.append(address)
            run_query(
                lambda: self.supabase.table('published_quests')
                    .update({'completed_by': completed_by, 'completed_count': len(completed_by)})
                    .eq('id', quest_id)
                    .execute(),
                "update quest completions"
            )

        return completed_by

    def can_complete_quest(self, quest_id: str, user_id: str) -> dict:
        """{'canComplete': bool, 'reason': str or None}"""
        quest = self.get_quest_by_id(quest_id)
        if not quest:
            return {'canComplete': False, 'reason': 'Quest not found'}

        if (quest.get('status') or 'active').lower() != 'active':
            return {'canComplete': False, 'reason': 'Quest is not active'}

        expires_at = to_epoch_ms(quest.get('expiresAt'))
        if expires_at is not None and expires_at < datetime.now(timezone.utc).timestamp() * 1000:
            return {'canComplete': False, 'reason': 'Quest has expired'}

        existing = run_query(
            lambda: self.supabase.table('quest_completions')
                .select('id')
                .eq('quest_id', quest_id)
                .eq('user_id', user_id)
                .limit(1)
                .execute(),
            "check existing completion"
        )
        if rows(existing):
            return {'canComplete': False, 'reason': 'Quest already completed'}

        max_completions = quest.get('maxCompletions')
        if max_completions and quest.get('completedCount', 0) >= max_completions:
            return {'canComplete': False, 'reason': 'Quest has reached maximum completions'}

        return {'canComplete': True, 'reason': None}

    def _map_quest_from_db(self, row: dict) -> dict:
        return {
            'id': row['id'],
            'title': row.get('title'),
            'description': row.get('description'),
            'projectId': row.get('project_id'),
            'projectName': row.get('project_name'),
            'spaceId': row.get('space_id'),
            'creatorAddress': row.get('creator_address'),
            'xpReward': row.get('xp_reward'),
            'iqPoints': row.get('iq_points'),
            'trustReward': to_number(row.get('trust_reward')),
            'maxCompletions': row.get('max_completions'),
            'status': row.get('status'),
            'twitterLink': row.get('twitter_link'),
            'atomId': row.get('atom_id'),
            'atomTransactionHash': row.get('atom_transaction_hash'),
            'distributionType': row.get('distribution_type'),
            'numberOfWinners': row.get('number_of_winners'),
            'rewardDeposit': row.get('reward_deposit'),
            'rewardToken': row.get('reward_token'),
            'difficulty': row.get('difficulty'),
            'estimatedTime': row.get('estimated_time'),
            'expiresAt': row.get('expires_at'),
            'requirements': row.get('requirements') or [],
            'completedBy': row.get('completed_by') or [],
            'completedCount': row.get('completed_count') or 0,
            'winnerPrizes': row.get('winner_prizes') or [],
            'image': row.get('image'),
            'createdAt': row.get('created_at'),
            'updatedAt': row.get('updated_at'),
        }


# Global instance
quest_service = QuestService()
