import logging

from blockchain import blockchain_service as default_blockchain_service
from supabase_client import (
    SupabaseQueryError,
    first_row,
    require_supabase_client,
    rows,
    run_query,
)
from user_profiles.user_service import user_service as default_user_service
from user_profiles.xp_service import xp_service as default_xp_service
from .quest_service import quest_service as default_quest_service, to_number
from .verification_service import verification_service as default_verification_service

logger = logging.getLogger(__name__)


class QuestCompletionError(Exception):
    """A user-facing reason the quest could not be completed"""
    pass


class CompletionService:
    def __init__(self, supabase=None, quest_service=None, user_service=None, xp_service=None,
                 verification_service=None, blockchain=None):
        self._supabase = supabase
        self.quest_service = quest_service or default_quest_service
        self.user_service = user_service or default_user_service
        self.xp_service = xp_service or default_xp_service
        self.verification_service = verification_service or default_verification_service
        self.blockchain = blockchain or default_blockchain_service

    @property
    def supabase(self):
        return self._supabase or require_supabase_client()

    def complete_quest(self, quest_id: str, user_id: str, verification_data: dict = None) -> dict:
        """
        Verify every requirement of the quest for the user and record the completion

        Raises QuestCompletionError when the user, quest or any requirement
        check rules the completion out.
        """
        verification_data = verification_data or {}

        user = self.user_service.get_user_by_id(user_id)
        if not user:
            raise QuestCompletionError('User not found')

        check = self.quest_service.can_complete_quest(quest_id, user_id)
        if not check['canComplete']:
            raise QuestCompletionError(check['reason'] or 'Cannot complete quest')

        quest = self.quest_service.get_quest_by_id(quest_id)
        if not quest:
            raise QuestCompletionError('Quest not found')

        user_context = {
            'address': user['address'],
            'twitterHandle': user.get('twitterHandle'),
            'discordId': user.get('discordId'),
        }
        failures = []
        for requirement in quest.get('requirements') or []:
            result = self.verification_service.verify_requirement(
                requirement.get('type'),
                self._requirement_data(requirement, verification_data),
                user_context
            )
            if not result['verified']:
                failures.append(result.get('error') or 'Verification failed')

        if failures:
            raise QuestCompletionError(f"Verification failed: {', '.join(failures)}")

        xp_reward = quest.get('xpReward') or 0
        trust_reward = quest.get('trustReward')

        result = run_query(
            lambda: self.supabase.table('quest_completions').insert({
                'quest_id': quest_id,
                'user_id': user_id,
                'xp_earned': xp_reward,
                'trust_earned': trust_reward,
                'verified': True,
                'verification_data': verification_data,
            }).execute(),
            "create completion"
        )
        completion = first_row(result)

        self.xp_service.add_xp(user_id, xp_reward)
        self.quest_service.add_quest_completion(quest_id, user['address'])

        if trust_reward and trust_reward > 0:
            completion = self._distribute_reward(completion, quest_id, user, trust_reward)

        logger.info(f"🏁 Quest {quest_id} completed by {user['address'][:8]}... (+{xp_reward} XP)")
        return self._map_completion_from_db(completion, quest=quest, user=user)

    def _requirement_data(self, requirement: dict, submitted: dict) -> dict:
        """Builder-configured data overlaid on what the user submitted for this requirement"""
        requirement_id = requirement.get('id')
        if requirement_id and isinstance(submitted.get(requirement_id), dict):
            submitted = submitted[requirement_id]
        return {**submitted, **(requirement.get('verificationData') or {})}

    def _distribute_reward(self, completion: dict, quest_id: str, user: dict, amount: float) -> dict:
        """Send the TRUST reward; a failed transfer never fails the completion"""
        try:
            tx_hash = self.blockchain.distribute_trust_token(user['address'], amount)

            self.supabase.table('quest_completions') \
                .update({'claim_id': tx_hash}) \
                .eq('id', completion['id']) \
                .execute()

            self.supabase.table('trust_token_transactions').insert({
                'user_id': user['id'],
                'address': user['address'],
                'amount': str(amount),
                'type': 'QUEST_REWARD',
                'quest_id': quest_id,
                'tx_hash': tx_hash,
                'status': 'PROCESSING',
            }).execute()

            return {**completion, 'claim_id': tx_hash}
        except Exception as e:
            logger.error(f"❌ Error distributing TRUST reward for {quest_id}: {e}")
            return completion

    def get_user_completions(self, user_id: str, limit: int = 50) -> list:
        result = run_query(
            lambda: self.supabase.table('quest_completions')
                .select('*')
                .eq('user_id', user_id)
                .order('completed_at', desc=True)
                .limit(limit)
                .execute(),
            "fetch user completions"
        )
        completions = rows(result)

        quests = {}
        quest_ids = list({c['quest_id'] for c in completions if c.get('quest_id')})
        if quest_ids:
            quest_rows = run_query(
                lambda: self.supabase.table('published_quests')
                    .select('id, title, space_id, xp_reward')
                    .in_('id', quest_ids)
                    .execute(),
                "fetch completed quests"
            )
            for row in rows(quest_rows):
                quests[row['id']] = {
                    'id': row['id'],
                    'title': row.get('title'),
                    'spaceId': row.get('space_id'),
                    'xpReward': row.get('xp_reward'),
                }

        return [
            self._map_completion_from_db(c, quest=quests.get(c.get('quest_id')))
            for c in completions
        ]

    def get_quest_completions(self, quest_id: str, limit: int = 100) -> list:
        """Completions of a quest, newest first, each with user {address, username}"""
        result = run_query(
            lambda: self.supabase.table('quest_completions')
                .select('*')
                .eq('quest_id', quest_id)
                .order('completed_at', desc=True)
                .limit(limit)
                .execute(),
            "fetch quest completions"
        )
        completions = rows(result)
        users = self.user_service.get_users_by_ids([c.get('user_id') for c in completions])

        mapped = []
        for c in completions:
            user = users.get(c.get('user_id'))
            completion = self._map_completion_from_db(c)
            completion['user'] = {'address': user['address'], 'username': user.get('username')} if user else None
            mapped.append(completion)
        return mapped

    def count_user_completions(self, user_id: str) -> int:
        result = run_query(
            lambda: self.supabase.table('quest_completions')
                .select('id', count='exact')
                .eq('user_id', user_id)
                .execute(),
            "count user completions"
        )
        if result.count is not None:
            return result.count
        return len(rows(result))

    def _map_completion_from_db(self, row: dict, quest=None, user=None) -> dict:
        if not row:
            raise SupabaseQueryError('Completion was not returned by the database')
        return {
            'id': row.get('id'),
            'questId': row.get('quest_id') or (quest or {}).get('id'),
            'userId': row.get('user_id'),
            'xpEarned': row.get('xp_earned'),
            'trustEarned': to_number(row.get('trust_earned')),
            'verified': row.get('verified'),
            'verificationData': row.get('verification_data'),
            'completedAt': row.get('completed_at'),
            'claimId': row.get('claim_id') or None,
            'quest': quest,
            'user': user,
        }


# Global instance
completion_service = CompletionService()
