import logging
from supabase_client import (
    first_row,
    normalize_address,
    require_supabase_client,
    rows,
    run_query,
)
import config
from .user_service import user_service as default_user_service

logger = logging.getLogger(__name__)


def calculate_level(total_xp: int) -> int:
    return total_xp // config.QUEST_CONFIG['XP_PER_LEVEL'] + 1


class XPService:
    """XP totals, levels and leaderboard ranks"""

    def __init__(self, supabase=None, user_service=None):
        self._supabase = supabase
        self.user_service = user_service or default_user_service

    @property
    def supabase(self):
        return self._supabase or require_supabase_client()

    def _fetch_xp_row(self, user_id: str):
        result = run_query(
            lambda: self.supabase.table('user_xp')
                .select('*')
                .eq('user_id', user_id)
                .maybe_single()
                .execute(),
            "fetch user XP"
        )
        return first_row(result)

    def get_user_xp(self, address: str):
        """XP record for the user, created at zero if missing. None for unknown users"""
        user = self.user_service.get_user_by_address(address)
        if not user:
            return None

        row = self._fetch_xp_row(user['id'])
        if not row:
            result = run_query(
                lambda: self.supabase.table('user_xp').insert({
                    'user_id': user['id'],
                    'total_xp': 0,
                    'quests_completed': 0,
                    'level': 1,
                }).execute(),
                "create user XP"
            )
            row = first_row(result)

        return self._map_xp_from_db(row)

    def add_xp(self, user_id: str, xp_amount: int) -> dict:
        current = self._fetch_xp_row(user_id)

        new_total_xp = (current or {}).get('total_xp', 0) + xp_amount
        new_level = calculate_level(new_total_xp)
        new_quests_completed = (current or {}).get('quests_completed', 0) + 1

        if not current:
            result = run_query(
                lambda: self.supabase.table('user_xp').insert({
                    'user_id': user_id,
                    'total_xp': new_total_xp,
                    'quests_completed': 1,
                    'level': new_level,
                }).execute(),
                "create user XP"
            )
        else:
            result = run_query(
                lambda: self.supabase.table('user_xp').update({
                    'total_xp': new_total_xp,
                    'quests_completed': new_quests_completed,
                    'level': new_level,
                }).eq('user_id', user_id).execute(),
                "update user XP"
            )

        user = self.user_service.get_user_by_id(user_id)
        if user:
            self.update_leaderboard(user_id, user['address'], new_total_xp, new_level, new_quests_completed)

        logger.info(f"⭐ +{xp_amount} XP for user {user_id} (total {new_total_xp}, level {new_level})")
        return self._map_xp_from_db(first_row(result))

    def update_leaderboard(self, user_id: str, address: str, total_xp: int, level: int, quests_completed: int):
        existing = first_row(run_query(
            lambda: self.supabase.table('leaderboard')
                .select('user_id')
                .eq('user_id', user_id)
                .maybe_single()
                .execute(),
            "fetch leaderboard entry"
        ))

        if not existing:
            run_query(
                lambda: self.supabase.table('leaderboard').insert({
                    'user_id': user_id,
                    'address': normalize_address(address),
                    'total_xp': total_xp,
                    'level': level,
                    'quests_completed': quests_completed,
                    'rank': 0,
                }).execute(),
                "create leaderboard entry"
            )
        else:
            run_query(
                lambda: self.supabase.table('leaderboard').update({
                    'total_xp': total_xp,
                    'level': level,
                    'quests_completed': quests_completed,
                }).eq('user_id', user_id).execute(),
                "update leaderboard entry"
            )

        self.recalculate_ranks()

    def recalculate_ranks(self):
        """Rank 1 is the highest total_xp"""
        try:
            result = run_query(
                lambda: self.supabase.table('leaderboard')
                    .select('user_id')
                    .order('total_xp', desc=True)
                    .execute(),
                "fetch leaderboard for ranking"
            )
        except Exception as e:
            logger.error(f"❌ Rank recalculation skipped: {e}")
            return

        for position, entry in enumerate(rows(result), start=1):
            self.supabase.table('leaderboard') \
                .update({'rank': position}) \
                .eq('user_id', entry['user_id']) \
                .execute()

    def get_leaderboard(self, limit: int = 100, offset: int = 0) -> list:
        result = run_query(
            lambda: self.supabase.table('leaderboard')
                .select('*')
                .order('rank')
                .range(offset, offset + limit - 1)
                .execute(),
            "fetch leaderboard"
        )
        entries = rows(result)
        users = self.user_service.get_users_by_ids([entry['user_id'] for entry in entries])

        return [
            {
                'rank': entry.get('rank'),
                'address': entry.get('address'),
                'username': users.get(entry['user_id'], {}).get('username'),
                'totalXP': entry.get('total_xp', 0),
                'level': entry.get('level', 1),
                'questsCompleted': entry.get('quests_completed') or 0,
            }
            for entry in entries
        ]

    def get_user_rank(self, address: str):
        user = self.user_service.get_user_by_address(address)
        if not user:
            return None

        try:
            row = first_row(run_query(
                lambda: self.supabase.table('leaderboard')
                    .select('rank')
                    .eq('user_id', user['id'])
                    .maybe_single()
                    .execute(),
                "fetch user rank"
            ))
        except Exception as e:
            logger.error(f"❌ Error fetching rank for {address[:8]}...: {e}")
            return None

        return (row or {}).get('rank') or None

    def update_user_stats(self, user_id: str, claims_staked: int = None, trade_volume: float = None):
        update_data = {}
        if claims_staked is not None:
            update_data['claims_staked'] = claims_staked
        if trade_volume is not None:
            update_data['trade_volume'] = trade_volume

        if update_data:
            run_query(
                lambda: self.supabase.table('user_xp')
                    .update(update_data)
                    .eq('user_id', user_id)
                    .execute(),
                "update user stats"
            )

    def _map_xp_from_db(self, row: dict) -> dict:
        return {
            'id': row.get('id'),
            'userId': row.get('user_id'),
            'totalXP': row.get('total_xp', 0),
            'questsCompleted': row.get('quests_completed', 0),
            'claimsStaked': row.get('claims_staked') or 0,
            'tradeVolume': float(row.get('trade_volume') or 0),
            'level': row.get('level', 1),
            'updatedAt': row.get('updated_at'),
        }


# Global instance
xp_service = XPService()
