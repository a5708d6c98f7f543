import logging
from supabase_client import (
    SupabaseQueryError,
    first_row,
    is_unique_violation,
    normalize_address,
    require_supabase_client,
    run_query,
)

logger = logging.getLogger(__name__)

# API field -> users column
PROFILE_FIELDS = {
    'username': 'username',
    'profilePic': 'profile_pic',
    'twitterHandle': 'twitter_handle',
    'discordId': 'discord_id',
    'email': 'email',
    'githubHandle': 'github_handle',
}


class UserService:
    """Users keyed by lowercase wallet address"""

    def __init__(self, supabase=None):
        self._supabase = supabase

    @property
    def supabase(self):
        return self._supabase or require_supabase_client()

    def get_or_create_user(self, address: str) -> dict:
        normalized = normalize_address(address)

        existing = self.get_user_by_address(normalized)
        if existing:
            return existing

        try:
            result = run_query(
                lambda: self.supabase.table('users').insert({'address': normalized}).execute(),
                "create user"
            )
        except SupabaseQueryError as e:
            # Another request created the same address first
            if is_unique_violation(e):
                existing = self.get_user_by_address(normalized)
                if existing:
                    return existing
            raise

        logger.info(f"👤 Created user {normalized[:8]}...")
        return self._map_user_from_db(first_row(result))

    def get_user_by_address(self, address: str):
        result = run_query(
            lambda: self.supabase.table('users')
                .select('*')
                .eq('address', normalize_address(address))
                .maybe_single()
                .execute(),
            "fetch user by address"
        )
        row = first_row(result)
        return self._map_user_from_db(row) if row else None

    def get_user_by_id(self, user_id: str):
        if not user_id:
            return None
        result = run_query(
            lambda: self.supabase.table('users')
                .select('*')
                .eq('id', user_id)
                .maybe_single()
                .execute(),
            "fetch user by id"
        )
        row = first_row(result)
        return self._map_user_from_db(row) if row else None

    def get_users_by_ids(self, user_ids: list) -> dict:
        """{user_id: user} for the given ids, unknown ids are absent"""
        ids = [uid for uid in set(user_ids) if uid]
        if not ids:
            return {}
        result = run_query(
            lambda: self.supabase.table('users')
                .select('id, address, username')
                .in_('id', ids)
                .execute(),
            "fetch users by ids"
        )
        return {row['id']: row for row in (result.data or [])}

    def is_username_taken(self, username: str, exclude_address: str = None) -> bool:
        """True only if a user other than exclude_address holds the username"""
        def query():
            q = self.supabase.table('users').select('id').eq('username', username)
            if exclude_address:
                q = q.neq('address', normalize_address(exclude_address))
            return q.limit(1).execute()

        result = run_query(query, "check username")
        return bool(result.data)

    def update_username(self, address: str, username: str) -> dict:
        result = run_query(
            lambda: self.supabase.table('users')
                .update({'username': username.strip()})
                .eq('address', normalize_address(address))
                .execute(),
            "update username"
        )
        row = first_row(result)
        if not row:
            raise SupabaseQueryError('User not found')
        return self._map_user_from_db(row)

    def update_user(self, address: str, updates: dict) -> dict:
        update_data = {
            column: updates[field]
            for field, column in PROFILE_FIELDS.items()
            if field in updates
        }
        if not update_data:
            user = self.get_user_by_address(address)
            if not user:
                raise SupabaseQueryError('User not found')
            return user

        result = run_query(
            lambda: self.supabase.table('users')
                .update(update_data)
                .eq('address', normalize_address(address))
                .execute(),
            "update user"
        )
        row = first_row(result)
        if not row:
            raise SupabaseQueryError('User not found')
        return self._map_user_from_db(row)

    def _map_user_from_db(self, row: dict) -> dict:
        return {
            'id': row['id'],
            'address': row['address'],
            'username': row.get('username'),
            'profilePic': row.get('profile_pic'),
            'twitterHandle': row.get('twitter_handle'),
            'discordId': row.get('discord_id'),
            'email': row.get('email'),
            'githubHandle': row.get('github_handle'),
            'createdAt': row.get('created_at'),
            'updatedAt': row.get('updated_at'),
        }


# Global instance
user_service = UserService()
