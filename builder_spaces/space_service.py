"""
Builder spaces

A space is the project container a builder publishes quests under. Each
space gets a URL slug derived from its name; collisions are resolved by
appending -1, -2, ... until the slug is free.
"""
import logging
import re

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


def generate_slug(name: str) -> str:
    slug = name.lower().strip()
    slug = re.sub(r'[^\w\s-]', '', slug)
    slug = re.sub(r'\s+', '-', slug)
    slug = re.sub(r'-+', '-', slug)
    return slug.strip('-')


class SpaceService:
    def __init__(self, supabase=None):
        self._supabase = supabase

    @property
    def supabase(self):
        return self._supabase or require_supabase_client()

    def get_all_spaces(self) -> list:
        result = run_query(
            lambda: self.supabase.table('spaces')
                .select('*')
                .order('created_at', desc=True)
                .execute(),
            "fetch spaces"
        )
        return [self._map_space_from_db(row) for row in rows(result)]

    def get_space_by_id(self, space_id: str):
        return self._get_single('id', space_id, "fetch space")

    def get_space_by_slug(self, slug: str):
        return self._get_single('slug', slug.lower(), "fetch space by slug")

    def _get_single(self, column, value, operation_name):
        try:
            result = run_query(
                lambda: self.supabase.table('spaces')
                    .select('*')
                    .eq(column, value)
                    .single()
                    .execute(),
                operation_name
            )
        except SupabaseQueryError as e:
            if is_not_found(e):
                return None
            raise

        row = first_row(result)
        return self._map_space_from_db(row) if row else None

    def search_spaces(self, query: str) -> list:
        """Spaces whose name or slug contains the query, case-insensitive"""
        needle = (query or '').lower().strip()
        if not needle:
            return []

        result = run_query(
            lambda: self.supabase.table('spaces')
                .select('*')
                .or_(f"name.ilike.%{needle}%,slug.ilike.%{needle}%")
                .order('created_at', desc=True)
                .execute(),
            "search spaces"
        )
        return [self._map_space_from_db(row) for row in rows(result)]

    def get_spaces_by_owner(self, owner_address: str) -> list:
        result = run_query(
            lambda: self.supabase.table('spaces')
                .select('*')
                .eq('owner_address', normalize_address(owner_address))
                .order('created_at', desc=True)
                .execute(),
            "fetch spaces by owner"
        )
        return [self._map_space_from_db(row) for row in rows(result)]

    def create_space(self, data: dict) -> dict:
        slug = self.ensure_unique_slug(generate_slug(data['name']))

        insert_data = {
            'name': data['name'].strip(),
            'slug': slug,
            'description': data['description'].strip(),
            'twitter_url': data['twitterUrl'].strip(),
            'owner_address': normalize_address(data['ownerAddress']),
            'user_type': data.get('userType', 'project').upper(),
            'atom_id': data.get('atomId'),
            'atom_transaction_hash': data.get('atomTransactionHash'),
        }

        logo = data.get('logo')
        if logo:
            if len(logo) < config.SPACE_CONFIG['MAX_LOGO_LENGTH']:
                insert_data['logo'] = logo
            else:
                logger.warning(f"⚠️ Logo too large ({len(logo)} chars), creating space without it")

        result = run_query(
            lambda: self.supabase.table('spaces').insert(insert_data).execute(),
            "create space"
        )
        space = self._map_space_from_db(first_row(result))
        logger.info(f"✅ Space created: {space['slug']} by {insert_data['owner_address'][:8]}...")
        return space

    def update_space(self, space_id: str, updates: dict) -> dict:
        update_data = {}

        if updates.get('name') is not None:
            update_data['name'] = updates['name'].strip()
            update_data['slug'] = self.ensure_unique_slug(generate_slug(updates['name']), space_id)

        if updates.get('description') is not None:
            update_data['description'] = updates['description'].strip()

        if 'logo' in updates:
            update_data['logo'] = updates['logo']

        if updates.get('twitterUrl') is not None:
            update_data['twitter_url'] = updates['twitterUrl'].strip()

        if not update_data:
            space = self.get_space_by_id(space_id)
            if not space:
                raise SupabaseQueryError('Space not found')
            return space

        result = run_query(
            lambda: self.supabase.table('spaces')
                .update(update_data)
                .eq('id', space_id)
                .execute(),
            "update space"
        )
        row = first_row(result)
        if not row:
            raise SupabaseQueryError('Space not found')
        return self._map_space_from_db(row)

    def delete_space(self, space_id: str) -> bool:
        run_query(
            lambda: self.supabase.table('spaces').delete().eq('id', space_id).execute(),
            "delete space"
        )
        logger.info(f"🗑️ Space deleted: {space_id}")
        return True

    def ensure_unique_slug(self, base_slug: str, exclude_id: str = None) -> str:
        slug = base_slug
        counter = 1

        while True:
            existing = first_row(run_query(
                lambda: self.supabase.table('spaces')
                    .select('id')
                    .eq('slug', slug)
                    .maybe_single()
                    .execute(),
                "check slug"
            ))

            if not existing or (exclude_id and existing['id'] == exclude_id):
                return slug

            slug = f"{base_slug}-{counter}"
            counter += 1

    def _map_space_from_db(self, row: dict) -> dict:
        return {
            'id': row['id'],
            'name': row['name'],
            'slug': row['slug'],
            'description': row.get('description'),
            'logo': row.get('logo') or None,
            'twitterUrl': row.get('twitter_url'),
            'ownerAddress': row.get('owner_address'),
            'userType': (row.get('user_type') or 'PROJECT').lower(),
            'createdAt': to_epoch_ms(row.get('created_at')),
            'atomId': row.get('atom_id') or None,
            'atomTransactionHash': row.get('atom_transaction_hash') or None,
        }


# Global instance
space_service = SpaceService()
