import logging

from supabase_client import (
    SupabaseQueryError,
    first_row,
    is_not_found,
    normalize_address,
    require_supabase_client,
    rows,
    run_query,
    to_epoch_ms,
    utc_now_iso,
)

logger = logging.getLogger(__name__)

# Optional draft columns; falsy values are stored as NULL
DRAFT_FIELDS = (
    'space_id',
    'title',
    'difficulty',
    'description',
    'image_preview',
    'end_date',
    'end_time',
    'selected_actions',
    'number_of_winners',
    'winner_prizes',
    'iq_points',
    'reward_deposit',
    'reward_token',
    'distribution_type',
)


class QuestDraftService:
    """Server-side persistence for the step-wise quest builder"""

    def __init__(self, supabase=None):
        self._supabase = supabase

    @property
    def supabase(self):
        return self._supabase or require_supabase_client()

    def save_draft(self, draft: dict):
        """Create or replace the draft with draft['id']"""
        record = {
            'id': draft['id'],
            'user_address': normalize_address(draft['user_address']),
        }
        for field in DRAFT_FIELDS:
            record[field] = draft.get(field) or None
        record['current_step'] = draft.get('current_step') or 1
        record['updated_at'] = utc_now_iso()

        try:
            self.supabase.table('quest_drafts').upsert(record).execute()
        except Exception as e:
            raise SupabaseQueryError(f"Failed to save quest draft: {getattr(e, 'message', None) or e}") from e

        logger.info(f"💾 Draft {record['id']} saved for {record['user_address'][:8]}... (step {record['current_step']})")

    def get_draft_by_id(self, draft_id: str, user_address: str):
        """The draft if it exists and belongs to user_address, else None"""
        try:
            result = run_query(
                lambda: self.supabase.table('quest_drafts')
                    .select('*')
                    .eq('id', draft_id)
                    .eq('user_address', normalize_address(user_address))
                    .single()
                    .execute(),
                "fetch quest draft"
            )
        except SupabaseQueryError as e:
            if is_not_found(e):
                return None
            raise SupabaseQueryError(f"Failed to fetch quest draft: {e.message}", e.code) from e

        row = first_row(result)
        if not row:
            return None

        draft = {
            'id': row['id'],
            'user_address': row['user_address'],
            'current_step': row.get('current_step'),
        }
        for field in DRAFT_FIELDS:
            draft[field] = row.get(field)
        return draft

    def get_all_drafts_for_user(self, user_address: str, space_id: str = None) -> list:
        """
        Draft list items, most recently updated first

        With space_id, drafts of that space plus drafts not yet tied to any
        space are returned.
        """
        def query():
            q = self.supabase.table('quest_drafts') \
                .select('id, title, current_step, space_id, updated_at') \
                .eq('user_address', normalize_address(user_address)) \
                .order('updated_at', desc=True)
            if space_id:
                q = q.or_(f"space_id.eq.{space_id},space_id.is.null")
            return q.execute()

        try:
            result = query()
        except Exception as e:
            raise SupabaseQueryError(f"Failed to fetch quest drafts: {getattr(e, 'message', None) or e}") from e

        return [
            {
                'id': draft['id'],
                'title': draft.get('title') or 'Untitled Quest',
                'updatedAt': to_epoch_ms(draft.get('updated_at'), 0),
                'currentStep': draft.get('current_step') or 1,
                'spaceId': draft.get('space_id') or None,
            }
            for draft in rows(result)
        ]

    def delete_draft(self, draft_id: str, user_address: str):
        try:
            self.supabase.table('quest_drafts') \
                .delete() \
                .eq('id', draft_id) \
                .eq('user_address', normalize_address(user_address)) \
                .execute()
        except Exception as e:
            raise SupabaseQueryError(f"Failed to delete quest draft: {getattr(e, 'message', None) or e}") from e

        logger.info(f"🗑️ Draft {draft_id} deleted for {normalize_address(user_address)[:8]}...")


# Global instance
quest_draft_service = QuestDraftService()
