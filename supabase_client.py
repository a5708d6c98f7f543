import logging
import time
from datetime import datetime, timezone
from functools import wraps

from postgrest.exceptions import APIError
from supabase import create_client, Client

import config

logger = logging.getLogger(__name__)

# PostgREST: .single() matched zero rows
NOT_FOUND_CODE = 'PGRST116'
# Postgres unique_violation
UNIQUE_VIOLATION_CODE = '23505'

supabase: Client = None


class SupabaseQueryError(Exception):
    """Raised when a Supabase query fails for a reason other than not-found"""

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        self.code = code


def retry_on_connection_error(max_retries=3, delay=1):
    """Decorator to retry database operations on connection errors"""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(max_retries):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    last_exception = e
                    error_msg = str(e).lower()

                    if any(keyword in error_msg for keyword in ['server disconnected', 'connection', 'timeout', 'network']):
                        if attempt < max_retries - 1:
                            logger.warning(f"⚠️ Connection error on attempt {attempt + 1}/{max_retries}: {e}")
                            time.sleep(delay * (attempt + 1))
                            continue
                        logger.error(f"❌ All {max_retries} connection attempts failed: {e}")
                    else:
                        raise

            raise last_exception
        return wrapper
    return decorator


@retry_on_connection_error(max_retries=3, delay=2)
def _connect() -> Client:
    client = create_client(config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY)
    # Cheap round trip so a bad URL/key fails here instead of mid-request
    client.table('users').select('id').limit(1).execute()
    return client


def get_supabase_client():
    """Get the shared Supabase client, creating it on first use"""
    global supabase

    if supabase is not None:
        return supabase

    if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_ROLE_KEY:
        logger.error("❌ SUPABASE NOT CONFIGURED!")
        logger.error(f"   SUPABASE_URL exists: {bool(config.SUPABASE_URL)}")
        logger.error(f"   SUPABASE_SERVICE_ROLE_KEY exists: {bool(config.SUPABASE_SERVICE_ROLE_KEY)}")
        return None

    try:
        supabase = _connect()
        logger.info("✅ Supabase client initialized successfully")
        return supabase
    except Exception as e:
        logger.error(f"❌ Supabase initialization failed: {e}")
        logger.error("💡 Check SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY in environment variables")
        return None


def require_supabase_client() -> Client:
    """Like get_supabase_client but raises when the database is unavailable"""
    client = get_supabase_client()
    if client is None:
        raise SupabaseQueryError('Database not available')
    return client


def normalize_address(address):
    if not address:
        return address
    return address.strip().lower()


def is_not_found(error) -> bool:
    return getattr(error, 'code', None) == NOT_FOUND_CODE


def is_unique_violation(error) -> bool:
    return getattr(error, 'code', None) == UNIQUE_VIOLATION_CODE


def rows(result) -> list:
    """Rows of an execute() result; maybe_single() may return None"""
    if result is None or result.data is None:
        return []
    if isinstance(result.data, list):
        return result.data
    return [result.data]


def first_row(result):
    data = rows(result)
    return data[0] if data else None


def to_epoch_ms(value, default=None):
    """Epoch milliseconds for a timestamptz string, datetime or epoch number"""
    if value is None or value == '' or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            return default
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    return default


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def run_query(operation, operation_name: str):
    """
    Execute a Supabase query, mapping failures to SupabaseQueryError

    Args:
        operation: Lambda containing the query builder chain ending in execute()
        operation_name: Human readable name for logging

    Returns:
        The execute() result
    """
    try:
        return operation()
    except APIError as e:
        logger.error(f"❌ Error in {operation_name}: {e.message} (code {e.code})")
        raise SupabaseQueryError(e.message or str(e), e.code) from e


# SQL COMMANDS TO RUN IN YOUR SUPABASE SQL EDITOR:

"""
CREATE EXTENSION IF NOT EXISTS pgcrypto;

CREATE TABLE IF NOT EXISTS users (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    address VARCHAR(42) UNIQUE NOT NULL,
    username VARCHAR(50) UNIQUE,
    profile_pic TEXT,
    twitter_handle VARCHAR(50),
    discord_id VARCHAR(50),
    email VARCHAR(255),
    github_handle VARCHAR(50),
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS spaces (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name VARCHAR(100) NOT NULL,
    slug VARCHAR(120) UNIQUE NOT NULL,
    description TEXT NOT NULL,
    logo TEXT,
    twitter_url TEXT NOT NULL,
    owner_address VARCHAR(42) NOT NULL,
    user_type VARCHAR(10) DEFAULT 'PROJECT', -- 'PROJECT', 'USER'
    atom_id TEXT,
    atom_transaction_hash VARCHAR(66),
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS published_quests (
    id TEXT PRIMARY KEY,
    title VARCHAR(200) NOT NULL,
    description TEXT NOT NULL,
    project_id TEXT,
    project_name TEXT,
    space_id UUID REFERENCES spaces(id) ON DELETE CASCADE,
    creator_address VARCHAR(42) NOT NULL,
    xp_reward INTEGER DEFAULT 100,
    iq_points INTEGER DEFAULT 100,
    trust_reward DECIMAL(36,18),
    max_completions INTEGER,
    status VARCHAR(20) DEFAULT 'active', -- 'active', 'paused', 'completed', 'expired'
    twitter_link TEXT,
    atom_id TEXT,
    atom_transaction_hash VARCHAR(66),
    distribution_type VARCHAR(40),
    number_of_winners TEXT,
    reward_deposit TEXT,
    reward_token TEXT,
    winner_prizes JSONB DEFAULT '[]',
    difficulty VARCHAR(20),
    estimated_time TEXT,
    expires_at TIMESTAMP WITH TIME ZONE,
    requirements JSONB DEFAULT '[]',
    completed_by TEXT[] DEFAULT '{}',
    completed_count INTEGER DEFAULT 0,
    image TEXT,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS quest_drafts (
    id TEXT PRIMARY KEY,
    user_address VARCHAR(42) NOT NULL,
    space_id UUID,
    title TEXT,
    difficulty TEXT,
    description TEXT,
    image_preview TEXT,
    end_date TEXT,
    end_time TEXT,
    selected_actions JSONB,
    number_of_winners TEXT,
    winner_prizes JSONB,
    iq_points TEXT,
    reward_deposit TEXT,
    reward_token TEXT,
    distribution_type TEXT,
    current_step INTEGER DEFAULT 1,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS quest_completions (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    quest_id TEXT NOT NULL REFERENCES published_quests(id) ON DELETE CASCADE,
    user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    xp_earned INTEGER DEFAULT 0,
    trust_earned DECIMAL(36,18),
    verified BOOLEAN DEFAULT FALSE,
    verification_data JSONB DEFAULT '{}',
    claim_id TEXT,
    completed_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    UNIQUE (quest_id, user_id)
);

CREATE TABLE IF NOT EXISTS user_xp (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID UNIQUE NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    total_xp INTEGER DEFAULT 0,
    quests_completed INTEGER DEFAULT 0,
    claims_staked INTEGER DEFAULT 0,
    trade_volume DECIMAL(36,18) DEFAULT 0,
    level INTEGER DEFAULT 1,
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS leaderboard (
    user_id UUID PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
    address VARCHAR(42) NOT NULL,
    total_xp INTEGER DEFAULT 0,
    level INTEGER DEFAULT 1,
    quests_completed INTEGER DEFAULT 0,
    rank INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS trust_token_transactions (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID REFERENCES users(id) ON DELETE SET NULL,
    address VARCHAR(42) NOT NULL,
    amount TEXT NOT NULL,
    type VARCHAR(30) NOT NULL, -- 'QUEST_REWARD'
    quest_id TEXT,
    tx_hash VARCHAR(66),
    status VARCHAR(20) DEFAULT 'PENDING', -- 'PENDING', 'PROCESSING', 'CONFIRMED', 'FAILED'
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_spaces_owner ON spaces(owner_address);
CREATE INDEX IF NOT EXISTS idx_published_quests_creator ON published_quests(creator_address);
CREATE INDEX IF NOT EXISTS idx_published_quests_space ON published_quests(space_id);
CREATE INDEX IF NOT EXISTS idx_quest_drafts_user ON quest_drafts(user_address);
CREATE INDEX IF NOT EXISTS idx_quest_completions_quest ON quest_completions(quest_id);
CREATE INDEX IF NOT EXISTS idx_quest_completions_user ON quest_completions(user_id);
CREATE INDEX IF NOT EXISTS idx_leaderboard_rank ON leaderboard(rank);
"""
