"""
Application Configuration
"""
import os

# Supabase (service role key bypasses RLS, backend only)
SUPABASE_URL = os.getenv('SUPABASE_URL')
SUPABASE_SERVICE_ROLE_KEY = os.getenv('SUPABASE_SERVICE_ROLE_KEY')

# Blockchain (Intuition mainnet by default)
RPC_URL = os.getenv('RPC_URL', 'https://rpc.intuition.systems/http')
CHAIN_ID = int(os.getenv('CHAIN_ID', '1155'))
PRIVATE_KEY = os.getenv('PRIVATE_KEY')
ZERO_ADDRESS = '0x0000000000000000000000000000000000000000'
TRUST_TOKEN_ADDRESS = os.getenv('TRUST_TOKEN_ADDRESS', ZERO_ADDRESS)
REVENUE_WALLET_ADDRESS = os.getenv('REVENUE_WALLET_ADDRESS', '0xec48e65C2AD6d242F173467EC3edc7AAD78CFA07')
QUEST_ESCROW_ADDRESS = os.getenv('QUEST_ESCROW_ADDRESS', ZERO_ADDRESS)

# Auth
JWT_SECRET = os.getenv('JWT_SECRET')
JWT_ALGORITHM = 'HS256'
JWT_EXPIRES_DAYS = 7

# Web
SECRET_KEY = os.getenv('SECRET_KEY', 'change-me')
PORT = int(os.getenv('PORT', '3001'))
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        'ALLOWED_ORIGINS',
        'https://www.trustquests.com,https://trustquests.com,'
        'http://localhost:5173,http://localhost:3000,'
        'http://127.0.0.1:5173,http://127.0.0.1:3000'
    ).split(',')
    if origin.strip()
]

# Remote API used by builder analytics (empty = read in-process services)
TRUSTQUESTS_API_URL = os.getenv('TRUSTQUESTS_API_URL', '')
LOCAL_QUEST_CACHE_PATH = os.getenv('LOCAL_QUEST_CACHE_PATH', 'data/local_quests.json')

# ============================
# Builder Analytics Settings
# ============================
ANALYTICS_CONFIG = {
    # Only quests and completions from this instant onwards are counted
    'START_DATE': '2025-12-04T00:00:00Z',

    # 1 TRUST = $0.01 until a price feed exists
    'TRUST_TO_USD_RATE': 0.01,

    'TIME_SERIES_DAYS': 14,
    'COMPLETIONS_PAGE_SIZE': 1000,
    'TOP_PARTICIPANTS': 10,

    # Fallback deposit estimate when maxCompletions is unknown
    'DEPOSIT_ESTIMATE_BUFFER': 1.5,

    # Funnel view estimate: max(joins * multiplier, joins + floor)
    'VIEWS_MULTIPLIER': 3,
    'VIEWS_FLOOR': 100,

    'MAX_WORKERS': int(os.getenv('ANALYTICS_MAX_WORKERS', '8')),
}

# ============================
# Space Settings
# ============================
SPACE_CONFIG = {
    'MAX_LOGO_LENGTH': 1000000,  # ~1MB base64
    'MAX_NAME_LENGTH': 100,
    'MAX_DESCRIPTION_LENGTH': 2000,
}

# ============================
# Quest Settings
# ============================
QUEST_CONFIG = {
    'DEFAULT_XP_REWARD': 100,
    'DEFAULT_IQ_POINTS': 100,
    'XP_PER_LEVEL': 1000,
    'VISIT_MAX_AGE_HOURS': 1,
    'MAX_TITLE_LENGTH': 200,
    'MAX_DESCRIPTION_LENGTH': 2000,
}

# ============================
# User Profile Settings
# ============================
USER_CONFIG = {
    'MAX_USERNAME_LENGTH': 50,
    'MAX_HANDLE_LENGTH': 50,
    'MAX_EMAIL_LENGTH': 255,
}
