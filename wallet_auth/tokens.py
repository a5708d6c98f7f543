"""
Wallet login tokens

A user proves control of an address by signing a message (EIP-191 personal
sign). The backend then issues an HS256 JWT carrying the lowercased address
and the user id, which clients send back as a bearer token.
"""
import logging
import re
from datetime import datetime, timedelta, timezone

import jwt
from eth_account import Account
from eth_account.messages import encode_defunct

import config

logger = logging.getLogger(__name__)

ADDRESS_PATTERN = re.compile(r'^0x[a-fA-F0-9]{40}$')


class TokenConfigurationError(Exception):
    pass


def is_valid_address(address) -> bool:
    return isinstance(address, str) and bool(ADDRESS_PATTERN.match(address))


def recover_signer(message: str, signature: str) -> str:
    """Address (lowercase) that produced `signature` over `message`"""
    signable = encode_defunct(text=message)
    return Account.recover_message(signable, signature=signature).lower()


def verify_wallet_signature(address: str, message: str, signature: str) -> bool:
    try:
        return recover_signer(message, signature) == address.lower()
    except Exception as e:
        logger.warning(f"⚠️ Signature recovery failed for {address[:8]}...: {e}")
        return False


def _secret() -> str:
    if not config.JWT_SECRET:
        raise TokenConfigurationError('JWT_SECRET is not configured')
    return config.JWT_SECRET


def create_access_token(address: str, user_id: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        'address': address.lower(),
        'userId': str(user_id),
        'iat': now,
        'exp': now + timedelta(days=config.JWT_EXPIRES_DAYS),
    }
    return jwt.encode(payload, _secret(), algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Decoded claims; raises jwt.InvalidTokenError on a bad or expired token"""
    return jwt.decode(token, _secret(), algorithms=[config.JWT_ALGORITHM])


def bearer_token(authorization_header) -> str:
    if not authorization_header or not authorization_header.startswith('Bearer '):
        return None
    return authorization_header[len('Bearer '):].strip() or None
