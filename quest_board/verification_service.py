"""
Quest requirement verification

Each quest carries a list of requirements, each with a type and the
verification data the builder configured. Social checks only confirm that
the user has the relevant account linked; on-chain checks read the chain
through the blockchain service.
"""
import logging
from datetime import datetime, timezone
from enum import Enum

import config
from blockchain import blockchain_service as default_blockchain_service
from supabase_client import to_epoch_ms
from wallet_auth.tokens import recover_signer

logger = logging.getLogger(__name__)


class RequirementType(str, Enum):
    FOLLOW = 'FOLLOW'
    RETWEET = 'RETWEET'
    LIKE = 'LIKE'
    COMMENT = 'COMMENT'
    MENTION = 'MENTION'
    VISIT = 'VISIT'
    VERIFY_WALLET = 'VERIFY_WALLET'
    TRANSACTION = 'TRANSACTION'
    NFT_HOLD = 'NFT_HOLD'
    TOKEN_BALANCE = 'TOKEN_BALANCE'
    CONTRACT_INTERACTION = 'CONTRACT_INTERACTION'
    SIGNUP = 'SIGNUP'
    CUSTOM = 'CUSTOM'
    SEQUENCE = 'SEQUENCE'
    TIME_BASED = 'TIME_BASED'


def verified(**data) -> dict:
    return {'verified': True, 'data': data}


def failed(error: str) -> dict:
    return {'verified': False, 'error': error}


class VerificationService:
    def __init__(self, blockchain=None):
        self.blockchain = blockchain or default_blockchain_service
        self._handlers = {
            RequirementType.FOLLOW: self.verify_follow,
            RequirementType.RETWEET: self.verify_retweet,
            RequirementType.LIKE: self.verify_like,
            RequirementType.VISIT: self.verify_visit,
            RequirementType.VERIFY_WALLET: self.verify_wallet,
            RequirementType.TRANSACTION: self.verify_transaction,
            RequirementType.NFT_HOLD: self.verify_nft_hold,
            RequirementType.TOKEN_BALANCE: self.verify_token_balance,
            RequirementType.CONTRACT_INTERACTION: self.verify_contract_interaction,
            RequirementType.CUSTOM: self.verify_custom,
        }

    def verify_requirement(self, requirement_type, data: dict, user: dict) -> dict:
        """
        Verify one requirement for a user

        Args:
            requirement_type: RequirementType or its string value
            data: Requirement verification data merged with what the user submitted
            user: {'address', 'twitterHandle', 'discordId'}

        Returns:
            {'verified': True, 'data': {...}} or {'verified': False, 'error': str}
        """
        try:
            handler = self._handlers.get(RequirementType(requirement_type))
        except ValueError:
            handler = None

        if handler is None:
            return failed(f"Verification type {getattr(requirement_type, 'value', requirement_type)} not implemented")

        try:
            return handler(data or {}, user)
        except Exception as e:
            logger.error(f"❌ {requirement_type} verification error: {e}")
            return failed(str(e))

    def verify_follow(self, data, user):
        if not user.get('twitterHandle'):
            return failed('Twitter account not connected')
        return verified(accountToFollow=data.get('accountToFollow'), follower=user['twitterHandle'])

    def verify_retweet(self, data, user):
        if not user.get('twitterHandle'):
            return failed('Twitter account not connected')
        return verified(tweetId=data.get('tweetId'), user=user['twitterHandle'])

    def verify_like(self, data, user):
        if not user.get('twitterHandle'):
            return failed('Twitter account not connected')
        return verified(tweetId=data.get('tweetId'), user=user['twitterHandle'])

    def verify_visit(self, data, user):
        url = data.get('url')
        timestamp = data.get('timestamp')
        if not url or not timestamp:
            return failed('Missing visit data')

        visit_ms = to_epoch_ms(timestamp)
        if visit_ms is None:
            return failed('Invalid visit timestamp')

        now_ms = datetime.now(timezone.utc).timestamp() * 1000
        hours = (now_ms - visit_ms) / (1000 * 60 * 60)
        if hours > config.QUEST_CONFIG['VISIT_MAX_AGE_HOURS']:
            return failed('Visit timestamp too old')

        return verified(url=url, timestamp=timestamp, address=user['address'])

    def verify_wallet(self, data, user):
        signature = data.get('signature')
        message = data.get('message')
        if not signature or not message:
            return failed('Missing signature or message')

        try:
            signer = recover_signer(message, signature)
        except Exception as e:
            return failed(f'Invalid signature: {e}')

        if signer != user['address'].lower():
            return failed('Signature does not match wallet address')
        return verified(address=user['address'])

    def verify_transaction(self, data, user):
        tx_hash = data.get('txHash')
        if not tx_hash:
            return failed('Missing transaction hash')

        tx = self.blockchain.verify_transaction(tx_hash)
        if not tx.get('verified'):
            return failed('Transaction not found or failed')
        if (tx.get('from') or '').lower() != user['address'].lower():
            return failed('Transaction was not sent by this wallet')

        contract_address = data.get('contractAddress')
        if contract_address and (tx.get('to') or '').lower() != contract_address.lower():
            return failed('Transaction does not target the required contract')

        return verified(txHash=tx_hash, contractAddress=contract_address, functionName=data.get('functionName'))

    def verify_nft_hold(self, data, user):
        contract_address = data.get('contractAddress')
        if not contract_address:
            return failed('Missing NFT contract address')

        token_id = data.get('tokenId')
        if not self.blockchain.check_nft_ownership(user['address'], contract_address, token_id):
            return failed('NFT not held by this wallet')

        return verified(contractAddress=contract_address, tokenId=token_id,
                        chainId=data.get('chainId'), owner=user['address'])

    def verify_token_balance(self, data, user):
        contract_address = data.get('contractAddress')
        min_balance = data.get('minBalance')
        if not contract_address or min_balance is None:
            return failed('Missing contract address or minimum balance')

        balance = self.blockchain.get_token_balance(user['address'], contract_address)
        if balance < float(min_balance):
            return failed(f'Token balance {balance} is below the required {min_balance}')

        return verified(contractAddress=contract_address, minBalance=min_balance,
                        balance=balance, chainId=data.get('chainId'))

    def verify_contract_interaction(self, data, user):
        contract_address = data.get('contractAddress')
        function_name = data.get('functionName')
        if not contract_address or not function_name:
            return failed('Missing contract address or function name')

        tx_hash = data.get('txHash')
        if tx_hash:
            tx = self.blockchain.verify_transaction(tx_hash)
            if not tx.get('verified'):
                return failed('Transaction not found or failed')
            if (tx.get('to') or '').lower() != contract_address.lower():
                return failed('Transaction does not target the required contract')

        return verified(contractAddress=contract_address, functionName=function_name, txHash=tx_hash)

    def verify_custom(self, data, user):
        proof = data.get('proof')
        if not proof:
            return failed('Missing proof for custom verification')
        return verified(proof=proof, verificationMethod=data.get('verificationMethod'), address=user['address'])


# Global instance
verification_service = VerificationService()
