import logging

from eth_account import Account
from web3 import Web3

import config

logger = logging.getLogger("blockchain")

ERC20_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "type": "function"
    },
    {
        "constant": False,
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"}
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function"
    }
]

ERC721_OWNER_OF_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "name": "ownerOf",
        "outputs": [{"name": "", "type": "address"}],
        "type": "function"
    }
]


class BlockchainError(Exception):
    pass


def to_ether(amount_wei: int) -> float:
    return amount_wei / (10 ** 18)


def to_wei(amount) -> int:
    return Web3.to_wei(amount, 'ether')


class BlockchainService:
    def __init__(self, rpc_url=None, private_key=None, trust_token_address=None, w3=None):
        self.rpc_url = rpc_url or config.RPC_URL
        self.chain_id = config.CHAIN_ID
        self.trust_token_address = trust_token_address or config.TRUST_TOKEN_ADDRESS
        self._w3 = w3
        self.account = None

        key = private_key if private_key is not None else config.PRIVATE_KEY
        if key:
            try:
                if not key.startswith('0x'):
                    key = '0x' + key
                self.account = Account.from_key(key)
                logger.info(f"✅ Reward wallet loaded: {self.account.address[:8]}...")
            except Exception as e:
                logger.error(f"❌ Error loading reward wallet: {e}")
                self.account = None
        else:
            logger.warning("⚠️ PRIVATE_KEY not configured - token distribution disabled")

    @property
    def w3(self) -> Web3:
        if self._w3 is None:
            self._w3 = Web3(Web3.HTTPProvider(self.rpc_url))
        return self._w3

    def contract(self, address: str, abi: list):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def get_trust_balance(self, address: str) -> float:
        """Trust token balance in whole tokens"""
        try:
            token = self.contract(self.trust_token_address, ERC20_ABI)
            balance_wei = token.functions.balanceOf(Web3.to_checksum_address(address)).call()
            return to_ether(balance_wei)
        except Exception as e:
            logger.error(f"❌ Error fetching trust balance for {address[:8]}...: {e}")
            raise BlockchainError(f"Failed to fetch trust balance: {e}") from e

    def send_transaction(self, tx: dict) -> str:
        """Sign with the reward wallet, send, and wait for a successful receipt"""
        signed_tx = self.w3.eth.account.sign_transaction(tx, self.account.key)
        tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        tx_hash_hex = tx_hash.hex()
        logger.info(f"✅ Transaction sent: {tx_hash_hex}")

        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=120)
        if receipt.status != 1:
            raise BlockchainError(f"Transaction failed: {tx_hash_hex}")
        return tx_hash_hex

    def build_tx_params(self, value: int = 0) -> dict:
        params = {
            'from': self.account.address,
            'nonce': self.w3.eth.get_transaction_count(self.account.address),
            'gasPrice': self.w3.eth.gas_price,
            'chainId': self.chain_id,
        }
        if value:
            params['value'] = value
        return params

    def distribute_trust_token(self, recipient_address: str, amount) -> str:
        """Transfer trust tokens from the reward wallet, returns the tx hash"""
        if not self.account:
            raise BlockchainError('Wallet client not initialized. Set PRIVATE_KEY in environment variables.')

        try:
            token = self.contract(self.trust_token_address, ERC20_ABI)
            tx = token.functions.transfer(
                Web3.to_checksum_address(recipient_address),
                to_wei(amount)
            ).build_transaction(self.build_tx_params())

            tx_hash = self.send_transaction(tx)
            logger.info(f"💰 Distributed {amount} TRUST to {recipient_address[:8]}...")
            return tx_hash
        except BlockchainError:
            raise
        except Exception as e:
            logger.error(f"❌ Error distributing trust token: {e}")
            raise BlockchainError(f"Failed to distribute trust token: {e}") from e

    def verify_transaction(self, tx_hash: str) -> dict:
        try:
            receipt = self.w3.eth.get_transaction_receipt(tx_hash)
            transaction = self.w3.eth.get_transaction(tx_hash)
            return {
                'verified': receipt['status'] == 1,
                'from': receipt['from'],
                'to': receipt.get('to'),
                'value': transaction['value'],
            }
        except Exception as e:
            logger.warning(f"⚠️ Could not verify transaction {tx_hash}: {e}")
            return {'verified': False}

    def check_nft_ownership(self, owner_address: str, contract_address: str, token_id=None) -> bool:
        if token_id is None:
            return False

        try:
            nft = self.contract(contract_address, ERC721_OWNER_OF_ABI)
            owner = nft.functions.ownerOf(int(token_id)).call()
            return owner.lower() == owner_address.lower()
        except Exception as e:
            logger.error(f"❌ Error checking NFT ownership: {e}")
            return False

    def get_token_balance(self, address: str, token_address: str) -> float:
        """ERC20 balance assuming 18 decimals"""
        try:
            token = self.contract(token_address, ERC20_ABI)
            balance_wei = token.functions.balanceOf(Web3.to_checksum_address(address)).call()
            return to_ether(balance_wei)
        except Exception as e:
            logger.error(f"❌ Error fetching token balance: {e}")
            return 0.0


# Global instance
blockchain_service = BlockchainService()
