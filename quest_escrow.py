"""
Quest Escrow contract client

Deposits hold native TRUST for a quest until winners are set and rewards
are distributed. Quest ids are strings off-chain and keccak256 hashes
on-chain.
"""
import logging

from web3 import Web3

import config
from blockchain import BlockchainError, BlockchainService, blockchain_service, to_wei

logger = logging.getLogger(__name__)

QUEST_ESCROW_ABI = [
    {
        "name": "deposit",
        "type": "function",
        "stateMutability": "payable",
        "inputs": [
            {"name": "questId", "type": "bytes32"},
            {"name": "numberOfWinners", "type": "uint256"},
            {"name": "expiresAt", "type": "uint256"},
            {"name": "distributionType", "type": "string"}
        ],
        "outputs": []
    },
    {
        "name": "setWinners",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "questId", "type": "bytes32"},
            {"name": "winners", "type": "address[]"}
        ],
        "outputs": []
    },
    {
        "name": "distributeRewards",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "questId", "type": "bytes32"}],
        "outputs": []
    },
    {
        "name": "getQuestDeposit",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "questId", "type": "bytes32"}],
        "outputs": [
            {"name": "totalAmount", "type": "uint256"},
            {"name": "numberOfWinners", "type": "uint256"},
            {"name": "isDistributed", "type": "bool"},
            {"name": "depositor", "type": "address"},
            {"name": "expiresAt", "type": "uint256"},
            {"name": "distributionType", "type": "string"}
        ]
    },
    {
        "name": "getQuestStatus",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "questId", "type": "bytes32"}],
        "outputs": [
            {"name": "hasDeposit", "type": "bool"},
            {"name": "isExpired", "type": "bool"},
            {"name": "winnersSet", "type": "bool"},
            {"name": "isDistributed", "type": "bool"},
            {"name": "timeRemaining", "type": "uint256"},
            {"name": "expiresAt", "type": "uint256"}
        ]
    }
]

DISTRIBUTION_TYPES = ('raffle', 'first-come-first-served', 'merit-based')


def quest_id_to_bytes32(quest_id: str) -> bytes:
    return Web3.keccak(text=quest_id)


class QuestEscrowService:
    def __init__(self, escrow_address=None, chain: BlockchainService = None):
        self.escrow_address = escrow_address or config.QUEST_ESCROW_ADDRESS
        self.chain = chain or blockchain_service

    def is_deployed(self) -> bool:
        return bool(self.escrow_address) and self.escrow_address.lower() != config.ZERO_ADDRESS

    def _contract(self):
        if not self.is_deployed():
            raise BlockchainError('QuestEscrow contract is not deployed')
        return self.chain.contract(self.escrow_address, QUEST_ESCROW_ABI)

    def get_quest_deposit(self, quest_id: str) -> dict:
        deposit = self._contract().functions.getQuestDeposit(quest_id_to_bytes32(quest_id)).call()
        return {
            'totalAmount': deposit[0],
            'numberOfWinners': int(deposit[1]),
            'isDistributed': deposit[2],
            'depositor': deposit[3].lower(),
            'expiresAt': deposit[4],
            'distributionType': deposit[5],
        }

    def get_quest_status(self, quest_id: str) -> dict:
        status = self._contract().functions.getQuestStatus(quest_id_to_bytes32(quest_id)).call()
        return {
            'hasDeposit': status[0],
            'isExpired': status[1],
            'winnersSet': status[2],
            'isDistributed': status[3],
            'timeRemaining': status[4],
            'expiresAt': status[5],
        }

    def _write(self, contract_function, value: int = 0) -> str:
        if not self.chain.account:
            raise BlockchainError('Wallet client not initialized. Set PRIVATE_KEY in environment variables.')
        tx = contract_function.build_transaction(self.chain.build_tx_params(value))
        return self.chain.send_transaction(tx)

    def deposit(self, quest_id: str, number_of_winners: int, expires_at: int,
                distribution_type: str, amount) -> str:
        """Deposit `amount` TRUST (native) for a quest, returns the tx hash"""
        if distribution_type not in DISTRIBUTION_TYPES:
            raise ValueError(f"Unknown distribution type: {distribution_type}")

        contract = self._contract()
        tx_hash = self._write(
            contract.functions.deposit(
                quest_id_to_bytes32(quest_id),
                int(number_of_winners),
                int(expires_at),
                distribution_type
            ),
            value=to_wei(amount)
        )
        logger.info(f"✅ Escrow deposit of {amount} TRUST for quest {quest_id}: {tx_hash}")
        return tx_hash

    def set_winners(self, quest_id: str, winners: list) -> str:
        contract = self._contract()
        checksummed = [Web3.to_checksum_address(w) for w in winners]
        tx_hash = self._write(contract.functions.setWinners(quest_id_to_bytes32(quest_id), checksummed))
        logger.info(f"🏆 Set {len(winners)} winners for quest {quest_id}: {tx_hash}")
        return tx_hash

    def distribute_rewards(self, quest_id: str) -> str:
        contract = self._contract()
        tx_hash = self._write(contract.functions.distributeRewards(quest_id_to_bytes32(quest_id)))
        logger.info(f"💰 Distributed escrow rewards for quest {quest_id}: {tx_hash}")
        return tx_hash


# Global instance
quest_escrow_service = QuestEscrowService()
