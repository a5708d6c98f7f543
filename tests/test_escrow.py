from unittest.mock import MagicMock

import pytest
from web3 import Web3

from blockchain import BlockchainError, BlockchainService, to_ether
from quest_escrow import QuestEscrowService, quest_id_to_bytes32

ESCROW = '0x5555555555555555555555555555555555555555'
DEPOSITOR = '0xAbCdEf0123456789aBcDeF0123456789ABCDEF01'


@pytest.fixture
def chain():
    chain = MagicMock()
    chain.account = None
    return chain


def test_quest_id_hashes_to_keccak():
    assert quest_id_to_bytes32('quest_1_abc') == Web3.keccak(text='quest_1_abc')
    assert len(quest_id_to_bytes32('quest_1_abc')) == 32


def test_is_deployed():
    assert QuestEscrowService(ESCROW).is_deployed()
    assert not QuestEscrowService('0x0000000000000000000000000000000000000000').is_deployed()


def test_reads_fail_when_not_deployed(chain):
    escrow = QuestEscrowService('0x0000000000000000000000000000000000000000', chain=chain)

    with pytest.raises(BlockchainError):
        escrow.get_quest_deposit('quest_1')
    chain.contract.assert_not_called()


def test_get_quest_deposit_maps_tuple(chain):
    contract = chain.contract.return_value
    contract.functions.getQuestDeposit.return_value.call.return_value = (
        25 * 10 ** 18, 3, False, DEPOSITOR, 1767225600, 'raffle',
    )
    escrow = QuestEscrowService(ESCROW, chain=chain)

    deposit = escrow.get_quest_deposit('quest_1')

    assert deposit == {
        'totalAmount': 25 * 10 ** 18,
        'numberOfWinners': 3,
        'isDistributed': False,
        'depositor': DEPOSITOR.lower(),
        'expiresAt': 1767225600,
        'distributionType': 'raffle',
    }
    contract.functions.getQuestDeposit.assert_called_once_with(Web3.keccak(text='quest_1'))


def test_get_quest_status_maps_tuple(chain):
    contract = chain.contract.return_value
    contract.functions.getQuestStatus.return_value.call.return_value = (True, False, True, False, 3600, 1767225600)

    status = QuestEscrowService(ESCROW, chain=chain).get_quest_status('quest_1')

    assert status['hasDeposit'] is True
    assert status['winnersSet'] is True
    assert status['timeRemaining'] == 3600


def test_deposit_rejects_unknown_distribution_type(chain):
    escrow = QuestEscrowService(ESCROW, chain=chain)

    with pytest.raises(ValueError):
        escrow.deposit('quest_1', 1, 1767225600, 'lottery', 10)


def test_writes_need_a_wallet(chain):
    escrow = QuestEscrowService(ESCROW, chain=chain)

    with pytest.raises(BlockchainError):
        escrow.distribute_rewards('quest_1')


def test_deposit_sends_value_in_wei(chain):
    chain.account = MagicMock()
    chain.build_tx_params.side_effect = lambda value=0: {'value': value}
    chain.send_transaction.return_value = '0xabc'
    escrow = QuestEscrowService(ESCROW, chain=chain)

    tx_hash = escrow.deposit('quest_1', 2, 1767225600, 'first-come-first-served', 1.5)

    assert tx_hash == '0xabc'
    chain.build_tx_params.assert_called_once_with(Web3.to_wei(1.5, 'ether'))


def test_to_ether():
    assert to_ether(15 * 10 ** 17) == 1.5


def test_distribution_needs_private_key():
    service = BlockchainService(private_key='', w3=MagicMock())

    with pytest.raises(BlockchainError):
        service.distribute_trust_token(DEPOSITOR, 1)


def test_escrow_route_reports_deposit(client, monkeypatch):
    from quest_escrow import quest_escrow_service

    monkeypatch.setattr(quest_escrow_service, 'escrow_address', ESCROW)
    monkeypatch.setattr(quest_escrow_service, 'get_quest_deposit', lambda quest_id: {
        'totalAmount': 2 * 10 ** 18, 'numberOfWinners': 1, 'isDistributed': False,
        'depositor': DEPOSITOR.lower(), 'expiresAt': 1767225600, 'distributionType': 'raffle',
    })
    monkeypatch.setattr(quest_escrow_service, 'get_quest_status', lambda quest_id: {
        'hasDeposit': True, 'isExpired': False, 'winnersSet': False, 'isDistributed': False,
        'timeRemaining': 60, 'expiresAt': 1767225600,
    })

    response = client.get('/api/quests/quest_1/escrow')

    assert response.status_code == 200
    payload = response.get_json()
    assert payload['deposit']['totalAmount'] == str(2 * 10 ** 18)
    assert payload['deposit']['totalAmountTrust'] == 2.0
    assert payload['status']['hasDeposit'] is True
