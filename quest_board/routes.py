from flask import Blueprint, request, jsonify, g
import logging

import config
from blockchain import to_ether
from quest_escrow import quest_escrow_service
from validation import Validator, ValidationError
from wallet_auth.decorators import wallet_auth_required
from .completion_service import completion_service, QuestCompletionError
from .quest_draft_service import quest_draft_service
from .quest_service import quest_service, QUEST_STATUSES

logger = logging.getLogger(__name__)

quests_bp = Blueprint('quests', __name__)
quest_drafts_bp = Blueprint('quest_drafts', __name__)

DRAFT_STRING_FIELDS = (
    'space_id', 'title', 'difficulty', 'description', 'image_preview',
    'end_date', 'end_time', 'number_of_winners', 'iq_points',
    'reward_deposit', 'reward_token', 'distribution_type',
)


def _int_arg(name, default):
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default


# ============================
# Quests
# ============================

@quests_bp.route('', methods=['GET'])
def get_quests():
    try:
        quests = quest_service.get_all_quests(
            status=request.args.get('status'),
            project_id=request.args.get('projectId'),
            space_id=request.args.get('spaceId'),
            creator_address=request.args.get('creator'),
            limit=_int_arg('limit', 100),
            offset=_int_arg('offset', 0),
        )
        return jsonify({'quests': quests})
    except Exception as e:
        logger.error(f"❌ Error fetching quests: {e}")
        return jsonify({'error': str(e)}), 500


@quests_bp.route('/<quest_id>', methods=['GET'])
def get_quest(quest_id):
    try:
        quest = quest_service.get_quest_by_id(quest_id)
        if not quest:
            return jsonify({'error': 'Quest not found'}), 404
        return jsonify({'quest': quest})
    except Exception as e:
        logger.error(f"❌ Error fetching quest {quest_id}: {e}")
        return jsonify({'error': str(e)}), 500


@quests_bp.route('', methods=['POST'])
@wallet_auth_required
def create_quest():
    try:
        v = Validator(request.get_json(silent=True))
        v.string('title', max_length=config.QUEST_CONFIG['MAX_TITLE_LENGTH'])
        v.string('description', max_length=config.QUEST_CONFIG['MAX_DESCRIPTION_LENGTH'])
        v.string('projectId')
        v.string('projectName', required=False)
        v.string('spaceId', required=False, nullable=True)
        v.integer('xpReward', positive=True)
        v.integer('iqPoints', required=False, positive=True)
        v.number('trustReward', required=False, minimum=0)
        v.integer('maxCompletions', required=False, positive=True)
        v.array('requirements', required=False)
        v.string('expiresAt', required=False, nullable=True)
        for field in ('twitterLink', 'atomId', 'atomTransactionHash', 'distributionType',
                      'numberOfWinners', 'rewardDeposit', 'rewardToken', 'difficulty',
                      'estimatedTime', 'image'):
            v.string(field, required=False, nullable=True)
        v.passthrough('winnerPrizes')
        data = v.validate()

        quest = quest_service.create_quest(g.user['address'], data)
        return jsonify({'quest': quest}), 201

    except ValidationError as e:
        return jsonify(e.to_response()), 400
    except Exception as e:
        logger.error(f"❌ Error creating quest: {e}")
        return jsonify({'error': str(e)}), 500


def _owned_quest_or_error(quest_id):
    quest = quest_service.get_quest_by_id(quest_id)
    if not quest:
        return None, (jsonify({'error': 'Quest not found'}), 404)
    if (quest.get('creatorAddress') or '').lower() != g.user['address']:
        logger.warning(f"⚠️ {g.user['address'][:8]}... tried to modify quest {quest_id} they didn't create")
        return None, (jsonify({'error': 'Only the quest creator can modify this quest'}), 403)
    return quest, None


@quests_bp.route('/<quest_id>', methods=['PUT'])
@wallet_auth_required
def update_quest(quest_id):
    try:
        updates = request.get_json(silent=True) or {}
        status = updates.get('status')
        if status is not None and status not in QUEST_STATUSES:
            return jsonify({
                'error': 'Validation error',
                'details': [{'field': 'status', 'message': f"status must be one of: {', '.join(QUEST_STATUSES)}"}]
            }), 400

        _, error = _owned_quest_or_error(quest_id)
        if error:
            return error

        quest = quest_service.update_quest(quest_id, updates)
        return jsonify({'quest': quest})
    except Exception as e:
        logger.error(f"❌ Error updating quest {quest_id}: {e}")
        return jsonify({'error': str(e)}), 500


@quests_bp.route('/<quest_id>', methods=['DELETE'])
@wallet_auth_required
def delete_quest(quest_id):
    try:
        _, error = _owned_quest_or_error(quest_id)
        if error:
            return error

        quest_service.delete_quest(quest_id)
        return jsonify({'message': 'Quest deleted successfully'})
    except Exception as e:
        logger.error(f"❌ Error deleting quest {quest_id}: {e}")
        return jsonify({'error': str(e)}), 500


@quests_bp.route('/<quest_id>/complete', methods=['POST'])
@wallet_auth_required
def complete_quest(quest_id):
    data = request.get_json(silent=True) or {}
    verification_data = data.get('verificationData')
    if verification_data is not None and not isinstance(verification_data, dict):
        return jsonify({
            'error': 'Validation error',
            'details': [{'field': 'verificationData', 'message': 'verificationData must be an object'}]
        }), 400

    try:
        completion = completion_service.complete_quest(quest_id, g.user['userId'], verification_data)
        return jsonify({'completion': completion})
    except QuestCompletionError as e:
        logger.info(f"⚠️ Completion of {quest_id} rejected for {g.user['address'][:8]}...: {e}")
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"❌ Error completing quest {quest_id}: {e}")
        return jsonify({'error': str(e)}), 400


@quests_bp.route('/<quest_id>/completions', methods=['GET'])
def get_quest_completions(quest_id):
    try:
        completions = completion_service.get_quest_completions(quest_id, _int_arg('limit', 100))
        return jsonify({'completions': completions})
    except Exception as e:
        logger.error(f"❌ Error fetching completions for {quest_id}: {e}")
        return jsonify({'error': str(e)}), 500


@quests_bp.route('/<quest_id>/escrow', methods=['GET'])
def get_quest_escrow(quest_id):
    """On-chain deposit and status of the quest's escrow"""
    if not quest_escrow_service.is_deployed():
        return jsonify({'error': 'Quest escrow contract is not deployed'}), 404

    try:
        deposit = quest_escrow_service.get_quest_deposit(quest_id)
        status = quest_escrow_service.get_quest_status(quest_id)

        # uint256 values can exceed JSON-safe integers
        deposit['totalAmountTrust'] = to_ether(deposit['totalAmount'])
        deposit['totalAmount'] = str(deposit['totalAmount'])
        status['timeRemaining'] = int(status['timeRemaining'])
        status['expiresAt'] = int(status['expiresAt'])
        deposit['expiresAt'] = int(deposit['expiresAt'])

        return jsonify({'questId': quest_id, 'deposit': deposit, 'status': status})
    except Exception as e:
        logger.error(f"❌ Error reading escrow for {quest_id}: {e}")
        return jsonify({'error': str(e)}), 500


# ============================
# Quest drafts
# ============================

@quest_drafts_bp.route('', methods=['POST'])
@wallet_auth_required
def save_draft():
    try:
        v = Validator(request.get_json(silent=True))
        v.string('id')
        for field in DRAFT_STRING_FIELDS:
            v.string(field, required=False, min_length=0, nullable=True)
        v.passthrough('selected_actions')
        v.passthrough('winner_prizes')
        v.integer('current_step', required=False, positive=True)
        draft = v.validate()

        draft['user_address'] = g.user['address']
        quest_draft_service.save_draft(draft)
        return jsonify({'success': True})

    except ValidationError as e:
        return jsonify(e.to_response()), 400
    except Exception as e:
        logger.error(f"❌ Error saving draft: {e}")
        return jsonify({'error': str(e) or 'Failed to save quest draft'}), 500


@quest_drafts_bp.route('', methods=['GET'])
@wallet_auth_required
def get_drafts():
    try:
        drafts = quest_draft_service.get_all_drafts_for_user(g.user['address'], request.args.get('spaceId'))
        return jsonify({'drafts': drafts})
    except Exception as e:
        logger.error(f"❌ Error fetching drafts: {e}")
        return jsonify({'error': str(e) or 'Failed to fetch quest drafts'}), 500


@quest_drafts_bp.route('/<draft_id>', methods=['GET'])
@wallet_auth_required
def get_draft(draft_id):
    try:
        draft = quest_draft_service.get_draft_by_id(draft_id, g.user['address'])
        if not draft:
            return jsonify({'error': 'Draft not found'}), 404
        return jsonify({'draft': draft})
    except Exception as e:
        logger.error(f"❌ Error fetching draft {draft_id}: {e}")
        return jsonify({'error': str(e) or 'Failed to fetch quest draft'}), 500


@quest_drafts_bp.route('/<draft_id>', methods=['DELETE'])
@wallet_auth_required
def delete_draft(draft_id):
    try:
        quest_draft_service.delete_draft(draft_id, g.user['address'])
        return jsonify({'success': True})
    except Exception as e:
        logger.error(f"❌ Error deleting draft {draft_id}: {e}")
        return jsonify({'error': str(e) or 'Failed to delete quest draft'}), 500
