from flask import Blueprint, request, jsonify, g
import logging

import config
from validation import Validator, ValidationError
from wallet_auth.decorators import wallet_auth_required
from .space_service import space_service, generate_slug

logger = logging.getLogger(__name__)

spaces_bp = Blueprint('spaces', __name__)


@spaces_bp.route('', methods=['GET'])
def get_spaces():
    try:
        return jsonify({'spaces': space_service.get_all_spaces()})
    except Exception as e:
        logger.error(f"❌ Error fetching spaces: {e}")
        return jsonify({'error': str(e)}), 500


@spaces_bp.route('/search', methods=['GET'])
def search_spaces():
    query = request.args.get('q', '')
    if not query:
        return jsonify({'spaces': []})

    try:
        return jsonify({'spaces': space_service.search_spaces(query)})
    except Exception as e:
        logger.error(f"❌ Error searching spaces: {e}")
        return jsonify({'error': str(e)}), 500


@spaces_bp.route('/owner/<address>', methods=['GET'])
def get_spaces_by_owner(address):
    try:
        return jsonify({'spaces': space_service.get_spaces_by_owner(address)})
    except Exception as e:
        logger.error(f"❌ Error fetching spaces for {address[:8]}...: {e}")
        return jsonify({'error': str(e)}), 500


@spaces_bp.route('/slug/<slug>', methods=['GET'])
def get_space_by_slug(slug):
    try:
        space = space_service.get_space_by_slug(slug)
        if not space:
            return jsonify({'error': 'Space not found'}), 404
        return jsonify({'space': space})
    except Exception as e:
        logger.error(f"❌ Error fetching space {slug}: {e}")
        return jsonify({'error': str(e)}), 500


@spaces_bp.route('/<space_id>', methods=['GET'])
def get_space(space_id):
    try:
        space = space_service.get_space_by_id(space_id)
        if not space:
            return jsonify({'error': 'Space not found'}), 404
        return jsonify({'space': space})
    except Exception as e:
        logger.error(f"❌ Error fetching space {space_id}: {e}")
        return jsonify({'error': str(e)}), 500


@spaces_bp.route('', methods=['POST'])
@wallet_auth_required
def create_space():
    try:
        v = Validator(request.get_json(silent=True))
        v.string('name', max_length=config.SPACE_CONFIG['MAX_NAME_LENGTH'])
        _check_sluggable_name(v)
        v.string('description', max_length=config.SPACE_CONFIG['MAX_DESCRIPTION_LENGTH'])
        v.string('logo', required=False)
        v.string('twitterUrl', url=True)
        v.choice('userType', ('project', 'user'))
        v.string('atomId', required=False)
        v.string('atomTransactionHash', required=False)
        data = v.validate()

        data['ownerAddress'] = g.user['address']
        space = space_service.create_space(data)
        return jsonify({'space': space}), 201

    except ValidationError as e:
        return jsonify(e.to_response()), 400
    except Exception as e:
        logger.error(f"❌ Error creating space: {e}")
        return jsonify({'error': str(e)}), 500


def _check_sluggable_name(v):
    name = v.cleaned.get('name')
    if name is not None and not generate_slug(name):
        v.add_error('name', 'name must contain at least one letter or number')


def _owned_space_or_error(space_id):
    """(space, None) when the caller owns it, else (None, error response)"""
    space = space_service.get_space_by_id(space_id)
    if not space:
        return None, (jsonify({'error': 'Space not found'}), 404)
    if space['ownerAddress'] != g.user['address']:
        logger.warning(f"⚠️ {g.user['address'][:8]}... tried to modify space {space_id} they don't own")
        return None, (jsonify({'error': 'Only the space owner can modify this space'}), 403)
    return space, None


@spaces_bp.route('/<space_id>', methods=['PUT'])
@wallet_auth_required
def update_space(space_id):
    try:
        v = Validator(request.get_json(silent=True))
        v.string('name', required=False, max_length=config.SPACE_CONFIG['MAX_NAME_LENGTH'])
        _check_sluggable_name(v)
        v.string('description', required=False, max_length=config.SPACE_CONFIG['MAX_DESCRIPTION_LENGTH'])
        v.string('logo', required=False, url=True)
        v.string('twitterUrl', required=False, url=True)
        updates = v.validate()

        _, error = _owned_space_or_error(space_id)
        if error:
            return error

        space = space_service.update_space(space_id, updates)
        return jsonify({'space': space})

    except ValidationError as e:
        return jsonify(e.to_response()), 400
    except Exception as e:
        logger.error(f"❌ Error updating space {space_id}: {e}")
        return jsonify({'error': str(e)}), 500


@spaces_bp.route('/<space_id>', methods=['DELETE'])
@wallet_auth_required
def delete_space(space_id):
    try:
        _, error = _owned_space_or_error(space_id)
        if error:
            return error

        space_service.delete_space(space_id)
        return jsonify({'message': 'Space deleted successfully'})
    except Exception as e:
        logger.error(f"❌ Error deleting space {space_id}: {e}")
        return jsonify({'error': str(e)}), 500
