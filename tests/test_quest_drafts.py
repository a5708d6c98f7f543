import pytest

from quest_board.quest_draft_service import QuestDraftService

OWNER = '0xAbCdEf0123456789aBcDeF0123456789ABCDEF01'
OTHER = '0x1111111111111111111111111111111111111111'


@pytest.fixture
def service(fake_db):
    return QuestDraftService(fake_db)


def full_draft(**overrides):
    draft = {
        'id': 'draft-1',
        'user_address': OWNER,
        'space_id': 'space-1',
        'title': 'Follow us on X',
        'difficulty': 'beginner',
        'description': 'Follow and retweet',
        'image_preview': 'data:image/png;base64,AAAA',
        'end_date': '2026-02-01',
        'end_time': '12:00',
        'selected_actions': [{'type': 'FOLLOW', 'handle': '@trust'}],
        'number_of_winners': '10',
        'winner_prizes': ['50', '25'],
        'iq_points': '100',
        'reward_deposit': '500',
        'reward_token': 'TRUST',
        'distribution_type': 'raffle',
        'current_step': 3,
    }
    draft.update(overrides)
    return draft


def test_saved_draft_reads_back_identically(service):
    draft = full_draft()
    service.save_draft(draft)

    loaded = service.get_draft_by_id('draft-1', OWNER)

    expected = dict(draft, user_address=OWNER.lower())
    assert loaded == expected


def test_owner_address_is_case_insensitive(service):
    service.save_draft(full_draft())

    assert service.get_draft_by_id('draft-1', OWNER.upper().replace('0X', '0x')) is not None


def test_draft_of_another_user_is_not_found(service):
    service.save_draft(full_draft())

    assert service.get_draft_by_id('draft-1', OTHER) is None


def test_delete_then_fetch_is_not_found(service):
    service.save_draft(full_draft())

    service.delete_draft('draft-1', OWNER)

    assert service.get_draft_by_id('draft-1', OWNER) is None


def test_delete_by_another_user_keeps_draft(service):
    service.save_draft(full_draft())

    service.delete_draft('draft-1', OTHER)

    assert service.get_draft_by_id('draft-1', OWNER) is not None


def test_save_twice_updates_in_place(service, fake_db):
    service.save_draft(full_draft())
    service.save_draft(full_draft(title='Renamed', current_step=4))

    assert len(fake_db.rows('quest_drafts')) == 1
    loaded = service.get_draft_by_id('draft-1', OWNER)
    assert loaded['title'] == 'Renamed'
    assert loaded['current_step'] == 4


def test_empty_fields_are_stored_as_null_and_step_defaults(service):
    service.save_draft({'id': 'bare', 'user_address': OWNER, 'title': '', 'current_step': None})

    loaded = service.get_draft_by_id('bare', OWNER)
    assert loaded['title'] is None
    assert loaded['selected_actions'] is None
    assert loaded['current_step'] == 1


def test_list_items_and_space_filter(service):
    service.save_draft(full_draft(id='in-space', space_id='space-1'))
    service.save_draft(full_draft(id='no-space', space_id=None, title=None))
    service.save_draft(full_draft(id='elsewhere', space_id='space-2'))
    service.save_draft(full_draft(id='not-mine', user_address=OTHER))

    all_drafts = service.get_all_drafts_for_user(OWNER)
    assert {d['id'] for d in all_drafts} == {'in-space', 'no-space', 'elsewhere'}

    space_drafts = service.get_all_drafts_for_user(OWNER, space_id='space-1')
    assert {d['id'] for d in space_drafts} == {'in-space', 'no-space'}

    untitled = next(d for d in space_drafts if d['id'] == 'no-space')
    assert untitled['title'] == 'Untitled Quest'
    assert untitled['spaceId'] is None
    assert untitled['currentStep'] == 3
    assert isinstance(untitled['updatedAt'], int) and untitled['updatedAt'] > 0


def test_draft_routes_round_trip(client, wallet, auth_headers):
    headers = auth_headers(wallet)
    body = {
        'id': 'draft-route',
        'title': 'Route draft',
        'selected_actions': [{'type': 'VISIT'}],
        'current_step': 2,
    }

    response = client.post('/api/quest-drafts', json=body, headers=headers)
    assert response.status_code == 200
    assert response.get_json() == {'success': True}

    response = client.get('/api/quest-drafts/draft-route', headers=headers)
    assert response.status_code == 200
    draft = response.get_json()['draft']
    assert draft['title'] == 'Route draft'
    assert draft['user_address'] == wallet.address.lower()
    assert draft['current_step'] == 2

    response = client.get('/api/quest-drafts', headers=headers)
    assert [d['id'] for d in response.get_json()['drafts']] == ['draft-route']

    response = client.delete('/api/quest-drafts/draft-route', headers=headers)
    assert response.status_code == 200

    response = client.get('/api/quest-drafts/draft-route', headers=headers)
    assert response.status_code == 404
    assert response.get_json() == {'error': 'Draft not found'}


def test_draft_routes_validate_body(client, wallet, auth_headers):
    headers = auth_headers(wallet)

    response = client.post('/api/quest-drafts', json={'id': '', 'current_step': 0}, headers=headers)

    assert response.status_code == 400
    payload = response.get_json()
    assert payload['error'] == 'Validation error'
    assert {d['field'] for d in payload['details']} == {'id', 'current_step'}


def test_draft_routes_require_token(client):
    response = client.get('/api/quest-drafts')

    assert response.status_code == 401
    assert response.get_json() == {'error': 'Missing or invalid authorization header'}
