import pytest

from builder_spaces.space_service import SpaceService, generate_slug

OWNER = '0x2222222222222222222222222222222222222222'


@pytest.fixture
def service(fake_db):
    return SpaceService(fake_db)


def space_input(name='Trust Labs', **overrides):
    data = {
        'name': name,
        'description': 'Builders of trust',
        'twitterUrl': 'https://x.com/trustlabs',
        'ownerAddress': OWNER.upper().replace('0X', '0x'),
        'userType': 'project',
    }
    data.update(overrides)
    return data


@pytest.mark.parametrize('name,slug', [
    ('Trust Labs', 'trust-labs'),
    ('  Hello,  World!  ', 'hello-world'),
    ('Already-Hyphen--ated', 'already-hyphen-ated'),
    ('--Edge--', 'edge'),
    ('snake_case ok', 'snake_case-ok'),
])
def test_generate_slug(name, slug):
    assert generate_slug(name) == slug


def test_colliding_names_get_numbered_slugs(service):
    slugs = [service.create_space(space_input())['slug'] for _ in range(3)]

    assert slugs == ['trust-labs', 'trust-labs-1', 'trust-labs-2']


def test_create_space_normalizes_fields(service, fake_db):
    space = service.create_space(space_input(name='  Trust Labs  ', userType='user'))

    row = fake_db.rows('spaces')[0]
    assert row['owner_address'] == OWNER
    assert row['user_type'] == 'USER'
    assert row['name'] == 'Trust Labs'
    assert space['userType'] == 'user'
    assert space['ownerAddress'] == OWNER
    assert isinstance(space['createdAt'], int)


def test_oversized_logo_is_dropped(service, fake_db):
    service.create_space(space_input(logo='x' * 1_000_000))
    service.create_space(space_input(name='Small Logo', logo='data:image/png;base64,AAAA'))

    rows = fake_db.rows('spaces')
    assert 'logo' not in rows[0]
    assert rows[1]['logo'] == 'data:image/png;base64,AAAA'


def test_rename_keeps_own_slug(service):
    space = service.create_space(space_input())

    updated = service.update_space(space['id'], {'name': 'Trust Labs'})

    assert updated['slug'] == 'trust-labs'


def test_rename_avoids_other_slugs(service):
    service.create_space(space_input(name='Taken'))
    space = service.create_space(space_input(name='Free'))

    updated = service.update_space(space['id'], {'name': 'Taken'})

    assert updated['slug'] == 'taken-1'
    assert updated['name'] == 'Taken'


def test_lookup_and_search(service):
    created = service.create_space(space_input(name='Intuition Builders'))
    service.create_space(space_input(name='Other Project'))

    assert service.get_space_by_id(created['id'])['name'] == 'Intuition Builders'
    assert service.get_space_by_slug('INTUITION-BUILDERS')['id'] == created['id']
    assert service.get_space_by_id('missing') is None
    assert service.get_space_by_slug('missing') is None

    assert [s['id'] for s in service.search_spaces('intuition')] == [created['id']]
    assert service.search_spaces('   ') == []
    assert len(service.get_spaces_by_owner(OWNER)) == 2


def test_delete_space(service):
    space = service.create_space(space_input())

    service.delete_space(space['id'])

    assert service.get_space_by_id(space['id']) is None


def test_create_space_route(client, wallet, auth_headers):
    body = {
        'name': 'Route Space',
        'description': 'Made over HTTP',
        'twitterUrl': 'https://x.com/route',
        'userType': 'project',
    }

    response = client.post('/api/spaces', json=body, headers=auth_headers(wallet))

    assert response.status_code == 201
    space = response.get_json()['space']
    assert space['slug'] == 'route-space'
    assert space['ownerAddress'] == wallet.address.lower()


def test_create_space_route_validation(client, wallet, auth_headers):
    body = {'name': '', 'description': 'x', 'twitterUrl': 'not a url', 'userType': 'alien'}

    response = client.post('/api/spaces', json=body, headers=auth_headers(wallet))

    assert response.status_code == 400
    fields = {d['field'] for d in response.get_json()['details']}
    assert fields == {'name', 'twitterUrl', 'userType'}


def test_space_name_without_letters_or_numbers_is_rejected(client, wallet, auth_headers, fake_db):
    headers = auth_headers(wallet)
    body = {'name': '!!!', 'description': 'x', 'twitterUrl': 'https://x.com/bang', 'userType': 'user'}

    response = client.post('/api/spaces', json=body, headers=headers)

    assert response.status_code == 400
    assert [d['field'] for d in response.get_json()['details']] == ['name']
    assert fake_db.rows('spaces') == []

    body['name'] = 'Bang'
    space = client.post('/api/spaces', json=body, headers=headers).get_json()['space']
    response = client.put(f"/api/spaces/{space['id']}", json={'name': '???'}, headers=headers)

    assert response.status_code == 400
    assert client.get(f"/api/spaces/{space['id']}").get_json()['space']['name'] == 'Bang'


def test_only_owner_can_modify_space(client, wallet, other_wallet, auth_headers):
    body = {
        'name': 'Owned',
        'description': 'Mine',
        'twitterUrl': 'https://x.com/owned',
        'userType': 'user',
    }
    space = client.post('/api/spaces', json=body, headers=auth_headers(wallet)).get_json()['space']

    intruder = auth_headers(other_wallet)
    assert client.put(f"/api/spaces/{space['id']}", json={'name': 'Stolen'}, headers=intruder).status_code == 403
    assert client.delete(f"/api/spaces/{space['id']}", headers=intruder).status_code == 403

    owner = auth_headers(wallet)
    response = client.put(f"/api/spaces/{space['id']}", json={'description': 'Still mine'}, headers=owner)
    assert response.status_code == 200
    assert response.get_json()['space']['description'] == 'Still mine'

    assert client.delete(f"/api/spaces/{space['id']}", headers=owner).status_code == 200
    assert client.get(f"/api/spaces/{space['id']}").status_code == 404


def test_missing_space_routes(client, wallet, auth_headers):
    assert client.get('/api/spaces/slug/nope').status_code == 404
    assert client.put('/api/spaces/nope', json={}, headers=auth_headers(wallet)).status_code == 404
    assert client.get('/api/spaces/search').get_json() == {'spaces': []}
