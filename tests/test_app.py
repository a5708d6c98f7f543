def test_health(client):
    response = client.get('/health')

    assert response.status_code == 200
    assert response.get_json()['status'] == 'ok'


def test_api_status_lists_endpoints(client):
    payload = client.get('/api').get_json()

    assert payload['status'] == 'online'
    assert '/api/builder-analytics' in payload['endpoints']


def test_unknown_route_is_json_404(client):
    response = client.get('/api/nothing-here')

    assert response.status_code == 404
    assert response.get_json() == {'error': 'Route not found'}


def test_cors_headers_for_allowed_origin(client):
    response = client.get('/health', headers={'Origin': 'http://localhost:5173'})

    assert response.headers['Access-Control-Allow-Origin'] == 'http://localhost:5173'
    assert response.headers['Access-Control-Allow-Credentials'] == 'true'


def test_no_cors_headers_for_unknown_origin(client):
    response = client.get('/health', headers={'Origin': 'https://evil.example'})

    assert 'Access-Control-Allow-Origin' not in response.headers
