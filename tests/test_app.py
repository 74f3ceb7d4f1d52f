import os
import json
import pytest
from unittest.mock import Mock, patch

from app import create_app
from exceptions import StoreError
from scraper import MockCourtScraper


def fetch(client, case_type='Writ Petition', case_number='1234', filing_year='2024'):
    return client.post('/api/fetch-case', json={
        'caseType': case_type,
        'caseNumber': case_number,
        'filingYear': filing_year,
    })


def test_fetch_case_then_cache_hit(client):
    """Test fetch case then cache hit."""
    first = fetch(client)
    assert first.status_code == 200
    data = first.get_json()
    assert data['fromCache'] is False
    assert data['data']['id'] == 'Writ Petition-1234-2024'
    assert data['data']['parties']['petitioner'] == 'Petitioner Name for Case 1234'

    second = fetch(client)
    assert second.status_code == 200
    assert second.get_json()['fromCache'] is True
    assert second.get_json()['data'] == data['data']


def test_fetch_case_missing_fields(client):
    """Test fetch case missing fields."""
    response = client.post('/api/fetch-case', json={'caseType': 'Writ Petition'})

    assert response.status_code == 400
    assert response.get_json()['kind'] == 'validation_error'


def test_fetch_case_not_found(client):
    """Test fetch case not found."""
    response = fetch(client, case_number='9999')

    assert response.status_code == 404
    data = response.get_json()
    assert data['kind'] == 'not_found'
    assert 'verify the case number' in data['error']


def test_fetch_case_source_unavailable(client):
    """Test fetch case source unavailable."""
    response = fetch(client, case_number='0000')

    assert response.status_code == 503
    assert response.get_json()['kind'] == 'source_unavailable'


def test_fetch_case_unexpected_error(tmp_path, clock):
    """Test fetch case unexpected error."""
    broken = Mock()
    broken.fetch.side_effect = RuntimeError('boom')
    app = create_app({
        'TESTING': True,
        'DATABASE_PATH': str(tmp_path / 'court_data.db'),
        'RATELIMIT_ENABLED': False,
    }, scraper=broken, clock=clock)

    response = fetch(app.test_client())

    assert response.status_code == 500
    assert response.get_json() == {
        'error': 'Failed to fetch case data. Please try again.',
        'kind': 'unknown',
    }
    app.extensions['court_database'].close()


def test_store_error_hides_details(client, app):
    """Test store error hides details."""
    with patch.object(app.extensions['court_database'], 'get_case') as mock_get_case:
        mock_get_case.side_effect = StoreError('Database error: disk I/O error')
        response = fetch(client)

    assert response.status_code == 500
    data = response.get_json()
    assert data['kind'] == 'store_error'
    assert 'disk' not in data['error']


def test_query_history(client):
    """Test query history is returned newest first."""
    fetch(client)
    fetch(client, case_number='9999')

    response = client.get('/api/query-history')
    assert response.status_code == 200
    queries = response.get_json()['queries']
    assert len(queries) == 2
    assert queries[0]['caseNumber'] == '9999'
    assert queries[0]['success'] is False
    assert queries[1]['success'] is True


def test_query_history_limit(client):
    """Test query history limit."""
    for number in ('1', '2', '3'):
        fetch(client, case_number=number)

    assert len(client.get('/api/query-history?limit=2').get_json()['queries']) == 2
    assert client.get('/api/query-history?limit=abc').status_code == 400


def test_search_history_empty(client):
    """Test query history with no searches."""
    response = client.get('/api/query-history')
    assert response.get_json() == {'queries': []}


def test_stats(client):
    """Test the database stats action."""
    fetch(client)
    fetch(client)
    fetch(client, case_number='9999')

    stats = client.get('/api/database?action=stats').get_json()['stats']
    assert stats['totalQueries'] == 3
    assert stats['successfulQueries'] == 2
    assert stats['failedQueries'] == 1
    assert stats['cachedCases'] == 1
    assert stats['successRate'] == 66.7


def test_courts_and_case_types(client):
    """Test courts and case types."""
    courts = client.get('/api/database?action=courts').get_json()['courts']
    delhi = next(court for court in courts if court['name'] == 'Delhi High Court')

    response = client.get(f"/api/database?action=case-types&courtId={delhi['id']}")
    case_types = response.get_json()['caseTypes']
    assert len(case_types) == 10
    assert all(case_type['courtId'] == delhi['id'] for case_type in case_types)


def test_case_types_requires_court_id(client):
    """Test case types requires court id."""
    response = client.get('/api/database?action=case-types')

    assert response.status_code == 400
    assert response.get_json()['error'] == 'Court ID is required'


def test_invalid_action(client):
    """Test invalid action."""
    assert client.get('/api/database?action=drop').status_code == 400
    assert client.post('/api/database', json={'action': 'drop'}).status_code == 400


def test_export(client):
    """Test the database export action."""
    fetch(client)

    data = client.get('/api/database?action=export').get_json()
    assert len(data['queries']) == 1
    assert data['cases'][0]['id'] == 'Writ Petition-1234-2024'
    assert 'exportedAt' in data


def test_clear_queries(client):
    """Test clearing the query log through the API."""
    fetch(client)
    fetch(client, case_number='2')

    response = client.post('/api/database', json={'action': 'clear-queries'})
    assert response.get_json() == {'message': 'Cleared 2 query records', 'cleared': 2}

    assert client.get('/api/query-history').get_json()['queries'] == []
    stats = client.get('/api/database?action=stats').get_json()['stats']
    assert stats['totalQueries'] == 0
    assert stats['successRate'] == 0


def test_clear_cache_forces_refetch(client):
    """Test clear cache forces refetch."""
    fetch(client)

    response = client.post('/api/database', json={'action': 'clear-cache'})
    assert response.get_json()['cleared'] == 1

    assert fetch(client).get_json()['fromCache'] is False


def test_backup(client):
    """Test the database backup action."""
    response = client.post('/api/database', json={'action': 'backup'})

    assert response.status_code == 200
    assert os.path.exists(response.get_json()['backupPath'])


@patch('documents.requests.get')
def test_download_pdf(mock_get, client):
    """Test PDF download through the API."""
    mock_get.return_value = Mock(ok=True, status_code=200, content=b'%PDF-1.4 order')

    response = client.post('/api/download-pdf', json={
        'pdfUrl': 'https://delhihighcourt.nic.in/orders/1234_order.pdf',
        'title': 'Order dated 01/06/2024',
    })

    assert response.status_code == 200
    assert response.mimetype == 'application/pdf'
    assert response.data == b'%PDF-1.4 order'
    assert 'order_dated_01_06_2024.pdf' in response.headers['Content-Disposition']


@patch('documents.requests.get')
def test_download_pdf_upstream_failure(mock_get, client):
    """Test download pdf upstream failure."""
    mock_get.return_value = Mock(ok=False, status_code=500)

    response = client.post('/api/download-pdf', json={'pdfUrl': 'https://example.com/x.pdf', 'title': 'X'})

    assert response.status_code == 502
    assert response.get_json()['error'] == 'Failed to download PDF'


def test_download_pdf_requires_url(client):
    """Test download pdf requires url."""
    response = client.post('/api/download-pdf', json={'title': 'X'})
    assert response.status_code == 400


def test_404_error(client):
    """Test 404 error response."""
    response = client.get('/nonexistent-page')

    assert response.status_code == 404
    assert json.loads(response.data)['error'] == 'Page not found'


def test_health(client):
    """Test the health check endpoint."""
    assert client.get('/health').get_json() == {'status': 'ok'}


def test_fetch_case_rate_limited(tmp_path, clock):
    """Test fetch case rate limited."""
    app = create_app({
        'TESTING': True,
        'DATABASE_PATH': str(tmp_path / 'court_data.db'),
        'RATELIMIT_ENABLED': True,
        'RATELIMIT_FETCH': '2 per minute',
    }, scraper=MockCourtScraper(delay=0, clock=clock), clock=clock)
    client = app.test_client()

    assert fetch(client).status_code == 200
    assert fetch(client).status_code == 200
    response = fetch(client)

    assert response.status_code == 429
    assert 'Rate limit exceeded' in response.get_json()['error']
    app.extensions['court_database'].close()


@pytest.mark.parametrize('url,body', [
    ('/api/fetch-case', ['Writ Petition', '1234', '2024']),
    ('/api/fetch-case', 'Writ Petition'),
    ('/api/database', ['clear-queries']),
    ('/api/download-pdf', 42),
])
def test_non_object_json_body_rejected(client, url, body):
    """Test request bodies that are not JSON objects are rejected."""
    response = client.post(url, json=body)

    assert response.status_code == 400
    assert response.get_json() == {'error': 'Invalid request body', 'kind': 'validation_error'}
