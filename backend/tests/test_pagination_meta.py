import pytest
from app.config.pagination import DEFAULT_LIMIT, MAX_LIMIT, normalize_pagination
from tests.test_lifecycle_helpers import ceo_headers, create_pdr, employee_headers


def test_normalize_pagination_defaults_and_clamps():
    assert normalize_pagination(None, None) == (DEFAULT_LIMIT, 0)
    assert normalize_pagination('', '') == (DEFAULT_LIMIT, 0)
    assert normalize_pagination('0', '-5') == (1, 0)
    assert normalize_pagination(str(MAX_LIMIT + 1), '3') == (MAX_LIMIT, 3)
    with pytest.raises(ValueError):
        normalize_pagination('ten', None)


def test_pdr_listing_pagination_meta(client):
    uid, emp = employee_headers()
    for _ in range(3):
        create_pdr(client, emp)
    first = client.get('/pdrs?limit=2&offset=0', headers=emp).get_json()
    second = client.get('/pdrs?limit=2&offset=2', headers=emp).get_json()
    assert first['pagination'] == {'total': 3, 'limit': 2, 'offset': 0, 'returned': 2}
    assert second['pagination'] == {'total': 3, 'limit': 2, 'offset': 2, 'returned': 1}
    ids = [p['id'] for p in first['data']] + [p['id'] for p in second['data']]
    assert ids == sorted(ids)
    assert len(set(ids)) == 3
    _, ceo = ceo_headers()
    assert client.get('/pdrs?offset=x', headers=ceo).status_code == 400
