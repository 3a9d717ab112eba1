"""
Pricing Oracle Client Tests

The catalog is reached over HTTP; failures map onto the shared error
taxonomy so checkout can surface them unchanged.
"""
import pytest
import requests
from unittest.mock import MagicMock, patch

from cart.pricing import PricingOracleClient
from core_backend.exceptions import (
    ErrorCodes,
    ItemUnavailableError,
    NotFoundError,
    ServiceUnavailableError,
)


def fake_response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return response


@pytest.fixture
def client():
    return PricingOracleClient('tenant-1', base_url='http://catalog.local/', api_key='secret', timeout=2)


class TestPricingOracleClient:

    def test_get_menu_item_unwraps_envelope(self, client):
        body = {'code': 1000, 'message': 'Success', 'data': {'id': 'pho', 'price': '60000', 'status': 'AVAILABLE'}}

        with patch('cart.pricing.requests.get', return_value=fake_response(body=body)) as mock_get:
            item = client.get_menu_item('pho')

        assert item['price'] == '60000'
        mock_get.assert_called_once_with(
            'http://catalog.local/api/menu-items/pho',
            headers={'X-Api-Key': 'secret', 'X-Tenant-Id': 'tenant-1', 'Accept': 'application/json'},
            timeout=2,
        )

    def test_get_modifier_option_path(self, client):
        body = {'code': 1000, 'data': {'id': 'large', 'price': '15000'}}

        with patch('cart.pricing.requests.get', return_value=fake_response(body=body)) as mock_get:
            option = client.get_modifier_option('size', 'large')

        assert option['price'] == '15000'
        assert mock_get.call_args.args[0] == 'http://catalog.local/api/modifier-groups/size/options/large'

    def test_not_found(self, client):
        with patch('cart.pricing.requests.get', return_value=fake_response(status_code=404)):
            with pytest.raises(NotFoundError):
                client.get_menu_item('ghost')

    def test_connection_error_is_service_unavailable(self, client):
        with patch('cart.pricing.requests.get', side_effect=requests.ConnectionError('refused')):
            with pytest.raises(ServiceUnavailableError) as exc_info:
                client.get_menu_item('pho')
        assert exc_info.value.code == ErrorCodes.SERVICE_UNAVAILABLE.code

    def test_server_error_is_service_unavailable(self, client):
        with patch('cart.pricing.requests.get', return_value=fake_response(status_code=500)):
            with pytest.raises(ServiceUnavailableError):
                client.get_menu_item('pho')

    def test_error_envelope_is_reraised(self, client):
        body = {'code': 4506, 'message': 'Menu item is not available', 'details': None}

        with patch('cart.pricing.requests.get', return_value=fake_response(body=body)):
            with pytest.raises(ItemUnavailableError):
                client.get_menu_item('pho')

    @pytest.mark.parametrize("status,expected", [
        ('AVAILABLE', True),
        ('available', True),
        ('OUT_OF_STOCK', False),
        ('UNAVAILABLE', False),
        (None, False),
    ])
    def test_is_available(self, status, expected):
        assert PricingOracleClient.is_available({'status': status}) is expected
