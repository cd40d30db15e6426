"""Tester för MyParcel-klienten.

Testar headers, statuskoder och felhantering utan att anropa riktigt API.
"""

import base64
import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from myparcel.api.base import ShipmentAPI
from myparcel.api.client import (
    MyParcelClient, API_BASE_URLS, API_PATHS, CONTENT_TYPE, VERSION,
)
from myparcel.errors import (
    DecodingError, RemoteError, TransportError, ValidationError, MyParcelError,
)
from myparcel.parsers.models import (
    Shipment, Address, Options, Carrier, PackageType, Storefront,
)


FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def api_config():
    return {
        "api_key": "test-key-1234",
        "timeout_seconds": 10,
    }


@pytest.fixture
def sender_config():
    return {
        "cc": "NL",
        "city": "Hoofddorp",
        "street": "Antareslaan",
        "number": "31",
        "postal_code": "2132JE",
        "person": "Lagret",
    }


@pytest.fixture
def client(api_config):
    return MyParcelClient(api_config)


@pytest.fixture
def sample_shipment():
    return Shipment(
        reference_identifier="ORDER-2026-0042",
        carrier=Carrier.POSTNL,
        recipient=Address(
            cc="NL",
            city="Amsterdam",
            street="Prinsengracht",
            number="263",
            postal_code="1016GV",
            person="Jan de Vries",
        ),
    )


def _response(status_code: int, body: bytes) -> MagicMock:
    mock_response = MagicMock()
    mock_response.status_code = status_code
    mock_response.content = body
    mock_response.text = body.decode("utf-8")
    return mock_response


class TestClientSetup:

    def test_is_shipment_api(self, client):
        assert isinstance(client, ShipmentAPI)

    def test_default_base_url(self, client):
        assert client.base_url == "https://api.myparcel.nl"

    def test_be_storefront(self, api_config):
        api_config["storefront"] = "be"
        client = MyParcelClient(api_config)
        assert client.storefront == Storefront.BE
        assert client.base_url == API_BASE_URLS[Storefront.BE]

    def test_base_url_override(self, api_config):
        api_config["base_url"] = "https://sandbox.example.test/"
        client = MyParcelClient(api_config)
        assert client.base_url == "https://sandbox.example.test"

    def test_missing_api_key(self):
        with pytest.raises(ValueError, match="api_key"):
            MyParcelClient({})

    def test_headers(self, client):
        headers = client.session.headers
        assert headers["Authorization"] == "Bearer test-key-1234"
        assert headers["Content-Type"] == CONTENT_TYPE
        assert headers["Content-Type"] == "application/vnd.shipment+json;version=1.1;charset=utf-8"
        assert headers["Accept"] == "application/json"
        assert headers["User-Agent"] == f"MyParcelPythonClient/{VERSION}"

    def test_api_key_not_encoded_by_default(self, client):
        assert client.session.headers["Authorization"] == "Bearer test-key-1234"

    def test_api_key_base64_encoded(self, api_config):
        api_config["encode_api_key"] = True
        client = MyParcelClient(api_config)
        expected = base64.b64encode(b"test-key-1234").decode()
        assert client.session.headers["Authorization"] == f"Bearer {expected}"

    def test_no_retries(self, client):
        adapter = client.session.get_adapter("https://api.myparcel.nl")
        assert adapter.max_retries.total == 0

    def test_with_api_key_builds_new_client(self, client):
        rotated = client.with_api_key("new-key")
        assert rotated is not client
        assert rotated.session is not client.session
        assert rotated.session.headers["Authorization"] == "Bearer new-key"
        assert client.session.headers["Authorization"] == "Bearer test-key-1234"


class TestCreateShipment:
    """Testar POST /shipments."""

    def test_returns_id(self, client, sample_shipment):
        body = (FIXTURES_DIR / "create_response.json").read_bytes()
        with patch.object(client.session, "post", return_value=_response(200, body)):
            assert client.create_shipment(sample_shipment) == 134522

    def test_accepts_201(self, client, sample_shipment):
        body = b'{"data":{"ids":[{"id":77,"reference_identifier":"ORDER-2026-0042"}]}}'
        with patch.object(client.session, "post", return_value=_response(201, body)):
            assert client.create_shipment(sample_shipment) == 77

    def test_request(self, client, sample_shipment):
        body = (FIXTURES_DIR / "create_response.json").read_bytes()
        with patch.object(client.session, "post", return_value=_response(200, body)) as post:
            client.create_shipment(sample_shipment)

        args, kwargs = post.call_args
        assert args[0] == "https://api.myparcel.nl" + API_PATHS["shipments"]
        assert kwargs["timeout"] == 10
        payload = json.loads(kwargs["data"])
        shipments = payload["data"]["shipments"]
        assert len(shipments) == 1
        assert shipments[0]["reference_identifier"] == "ORDER-2026-0042"
        assert shipments[0]["recipient"]["person"] == "Jan de Vries"

    def test_per_call_timeout(self, client, sample_shipment):
        body = (FIXTURES_DIR / "create_response.json").read_bytes()
        with patch.object(client.session, "post", return_value=_response(200, body)) as post:
            client.create_shipment(sample_shipment, timeout=2.5)
        assert post.call_args.kwargs["timeout"] == 2.5

    def test_remote_error_keeps_body(self, client, sample_shipment):
        body = b'{"error":"invalid postal code"}'
        with patch.object(client.session, "post", return_value=_response(422, body)):
            with pytest.raises(RemoteError) as exc_info:
                client.create_shipment(sample_shipment)

        err = exc_info.value
        assert err.status_code == 422
        assert '{"error":"invalid postal code"}' in err.body
        assert err.messages == ["invalid postal code"]

    def test_remote_error_api_errors_list(self, client, sample_shipment):
        body = json.dumps({
            "errors": [{"code": 3212, "message": "recipient.person is required"}],
            "message": "Validation failed",
        }).encode()
        with patch.object(client.session, "post", return_value=_response(400, body)):
            with pytest.raises(RemoteError) as exc_info:
                client.create_shipment(sample_shipment)
        assert exc_info.value.messages == [
            "recipient.person is required", "Validation failed",
        ]

    def test_remote_error_non_json_body(self, client, sample_shipment):
        with patch.object(client.session, "post",
                          return_value=_response(502, b"Bad Gateway")):
            with pytest.raises(RemoteError) as exc_info:
                client.create_shipment(sample_shipment)
        assert exc_info.value.body == "Bad Gateway"
        assert exc_info.value.messages == []

    def test_unauthorized(self, client, sample_shipment):
        with patch.object(client.session, "post",
                          return_value=_response(401, b'{"message":"Unauthorized"}')):
            with pytest.raises(RemoteError) as exc_info:
                client.create_shipment(sample_shipment)
        assert exc_info.value.status_code == 401

    def test_connection_error(self, client, sample_shipment):
        """Nätverksfel ska ge TransportError, aldrig id 0."""
        cause = requests.ConnectionError("Name or service not known")
        with patch.object(client.session, "post", side_effect=cause):
            with pytest.raises(TransportError) as exc_info:
                client.create_shipment(sample_shipment)

        assert exc_info.value.cause is cause
        assert exc_info.value.__cause__ is cause

    def test_timeout(self, client, sample_shipment):
        with patch.object(client.session, "post", side_effect=requests.Timeout("read timeout")):
            with pytest.raises(TransportError):
                client.create_shipment(sample_shipment)

    def test_unreachable_host(self, api_config, sample_shipment):
        """Riktigt anrop mot en adress som inte går att nå."""
        api_config["base_url"] = "http://127.0.0.1:9"
        api_config["timeout_seconds"] = 2
        client = MyParcelClient(api_config)
        with pytest.raises(TransportError):
            client.create_shipment(sample_shipment)

    def test_empty_ids_raises(self, client, sample_shipment):
        with patch.object(client.session, "post",
                          return_value=_response(200, b'{"data":{"ids":[]}}')):
            with pytest.raises(DecodingError):
                client.create_shipment(sample_shipment)

    def test_invalid_json_raises(self, client, sample_shipment):
        with patch.object(client.session, "post",
                          return_value=_response(200, b"<html></html>")):
            with pytest.raises(DecodingError):
                client.create_shipment(sample_shipment)

    def test_errors_share_base_class(self, client, sample_shipment):
        with patch.object(client.session, "post",
                          return_value=_response(500, b"boom")):
            with pytest.raises(MyParcelError):
                client.create_shipment(sample_shipment)


class TestCreateShipments:
    """Testar batch-skapande."""

    def test_per_item_results(self, client, sample_shipment):
        second = Shipment(
            reference_identifier="ORDER-2",
            recipient=Address(cc="NL", city="Utrecht", street="Oudegracht",
                              number="1", postal_code="3511AA", person="Piet"),
        )
        body = b'{"data":{"ids":[{"id":1,"reference_identifier":"ORDER-2026-0042"},{"id":2,"reference_identifier":"ORDER-2"}]}}'
        with patch.object(client.session, "post", return_value=_response(200, body)) as post:
            created = client.create_shipments([sample_shipment, second])

        assert [(c.id, c.reference_identifier) for c in created] == [
            (1, "ORDER-2026-0042"), (2, "ORDER-2"),
        ]
        payload = json.loads(post.call_args.kwargs["data"])
        assert len(payload["data"]["shipments"]) == 2

    def test_empty_batch(self, client):
        with pytest.raises(ValueError):
            client.create_shipments([])


class TestDefaultSender:

    def test_default_sender_applied(self, api_config, sender_config, sample_shipment):
        client = MyParcelClient(api_config, sender_config)
        body = (FIXTURES_DIR / "create_response.json").read_bytes()
        with patch.object(client.session, "post", return_value=_response(200, body)) as post:
            client.create_shipment(sample_shipment)

        sent = json.loads(post.call_args.kwargs["data"])["data"]["shipments"][0]
        assert sent["sender"]["person"] == "Lagret"
        assert sent["sender"]["postal_code"] == "2132JE"
        # Anroparens objekt ändras inte
        assert sample_shipment.sender is None

    def test_own_sender_wins(self, api_config, sender_config, sample_shipment):
        client = MyParcelClient(api_config, sender_config)
        sample_shipment.sender = Address(cc="NL", city="Delft", person="Butiken")
        body = (FIXTURES_DIR / "create_response.json").read_bytes()
        with patch.object(client.session, "post", return_value=_response(200, body)) as post:
            client.create_shipment(sample_shipment)

        sent = json.loads(post.call_args.kwargs["data"])["data"]["shipments"][0]
        assert sent["sender"] == {"cc": "NL", "city": "Delft", "person": "Butiken"}


class TestLocalValidation:

    def test_disabled_by_default(self, client, sample_shipment):
        sample_shipment.options = Options(package_type=PackageType.MAILBOX, signature=True)
        body = (FIXTURES_DIR / "create_response.json").read_bytes()
        with patch.object(client.session, "post", return_value=_response(200, body)):
            assert client.create_shipment(sample_shipment) == 134522

    def test_enabled_rejects_before_request(self, api_config, sample_shipment):
        api_config["validate"] = True
        client = MyParcelClient(api_config)
        sample_shipment.options = Options(package_type=PackageType.MAILBOX, signature=True)

        with patch.object(client.session, "post") as post:
            with pytest.raises(ValidationError) as exc_info:
                client.create_shipment(sample_shipment)

        post.assert_not_called()
        assert "signature" in exc_info.value.problems[0]

    def test_enabled_checks_storefront_carrier(self, api_config, sample_shipment):
        api_config["validate"] = True
        client = MyParcelClient(api_config)
        sample_shipment.carrier = Carrier.DPD

        with patch.object(client.session, "post") as post:
            with pytest.raises(ValidationError):
                client.create_shipment(sample_shipment)
        post.assert_not_called()


class TestGetShipment:
    """Testar GET /shipments/{id}."""

    def test_two_shipments(self, client):
        body = (FIXTURES_DIR / "fetch_response.json").read_bytes()
        with patch.object(client.session, "get", return_value=_response(200, body)) as get:
            result = client.get_shipment(134522)

        assert get.call_args.args[0] == "https://api.myparcel.nl/shipments/134522"
        assert result.results == 2
        assert len(result.shipments) == 2
        assert [s.id for s in result.shipments] == [134522, 134523]

    def test_no_body_sent(self, client):
        body = (FIXTURES_DIR / "fetch_response.json").read_bytes()
        with patch.object(client.session, "get", return_value=_response(200, body)) as get:
            client.get_shipment(134522)
        assert "data" not in get.call_args.kwargs
        assert get.call_args.kwargs["timeout"] == 10

    def test_201_is_not_success(self, client):
        body = (FIXTURES_DIR / "fetch_response.json").read_bytes()
        with patch.object(client.session, "get", return_value=_response(201, body)):
            with pytest.raises(RemoteError):
                client.get_shipment(134522)

    def test_not_found(self, client):
        with patch.object(client.session, "get",
                          return_value=_response(404, b'{"message":"Not found"}')):
            with pytest.raises(RemoteError) as exc_info:
                client.get_shipment(1)
        assert exc_info.value.status_code == 404
        assert exc_info.value.body == '{"message":"Not found"}'

    def test_transport_error(self, client):
        with patch.object(client.session, "get",
                          side_effect=requests.exceptions.SSLError("handshake failed")):
            with pytest.raises(TransportError):
                client.get_shipment(1)

    def test_missing_envelope(self, client):
        with patch.object(client.session, "get",
                          return_value=_response(200, b'{"shipments":[]}')):
            with pytest.raises(DecodingError):
                client.get_shipment(1)
