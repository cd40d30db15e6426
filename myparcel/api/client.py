"""MyParcel API-klient.

Använder MyParcel Shipment API:
- POST /shipments — skapa en eller flera sändningar
- GET /shipments/{id} — hämta en sändning

API-autentisering: Header 'Authorization: Bearer <api-nyckel>'.
Bas-URL myparcel.nl: https://api.myparcel.nl
Bas-URL sendmyparcel.be: https://api.sendmyparcel.be

Inga omförsök görs, alla fel går direkt till anroparen.
"""

from __future__ import annotations

import base64
import dataclasses
import logging
from typing import Callable, Iterable, Optional

import requests
from requests.adapters import HTTPAdapter

from .base import ShipmentAPI
from ..errors import DecodingError, RemoteError, TransportError, ValidationError
from ..parsers.json_codec import ShipmentJSONCodec
from ..parsers.models import (
    Shipment, Address, CreatedShipment, FetchResult, Storefront,
)
from ..parsers.validation import validate_shipment

logger = logging.getLogger(__name__)

VERSION = "0.1.0"
CLIENT_NAME = "MyParcelPythonClient"

API_BASE_URLS = {
    Storefront.NL: "https://api.myparcel.nl",
    Storefront.BE: "https://api.sendmyparcel.be",
}

# API-sökvägar (relativa till base_url)
API_PATHS = {
    "shipments": "/shipments",
    "shipment_by_id": "/shipments/{id}",
}

CONTENT_TYPE = "application/vnd.shipment+json;version=1.1;charset=utf-8"

# Olika API-versioner svarar 200 eller 201 vid skapande
CREATE_SUCCESS_STATUSES = frozenset({200, 201})
FETCH_SUCCESS_STATUSES = frozenset({200})


class MyParcelClient(ShipmentAPI):
    """Klient för MyParcel Shipment API.

    Konfigurationen sätts i konstruktorn och ändras inte efteråt, så en
    instans kan användas från flera trådar utan lås. Byt nyckel med
    with_api_key() som bygger en ny klient.

    Flöde:
      1. create_shipment() → skapar sändning, returnerar id
      2. get_shipment() → hämtar sändningen via id
    """

    def __init__(self, config: dict, sender_config: Optional[dict] = None):
        if not config.get("api_key"):
            raise ValueError("MyParcel: 'api_key' saknas i konfigurationen")

        self.config = dict(config)
        self.sender_config = dict(sender_config) if sender_config else None

        self.storefront = Storefront(str(config.get("storefront", "nl")).lower())
        self.base_url = (
            config.get("base_url") or API_BASE_URLS[self.storefront]
        ).rstrip("/")
        self.api_key = config["api_key"]
        self.encode_api_key = bool(config.get("encode_api_key", False))
        self.timeout = config.get("timeout_seconds", 30)
        self.validate = bool(config.get("validate", False))
        self.user_agent = config.get("user_agent") or f"{CLIENT_NAME}/{VERSION}"

        self.codec = ShipmentJSONCodec()
        # Avsändare som används när sändningen saknar egen
        self.default_sender: Optional[Address] = (
            self.codec.parse_address(self.sender_config)
            if self.sender_config else None
        )
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({
            "Content-Type": CONTENT_TYPE,
            "Accept": "application/json",
            "Authorization": f"Bearer {self._bearer_token()}",
            "User-Agent": self.user_agent,
        })
        # En återanvänd anslutningspool, inga omförsök
        session.mount("https://", HTTPAdapter(max_retries=0))
        return session

    def _bearer_token(self) -> str:
        if self.encode_api_key:
            return base64.b64encode(self.api_key.encode("utf-8")).decode("ascii")
        return self.api_key

    def with_api_key(self, api_key: str) -> "MyParcelClient":
        """Returnerar en ny klient med samma inställningar men annan nyckel."""
        config = dict(self.config, api_key=api_key)
        return type(self)(config, self.sender_config)

    def close(self):
        self.session.close()

    # ------------------------------------------------------------------
    # POST /shipments
    # ------------------------------------------------------------------

    def create_shipment(self, shipment: Shipment,
                        timeout: Optional[float] = None) -> int:
        """Skapar en sändning och returnerar id:t.

        Raises:
            RemoteError: API:t svarade med annat än 200/201.
            TransportError: nätverksfel.
            DecodingError: svaret saknar id.
        """
        created = self.create_shipments([shipment], timeout=timeout)
        if not created:
            raise DecodingError("MyParcel: Svaret innehåller inga id")
        return created[0].id

    def create_shipments(self, shipments: Iterable[Shipment],
                         timeout: Optional[float] = None) -> list[CreatedShipment]:
        """Skapar flera sändningar i ett anrop.

        Returns:
            En CreatedShipment per skapad sändning, i svarets ordning.
        """
        prepared = [self._prepare(s) for s in shipments]
        if not prepared:
            raise ValueError("MyParcel: Inga sändningar att skapa")

        body = self.codec.encode_create_request(prepared)
        refs = ", ".join(str(s.reference_identifier) for s in prepared)
        logger.info(f"MyParcel: Skapar {len(prepared)} sändning(ar) (referens: {refs})")
        logger.debug(f"MyParcel: Payload: {body.decode('utf-8')}")

        url = f"{self.base_url}{API_PATHS['shipments']}"
        response = self._send(self.session.post, url, timeout, data=body)
        self._check_status(response, CREATE_SUCCESS_STATUSES)

        created = self.codec.decode_create_response(response.content)
        logger.info(
            f"MyParcel: Sändning(ar) skapade — id="
            f"{', '.join(str(c.id) for c in created)}"
        )
        return created

    def _prepare(self, shipment: Shipment) -> Shipment:
        """Lägger på standardavsändare och validerar (om påslaget).

        Anroparens objekt ändras inte.
        """
        if shipment.sender is None and self.default_sender is not None:
            shipment = dataclasses.replace(shipment, sender=self.default_sender)

        if self.validate:
            problems = validate_shipment(shipment, self.storefront)
            if problems:
                logger.warning(
                    f"MyParcel: Sändning {shipment.reference_identifier} "
                    f"underkänd lokalt: {'; '.join(problems)}"
                )
                raise ValidationError(problems)

        return shipment

    # ------------------------------------------------------------------
    # GET /shipments/{id}
    # ------------------------------------------------------------------

    def get_shipment(self, shipment_id: int,
                     timeout: Optional[float] = None) -> FetchResult:
        """Hämtar en sändning via id.

        Raises:
            RemoteError: API:t svarade med annat än 200.
            TransportError: nätverksfel.
            DecodingError: svaret saknar data.shipments.
        """
        logger.info(f"MyParcel: Hämtar sändning {shipment_id}")

        url = f"{self.base_url}{API_PATHS['shipment_by_id'].format(id=int(shipment_id))}"
        response = self._send(self.session.get, url, timeout)
        self._check_status(response, FETCH_SUCCESS_STATUSES)

        result = self.codec.decode_fetch_response(response.content)
        logger.info(f"MyParcel: Hämtade {len(result.shipments)} sändning(ar)")
        return result

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _send(self, send: Callable[..., requests.Response], url: str,
              timeout: Optional[float], **kwargs) -> requests.Response:
        """Skickar anropet, nätverksfel blir TransportError."""
        try:
            return send(
                url,
                timeout=self.timeout if timeout is None else timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            logger.error(f"MyParcel: Anrop mot {url} misslyckades: {e}")
            raise TransportError(f"MyParcel: Anrop mot {url} misslyckades: {e}", e) from e

    def _check_status(self, response: requests.Response, ok: frozenset):
        if response.status_code in ok:
            return
        body = response.text
        logger.warning(
            f"MyParcel: Status {response.status_code} från API: {body[:200]}"
        )
        raise RemoteError(response.status_code, body)
