"""JSON-kodning av MyParcels request- och response-kuvert.

Request (POST /shipments):
    {"data": {"shipments": [<shipment>, ...]}}

Svar vid skapande:
    {"data": {"ids": [{"id": 123, "reference_identifier": "..."}]}}

Svar vid hämtning (GET /shipments/{id}):
    {"data": {"shipments": [<shipment>, ...], "results": 1}}

Valfria fält utelämnas helt när de saknas. En betald tilläggstjänst som
skickas med värdet 0 debiteras ändå, så flaggor skickas bara när de är på.
Undantaget är options.delivery_date som alltid skickas (null = inget datum).
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Iterable, Optional, Union

from .models import (
    Shipment, Address, Options, Insurance, SecondaryShipment,
    CreatedShipment, FetchResult, Carrier, PackageType, DeliveryType, Currency,
)
from .timestamp import JSONTime
from ..errors import EncodingError, DecodingError

logger = logging.getLogger(__name__)

# Adressfält som alltid skickas för mottagaren
REQUIRED_ADDRESS_FIELDS = ("cc", "city", "street", "number", "postal_code", "person")
ADDRESS_FIELDS = (
    "cc", "region", "city", "street", "number", "postal_code",
    "person", "phone", "email",
)

# Flaggor i Options: attributnamn -> JSON-nyckel
OPTION_FLAGS = {
    "only_recipient": "only_recipient",
    "signature": "signature",
    "return_if_absent": "return",
    "large_format": "large_format",
    "age_check": "age_check",
}


class ShipmentJSONCodec:
    """Kodar sändningar till och från MyParcels JSON-format.

    Med strict=False släpps okända koder och valutor igenom som de är när
    en sändning byggs. Det används för att visa hämtade sändningar, aldrig
    för att skicka dem.
    """

    def __init__(self, strict: bool = True):
        self.strict = strict

    # ------------------------------------------------------------------
    # Request
    # ------------------------------------------------------------------

    def encode_create_request(self, shipments: Iterable[Shipment]) -> bytes:
        """Bygger request-kuvertet för POST /shipments som UTF-8 JSON.

        Raises:
            EncodingError: om någon sändning innehåller ett värde som
                inte går att koda.
        """
        try:
            envelope = {
                "data": {
                    "shipments": [self.build_shipment(s) for s in shipments],
                },
            }
            body = json.dumps(envelope, ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError, AttributeError) as e:
            raise EncodingError(f"Kunde inte koda sändning: {e}") from e

        return body.encode("utf-8")

    def build_shipment(self, shipment: Shipment) -> dict:
        """Bygger JSON-objektet för en sändning.

        Fält som sätts av API:t (id, barcode, status, created, modified,
        multi_collo_main_shipment_id) skickas aldrig.
        """
        payload: dict[str, Any] = {
            "recipient": self._build_address(shipment.recipient, required=True),
        }

        if shipment.sender is not None:
            sender = self._build_address(shipment.sender, required=False)
            if sender:
                payload["sender"] = sender

        if shipment.reference_identifier is not None:
            payload["reference_identifier"] = str(shipment.reference_identifier)

        payload["options"] = self._build_options(shipment.options)
        payload["carrier"] = self._enum_value(shipment.carrier, Carrier)

        if shipment.secondary_shipments is not None:
            payload["secondary_shipments"] = [
                self._build_secondary(s) for s in shipment.secondary_shipments
            ]

        return payload

    def _build_address(self, address: Address, required: bool) -> dict:
        """Adress som dict.

        required=True: obligatoriska fält skickas även om de är tomma
        (mottagare). required=False: alla tomma fält utelämnas.
        """
        result = {}
        for name in ADDRESS_FIELDS:
            value = getattr(address, name)
            value = "" if value is None else str(value)
            if value or (required and name in REQUIRED_ADDRESS_FIELDS):
                result[name] = value
        return result

    def _build_options(self, options: Options) -> dict:
        result: dict[str, Any] = {
            "package_type": self._enum_value(options.package_type, PackageType),
        }

        for attr, key in OPTION_FLAGS.items():
            if getattr(options, attr):
                result[key] = 1

        if options.delivery_type is not None:
            result["delivery_type"] = self._enum_value(
                options.delivery_type, DeliveryType
            )

        # Alltid med, null när inget datum är satt
        result["delivery_date"] = self._as_json_time(options.delivery_date).to_json()

        if options.insurance is not None:
            result["insurance"] = self._build_insurance(options.insurance)

        if options.label_description:
            result["label_description"] = str(options.label_description)

        return result

    def _build_insurance(self, insurance: Insurance) -> dict:
        amount = insurance.amount
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise TypeError(
                f"insurance.amount måste vara heltal i cent, fick {amount!r}"
            )
        currency = insurance.currency
        if not self.strict:
            return {"amount": amount, "currency": getattr(currency, "value", currency)}
        if not isinstance(currency, Currency):
            currency = Currency(currency)
        return {"amount": amount, "currency": currency.value}

    def _build_secondary(self, secondary: SecondaryShipment) -> dict:
        result: dict[str, Any] = {}
        if secondary.id is not None:
            result["id"] = int(secondary.id)
        if secondary.reference_identifier is not None:
            result["reference_identifier"] = str(secondary.reference_identifier)
        if secondary.recipient is not None:
            result["recipient"] = self._build_address(secondary.recipient, required=False)
        if secondary.options is not None:
            result["options"] = self._build_options(secondary.options)
        return result

    def _enum_value(self, value, enum_cls) -> int:
        if isinstance(value, bool):
            raise TypeError(f"Ogiltigt värde för {enum_cls.__name__}: {value!r}")
        if not self.strict:
            return int(getattr(value, "value", value))
        return int(enum_cls(value))

    @staticmethod
    def _as_json_time(value) -> JSONTime:
        if isinstance(value, JSONTime):
            return value
        if value is None:
            return JSONTime()
        if isinstance(value, datetime):
            return JSONTime(value)
        raise TypeError(f"Ogiltigt datum: {value!r}")

    # ------------------------------------------------------------------
    # Svar
    # ------------------------------------------------------------------

    def decode_create_response(self, raw: Union[bytes, str]) -> list[CreatedShipment]:
        """Tolkar svaret från POST /shipments.

        Raises:
            DecodingError: ogiltig JSON, saknat data.ids eller post utan id.
        """
        data = self._load_envelope(raw)
        ids = data.get("ids")
        if not isinstance(ids, list):
            raise DecodingError("Svaret saknar 'data.ids'")

        created = []
        for entry in ids:
            if not isinstance(entry, dict):
                raise DecodingError(f"Ogiltig post i 'data.ids': {entry!r}")
            try:
                shipment_id = self._to_int(entry.get("id"))
            except (TypeError, ValueError) as e:
                raise DecodingError(f"Ogiltigt id i 'data.ids': {entry!r}") from e
            if shipment_id is None:
                raise DecodingError(f"Post i 'data.ids' saknar id: {entry!r}")

            ref = entry.get("reference_identifier")
            created.append(CreatedShipment(
                id=shipment_id,
                reference_identifier=None if ref is None else str(ref),
            ))

        logger.debug(f"MyParcel: {len(created)} id(n) i svaret")
        return created

    def decode_fetch_response(self, raw: Union[bytes, str]) -> FetchResult:
        """Tolkar svaret från GET /shipments/{id}.

        Okända fält ignoreras. results faller tillbaka på antalet
        sändningar om fältet saknas.
        """
        data = self._load_envelope(raw)
        shipments_raw = data.get("shipments")
        if not isinstance(shipments_raw, list):
            raise DecodingError("Svaret saknar 'data.shipments'")

        try:
            shipments = [self.parse_shipment(s) for s in shipments_raw]
            results = self._to_int(data.get("results"))
        except (TypeError, ValueError, AttributeError) as e:
            raise DecodingError(f"Ogiltig sändning i svaret: {e}") from e

        if results is None:
            results = len(shipments)

        return FetchResult(shipments=shipments, results=results)

    def _load_envelope(self, raw: Union[bytes, str]) -> dict:
        try:
            decoded = json.loads(raw)
        except ValueError as e:
            raise DecodingError(f"Svaret är inte giltig JSON: {e}") from e

        if not isinstance(decoded, dict) or not isinstance(decoded.get("data"), dict):
            raise DecodingError("Svaret saknar 'data'-kuvert")
        return decoded["data"]

    def parse_shipment(self, raw: dict) -> Shipment:
        """Bygger en Shipment från ett JSON-objekt (svar eller YAML-fil).

        Raises:
            ValueError/TypeError: om ett fält har fel typ.
        """
        if not isinstance(raw, dict):
            raise TypeError(f"Sändning måste vara ett objekt, fick {type(raw).__name__}")

        sender_raw = raw.get("sender")
        ref = raw.get("reference_identifier")

        return Shipment(
            recipient=self.parse_address(raw.get("recipient")),
            options=self._parse_options(raw.get("options")),
            carrier=self._parse_enum(raw.get("carrier"), Carrier, Carrier.POSTNL),
            reference_identifier=None if ref is None else str(ref),
            sender=self.parse_address(sender_raw) if sender_raw else None,
            secondary_shipments=self._parse_secondaries(raw.get("secondary_shipments")),
            id=self._to_int(raw.get("id")),
            barcode=raw.get("barcode") or "",
            status=self._to_int(raw.get("status")),
            multi_collo_main_shipment_id=self._to_int(
                raw.get("multi_collo_main_shipment_id")
            ),
            created=JSONTime.from_json(raw.get("created")),
            modified=JSONTime.from_json(raw.get("modified")),
        )

    def parse_address(self, raw: Optional[dict]) -> Address:
        if not raw:
            return Address()
        if not isinstance(raw, dict):
            raise TypeError(f"Adress måste vara ett objekt, fick {type(raw).__name__}")
        values = {}
        for name in ADDRESS_FIELDS:
            value = raw.get(name)
            values[name] = "" if value is None else str(value)
        return Address(**values)

    def _parse_options(self, raw: Optional[dict]) -> Options:
        if not raw:
            return Options()
        if not isinstance(raw, dict):
            raise TypeError(f"options måste vara ett objekt, fick {type(raw).__name__}")

        flags = {attr: bool(raw.get(key)) for attr, key in OPTION_FLAGS.items()}
        delivery_type = raw.get("delivery_type")
        label = raw.get("label_description")

        return Options(
            package_type=self._parse_enum(
                raw.get("package_type"), PackageType, PackageType.PACKAGE
            ),
            delivery_type=(
                self._parse_enum(delivery_type, DeliveryType, None)
                if delivery_type else None
            ),
            delivery_date=JSONTime.from_json(raw.get("delivery_date")),
            insurance=self._parse_insurance(raw.get("insurance")),
            label_description="" if label is None else str(label),
            **flags,
        )

    def _parse_insurance(self, raw) -> Optional[Insurance]:
        if not raw:
            return None
        amount = self._to_int(raw.get("amount")) or 0
        currency = raw.get("currency") or Currency.EUR.value
        try:
            currency = Currency(currency)
        except ValueError:
            # Okänd valuta behålls som rå sträng
            pass
        return Insurance(amount=amount, currency=currency)

    def _parse_secondaries(self, raw) -> Optional[list[SecondaryShipment]]:
        """secondary_shipments kan vara lista, enskilt objekt eller id."""
        if raw is None:
            return None
        if not isinstance(raw, list):
            raw = [raw]

        result = []
        for entry in raw:
            if isinstance(entry, dict):
                ref = entry.get("reference_identifier")
                result.append(SecondaryShipment(
                    id=self._to_int(entry.get("id")),
                    reference_identifier=None if ref is None else str(ref),
                    recipient=(
                        self.parse_address(entry["recipient"])
                        if entry.get("recipient") else None
                    ),
                    options=(
                        self._parse_options(entry["options"])
                        if entry.get("options") else None
                    ),
                ))
            else:
                result.append(SecondaryShipment(id=self._to_int(entry)))
        return result

    @staticmethod
    def _parse_enum(value, enum_cls, default):
        """Okända koder behålls som heltal (nya transportörer m.m.)."""
        if value is None or value == "":
            return default
        number = int(value)
        try:
            return enum_cls(number)
        except ValueError:
            return number

    @staticmethod
    def _to_int(value) -> Optional[int]:
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            raise TypeError(f"Förväntade heltal, fick {value!r}")
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            return int(value.strip())
        raise ValueError(f"Förväntade heltal, fick {value!r}")
