"""MyParcel-klient — Entrypoint.

Kan köras som:
1. Skapa sändning:  python -m myparcel.main create sändning.yaml
2. Hämta sändning:  python -m myparcel.main get 123456
3. Kontrollera:     python -m myparcel.main validate sändning.yaml

Konfiguration läses från config/config.yaml (eller $MYPARCEL_CONFIG).
"""

import sys
import json
import logging
from pathlib import Path

import yaml

from .config import load_config, setup_logging
from .errors import MyParcelError, RemoteError
from .parsers.json_codec import ShipmentJSONCodec
from .parsers.models import Shipment, Storefront
from .parsers.validation import validate_shipment

logger = logging.getLogger(__name__)

USAGE = (
    "Användning:\n"
    "  myparcel create <sändning.yaml>\n"
    "  myparcel get <id>\n"
    "  myparcel validate <sändning.yaml>"
)

# Läses annars som tal av YAML (0123 blir 83)
QUOTED_ADDRESS_FIELDS = ("postal_code", "number")


def load_shipment(filepath: Path) -> Shipment:
    """Läser en sändningsbeskrivning (YAML, samma fält som API:t).

    Postnummer och husnummer måste citeras i filen. YAML läser annars
    0123 som det oktala talet 83.

    Raises:
        ValueError: filen är inte giltig YAML, inte ett objekt, eller har
            ett ociterat postnummer/husnummer.
    """
    with open(filepath, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Ogiltig YAML i {filepath}: {e}") from e
    if not isinstance(raw, dict):
        raise ValueError(f"{filepath}: sändningen måste vara ett objekt")

    addresses = [("recipient", raw.get("recipient")), ("sender", raw.get("sender"))]
    secondaries = raw.get("secondary_shipments")
    if isinstance(secondaries, list):
        addresses += [
            ("secondary_shipments.recipient", s.get("recipient"))
            for s in secondaries if isinstance(s, dict)
        ]
    for name, address in addresses:
        if not isinstance(address, dict):
            continue
        for key in QUOTED_ADDRESS_FIELDS:
            value = address.get(key)
            if value is not None and not isinstance(value, str):
                raise ValueError(
                    f"{filepath}: {name}.{key} måste citeras, t.ex. {key}: \"0123\""
                )

    return ShipmentJSONCodec().parse_shipment(raw)


def _shipment_to_output(codec: ShipmentJSONCodec, shipment: Shipment) -> dict:
    """Sändning som JSON för utskrift. Okända koder visas som de är."""
    data = codec.build_shipment(shipment)
    data.update({
        "id": shipment.id,
        "barcode": shipment.barcode,
        "status": shipment.status,
        "created": shipment.created.to_json(),
        "modified": shipment.modified.to_json(),
    })
    return data


def _create_client(config: dict):
    from .api.client import MyParcelClient

    api_config = config.get("myparcel", {}) or {}
    api_key = str(api_config.get("api_key") or "")
    if not api_key or api_key.startswith("${"):
        raise ValueError("API-nyckel saknas, sätt MYPARCEL_API_KEY")
    return MyParcelClient(api_config, config.get("sender"))


def run(command: str, arg: str, config: dict) -> int:
    if command == "validate":
        shipment = load_shipment(Path(arg))
        storefront = Storefront(
            str((config.get("myparcel") or {}).get("storefront", "nl")).lower()
        )
        problems = validate_shipment(shipment, storefront)
        for problem in problems:
            print(f"FEL: {problem}")
        if not problems:
            print("OK")
        return 1 if problems else 0

    client = _create_client(config)
    try:
        if command == "create":
            shipment = load_shipment(Path(arg))
            shipment_id = client.create_shipment(shipment)
            print(shipment_id)
        elif command == "get":
            result = client.get_shipment(int(arg))
            codec = ShipmentJSONCodec(strict=False)
            output = {
                "results": result.results,
                "shipments": [
                    _shipment_to_output(codec, s) for s in result.shipments
                ],
            }
            print(json.dumps(output, ensure_ascii=False, indent=2))
        else:
            print(USAGE)
            return 2
    finally:
        client.close()
    return 0


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)

    if len(args) != 2 or args[0] not in ("create", "get", "validate"):
        print(USAGE)
        return 2

    try:
        config = load_config()
        setup_logging(config)
        return run(args[0], args[1], config)
    except RemoteError as e:
        logger.error(f"MyParcel svarade {e.status_code}: {e.body}")
        for message in e.messages:
            print(f"FEL: {message}")
        return 1
    except (MyParcelError, ValueError, TypeError, OSError, yaml.YAMLError) as e:
        logger.error(f"Misslyckades: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
