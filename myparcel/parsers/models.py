"""Datamodeller för MyParcel-sändningar."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
from enum import Enum, IntEnum

from .timestamp import JSONTime


class Carrier(IntEnum):
    POSTNL = 1
    BPOST = 2        # Endast sendmyparcel.be
    CHEAP_CARGO = 3  # Pallar
    DPD = 4          # Endast sendmyparcel.be
    INSTABOX = 5     # Endast myparcel.nl
    UPS = 8          # Endast myparcel.nl


class PackageType(IntEnum):
    """Pakettyp. Endast PACKAGE stödjer tilläggstjänster.

    MAILBOX, LETTER och DIGITAL_STAMP faktureras ändå om tilläggstjänster
    skickas med, så de ska skickas utan.
    """
    PACKAGE = 1
    MAILBOX = 2
    LETTER = 3         # Ofrankerad, mottagaren betalar porto
    DIGITAL_STAMP = 4  # Pris efter vikt


class DeliveryType(IntEnum):
    MORNING = 1
    STANDARD = 2
    EVENING = 3
    PICKUP = 4


class Currency(Enum):
    EUR = "EUR"


class Storefront(Enum):
    NL = "nl"  # MyParcel.nl
    BE = "be"  # SendMyParcel.be


# Vilka transportörer som finns i respektive butik
STOREFRONT_CARRIERS = {
    Storefront.NL: frozenset({
        Carrier.POSTNL, Carrier.CHEAP_CARGO, Carrier.INSTABOX, Carrier.UPS,
    }),
    Storefront.BE: frozenset({
        Carrier.POSTNL, Carrier.BPOST, Carrier.CHEAP_CARGO, Carrier.DPD,
    }),
}


@dataclass
class Address:
    """Adress för mottagare och avsändare.

    cc, city, street och person krävs alltid. number krävs för inrikes
    NL/BE, postal_code för NL och EU (utom IE). person max 40 tecken.
    """
    cc: str = ""
    region: str = ""
    city: str = ""
    street: str = ""
    number: str = ""
    postal_code: str = ""
    person: str = ""
    phone: str = ""
    email: str = ""


@dataclass
class Insurance:
    amount: int = 0  # I cent, utan decimaler
    currency: Currency = Currency.EUR


@dataclass
class Options:
    package_type: PackageType = PackageType.PACKAGE
    only_recipient: bool = False
    # Krävs om delivery_date är satt, och tvärtom
    delivery_type: Optional[DeliveryType] = None
    delivery_date: JSONTime = field(default_factory=JSONTime)
    signature: bool = False
    return_if_absent: bool = False  # "return" i API:t
    insurance: Optional[Insurance] = None
    large_format: bool = False
    label_description: str = ""
    age_check: bool = False  # 18+, kräver signatur


@dataclass
class SecondaryShipment:
    """Delsändning i en multi-collo-sändning.

    Tom post: all data kopieras från huvudsändningen.
    Med id: refererar till en befintlig sändning (i svar från API:t).
    Med recipient/options: värdena används i stället för huvudsändningens.
    """
    id: Optional[int] = None
    reference_identifier: Optional[str] = None
    recipient: Optional[Address] = None
    options: Optional[Options] = None


@dataclass
class Shipment:
    recipient: Address = field(default_factory=Address)
    options: Options = field(default_factory=Options)
    carrier: Carrier = Carrier.POSTNL
    reference_identifier: Optional[str] = None
    sender: Optional[Address] = None
    secondary_shipments: Optional[list[SecondaryShipment]] = None

    # Fylls i av API:t, skickas aldrig vid skapande
    id: Optional[int] = None
    barcode: str = ""
    status: Optional[int] = None
    multi_collo_main_shipment_id: Optional[int] = None
    created: JSONTime = field(default_factory=JSONTime)
    modified: JSONTime = field(default_factory=JSONTime)


@dataclass(frozen=True)
class CreatedShipment:
    """En post i svaret från POST /shipments."""
    id: int
    reference_identifier: Optional[str] = None


@dataclass
class FetchResult:
    """Svar från GET /shipments/{id}."""
    shipments: list[Shipment] = field(default_factory=list)
    results: int = 0
