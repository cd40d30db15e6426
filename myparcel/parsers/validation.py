"""Lokal kontroll av sändningar innan de skickas.

MyParcel validerar allt på serversidan. Den här kontrollen är valfri
(config: myparcel.validate) och fångar de vanligaste felen tidigt:
tilläggstjänster på pakettyper som inte stödjer dem, leveranstyp utan
datum, för långa namn och transportörer som inte finns i butiken.
"""

from __future__ import annotations

from typing import Optional

from .models import (
    Shipment, Address, Options, PackageType, Currency, Storefront,
    STOREFRONT_CARRIERS,
)
from .json_codec import OPTION_FLAGS

MAX_PERSON_LENGTH = 40

# Postnummer krävs inte för IE
POSTAL_CODE_EXEMPT = {"IE"}

# Länder där husnummer krävs för inrikes sändningar
HOUSE_NUMBER_COUNTRIES = {"NL", "BE"}

# Tilläggstjänster som bara PACKAGE får ha (attributnamn -> API-namn)
PAID_OPTIONS = OPTION_FLAGS


def validate_shipment(shipment: Shipment,
                      storefront: Optional[Storefront] = None) -> list[str]:
    """Returnerar lista med problem. Tom lista = inga fel hittade."""
    problems = []
    problems += _validate_address(shipment.recipient, "recipient", storefront)
    if shipment.sender is not None:
        problems += _validate_address(shipment.sender, "sender", storefront)
    problems += _validate_options(shipment.options)

    if storefront is not None:
        allowed = STOREFRONT_CARRIERS[storefront]
        if shipment.carrier not in allowed:
            problems.append(
                f"carrier {_name(shipment.carrier)} finns inte på "
                f"storefront '{storefront.value}'"
            )

    for i, secondary in enumerate(shipment.secondary_shipments or []):
        if secondary.options is not None:
            problems += [
                f"secondary_shipments[{i}]: {p}"
                for p in _validate_options(secondary.options)
            ]

    return problems


def _validate_address(address: Address, label: str,
                      storefront: Optional[Storefront]) -> list[str]:
    problems = []
    for name in ("cc", "city", "street", "person"):
        if not getattr(address, name):
            problems.append(f"{label}.{name} saknas")

    cc = address.cc.upper()
    if cc and (len(cc) != 2 or not cc.isalpha()):
        problems.append(f"{label}.cc '{address.cc}' är inte en ISO-landskod")

    if len(address.person) > MAX_PERSON_LENGTH:
        problems.append(
            f"{label}.person är {len(address.person)} tecken "
            f"(max {MAX_PERSON_LENGTH})"
        )

    # Husnummer krävs bara för inrikes NL/BE
    domestic = storefront is not None and cc == storefront.value.upper()
    if domestic and cc in HOUSE_NUMBER_COUNTRIES and not address.number:
        problems.append(f"{label}.number krävs för inrikes {cc}")

    if cc and cc not in POSTAL_CODE_EXEMPT and cc in _EU_COUNTRIES:
        if not address.postal_code:
            problems.append(f"{label}.postal_code krävs för {cc}")

    return problems


def _validate_options(options: Options) -> list[str]:
    problems = []

    if options.package_type != PackageType.PACKAGE:
        paid = [api for attr, api in PAID_OPTIONS.items() if getattr(options, attr)]
        if options.insurance is not None:
            paid.append("insurance")
        if paid:
            problems.append(
                f"package_type {_name(options.package_type)} stödjer inte "
                f"tilläggstjänster: {', '.join(paid)}"
            )

    has_date = not options.delivery_date.is_zero()
    if options.delivery_type is not None and not has_date:
        problems.append("delivery_type kräver delivery_date")
    if has_date and options.delivery_type is None:
        problems.append("delivery_date kräver delivery_type")

    if options.insurance is not None:
        try:
            Currency(options.insurance.currency)
        except ValueError:
            problems.append(
                f"insurance.currency '{options.insurance.currency}' stöds inte"
            )
        amount = options.insurance.amount
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            problems.append(f"insurance.amount {amount!r} måste vara heltal >= 0 (cent)")

    return problems


def _name(value) -> str:
    return getattr(value, "name", str(value))


_EU_COUNTRIES = {
    "AT", "BE", "BG", "CY", "CZ", "DE", "DK", "EE", "ES", "FI", "FR", "GR",
    "HR", "HU", "IE", "IT", "LT", "LU", "LV", "MT", "NL", "PL", "PT", "RO",
    "SE", "SI", "SK",
}
