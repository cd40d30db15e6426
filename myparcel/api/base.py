"""Abstrakt basklass för sändnings-API-klienter."""

from abc import ABC, abstractmethod
from typing import Optional

from ..parsers.models import Shipment, FetchResult


class ShipmentAPI(ABC):
    """Basklass som alla sändningsklienter implementerar."""

    @abstractmethod
    def create_shipment(self, shipment: Shipment,
                        timeout: Optional[float] = None) -> int:
        """Skapar en sändning och returnerar id:t som API:t tilldelat."""

    @abstractmethod
    def get_shipment(self, shipment_id: int,
                     timeout: Optional[float] = None) -> FetchResult:
        """Hämtar en sändning via id."""
