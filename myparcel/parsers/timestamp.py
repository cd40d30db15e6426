"""Tidsformat för MyParcel API.

MyParcel vill ha datum/tid som "YYYY-MM-DD HH:MM:SS" utan tidszon och utan
bråkdelar av sekunder, inte ISO 8601. Ett osatt värde skickas som null.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

API_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class JSONTime:
    """Tidpunkt som serialiseras enligt MyParcels format.

    JSONTime() (utan värde) är "noll" och blir alltid null i JSON,
    aldrig "0001-01-01 00:00:00".
    """

    __slots__ = ("_value",)

    def __init__(self, value: Optional[datetime] = None):
        self._value = value

    @property
    def value(self) -> Optional[datetime]:
        # Skrivskyddat, instansen är hashbar
        return self._value

    def is_zero(self) -> bool:
        return self.value is None

    def to_json(self) -> Optional[str]:
        """Returnerar strängen som skickas till API:t, eller None (null)."""
        if self.is_zero():
            return None
        # Väggklockstid, eventuell tzinfo skickas inte med
        return self.value.strftime(API_TIME_FORMAT)

    @classmethod
    def from_json(cls, raw) -> "JSONTime":
        """Tolkar ett värde från API:t.

        Tar emot null/tom sträng (→ nollvärde), "YYYY-MM-DD HH:MM:SS"
        samt ISO-varianten med "T" som separator. datetime/date (från YAML)
        tas emot som de är.

        Raises:
            ValueError: om värdet inte går att tolka.
        """
        if raw is None or raw == "":
            return cls()
        # YAML tolkar otecknade datum själv
        if isinstance(raw, datetime):
            return cls(raw.replace(microsecond=0))
        if isinstance(raw, date):
            return cls(datetime.combine(raw, time.min))
        if not isinstance(raw, str):
            raise ValueError(f"Ogiltigt tidsvärde: {raw!r}")

        text = raw.strip()
        try:
            return cls(datetime.strptime(text, API_TIME_FORMAT))
        except ValueError:
            pass
        # Fallback: ISO 8601 ("2026-02-19T10:00:00")
        parsed = datetime.fromisoformat(text)
        return cls(parsed.replace(microsecond=0))

    def __eq__(self, other) -> bool:
        if not isinstance(other, JSONTime):
            return NotImplemented
        return self.value == other.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __bool__(self) -> bool:
        return not self.is_zero()

    def __repr__(self) -> str:
        return f"JSONTime({self.to_json()!r})"
