"""Undantag för MyParcel-klienten.

Alla fel ärver från MyParcelError så att anroparen kan fånga dem samlat.
Inget fel försöks om eller sväljs i klienten.
"""

from __future__ import annotations

import json
from typing import Optional


class MyParcelError(Exception):
    """Basklass för alla fel från klienten."""


class EncodingError(MyParcelError):
    """En sändning gick inte att serialisera till JSON."""


class DecodingError(MyParcelError):
    """Svaret från API:t är inte JSON eller saknar förväntat kuvert."""


class ValidationError(MyParcelError):
    """Lokal validering hittade fel innan anropet skickades."""

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("Ogiltig sändning: " + "; ".join(self.problems))


class RemoteError(MyParcelError):
    """API:t svarade med en felstatus.

    Råa svarskroppen sparas oförändrad eftersom MyParcel lägger
    valideringsdetaljer där.
    """

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(
            f"MyParcel API returned status code {status_code}: {body}"
        )

    @property
    def messages(self) -> list[str]:
        """Felmeddelanden ur svarskroppen, om den är JSON.

        Känner igen {"errors": [{"message": ...}]}, {"message": ...}
        och {"error": ...}. Tom lista om inget hittas.
        """
        try:
            data = json.loads(self.body)
        except ValueError:
            return []
        if not isinstance(data, dict):
            return []

        messages = []
        for err in data.get("errors") or []:
            if isinstance(err, dict):
                msg = err.get("message") or err.get("human")
                if msg:
                    messages.append(str(msg))
            elif err:
                messages.append(str(err))
        for key in ("message", "error"):
            if isinstance(data.get(key), str) and data[key]:
                messages.append(data[key])
        return messages


class TransportError(MyParcelError):
    """Nätverksfel (DNS, anslutning, timeout, TLS)."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)
