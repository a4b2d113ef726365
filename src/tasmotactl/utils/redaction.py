from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

SECRET_PARAMS = frozenset({"password"})
MASK = "***"


def redact_url(url: str) -> str:
    """Mask credential query parameters in a command URL."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [
        (key, MASK if key in SECRET_PARAMS else value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query, safe="*")))


@dataclass
class Redactor:
    """Hide network identity in tables printed by the CLI."""

    enabled: bool = True
    _macs: dict[str, int] = field(default_factory=dict)

    def ip(self, value: str) -> str:
        if not self.enabled:
            return value
        octets = value.split(".")
        if len(octets) != 4 or not all(octet.isdigit() for octet in octets):
            return value
        return "x.x.x." + octets[-1]

    def mac(self, value: str) -> str:
        if not self.enabled:
            return value
        pairs = value.upper().split(":")
        if len(pairs) != 6:
            return value
        index = self._macs.setdefault(value, len(self._macs) + 1)
        return ":".join(pairs[:3]) + f":xx:xx:{index:02d}"

    def hostname(self, value: str) -> str:
        # Tasmota default hostnames end in the last MAC digits, e.g. tasmota-1A2B3C-0123
        if not self.enabled or "-" not in value:
            return value
        prefix = value.split("-", 1)[0]
        return f"{prefix}-xxxx"
