"""
Protokoll-Registry.

Ordnet Schema-Namen ("cf") konkreten Protokoll-Implementierungen zu.

Verwendung:
    from cachedio.protocols import open_url, AVIO_FLAG_WRITE

    with open_url("cf:daten.bin", AVIO_FLAG_WRITE, {"buf_size": 65536}) as h:
        h.write(b"...")
"""
import errno
import logging
from typing import Any, Dict, List, Optional

from ..errors import UnsupportedOperationError
from ..utils.url import split_scheme
from .base import (
    AVIO_FLAG_READ, AVIO_FLAG_READ_WRITE, AVIO_FLAG_WRITE, AVSEEK_FORCE,
    AVSEEK_SIZE, SEEK_CUR, SEEK_END, SEEK_SET, URLHandle, URLProtocol,
)
from .cached_file import CachedFileHandle, CachedFileProtocol

# Modul-Logger
logger = logging.getLogger(__name__)


class ProtocolRegistry:
    """Zuordnung Schema-Name -> Protokoll-Instanz"""

    def __init__(self):
        self._protocols: Dict[str, URLProtocol] = {}

    def register(self, protocol: URLProtocol) -> None:
        """
        Registriert ein Protokoll unter seinem Namen

        Raises:
            ValueError: Wenn der Name leer oder bereits vergeben ist
        """
        if not protocol.name:
            raise ValueError(f"Protokoll ohne Namen: {protocol!r}")
        if protocol.name in self._protocols:
            raise ValueError(f"Protokoll bereits registriert: {protocol.name}")
        self._protocols[protocol.name] = protocol
        logger.debug(f"Protokoll registriert: {protocol.name}")

    def get(self, name: str) -> URLProtocol:
        """
        Raises:
            KeyError: Wenn kein Protokoll mit diesem Namen registriert ist
        """
        return self._protocols[name]

    def names(self) -> List[str]:
        return sorted(self._protocols)

    def find(self, url: str) -> URLProtocol:
        """
        Ermittelt das Protokoll fuer eine URL anhand ihres Schemas

        Raises:
            UnsupportedOperationError: Wenn kein passendes Protokoll existiert
        """
        scheme, _ = split_scheme(url)
        if scheme is None or scheme not in self._protocols:
            raise UnsupportedOperationError(
                f"Protokoll fuer '{url}'", errnum=errno.EPROTONOSUPPORT
            )
        return self._protocols[scheme]

    def __contains__(self, name: str) -> bool:
        return name in self._protocols

    def __repr__(self):
        return f"ProtocolRegistry(protocols={self.names()})"


_default_registry: Optional[ProtocolRegistry] = None


def get_default_registry() -> ProtocolRegistry:
    """Liefert die Standard-Registry mit allen eingebauten Protokollen"""
    global _default_registry
    if _default_registry is None:
        registry = ProtocolRegistry()
        registry.register(CachedFileProtocol())
        _default_registry = registry
    return _default_registry


def open_url(url: str, flags: int = AVIO_FLAG_READ,
             options: Optional[Dict[str, Any]] = None,
             registry: Optional[ProtocolRegistry] = None) -> URLHandle:
    """
    Oeffnet eine URL ueber das zum Schema passende Protokoll

    Args:
        url: URL mit Schema, z.B. "cf:/tmp/daten.bin"
        flags: Zugriffs-Flags
        options: Protokoll-Optionen
        registry: Registry (Standard: get_default_registry())

    Returns:
        URLHandle: Geoeffneter Handle
    """
    if registry is None:
        registry = get_default_registry()
    return registry.find(url).open(url, flags, options)


__all__ = [
    'AVIO_FLAG_READ', 'AVIO_FLAG_WRITE', 'AVIO_FLAG_READ_WRITE',
    'SEEK_SET', 'SEEK_CUR', 'SEEK_END', 'AVSEEK_SIZE', 'AVSEEK_FORCE',
    'URLHandle', 'URLProtocol', 'CachedFileHandle', 'CachedFileProtocol',
    'ProtocolRegistry', 'get_default_registry', 'open_url',
]
