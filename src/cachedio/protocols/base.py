"""
Abstraktion fuer URL-Protokolle.

Dieses Modul definiert das Interface das jede Protokoll-Implementierung
bereitstellt: Oeffnen, Lesen, Schreiben, Positionieren, Schliessen,
Rechtepruefung sowie Loeschen und Umbenennen.
"""
from abc import ABC, abstractmethod
import os
from typing import Any, Dict, Optional, Tuple, Type

from ..errors import UnsupportedOperationError
from ..options import OptionSpec
from ..utils.url import strip_prefix

# Zugriffs-Flags
AVIO_FLAG_READ = 1
AVIO_FLAG_WRITE = 2
AVIO_FLAG_READ_WRITE = AVIO_FLAG_READ | AVIO_FLAG_WRITE

# Seek-Modi
SEEK_SET = os.SEEK_SET
SEEK_CUR = os.SEEK_CUR
SEEK_END = os.SEEK_END
# Pseudo-Seek: liefert die Dateigroesse statt zu positionieren
AVSEEK_SIZE = 0x10000
# Hinweis-Bit, darf mit whence verodert werden und wird ignoriert
AVSEEK_FORCE = 0x20000


class URLHandle(ABC):
    """
    Abstrakte Basisklasse fuer einen geoeffneten Handle

    Ein Handle gehoert genau einem Aufrufer; es gibt keine interne
    Synchronisation.
    """

    @abstractmethod
    def read(self, size: int) -> bytes:
        """
        Liest bis zu size Bytes.

        Returns:
            Gelesene Daten, evtl. kuerzer als angefordert
        """
        pass

    @abstractmethod
    def readinto(self, buffer) -> int:
        """Liest in einen beschreibbaren Puffer und liefert die Anzahl Bytes"""
        pass

    @abstractmethod
    def write(self, data) -> int:
        """Schreibt Daten und liefert die Anzahl angenommener Bytes"""
        pass

    @abstractmethod
    def seek(self, offset: int, whence: int = SEEK_SET) -> int:
        """
        Positioniert den Handle oder fragt die Groesse ab (AVSEEK_SIZE).

        Returns:
            Neue absolute Position bzw. Dateigroesse
        """
        pass

    @abstractmethod
    def close(self) -> int:
        """Schliesst den Handle. Liefert 0 bei Erfolg."""
        pass

    @abstractmethod
    def get_file_handle(self) -> int:
        """Liefert den Plattform-Handle (z.B. fuer poll/select)"""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
        return False


class URLProtocol(ABC):
    """
    Abstrakte Basisklasse fuer ein URL-Protokoll

    Attributes:
        name: Schema-Name unter dem das Protokoll registriert wird
        options: Schema der Optionen die vor dem Oeffnen gesetzt werden koennen
        handle_class: Klasse des pro Handle gehaltenen Zustands
    """

    name: str = ""
    options: Tuple[OptionSpec, ...] = ()
    handle_class: Optional[Type[URLHandle]] = None

    @abstractmethod
    def open(self, filename: str, flags: int = AVIO_FLAG_READ,
             options: Optional[Dict[str, Any]] = None) -> URLHandle:
        """
        Oeffnet eine Ressource.

        Args:
            filename: Name, evtl. mit Schema-Praefix
            flags: Kombination aus AVIO_FLAG_READ und AVIO_FLAG_WRITE
            options: Optionswerte gemaess ``options``

        Returns:
            Geoeffneter Handle
        """
        pass

    @abstractmethod
    def check(self, filename: str, mask: int) -> int:
        """
        Prueft Zugriffsrechte ohne die Ressource zu oeffnen.

        Returns:
            Schnittmenge aus mask und den vorhandenen Rechten
        """
        pass

    def delete(self, filename: str) -> None:
        raise UnsupportedOperationError("delete")

    def move(self, source: str, destination: str) -> None:
        raise UnsupportedOperationError("move")

    def strip_scheme(self, filename: str) -> str:
        return strip_prefix(filename, f"{self.name}:")

    def __repr__(self):
        return f"{type(self).__name__}(name={self.name!r})"
