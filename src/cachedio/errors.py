"""
Fehlertypen fuer cachedio.

Plattform-Fehler werden als Exceptions mit dem originalen errno-Code
gemeldet. Fuer Aufrufer die noch mit negativen Fehlercodes arbeiten
liefert ``URLError.code`` den Wert im AVERROR-Format (-errno).
"""
import errno as _errno
import os
from typing import Optional


def averror(errnum: int) -> int:
    """Wandelt einen errno-Wert in einen negativen Fehlercode um."""
    return -abs(errnum)


class URLError(Exception):
    """
    Basisklasse fuer alle Fehler einer URL-Protokoll-Implementierung.

    Attributes:
        errno: Positiver Plattform-Fehlercode
        filename: Betroffene Datei (optional)
    """

    def __init__(self, errnum: int, message: Optional[str] = None,
                 filename: Optional[str] = None):
        self.errno = errnum
        self.filename = filename
        if message is None:
            message = os.strerror(errnum)
        self.message = message
        super().__init__(message)

    @property
    def code(self) -> int:
        return averror(self.errno)

    def __str__(self):
        if self.filename:
            return f"[errno {self.errno}] {self.message}: {self.filename}"
        return f"[errno {self.errno}] {self.message}"


class PlatformError(URLError):
    """Fehler der darunterliegenden Plattform (open, seek, stat, close, ...)."""

    @classmethod
    def from_oserror(cls, error: OSError, filename: Optional[str] = None) -> "PlatformError":
        """
        Erzeugt einen PlatformError aus einem OSError.

        OSErrors ohne errno (sollte nicht vorkommen) werden als EIO gemeldet.
        """
        errnum = error.errno if error.errno else _errno.EIO
        message = error.strerror or os.strerror(errnum)
        return cls(errnum, message, filename or error.filename)


class UnsupportedOperationError(URLError):
    """Operation wird von dieser Implementierung grundsaetzlich nicht unterstuetzt."""

    def __init__(self, operation: str, errnum: int = _errno.ENOSYS):
        self.operation = operation
        super().__init__(errnum, f"{operation} wird nicht unterstuetzt")
