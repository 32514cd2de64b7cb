"""
Gepufferter Zugriff auf lokale Dateien ("cf:" Protokoll).

Der Handle haelt den Plattform-Deskriptor, einen BufferedStream darueber
und den optional allokierten Pufferblock. Beim Schliessen eines
schreibbaren Handles werden ausstehende Daten geschrieben und per fsync
auf das Speichermedium gebracht.
"""
import errno
import logging
import os
import stat
from typing import Any, Dict, Optional

from ..errors import PlatformError
from ..options import CACHED_FILE_OPTIONS, CachedFileOptions
from ..stream import BufferAllocator, BufferedStream
from ..utils.formatting import format_bytes
from ..utils.url import strip_prefix
from .base import (
    AVIO_FLAG_READ, AVIO_FLAG_WRITE, AVSEEK_FORCE, AVSEEK_SIZE, SEEK_SET,
    URLHandle, URLProtocol,
)

# Modul-Logger
logger = logging.getLogger(__name__)

# O_BINARY existiert nur unter Windows
_O_BINARY = getattr(os, 'O_BINARY', 0)


class CachedFileHandle(URLHandle):
    """
    Geoeffnete Datei mit internem Puffer

    Modus und Puffergroesse werden beim Oeffnen festgelegt und aendern sich
    danach nicht mehr.
    """

    def __init__(self, filename: str, fd: int, stream: BufferedStream, mode: str,
                 writable: bool, buf_size: int, buffer_block: Optional[bytearray],
                 allocator: BufferAllocator):
        self.filename = filename
        self._fd = fd
        self._stream = stream
        self.mode = mode
        self.writable = writable
        self.buf_size = buf_size
        self._buffer_block = buffer_block
        self._allocator = allocator
        self.closed = False

    @property
    def stream(self) -> BufferedStream:
        return self._stream

    @property
    def has_buffer(self) -> bool:
        return self._buffer_block is not None

    def read(self, size: int) -> bytes:
        return self._stream.read(size)

    def readinto(self, buffer) -> int:
        return self._stream.readinto(buffer)

    def write(self, data) -> int:
        return self._stream.write(data)

    def seek(self, offset: int, whence: int = SEEK_SET) -> int:
        """
        Positioniert den Stream oder liefert die Dateigroesse

        Bei AVSEEK_SIZE wird zuerst der Puffer geschrieben, damit die
        Groesse auch noch nicht geflushte Daten enthaelt. Die Position
        bleibt dabei unveraendert.

        Args:
            offset: Offset in Bytes
            whence: SEEK_SET, SEEK_CUR, SEEK_END oder AVSEEK_SIZE

        Returns:
            int: Neue absolute Position bzw. Dateigroesse

        Raises:
            PlatformError: Wenn Positionierung oder Groessenabfrage fehlschlaegt
        """
        whence &= ~AVSEEK_FORCE

        if whence == AVSEEK_SIZE:
            try:
                self._stream.flush()
                return os.fstat(self._fd).st_size
            except OSError as e:
                logger.error(f"Groessenabfrage fehlgeschlagen ({e.errno}): {self.filename}")
                raise PlatformError.from_oserror(e, self.filename)

        try:
            self._stream.seek(offset, whence)
            return self._stream.tell()
        except OSError as e:
            logger.error(f"Seek fehlgeschlagen ({e.errno}): {self.filename}")
            raise PlatformError.from_oserror(e, self.filename)

    def close(self) -> int:
        """
        Schliesst die Datei

        Reihenfolge: Puffer schreiben, fsync (nur schreibbar), Stream
        schliessen, Pufferblock freigeben. Fehler bei Flush oder fsync
        werden protokolliert und brechen das Schliessen nicht ab; fsync
        laeuft auch nach einem fehlgeschlagenen Flush. Schlaegt das
        Schliessen des Streams fehl, bleibt der Pufferblock allokiert.

        Returns:
            int: 0 bei Erfolg

        Raises:
            PlatformError: Wenn das Schliessen des Streams fehlschlaegt
        """
        if self.writable:
            try:
                self._stream.flush()
            except OSError as e:
                logger.error(f"Flush fehlgeschlagen ({e.errno}): {self.filename}")
            try:
                os.fsync(self._fd)
                logger.debug(f"Datei synchronisiert: {self.filename}")
            except OSError as e:
                logger.error(f"Sync fehlgeschlagen ({e.errno}): {self.filename}")

        try:
            self._stream.close()
        except OSError as e:
            self.closed = True
            logger.error(f"Close fehlgeschlagen ({e.errno}): {self.filename}")
            raise PlatformError.from_oserror(e, self.filename)
        self.closed = True

        if self._buffer_block is not None:
            self._allocator.release(self._buffer_block)
            self._buffer_block = None
        return 0

    def get_file_handle(self) -> int:
        return self._fd

    def __repr__(self):
        return (f"CachedFileHandle(filename={self.filename!r}, mode={self.mode!r}, "
                f"buf_size={self.buf_size}, closed={self.closed})")


class CachedFileProtocol(URLProtocol):
    """
    Protokoll fuer gepufferten Zugriff auf lokale Dateien

    Dateinamen duerfen mit "cf:" beginnen. Loeschen und Umbenennen werden
    nicht unterstuetzt.
    """

    name = "cf"
    options = CACHED_FILE_OPTIONS
    handle_class = CachedFileHandle

    # Praefixe die check() vor dem stat entfernt
    CHECK_PREFIXES = ("file:", "cf:")

    def __init__(self, allocator: Optional[BufferAllocator] = None):
        """
        Args:
            allocator: Quelle fuer Pufferbloecke (Standard: BufferAllocator)
        """
        self.allocator = allocator if allocator is not None else BufferAllocator()

    def open(self, filename: str, flags: int = AVIO_FLAG_READ,
             options: Optional[Dict[str, Any]] = None) -> CachedFileHandle:
        """
        Oeffnet eine lokale Datei

        Lesen+Schreiben und nur Schreiben legen die Datei an bzw. kuerzen
        sie auf 0 Bytes. Alles andere oeffnet eine existierende Datei zum
        Lesen. Anhaengen wird nicht unterstuetzt.

        Args:
            filename: Dateiname, evtl. mit "cf:" Praefix
            flags: AVIO_FLAG_READ, AVIO_FLAG_WRITE oder beides
            options: Optionen, z.B. {"buf_size": 65536}

        Returns:
            CachedFileHandle: Geoeffneter Handle

        Raises:
            ValueError: Bei ungueltigen Optionen
            PlatformError: Wenn die Datei nicht geoeffnet werden kann
        """
        settings = CachedFileOptions.from_dict(options)
        path = self.strip_scheme(filename)

        if flags & AVIO_FLAG_WRITE and flags & AVIO_FLAG_READ:
            mode = "w+b"
            os_flags = os.O_RDWR | os.O_CREAT | os.O_TRUNC
            readable, writable = True, True
        elif flags & AVIO_FLAG_WRITE:
            mode = "wb"
            os_flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC
            readable, writable = False, True
        else:
            mode = "rb"
            os_flags = os.O_RDONLY
            readable, writable = True, False

        try:
            fd = os.open(path, os_flags | _O_BINARY, 0o666)
        except OSError as e:
            logger.error(f"Oeffnen fehlgeschlagen ({e.errno}): {path}")
            raise PlatformError.from_oserror(e, path)

        buffer_block = None
        if settings.buf_size != 0:
            try:
                buffer_block = self.allocator.allocate(settings.buf_size)
            except MemoryError:
                os.close(fd)
                logger.error(
                    f"Puffer konnte nicht allokiert werden ({format_bytes(settings.buf_size)}): {path}"
                )
                raise PlatformError(errno.ENOMEM, filename=path)

        stream = BufferedStream(fd, readable=readable, writable=writable, buffer=buffer_block)
        logger.debug(f"Geoeffnet: {path} (Modus {mode}, Puffer {format_bytes(settings.buf_size)})")

        return CachedFileHandle(
            filename=path,
            fd=fd,
            stream=stream,
            mode=mode,
            writable=writable,
            buf_size=settings.buf_size,
            buffer_block=buffer_block,
            allocator=self.allocator,
        )

    def check(self, filename: str, mask: int) -> int:
        """
        Prueft Lese-/Schreibrechte des Eigentuemers

        Benoetigt keinen geoeffneten Handle.

        Args:
            filename: Dateiname, evtl. mit "file:" oder "cf:" Praefix
            mask: Angefragte Rechte (AVIO_FLAG_READ/AVIO_FLAG_WRITE)

        Returns:
            int: Schnittmenge aus mask und vorhandenen Rechten

        Raises:
            PlatformError: Wenn stat fehlschlaegt
        """
        path = filename
        for prefix in self.CHECK_PREFIXES:
            if path.startswith(prefix):
                path = strip_prefix(path, prefix)
                break

        try:
            st = os.stat(path)
        except OSError as e:
            raise PlatformError.from_oserror(e, path)

        result = 0
        if st.st_mode & stat.S_IRUSR:
            result |= mask & AVIO_FLAG_READ
        if st.st_mode & stat.S_IWUSR:
            result |= mask & AVIO_FLAG_WRITE
        return result
