"""
Gepufferter Stream ueber einem rohen Datei-Deskriptor.

Der Stream arbeitet wie ein voll gepufferter stdio-Stream: Lese- und
Schreibzugriffe werden im installierten Puffer gesammelt und erst bei
Bedarf als System-Call an den Deskriptor weitergegeben. Ohne Puffer geht
jeder Aufruf direkt an os.read/os.write.
"""
import errno
import logging
import os
from typing import Optional

from .utils.formatting import format_bytes

# Modul-Logger
logger = logging.getLogger(__name__)

# Chunk-Groesse fuer read() ohne Groessenangabe
READ_ALL_CHUNK_SIZE = 64 * 1024


class BufferAllocator:
    """
    Stellt Pufferbloecke fuer BufferedStream bereit

    Kann in Tests ersetzt werden um Allokationen zu zaehlen.
    """

    def allocate(self, size: int) -> bytearray:
        """
        Allokiert einen Pufferblock

        Args:
            size: Groesse in Bytes (> 0)

        Returns:
            bytearray: Neuer Pufferblock

        Raises:
            MemoryError: Wenn der Speicher nicht reicht
        """
        block = bytearray(size)
        logger.debug(f"Puffer allokiert: {format_bytes(size)}")
        return block

    def release(self, block: bytearray) -> None:
        """Gibt einen Pufferblock zurueck. Danach darf er nicht mehr verwendet werden."""
        logger.debug(f"Puffer freigegeben: {format_bytes(len(block))}")


class BufferedStream:
    """
    Voll gepufferter Stream ueber einem Datei-Deskriptor

    Lesen und Schreiben liefern immer die Anzahl tatsaechlich uebertragener
    Bytes. Fehler waehrend der Uebertragung beenden den Transfer und werden
    in ``error`` vermerkt; Dateiende und Fehler sind am Rueckgabewert nicht
    unterscheidbar.

    Der Stream besitzt den Deskriptor. Der Puffer gehoert dem Aufrufer und
    wird vom Stream nur bis close() referenziert.

    io.BufferedRandom allokiert seinen Puffer selbst und kann keinen
    vorgegebenen Block uebernehmen, daher die eigene Implementierung.
    """

    def __init__(self, fd: int, readable: bool = True, writable: bool = False,
                 buffer: Optional[bytearray] = None):
        """
        Args:
            fd: Offener Datei-Deskriptor
            readable: Stream darf lesen
            writable: Stream darf schreiben
            buffer: Pufferblock oder None fuer ungepufferten Betrieb
        """
        self._fd = fd
        self.readable = readable
        self.writable = writable
        self._buffer = memoryview(buffer) if buffer else None

        # Lese-Puffer: gueltige Daten in _buffer[_read_pos:_read_end]
        self._read_pos = 0
        self._read_end = 0
        # Schreib-Puffer: ausstehende Daten in _buffer[:_write_len]
        self._write_len = 0

        self.error: Optional[OSError] = None
        self.closed = False

    @property
    def buffer_size(self) -> int:
        return len(self._buffer) if self._buffer is not None else 0

    def fileno(self) -> int:
        self._check_open()
        return self._fd

    def read(self, size: int = -1) -> bytes:
        """
        Liest bis zu size Bytes (size < 0: bis zum Dateiende)

        Returns:
            bytes: Gelesene Daten, leer am Dateiende
        """
        if size is None or size < 0:
            chunks = []
            while True:
                chunk = self.read(READ_ALL_CHUNK_SIZE)
                if not chunk:
                    break
                chunks.append(chunk)
            return b"".join(chunks)

        target = bytearray(size)
        count = self.readinto(target)
        return bytes(target[:count])

    def readinto(self, b) -> int:
        """
        Liest in einen beschreibbaren Puffer

        Wiederholt den Lesevorgang bis der Puffer voll ist, das Dateiende
        erreicht wird oder ein Fehler auftritt.

        Args:
            b: Beschreibbares Bytes-Objekt (bytearray, memoryview, ...)

        Returns:
            int: Anzahl gelesener Bytes
        """
        self._check_open()
        view = memoryview(b).cast("B")
        wanted = len(view)
        if wanted == 0:
            return 0
        if not self.readable:
            self._set_error(OSError(errno.EBADF, os.strerror(errno.EBADF)))
            return 0

        done = 0
        try:
            self._flush_pending()

            if self._buffer is None:
                while done < wanted:
                    count = self._raw_read(view[done:])
                    if count == 0:
                        break
                    done += count
                return done

            capacity = len(self._buffer)
            while done < wanted:
                available = self._read_end - self._read_pos
                if available == 0:
                    # Grosse Anforderungen am Puffer vorbei lesen
                    if wanted - done >= capacity:
                        count = self._raw_read(view[done:])
                        if count == 0:
                            break
                        done += count
                    elif not self._fill():
                        break
                    continue

                count = min(available, wanted - done)
                view[done:done + count] = self._buffer[self._read_pos:self._read_pos + count]
                self._read_pos += count
                done += count
        except OSError as e:
            self._set_error(e)
        return done

    def write(self, data) -> int:
        """
        Schreibt Daten in den Puffer bzw. direkt in die Datei

        Args:
            data: Bytes-artiges Objekt

        Returns:
            int: Anzahl angenommener Bytes
        """
        self._check_open()
        view = memoryview(data).cast("B")
        total = len(view)
        if total == 0:
            return 0
        if not self.writable:
            self._set_error(OSError(errno.EBADF, os.strerror(errno.EBADF)))
            return 0

        done = 0
        try:
            self._drop_read_ahead()

            if self._buffer is None:
                while done < total:
                    count = os.write(self._fd, view[done:])
                    if count == 0:
                        break
                    done += count
                return done

            capacity = len(self._buffer)
            while done < total:
                free = capacity - self._write_len
                if free == 0:
                    self._flush_pending()
                    continue
                # Leerer Puffer und grosser Block: direkt schreiben
                if self._write_len == 0 and total - done >= capacity:
                    count = os.write(self._fd, view[done:])
                    if count == 0:
                        break
                    done += count
                    continue

                count = min(free, total - done)
                self._buffer[self._write_len:self._write_len + count] = view[done:done + count]
                self._write_len += count
                done += count
        except OSError as e:
            self._set_error(e)
        return done

    def flush(self) -> None:
        """
        Schreibt ausstehende Daten an den Deskriptor

        Raises:
            OSError: Wenn das Schreiben fehlschlaegt
        """
        self._check_open()
        self._flush_pending()

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """
        Setzt die Stream-Position

        Args:
            offset: Offset in Bytes
            whence: os.SEEK_SET, os.SEEK_CUR oder os.SEEK_END

        Returns:
            int: Neue absolute Position

        Raises:
            OSError: Wenn die Positionierung fehlschlaegt
        """
        self._check_open()
        if whence not in (os.SEEK_SET, os.SEEK_CUR, os.SEEK_END):
            raise OSError(errno.EINVAL, f"Ungueltiges whence: {whence}")

        self._flush_pending()
        if whence == os.SEEK_CUR:
            # Raw-Position steht hinter dem vorausgelesenen Bereich
            offset -= self._read_end - self._read_pos

        position = os.lseek(self._fd, offset, whence)
        self._read_pos = self._read_end = 0
        return position

    def tell(self) -> int:
        self._check_open()
        raw = os.lseek(self._fd, 0, os.SEEK_CUR)
        return raw - (self._read_end - self._read_pos) + self._write_len

    def close(self) -> None:
        """
        Schreibt ausstehende Daten und schliesst den Deskriptor

        Der Deskriptor wird auch dann geschlossen wenn das Schreiben
        fehlschlaegt. Danach haelt der Stream keine Referenz mehr auf
        den Puffer.

        Raises:
            OSError: Erster aufgetretener Fehler
        """
        if self.closed:
            return
        self.closed = True
        try:
            self._flush_pending()
        finally:
            try:
                os.close(self._fd)
            finally:
                if self._buffer is not None:
                    self._buffer.release()
                    self._buffer = None

    def _check_open(self):
        if self.closed:
            raise ValueError("I/O-Operation auf geschlossenem Stream")

    def _raw_read(self, target: memoryview) -> int:
        data = os.read(self._fd, len(target))
        target[:len(data)] = data
        return len(data)

    def _fill(self) -> bool:
        count = self._raw_read(self._buffer)
        self._read_pos = 0
        self._read_end = count
        return count > 0

    def _flush_pending(self):
        written = 0
        try:
            while written < self._write_len:
                count = os.write(self._fd, self._buffer[written:self._write_len])
                if count == 0:
                    raise OSError(errno.EIO, "Schreiben lieferte 0 Bytes")
                written += count
        finally:
            if written:
                # Nicht geschriebenen Rest an den Pufferanfang schieben
                remaining = self._write_len - written
                if remaining:
                    self._buffer[:remaining] = self._buffer[written:self._write_len]
                self._write_len = remaining

    def _drop_read_ahead(self):
        ahead = self._read_end - self._read_pos
        if ahead:
            os.lseek(self._fd, -ahead, os.SEEK_CUR)
        self._read_pos = self._read_end = 0

    def _set_error(self, error: OSError):
        self.error = error
        logger.warning(f"I/O-Fehler auf Deskriptor {self._fd}: {error}")

    def __repr__(self):
        return (f"BufferedStream(fd={self._fd}, buffer_size={self.buffer_size}, "
                f"closed={self.closed})")
