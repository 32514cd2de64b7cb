"""
Test-Skript fuer den gepufferten Datei-Handle
Testet: protocols/cached_file.py

HINWEIS: Dieser Test erstellt echte Dateien (im tmp-Verzeichnis von pytest)
"""
import errno
import os
import stat

import pytest

from cachedio.errors import PlatformError, UnsupportedOperationError
from cachedio.options import DEFAULT_BUFFER_SIZE
from cachedio.protocols import (
    AVIO_FLAG_READ, AVIO_FLAG_READ_WRITE, AVIO_FLAG_WRITE, AVSEEK_FORCE,
    AVSEEK_SIZE, SEEK_CUR, SEEK_END, SEEK_SET,
)
from cachedio.protocols import cached_file
from cachedio import stream as stream_module

# Grenzen um die Standard-Puffergroesse herum
BOUNDARY_SIZES = [0, 1, 1048575, 1048576, 1048577]


def make_data(size: int) -> bytes:
    return bytes(i % 251 for i in range(size))


@pytest.mark.parametrize("flags", [AVIO_FLAG_READ, AVIO_FLAG_WRITE, AVIO_FLAG_READ_WRITE])
def test_open_close_releases_buffer(protocol, allocator, tmp_path, flags):
    """Oeffnen + Schliessen hinterlaesst keinen allokierten Puffer"""
    path = tmp_path / "datei.bin"
    path.write_bytes(b"inhalt")

    handle = protocol.open(str(path), flags)
    assert allocator.allocations == 1
    assert allocator.sizes == [DEFAULT_BUFFER_SIZE]
    assert handle.has_buffer

    assert handle.close() == 0
    assert allocator.outstanding == []
    assert allocator.releases == 1
    assert not handle.has_buffer


@pytest.mark.parametrize("size", BOUNDARY_SIZES)
def test_read_write_round_trip(protocol, tmp_path, size):
    """Schreiben, an den Anfang springen und Lesen liefert dieselben Bytes"""
    data = make_data(size)
    handle = protocol.open(str(tmp_path / "roundtrip.bin"), AVIO_FLAG_READ_WRITE)
    try:
        assert handle.write(data) == size
        assert handle.seek(0, SEEK_SET) == 0
        assert handle.read(size) == data
    finally:
        handle.close()


@pytest.mark.parametrize("size", BOUNDARY_SIZES)
def test_size_query_includes_pending_writes(protocol, tmp_path, size):
    """AVSEEK_SIZE schreibt den Puffer bevor die Groesse abgefragt wird"""
    handle = protocol.open(str(tmp_path / "size.bin"), AVIO_FLAG_WRITE)
    try:
        handle.write(make_data(size))
        assert handle.seek(0, AVSEEK_SIZE) == size
    finally:
        handle.close()


def test_size_query_does_not_move_position(protocol, tmp_path):
    handle = protocol.open(str(tmp_path / "pos.bin"), AVIO_FLAG_READ_WRITE)
    try:
        handle.write(b"0123456789")
        assert handle.seek(4, SEEK_SET) == 4
        assert handle.seek(0, AVSEEK_SIZE | AVSEEK_FORCE) == 10
        assert handle.seek(0, SEEK_CUR) == 4
        assert handle.read(2) == b"45"
    finally:
        handle.close()


def test_seek_returns_absolute_position(protocol, tmp_path):
    handle = protocol.open(str(tmp_path / "seek.bin"), AVIO_FLAG_READ_WRITE)
    try:
        handle.write(b"0123456789")
        handle.seek(0, SEEK_SET)
        assert handle.read(2) == b"01"
        assert handle.seek(3, SEEK_CUR) == 5
        assert handle.read(1) == b"5"
        assert handle.seek(-2, SEEK_END) == 8
        assert handle.read(10) == b"89"
    finally:
        handle.close()


def test_seek_failure_maps_to_platform_error(protocol, tmp_path):
    handle = protocol.open(str(tmp_path / "neg.bin"), AVIO_FLAG_READ_WRITE)
    try:
        with pytest.raises(PlatformError) as exc_info:
            handle.seek(-1, SEEK_SET)
        assert exc_info.value.errno == errno.EINVAL
        assert exc_info.value.code == -errno.EINVAL
    finally:
        handle.close()


def test_seek_invalid_whence(protocol, tmp_path):
    handle = protocol.open(str(tmp_path / "whence.bin"), AVIO_FLAG_READ_WRITE)
    try:
        with pytest.raises(PlatformError) as exc_info:
            handle.seek(0, 7)
        assert exc_info.value.errno == errno.EINVAL
    finally:
        handle.close()


def test_write_close_reopen_scenario(protocol, tmp_path, monkeypatch):
    """open(write) -> write(100) -> close -> open(read) -> Groesse 100"""
    monkeypatch.chdir(tmp_path)

    handle = protocol.open("data.bin", AVIO_FLAG_WRITE)
    assert handle.write(bytes(100)) == 100
    assert handle.close() == 0

    handle = protocol.open("data.bin", AVIO_FLAG_READ)
    try:
        assert handle.seek(0, AVSEEK_SIZE) == 100
    finally:
        handle.close()


def test_open_missing_file(protocol, allocator, tmp_path):
    """Fehlgeschlagenes Oeffnen meldet ENOENT und allokiert nichts"""
    with pytest.raises(PlatformError) as exc_info:
        protocol.open(str(tmp_path / "missing.bin"), AVIO_FLAG_READ)

    assert exc_info.value.errno == errno.ENOENT
    assert exc_info.value.code == -errno.ENOENT
    assert allocator.allocations == 0


def test_open_strips_scheme_prefix(protocol, tmp_path):
    path = tmp_path / "schema.bin"
    handle = protocol.open("cf:" + str(path), AVIO_FLAG_WRITE)
    handle.write(b"abc")
    handle.close()

    assert path.read_bytes() == b"abc"
    assert handle.filename == str(path)


def test_open_modes(protocol, tmp_path):
    """Schreiben kuerzt die Datei, Lesen laesst sie unveraendert"""
    path = tmp_path / "modes.bin"
    path.write_bytes(b"alter inhalt")

    handle = protocol.open(str(path), AVIO_FLAG_READ)
    assert handle.mode == "rb"
    assert not handle.writable
    assert handle.read(5) == b"alter"
    handle.close()
    assert path.read_bytes() == b"alter inhalt"

    handle = protocol.open(str(path), AVIO_FLAG_WRITE)
    assert handle.mode == "wb"
    assert handle.writable
    handle.close()
    assert path.read_bytes() == b""

    path.write_bytes(b"alter inhalt")
    handle = protocol.open(str(path), AVIO_FLAG_READ_WRITE)
    assert handle.mode == "w+b"
    assert handle.read(5) == b""
    handle.close()
    assert path.read_bytes() == b""


def test_read_on_write_only_handle_returns_zero(protocol, tmp_path):
    """Lesefehler werden nicht geworfen, sondern als 0 Bytes gemeldet"""
    handle = protocol.open(str(tmp_path / "wo.bin"), AVIO_FLAG_WRITE)
    try:
        handle.write(b"daten")
        assert handle.read(5) == b""
        assert handle.readinto(bytearray(5)) == 0
        assert handle.stream.error.errno == errno.EBADF
    finally:
        handle.close()


def test_unbuffered_mode(protocol, allocator, tmp_path):
    """buf_size=0: kein Puffer, Lesen/Schreiben funktionieren trotzdem"""
    path = tmp_path / "unbuffered.bin"
    handle = protocol.open(str(path), AVIO_FLAG_READ_WRITE, {"buf_size": 0})
    try:
        assert allocator.allocations == 0
        assert not handle.has_buffer
        assert handle.stream.buffer_size == 0

        assert handle.write(b"direkt") == 6
        # Ohne Puffer landet jeder Schreibvorgang sofort in der Datei
        assert os.fstat(handle.get_file_handle()).st_size == 6

        handle.seek(0, SEEK_SET)
        assert handle.read(6) == b"direkt"
    finally:
        assert handle.close() == 0
    assert allocator.allocations == 0
    assert allocator.releases == 0


def test_buffered_write_is_deferred(protocol, tmp_path):
    handle = protocol.open(str(tmp_path / "deferred.bin"), AVIO_FLAG_WRITE, {"buf_size": 4096})
    try:
        handle.write(b"x" * 100)
        assert os.fstat(handle.get_file_handle()).st_size == 0
    finally:
        handle.close()
    assert (tmp_path / "deferred.bin").stat().st_size == 100


def test_close_flushes_before_fsync(protocol, tmp_path, monkeypatch):
    """Beim Schliessen: erst Puffer schreiben, dann fsync"""
    handle = protocol.open(str(tmp_path / "sync.bin"), AVIO_FLAG_WRITE)
    handle.write(b"y" * 1000)
    fd = handle.get_file_handle()

    calls = []
    real_flush = handle.stream.flush

    def tracking_flush():
        calls.append("flush")
        real_flush()

    def fake_fsync(descriptor):
        calls.append(("fsync", os.fstat(descriptor).st_size))

    monkeypatch.setattr(handle.stream, "flush", tracking_flush)
    monkeypatch.setattr(cached_file.os, "fsync", fake_fsync)

    assert handle.close() == 0
    assert calls == ["flush", ("fsync", 1000)]
    with pytest.raises(OSError):
        os.fstat(fd)


def test_read_only_close_skips_fsync(protocol, tmp_path, monkeypatch):
    path = tmp_path / "ro.bin"
    path.write_bytes(b"nur lesen")

    calls = []
    monkeypatch.setattr(cached_file.os, "fsync", lambda fd: calls.append(fd))

    handle = protocol.open(str(path), AVIO_FLAG_READ)
    assert handle.close() == 0
    assert calls == []


def test_failed_close_keeps_buffer(protocol, allocator, tmp_path, monkeypatch):
    """Schlaegt das Schliessen fehl, wird der Puffer nicht freigegeben"""
    (tmp_path / "leak.bin").write_bytes(b"")
    handle = protocol.open(str(tmp_path / "leak.bin"), AVIO_FLAG_READ)
    fd = handle.get_file_handle()

    def failing_close(descriptor):
        raise OSError(errno.EIO, os.strerror(errno.EIO))

    monkeypatch.setattr(stream_module.os, "close", failing_close)
    with pytest.raises(PlatformError) as exc_info:
        handle.close()
    monkeypatch.undo()

    assert exc_info.value.errno == errno.EIO
    assert len(allocator.outstanding) == 1
    assert allocator.releases == 0

    os.close(fd)


def test_failed_fsync_still_closes(protocol, allocator, tmp_path, monkeypatch):
    """fsync nicht moeglich: Fehler wird protokolliert, close() liefert 0"""
    path = tmp_path / "nosync.bin"
    handle = protocol.open(str(path), AVIO_FLAG_WRITE)
    handle.write(b"daten")

    def failing_fsync(descriptor):
        raise OSError(errno.EINVAL, os.strerror(errno.EINVAL))

    monkeypatch.setattr(cached_file.os, "fsync", failing_fsync)

    assert handle.close() == 0
    assert handle.closed
    assert allocator.outstanding == []
    assert allocator.releases == 1
    assert path.read_bytes() == b"daten"


def test_failed_flush_still_syncs_before_close(protocol, tmp_path, monkeypatch):
    """Auch nach fehlgeschlagenem Flush wird fsync vor dem Schliessen aufgerufen"""
    handle = protocol.open(str(tmp_path / "flushfail.bin"), AVIO_FLAG_WRITE)
    handle.write(b"z" * 10)

    calls = []
    real_close = handle.stream.close

    def failing_flush():
        calls.append("flush")
        raise OSError(errno.EIO, os.strerror(errno.EIO))

    def tracking_close():
        calls.append("close")
        real_close()

    monkeypatch.setattr(handle.stream, "flush", failing_flush)
    monkeypatch.setattr(handle.stream, "close", tracking_close)
    monkeypatch.setattr(cached_file.os, "fsync", lambda fd: calls.append("fsync"))

    assert handle.close() == 0
    assert calls == ["flush", "fsync", "close"]
    assert (tmp_path / "flushfail.bin").read_bytes() == b"z" * 10


@pytest.mark.skipif(not os.path.exists("/dev/null"), reason="kein /dev/null")
def test_close_write_handle_on_device_without_fsync(protocol, allocator):
    handle = protocol.open("cf:/dev/null", AVIO_FLAG_WRITE)
    assert handle.write(b"abc") == 3
    assert handle.close() == 0
    assert allocator.outstanding == []


def test_check_owner_read_only(protocol, tmp_path):
    """Nur Leserecht fuer den Eigentuemer -> nur READ-Bit gesetzt"""
    path = tmp_path / "readonly.bin"
    path.write_bytes(b"")
    os.chmod(path, stat.S_IRUSR)
    try:
        assert protocol.check(str(path), AVIO_FLAG_READ_WRITE) == AVIO_FLAG_READ
        assert protocol.check("file:" + str(path), AVIO_FLAG_READ_WRITE) == AVIO_FLAG_READ
        assert protocol.check("cf:" + str(path), AVIO_FLAG_WRITE) == 0
    finally:
        os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)


def test_check_intersects_with_mask(protocol, tmp_path):
    path = tmp_path / "rw.bin"
    path.write_bytes(b"")
    os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)

    assert protocol.check(str(path), AVIO_FLAG_READ_WRITE) == AVIO_FLAG_READ_WRITE
    assert protocol.check(str(path), AVIO_FLAG_WRITE) == AVIO_FLAG_WRITE
    assert protocol.check(str(path), 0) == 0


def test_check_missing_path(protocol, tmp_path):
    with pytest.raises(PlatformError) as exc_info:
        protocol.check(str(tmp_path / "nichts.bin"), AVIO_FLAG_READ)
    assert exc_info.value.errno == errno.ENOENT


@pytest.mark.parametrize("name", ["", "datei.bin", "cf:/irgendwo/datei.bin"])
def test_delete_not_supported(protocol, name):
    with pytest.raises(UnsupportedOperationError) as exc_info:
        protocol.delete(name)
    assert exc_info.value.errno == errno.ENOSYS
    assert exc_info.value.code == -errno.ENOSYS


@pytest.mark.parametrize("source,destination", [("a", "b"), ("", ""), ("cf:a", "cf:b")])
def test_move_not_supported(protocol, source, destination):
    with pytest.raises(UnsupportedOperationError) as exc_info:
        protocol.move(source, destination)
    assert exc_info.value.errno == errno.ENOSYS


def test_invalid_buffer_option_allocates_nothing(protocol, allocator, tmp_path):
    path = tmp_path / "opt.bin"
    with pytest.raises(ValueError):
        protocol.open(str(path), AVIO_FLAG_WRITE, {"buf_size": -1})
    assert allocator.allocations == 0
    assert not path.exists()


def test_handle_as_context_manager(protocol, allocator, tmp_path):
    path = tmp_path / "ctx.bin"
    with protocol.open(str(path), AVIO_FLAG_WRITE, {"buf_size": 16}) as handle:
        handle.write(b"kontext")
    assert handle.closed
    assert allocator.outstanding == []
    assert path.read_bytes() == b"kontext"
