"""
cachedio - Gepufferter, positionierbarer Dateizugriff ueber ein
einheitliches Protokoll-Interface.
"""
from .errors import PlatformError, URLError, UnsupportedOperationError, averror
from .options import CACHED_FILE_OPTIONS, CachedFileOptions, OptionSpec
from .protocols import (
    AVIO_FLAG_READ, AVIO_FLAG_READ_WRITE, AVIO_FLAG_WRITE, AVSEEK_FORCE,
    AVSEEK_SIZE, SEEK_CUR, SEEK_END, SEEK_SET, CachedFileHandle,
    CachedFileProtocol, ProtocolRegistry, URLHandle, URLProtocol,
    get_default_registry, open_url,
)
from .stream import BufferAllocator, BufferedStream

__version__ = "1.0.0"

__all__ = [
    'AVIO_FLAG_READ', 'AVIO_FLAG_WRITE', 'AVIO_FLAG_READ_WRITE',
    'SEEK_SET', 'SEEK_CUR', 'SEEK_END', 'AVSEEK_SIZE', 'AVSEEK_FORCE',
    'URLError', 'PlatformError', 'UnsupportedOperationError', 'averror',
    'OptionSpec', 'CachedFileOptions', 'CACHED_FILE_OPTIONS',
    'BufferAllocator', 'BufferedStream',
    'URLHandle', 'URLProtocol', 'CachedFileHandle', 'CachedFileProtocol',
    'ProtocolRegistry', 'get_default_registry', 'open_url',
]
