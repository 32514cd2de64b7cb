"""
Hilfsfunktionen fuer cachedio
"""
from .formatting import format_bytes
from .url import split_scheme, strip_prefix

__all__ = ['format_bytes', 'split_scheme', 'strip_prefix']
