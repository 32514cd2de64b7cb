"""
Zerlegung von Dateinamen mit Schema-Praefix ("cf:daten.bin", "file:/tmp/x")
"""
from typing import Optional, Tuple


def strip_prefix(filename: str, prefix: str) -> str:
    """
    Entfernt ein Praefix wenn vorhanden

    Args:
        filename: Dateiname, evtl. mit Praefix
        prefix: Zu entfernendes Praefix inkl. Doppelpunkt (z.B. "cf:")

    Returns:
        str: Dateiname ohne Praefix
    """
    if filename.startswith(prefix):
        return filename[len(prefix):]
    return filename


def split_scheme(url: str) -> Tuple[Optional[str], str]:
    """
    Trennt Schema und Rest einer URL

    Ein Schema besteht aus Buchstaben, Ziffern, '+', '-' und '.' und muss
    mit einem Buchstaben beginnen. Einzelne Buchstaben werden nicht als
    Schema gewertet (Windows-Laufwerke wie "C:\\").

    Args:
        url: URL oder Dateiname

    Returns:
        tuple: (Schema oder None, Rest)
    """
    scheme, sep, rest = url.partition(':')
    if not sep or len(scheme) < 2 or not scheme[0].isalpha():
        return None, url
    if not all(c.isalnum() or c in '+-.' for c in scheme):
        return None, url
    return scheme, rest
