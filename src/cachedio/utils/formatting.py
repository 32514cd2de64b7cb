"""
Formatierung von Puffergroessen fuer Log-Ausgaben
"""

_UNITS = ('KB', 'MB', 'GB', 'TB')


def format_bytes(size: int) -> str:
    """
    Kurzform einer Byte-Anzahl, z.B. "512 B", "1.5 KB", "1 MB"

    Negative Werte werden als "0 B" ausgegeben.
    """
    if size < 1024:
        return f"{max(size, 0)} B"

    value = float(size)
    for unit in _UNITS:
        value /= 1024.0
        if value < 1024.0:
            break

    # Eine Nachkommastelle, ".0" entfaellt
    text = f"{value:.1f}".rstrip('0').rstrip('.')
    return f"{text} {unit}"
