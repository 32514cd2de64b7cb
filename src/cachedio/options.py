"""
Optionen fuer den gepufferten Dateizugriff.

Die Optionen werden vor dem Oeffnen gesetzt und sind danach unveraenderlich.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


# Groesster Wert des vorzeichenbehafteten Integer-Optionstyps
INT_MAX = 2 ** 31 - 1

DEFAULT_BUFFER_SIZE = 1024 * 1024  # 1 MB


@dataclass(frozen=True)
class OptionSpec:
    """Beschreibung einer einzelnen Integer-Option"""
    name: str
    help: str
    default: int
    minimum: int = 0
    maximum: int = INT_MAX

    def validate(self, value: Any) -> int:
        """
        Prueft und konvertiert einen Optionswert

        Args:
            value: Wert (int oder String aus Kommandozeile/URL)

        Returns:
            int: Validierter Wert

        Raises:
            ValueError: Wenn der Wert kein Integer ist oder ausserhalb des Bereichs liegt
        """
        if isinstance(value, bool):
            raise ValueError(f"Option '{self.name}' erwartet einen Integer, ist: {value!r}")
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise ValueError(f"Option '{self.name}' erwartet einen Integer, ist: {value!r}")

        if isinstance(value, float) and number != value:
            raise ValueError(f"Option '{self.name}' erwartet einen Integer, ist: {value!r}")

        if number < self.minimum or number > self.maximum:
            raise ValueError(
                f"Option '{self.name}' ausserhalb des gueltigen Bereichs "
                f"[{self.minimum}, {self.maximum}], ist: {number}"
            )
        return number


CACHED_FILE_OPTIONS: Tuple[OptionSpec, ...] = (
    OptionSpec(
        name="buf_size",
        help="set cached buffer size",
        default=DEFAULT_BUFFER_SIZE,
        minimum=0,
        maximum=INT_MAX,
    ),
)


@dataclass(frozen=True)
class CachedFileOptions:
    """
    Konfiguration fuer einen gepufferten Datei-Handle

    buf_size = 0 schaltet den internen Puffer ab (direkter Durchgriff).
    """
    buf_size: int = DEFAULT_BUFFER_SIZE

    def __post_init__(self):
        _spec("buf_size").validate(self.buf_size)

    @classmethod
    def from_dict(cls, values: Optional[Dict[str, Any]]) -> "CachedFileOptions":
        """
        Erstellt Optionen aus einem Dictionary

        Args:
            values: Optionsname -> Wert, None fuer Standardwerte

        Returns:
            CachedFileOptions: Validierte Optionen

        Raises:
            ValueError: Bei unbekannten Optionen oder ungueltigen Werten
        """
        if not values:
            return cls()

        known = {spec.name: spec for spec in CACHED_FILE_OPTIONS}
        unknown = sorted(set(values) - set(known))
        if unknown:
            raise ValueError(f"Unbekannte Option(en): {', '.join(unknown)}")

        kwargs = {name: known[name].validate(value) for name, value in values.items()}
        return cls(**kwargs)


def _spec(name: str) -> OptionSpec:
    for spec in CACHED_FILE_OPTIONS:
        if spec.name == name:
            return spec
    raise KeyError(name)
