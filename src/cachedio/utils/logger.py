"""
Logging-Setup fuer cachedio
Schreibt die Logs des Pakets in eine Datei im Format: [HH:MM:SS] LEVEL   Message
"""
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

PACKAGE_LOGGER = "cachedio"


class LogFormatter(logging.Formatter):
    """
    Formatiert Log-Eintraege als [HH:MM:SS] LEVEL   Message

    Level wird auf 7 Zeichen aufgefuellt fuer Ausrichtung.
    """

    def __init__(self, include_date: bool = False):
        datefmt = "%Y-%m-%d %H:%M:%S" if include_date else "%H:%M:%S"
        super().__init__("[%(asctime)s] %(levelname)-7s %(message)s", datefmt=datefmt)


def _write_header(log_path: Path):
    with open(log_path, 'w', encoding='utf-8') as f:
        f.write("=" * 80 + "\n")
        f.write(f"cachedio - Log gestartet: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
        f.write("=" * 80 + "\n\n")


def setup_file_logging(log_dir: Optional[str] = None,
                       level: int = logging.INFO) -> Tuple[logging.Handler, Path]:
    """
    Haengt einen Datei-Handler an den Paket-Logger

    Log-Datei: cachedio_YYYYMMDD_HHMMSS.log

    Args:
        log_dir: Verzeichnis fuer Log-Dateien (Standard: aktuelles Verzeichnis)
        level: Minimales Log-Level

    Returns:
        tuple: (Handler, Pfad zur Log-Datei)
    """
    if log_dir is None:
        log_dir = os.getcwd()

    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_path = directory / f"cachedio_{timestamp}.log"
    _write_header(log_path)

    handler = logging.FileHandler(log_path, mode='a', encoding='utf-8')
    handler.setFormatter(LogFormatter())
    handler.setLevel(level)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.addHandler(handler)
    if package_logger.level == logging.NOTSET or package_logger.level > level:
        package_logger.setLevel(level)

    return handler, log_path


def teardown_file_logging(handler: logging.Handler):
    """Entfernt und schliesst einen mit setup_file_logging erzeugten Handler"""
    logging.getLogger(PACKAGE_LOGGER).removeHandler(handler)
    handler.close()
