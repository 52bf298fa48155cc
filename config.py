"""Runtime settings read from the environment."""

import logging
import os
from pathlib import Path

BASE_DIR = Path(__file__).parent

DATA_DIR = Path(os.environ.get("FNB_DATA_DIR", BASE_DIR / "data"))

# cost of one hour of kitchen work, per batch
LABOR_RATE = float(os.environ.get("FNB_LABOR_RATE", "15.0"))

LOCALE = os.environ.get("FNB_LOCALE", "fr_FR")
CURRENCY = os.environ.get("FNB_CURRENCY", "EUR")
LOCALES = ["fr_FR", "en_US", "it_IT"]

APP_TITLE = os.environ.get("APP_TITLE", "Gestion des Coûts F&B")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Install the root handler once; later calls are no-ops."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
