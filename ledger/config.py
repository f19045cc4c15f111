import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from ledger.ranges import DateFilter

load_dotenv()


@dataclass
class Settings:
    seed_path: str
    log_level: int
    currency: str
    default_filter: DateFilter


def get_settings() -> Settings:
    raw_level = os.getenv("LEDGER_LOG_LEVEL", "").strip().upper() or "INFO"
    log_level = getattr(logging, raw_level, None)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    raw_filter = os.getenv("LEDGER_DEFAULT_FILTER", "").strip().lower()
    try:
        default_filter = DateFilter(raw_filter) if raw_filter else DateFilter.MONTH
    except ValueError:
        default_filter = DateFilter.MONTH

    return Settings(
        seed_path=os.getenv("LEDGER_SEED_PATH", "data/seed.json"),
        log_level=log_level,
        currency=os.getenv("LEDGER_CURRENCY", "RUB"),
        default_filter=default_filter,
    )
