import logging
from pathlib import Path
from typing import List, Dict, Any, Optional, Union

import yaml

from .config import get_watchlist_path
from .errors import ValidationError
from .models.fundamentals import CompanyFundamentals

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Watchlist"


def _normalize_symbol(symbol: str) -> str:
    if not isinstance(symbol, str) or not symbol.strip():
        raise ValidationError("All symbols must be non-empty strings.")
    return symbol.strip().upper()


class Watchlist:
    """
    Saved companies, persisted as YAML.
    Expected shape:
      watchlist:
        name: "Watchlist"
        companies:
          - symbol: AAPL
            name: Apple Inc.
            forwardPE: 28.3
            ...

    Each entry is the full camelCase snapshot taken when the company was
    added. Symbols are unique; insertion order is kept.
    """

    def __init__(self, path: Optional[str] = None, name: str = DEFAULT_NAME):
        self.path = Path(path or get_watchlist_path())
        self.name = name
        self._companies: List[Dict[str, Any]] = []
        self.load()

    def load(self) -> None:
        """Read the file. A missing file is an empty watchlist."""
        if not self.path.exists():
            self._companies = []
            return

        try:
            data = yaml.safe_load(self.path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ValidationError(f"Invalid watchlist YAML: {e}")

        if not isinstance(data, dict) or not isinstance(data.get("watchlist"), dict):
            raise ValidationError("Watchlist file must contain a 'watchlist' object.")

        watchlist = data["watchlist"]
        self.name = watchlist.get("name") or DEFAULT_NAME
        companies = watchlist.get("companies") or []

        if not isinstance(companies, list):
            raise ValidationError("'watchlist.companies' must be a list.")

        norm = []
        seen = set()
        for c in companies:
            if not isinstance(c, dict):
                raise ValidationError("Each watchlist entry must be a mapping.")
            symbol = _normalize_symbol(c.get("symbol"))
            if symbol in seen:
                logger.warning(f"Dropping duplicate watchlist entry for {symbol}")
                continue
            seen.add(symbol)
            norm.append({**c, "symbol": symbol})

        self._companies = norm

    def save(self) -> None:
        payload = {"watchlist": {"name": self.name, "companies": self._companies}}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(yaml.safe_dump(payload, sort_keys=False, allow_unicode=True))

    def add(self, company: Union[CompanyFundamentals, Dict[str, Any]]) -> bool:
        """Add a snapshot and persist. Returns False if the symbol is already saved."""
        entry = company.to_wire() if isinstance(company, CompanyFundamentals) else dict(company)
        symbol = _normalize_symbol(entry.get("symbol"))
        if self.contains(symbol):
            return False
        entry["symbol"] = symbol
        self._companies.append(entry)
        self.save()
        logger.info(f"Added {symbol} to {self.path}")
        return True

    def remove(self, symbol: str) -> bool:
        """Drop a symbol and persist. Returns False if it was not saved."""
        symbol = _normalize_symbol(symbol)
        remaining = [c for c in self._companies if c["symbol"] != symbol]
        if len(remaining) == len(self._companies):
            return False
        self._companies = remaining
        self.save()
        logger.info(f"Removed {symbol} from {self.path}")
        return True

    def contains(self, symbol: str) -> bool:
        symbol = _normalize_symbol(symbol)
        return any(c["symbol"] == symbol for c in self._companies)

    def symbols(self) -> List[str]:
        return [c["symbol"] for c in self._companies]

    def companies(self) -> List[Dict[str, Any]]:
        return [dict(c) for c in self._companies]

    def __len__(self) -> int:
        return len(self._companies)

    def __contains__(self, symbol: str) -> bool:
        return self.contains(symbol)
