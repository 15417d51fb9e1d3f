"""Cache backends for provider payloads — Parquet (disk), Memory, or none.

Entries are keyed by ``(TICKER, field group)`` and hold the raw JSON payload
returned by the provider. Every write is a full replace; expired entries
read as absent.
"""

from __future__ import annotations

import json
import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

import pandas as pd
import structlog

from stockgateway.errors import GatewayError, GatewayErrorCode
from stockgateway.models.enums import DEFAULT_TTLS, FieldGroup

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_empty_payload(payload: Any) -> bool:
    """``None``, ``{}``, ``[]`` and blank strings are never cached."""
    if payload is None:
        return True
    if isinstance(payload, str):
        return not payload.strip()
    if isinstance(payload, (dict, list, tuple)):
        return len(payload) == 0
    return False


@dataclass(frozen=True)
class CacheEntry:
    """One cached payload for a (ticker, field group) pair."""

    ticker: str
    field_group: FieldGroup
    payload: Any
    fetched_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class CacheStore(ABC):
    """Abstract cache interface.

    Args:
        ttls: Per field-group TTL overrides, merged over the defaults.
        clock: Returns the current aware datetime; injectable for tests.
    """

    def __init__(
        self,
        ttls: dict[FieldGroup, timedelta] | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.ttls = {**DEFAULT_TTLS, **(ttls or {})}
        self._clock = clock

    def ttl(self, group: FieldGroup) -> timedelta | None:
        if not group.cacheable:
            return None
        return self.ttls.get(group)

    def get(self, ticker: str, group: FieldGroup) -> Any | None:
        """Return the cached payload, or None on miss or expiry."""
        entry = self.get_entry(ticker, group)
        return entry.payload if entry is not None else None

    def get_entry(self, ticker: str, group: FieldGroup) -> CacheEntry | None:
        if not group.cacheable:
            return None
        entry = self._load(ticker.upper(), group)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            return None
        return entry

    def put(self, ticker: str, group: FieldGroup, payload: Any) -> bool:
        """Upsert ``payload``; returns False when nothing was written."""
        ttl = self.ttl(group)
        if ttl is None or is_empty_payload(payload):
            return False
        now = self._clock()
        entry = CacheEntry(
            ticker=ticker.upper(),
            field_group=group,
            payload=payload,
            fetched_at=now,
            expires_at=now + ttl,
        )
        self._save(entry)
        return True

    # ---- backend hooks ----

    @abstractmethod
    def _load(self, ticker: str, group: FieldGroup) -> CacheEntry | None:
        ...

    @abstractmethod
    def _save(self, entry: CacheEntry) -> None:
        ...

    @abstractmethod
    def invalidate(self, ticker: str) -> int:
        """Delete every entry for ``ticker``; returns the number removed."""
        ...

    @abstractmethod
    def purge_expired(self) -> int:
        ...

    @abstractmethod
    def clear_all(self) -> None:
        ...


class NoCache(CacheStore):
    """No-op cache — always misses."""

    def put(self, ticker, group, payload):  # type: ignore[override]
        return False

    def _load(self, ticker, group):  # type: ignore[override]
        return None

    def _save(self, entry):  # type: ignore[override]
        pass

    def invalidate(self, ticker):  # type: ignore[override]
        return 0

    def purge_expired(self):
        return 0

    def clear_all(self):
        pass


class MemoryCache(CacheStore):
    """In-process cache, lost on restart."""

    def __init__(
        self,
        ttls: dict[FieldGroup, timedelta] | None = None,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(ttls=ttls, clock=clock)
        self._store: dict[tuple[str, str], CacheEntry] = {}

    def _load(self, ticker: str, group: FieldGroup) -> CacheEntry | None:
        return self._store.get((ticker, group.value))

    def _save(self, entry: CacheEntry) -> None:
        self._store[(entry.ticker, entry.field_group.value)] = entry

    def invalidate(self, ticker: str) -> int:
        key = ticker.upper()
        keys = [k for k in self._store if k[0] == key]
        for k in keys:
            del self._store[k]
        return len(keys)

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [k for k, e in self._store.items() if e.is_expired(now)]
        for k in expired:
            del self._store[k]
        return len(expired)

    def clear_all(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


class ParquetCache(CacheStore):
    """Disk-based cache, one single-row Parquet file per key.

    Storage layout: ``{base_path}/{TICKER}/{field_group}.parquet``. The
    payload column holds JSON text. Writes go to a temp file in the same
    directory and are moved into place with ``os.replace``.
    """

    _COLUMNS = ["ticker", "field_group", "payload", "fetched_at", "expires_at"]

    def __init__(
        self,
        base_path: Path | str,
        ttls: dict[FieldGroup, timedelta] | None = None,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(ttls=ttls, clock=clock)
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _ticker_dir(self, ticker: str) -> Path:
        """``{base_path}/{TICKER}``, refusing keys that escape ``base_path``."""
        path = self.base_path / ticker.upper()
        if path.resolve().parent != self.base_path.resolve():
            raise GatewayError(
                f"Invalid cache key: {ticker!r}",
                code=GatewayErrorCode.BAD_REQUEST,
            )
        return path

    def _file_path(self, ticker: str, group: FieldGroup) -> Path:
        return self._ticker_dir(ticker) / f"{group.value}.parquet"

    def _load(self, ticker: str, group: FieldGroup) -> CacheEntry | None:
        fp = self._file_path(ticker, group)
        if not fp.exists():
            return None
        try:
            return self._read(fp)
        except Exception as exc:
            logger.warning(
                "cache_read_failed",
                ticker=ticker,
                field_group=group.value,
                error=str(exc),
            )
            return None

    def _save(self, entry: CacheEntry) -> None:
        fp = self._file_path(entry.ticker, entry.field_group)
        fp.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp = tempfile.mkstemp(dir=fp.parent, suffix=".tmp")
        os.close(fd)
        try:
            df = pd.DataFrame([{
                "ticker": entry.ticker,
                "field_group": entry.field_group.value,
                "payload": json.dumps(entry.payload),
                "fetched_at": entry.fetched_at.isoformat(),
                "expires_at": entry.expires_at.isoformat(),
            }], columns=self._COLUMNS)
            df.to_parquet(tmp, compression="snappy", index=False)
            os.replace(tmp, fp)
        except Exception as exc:
            Path(tmp).unlink(missing_ok=True)
            raise GatewayError(
                f"Cache write failed for {entry.ticker}/{entry.field_group.value}: {exc}",
                code=GatewayErrorCode.CACHE_ERROR,
                retryable=True,
            ) from exc

    def invalidate(self, ticker: str) -> int:
        ticker_dir = self._ticker_dir(ticker)
        if not ticker_dir.exists():
            return 0
        removed = len(list(ticker_dir.glob("*.parquet")))
        shutil.rmtree(ticker_dir)
        return removed

    def purge_expired(self) -> int:
        now = self._clock()
        removed = 0
        for fp in self.base_path.glob("*/*.parquet"):
            try:
                entry = self._read(fp)
            except Exception:
                entry = None
            if entry is None or entry.is_expired(now):
                fp.unlink(missing_ok=True)
                removed += 1
        return removed

    def clear_all(self) -> None:
        for d in self.base_path.iterdir():
            if d.is_dir():
                shutil.rmtree(d)

    # ---- helpers ----

    @staticmethod
    def _read(fp: Path) -> CacheEntry | None:
        df = pd.read_parquet(fp)
        if df.empty:
            return None
        row = df.iloc[0]
        return CacheEntry(
            ticker=str(row["ticker"]),
            field_group=FieldGroup(row["field_group"]),
            payload=json.loads(row["payload"]),
            fetched_at=datetime.fromisoformat(row["fetched_at"]),
            expires_at=datetime.fromisoformat(row["expires_at"]),
        )
