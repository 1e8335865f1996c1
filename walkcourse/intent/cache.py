"""
Short-lived cache of successful LLM intent parses.

Identical queries within the TTL skip the LLM round-trip. Only decoded
LLM payloads are stored; keyword fallbacks are never cached so a
recovered LLM is picked up on the next request.
"""
from __future__ import annotations

import hashlib
import re
import threading
import time
from typing import Any

_cache: dict[str, dict[str, Any]] = {}
_hits: int = 0
_misses: int = 0
_lock = threading.Lock()
_DEFAULT_TTL = 300  # 5 minutes
_MAX_ENTRIES = 1024

_WHITESPACE_RE = re.compile(r"\s+")


def _make_key(query: str) -> str:
    normalized = _WHITESPACE_RE.sub(" ", query.strip().lower())
    return hashlib.sha256(normalized.encode()).hexdigest()[:16]


def cache_get(query: str, ttl: float = _DEFAULT_TTL) -> dict[str, Any] | None:
    global _hits, _misses
    key = _make_key(query)
    with _lock:
        entry = _cache.get(key)
        if entry and time.time() - entry["created_at"] < ttl:
            _hits += 1
            return dict(entry["value"])
        if entry:
            del _cache[key]
        _misses += 1
        return None


def cache_set(query: str, value: dict[str, Any]) -> None:
    key = _make_key(query)
    with _lock:
        if key not in _cache and len(_cache) >= _MAX_ENTRIES:
            oldest = min(_cache, key=lambda k: _cache[k]["created_at"])
            del _cache[oldest]
        _cache[key] = {"value": dict(value), "created_at": time.time()}


def get_cache_stats() -> dict:
    with _lock:
        total = _hits + _misses
        return {
            "size": len(_cache),
            "hits": _hits,
            "misses": _misses,
            "hit_rate": round(_hits / total * 100, 1) if total > 0 else 0.0,
        }


def clear_cache() -> None:
    global _hits, _misses
    with _lock:
        _cache.clear()
        _hits = 0
        _misses = 0
