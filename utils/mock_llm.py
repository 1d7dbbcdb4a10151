"""Canned model responses for offline hunts and demos.

Point ``MOCK_LLM_RESPONSES`` at a JSON file shaped like::

    {
      "page_analysis": {"https://acme.dev/jobs/1": [{...}, {...}], "__default__": {...}},
      "job_match": {"__default__": {"score": 80, "analysis": "..."}},
      "field_value": {"Why do you want to work here?": "Because ..."},
      "careers_page": {"Acme": "https://acme.dev/careers"}
    }

A list value is consumed in order (the last entry repeats), which lets a
multi-step page flow be replayed.
"""
from __future__ import annotations

import json
import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

_DEFAULT_KEY = "__default__"
_LIST_KEY = "__list__"
_METADATA_KEYS = ("url", "job_id", "company", "field_label", "bucket_key")

_mock_cache: Optional[Dict[str, Any]] = None
_sequence_indices: Dict[Tuple[str, str], int] = {}


def mock_enabled() -> bool:
    """Return True when MOCK_LLM_RESPONSES points to a readable JSON file."""
    path = os.getenv("MOCK_LLM_RESPONSES")
    return bool(path and Path(path).exists())


def _load_cache() -> Dict[str, Any]:
    global _mock_cache
    if _mock_cache is not None:
        return _mock_cache
    path = os.getenv("MOCK_LLM_RESPONSES")
    if not path or not Path(path).exists():
        _mock_cache = {}
        return _mock_cache
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    _mock_cache = payload if isinstance(payload, dict) else {}
    return _mock_cache


def reset_mock_cache() -> None:
    """Force the cache to reload on next access (useful for tests)."""
    global _mock_cache
    _mock_cache = None
    _sequence_indices.clear()


def _next_from_sequence(bucket: str, key: str, values: Any) -> Any:
    sequence = values if isinstance(values, list) else [values]
    if not sequence:
        return None
    cursor_key = (bucket, key)
    idx = min(_sequence_indices.get(cursor_key, 0), len(sequence) - 1)
    _sequence_indices[cursor_key] = idx + 1
    return deepcopy(sequence[idx])


def get_mock_response(bucket: str | None, *, metadata: Optional[Dict[str, Any]] = None) -> Any:
    """Return a canned response for ``bucket`` or None when nothing matches.

    Metadata values (url, job_id, company, field_label) are tried as keys in
    that order before ``__default__``.
    """
    if not bucket or not mock_enabled():
        return None
    bucket_data = _load_cache().get(bucket)
    if bucket_data is None:
        return None

    if isinstance(bucket_data, list):
        return _next_from_sequence(bucket, _LIST_KEY, bucket_data)

    if isinstance(bucket_data, dict):
        metadata = metadata or {}
        for key_name in _METADATA_KEYS:
            meta_value = metadata.get(key_name)
            if meta_value and meta_value in bucket_data:
                return _next_from_sequence(bucket, str(meta_value), bucket_data[meta_value])
        if _DEFAULT_KEY in bucket_data:
            return _next_from_sequence(bucket, _DEFAULT_KEY, bucket_data[_DEFAULT_KEY])
        return None

    if isinstance(bucket_data, (str, int, float)):
        return bucket_data
    return None


__all__ = ["mock_enabled", "get_mock_response", "reset_mock_cache"]
