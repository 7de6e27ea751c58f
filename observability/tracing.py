"""Span helper for timing calls to external collaborators."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional


@contextmanager
def span(events: Optional[List[Dict[str, Any]]], name: str) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        if events is not None:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            events.append({"span": name, "ms": elapsed_ms})


__all__ = ["span"]
