"""Reconcile full-text observations into incremental deltas."""

from __future__ import annotations


def reconcile(previous: str, full: str) -> str:
    """Return the part of ``full`` the consumer has not seen yet.

    When ``full`` extends ``previous`` only the suffix is new. Otherwise the
    backend rewrote its text and the whole of ``full`` is the delta.
    """
    if full.startswith(previous):
        return full[len(previous):]
    return full


def observe(buffers: dict[str, str], key: str, full: str) -> str:
    """Reconcile ``full`` against the buffer under ``key`` and advance it."""
    delta = reconcile(buffers.get(key, ""), full)
    buffers[key] = full
    return delta
