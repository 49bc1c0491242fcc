"""Batch WebP conversion with frame sequence detection."""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["WebPKit"]


def __getattr__(name: str):
    if name == "WebPKit":
        from webpkit.api.processor import WebPKit

        return WebPKit
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(list(globals().keys()) + ["WebPKit"])
