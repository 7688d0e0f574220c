"""
Inference backends for yolo_overlay.

Backends are kept in a separate module so pre/post-processing stays usable
(and testable) without an inference runtime installed.
"""

from __future__ import annotations

__all__ = []
