"""Composition root: wires settings into the store, dispatcher and services."""
from __future__ import annotations

from .container import DispatchContainer, build_container

__all__ = ["DispatchContainer", "build_container"]
