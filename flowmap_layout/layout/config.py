"""Process-wide default layout configuration.

Models created without an explicit ``LayoutConfig`` start from a copy of
this default, so callers can tune symbology and iteration counts once for
a whole session.
"""

from __future__ import annotations

import copy
import dataclasses
from typing import Any, Mapping, Optional

from .model import LayoutConfig

_DEFAULT_LAYOUT_CONFIG = LayoutConfig()


def get_default_layout_config() -> LayoutConfig:
    """A private copy of the default; editing it leaves the default untouched."""

    return copy.deepcopy(_DEFAULT_LAYOUT_CONFIG)


def set_default_layout_config(config: LayoutConfig) -> None:
    global _DEFAULT_LAYOUT_CONFIG
    _DEFAULT_LAYOUT_CONFIG = copy.deepcopy(config)


def layout_config_from_mapping(data: Optional[Mapping[str, Any]]) -> LayoutConfig:
    """The default with the settings in ``data`` applied.

    Raises ``ValueError`` naming any key that is not a ``LayoutConfig`` field.
    """

    config = get_default_layout_config()
    if not data:
        return config
    known = {f.name for f in dataclasses.fields(LayoutConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"unknown layout settings: {', '.join(unknown)}")
    return dataclasses.replace(config, **dict(data))
