from __future__ import annotations

from dataclasses import dataclass, replace
from enum import IntFlag
from typing import Any, Mapping, Optional

from .config_io import load_config


class SaveFlags(IntFlag):
    """Flags for resource/scene serialization."""
    NONE = 0
    COMPRESS = 1        # zlib-wrap binary payloads


@dataclass(frozen=True)
class EncodeOptions:
    """Options bag consulted by image and resource encodings only."""
    lossy: bool = False
    quality: float = 0.75
    flags: SaveFlags = SaveFlags.NONE

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]], base: Optional["EncodeOptions"] = None) -> "EncodeOptions":
        """Build options from a plain mapping; absent keys keep ``base``'s values."""
        opts = base or cls()
        if not data:
            return opts
        changes: dict = {}
        if "lossy" in data:
            changes["lossy"] = bool(data["lossy"])
        if "quality" in data:
            changes["quality"] = min(1.0, max(0.0, float(data["quality"])))
        if "flags" in data:
            changes["flags"] = SaveFlags(int(data["flags"]))
        return replace(opts, **changes)

    @property
    def quality_percent(self) -> int:
        """Quality as the 1..100 integer Pillow expects."""
        return max(1, min(100, int(round(self.quality * 100))))


def default_options(cfg: Optional[dict] = None) -> EncodeOptions:
    """Options from the ``image``/``resource`` config sections."""
    cfg = cfg if cfg is not None else load_config()
    merged = dict(cfg.get("image", {}))
    merged.update(cfg.get("resource", {}))
    return EncodeOptions.from_mapping(merged)


def coerce_options(options: Any, cfg: Optional[dict] = None) -> EncodeOptions:
    """Explicit ``EncodeOptions`` win; ``None`` and mapping keys left out come from config."""
    if isinstance(options, EncodeOptions):
        return options
    return EncodeOptions.from_mapping(options, base=default_options(cfg))
