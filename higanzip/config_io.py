from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional
import json
import logging
import zipfile

logger = logging.getLogger(__name__)


DEFAULTS = {
    "archive": {
        "compression": "deflated",
        "compresslevel": None,
    },
    "image": {
        "lossy": False,
        "quality": 0.75,
    },
    "resource": {
        "flags": 0,
    },
}

COMPRESSION_METHODS = {
    "stored": zipfile.ZIP_STORED,
    "deflated": zipfile.ZIP_DEFLATED,
    "bzip2": zipfile.ZIP_BZIP2,
    "lzma": zipfile.ZIP_LZMA,
}


def _config_path(get_settings_dir: Optional[Callable[[], Path]] = None) -> Path:
    base: Path
    try:
        if callable(get_settings_dir):
            base_obj = get_settings_dir()
            base = base_obj if isinstance(base_obj, Path) else Path(str(base_obj))
        else:
            base = Path("save")
    except Exception:
        base = Path("save")
    return base / "archive.json"


def _merge(data: dict) -> dict:
    # shallow merge per section, unknown sections dropped
    out = {}
    for section, defaults in DEFAULTS.items():
        merged = dict(defaults)
        merged.update(dict((data.get(section) or {})))
        out[section] = merged
    return out


def load_config(get_settings_dir: Optional[Callable[[], Path]] = None) -> dict:
    p = _config_path(get_settings_dir)
    try:
        if p.exists():
            return _merge(json.loads(p.read_text(encoding="utf-8")))
    except Exception as e:
        logger.warning(f"Failed to read archive config {p}: {e}")
    return _merge({})


def save_config(cfg: dict, get_settings_dir: Optional[Callable[[], Path]] = None) -> bool:
    p = _config_path(get_settings_dir)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(_merge(cfg), ensure_ascii=False, indent=2), encoding="utf-8")
        return True
    except Exception as e:
        logger.error(f"Failed to write archive config {p}: {e}")
        return False


def compression_for(cfg: Optional[dict] = None) -> tuple[int, Optional[int]]:
    """Return ``(compression, compresslevel)`` for ``zipfile.ZipFile``."""
    section = _merge(cfg or {})["archive"]
    name = str(section.get("compression") or "deflated").lower()
    method = COMPRESSION_METHODS.get(name)
    if method is None:
        logger.warning(f"Unknown compression '{name}', using deflated")
        method = zipfile.ZIP_DEFLATED
    level = section.get("compresslevel")
    return method, (int(level) if level is not None else None)
