from __future__ import annotations

import io
from typing import Optional

import pygame
from PIL import Image

from .errors import DecodeError, EncodeError, UnknownExtensionError, UnsupportedFormatError
from .options import EncodeOptions

# pygame's own codec handles these losslessly
PYGAME_FORMATS = {".png", ".bmp", ".tga"}
# Pillow is used where quality/lossy parameters matter
PILLOW_FORMATS = {".jpg": "JPEG", ".jpeg": "JPEG", ".webp": "WEBP"}
VECTOR_EXTENSIONS = {".svg"}

RASTER_EXTENSIONS = PYGAME_FORMATS | set(PILLOW_FORMATS)
IMAGE_EXTENSIONS = RASTER_EXTENSIONS | VECTOR_EXTENSIONS


def surface_to_pil(surface: pygame.Surface) -> Image.Image:
    raw = pygame.image.tobytes(surface, "RGBA")
    return Image.frombytes("RGBA", surface.get_size(), raw)


def pil_to_surface(img: Image.Image) -> pygame.Surface:
    rgba = img.convert("RGBA")
    return pygame.image.frombytes(rgba.tobytes(), rgba.size, "RGBA")


def encode_image(surface: pygame.Surface, ext: str, options: Optional[EncodeOptions] = None) -> bytes:
    """Encode ``surface`` into the format named by ``ext``.

    JPEG honours ``quality``; WebP honours both ``quality`` and ``lossy``
    (lossless unless ``lossy`` is set). SVG output is not implemented.
    """
    opts = options or EncodeOptions()
    if ext in VECTOR_EXTENSIONS:
        raise UnsupportedFormatError(f"encoding to '{ext}' is not implemented")
    buf = io.BytesIO()
    if ext in PYGAME_FORMATS:
        try:
            pygame.image.save(surface, buf, f"image{ext}")
        except pygame.error as e:
            raise EncodeError(f"pygame failed to encode '{ext}': {e}") from e
        return buf.getvalue()
    fmt = PILLOW_FORMATS.get(ext)
    if fmt is None:
        raise UnknownExtensionError(f"unknown image extension '{ext}'")
    try:
        img = surface_to_pil(surface)
        if fmt == "JPEG":
            img.convert("RGB").save(buf, format=fmt, quality=opts.quality_percent)
        else:
            img.save(buf, format=fmt, lossless=not opts.lossy, quality=opts.quality_percent)
    except (OSError, ValueError) as e:
        raise EncodeError(f"Pillow failed to encode '{ext}': {e}") from e
    return buf.getvalue()


def decode_image(payload: bytes, ext: str) -> pygame.Surface:
    if ext not in IMAGE_EXTENSIONS:
        raise UnknownExtensionError(f"unknown image extension '{ext}'")
    if ext in PILLOW_FORMATS:
        try:
            with Image.open(io.BytesIO(payload)) as img:
                return pil_to_surface(img)
        except (OSError, ValueError) as e:
            raise DecodeError(f"Pillow failed to decode '{ext}': {e}") from e
    try:
        return pygame.image.load(io.BytesIO(payload), f"image{ext}")
    except pygame.error as e:
        raise DecodeError(f"pygame failed to decode '{ext}': {e}") from e
