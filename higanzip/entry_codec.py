"""
Encode/decode dispatch keyed by (value kind, entry extension).

    encode(name, value, options) -> bytes
    decode(payload, name)        -> value

Both raise ``EntryError`` subclasses; callers decide whether that skips an
entry (write path) or falls back to a default (read path).
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

import pygame

from . import text_codec
from .errors import EncodeError, DecodeError, EntryError, TypeMismatchError, UnknownExtensionError
from .image_codec import IMAGE_EXTENSIONS, decode_image, encode_image
from .options import EncodeOptions, coerce_options
from .resources import (
    Node, Resource, RESOURCE_EXTENSIONS, SCENE_EXTENSIONS,
    load_resource, save_resource, save_scene,
)

logger = logging.getLogger(__name__)

JSON_EXTENSION = ".json"
LITERAL_EXTENSION = ".var"
TEXT_EXTENSION = ".txt"

DATA_EXTENSIONS = {JSON_EXTENSION, LITERAL_EXTENSION}


class ValueKind(Enum):
    BYTES = "bytes"
    TEXT = "text"
    DATA = "data"
    IMAGE = "image"
    RESOURCE = "resource"
    NODE = "node"


def extension_of(name: str) -> str:
    """Lower-cased extension of an entry name, dot included; ``""`` if none.

    A bare extension such as ``".json"`` is its own extension.
    """
    base = str(name).replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in base:
        return ""
    return "." + base.rsplit(".", 1)[1].lower()


def value_kind(value: Any) -> Optional[ValueKind]:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ValueKind.BYTES
    if isinstance(value, str):
        return ValueKind.TEXT
    if isinstance(value, pygame.Surface):
        return ValueKind.IMAGE
    if isinstance(value, Node):
        return ValueKind.NODE
    if isinstance(value, Resource):
        return ValueKind.RESOURCE
    if isinstance(value, (dict, list, tuple)):
        return ValueKind.DATA
    return None


def _encode_data(value: Any, ext: str) -> bytes:
    if ext == JSON_EXTENSION:
        return text_codec.encode_json(value)
    if ext == LITERAL_EXTENSION:
        return text_codec.encode_literal(value)
    raise UnknownExtensionError(f"unknown extension '{ext}' for structured data")


def encode(name: str, value: Any, options: Any = None) -> bytes:
    ext = extension_of(name)
    opts: EncodeOptions = coerce_options(options)
    kind = value_kind(value)
    try:
        if kind is ValueKind.BYTES:
            return bytes(value)
        if kind is ValueKind.TEXT:
            return text_codec.encode_text(value)
        if kind is ValueKind.DATA:
            return _encode_data(value, ext)
        if kind is ValueKind.IMAGE:
            return encode_image(value, ext, opts)
        if kind is ValueKind.RESOURCE:
            return save_resource(value, ext, opts)
        if kind is ValueKind.NODE:
            return save_scene(value, ext, opts)
        raise TypeMismatchError(f"cannot encode value of type {type(value).__name__}: {value!r:.80}")
    except EntryError as e:
        if e.name is None:
            e.name = name
        raise
    except Exception as e:
        raise EncodeError(f"{type(e).__name__}: {e}", name) from e


def decode(payload: bytes, name: str) -> Any:
    ext = extension_of(name)
    try:
        if ext in IMAGE_EXTENSIONS:
            return decode_image(payload, ext)
        if ext == TEXT_EXTENSION:
            return text_codec.decode_text(payload)
        if ext == LITERAL_EXTENSION:
            return text_codec.decode_literal(payload)
        if ext == JSON_EXTENSION:
            return text_codec.decode_json(payload)
        if ext in RESOURCE_EXTENSIONS | SCENE_EXTENSIONS:
            return load_resource(payload, ext)
        raise UnknownExtensionError(f"unknown extension '{ext}'")
    except EntryError as e:
        if e.name is None:
            e.name = name
        raise
    except Exception as e:
        raise DecodeError(f"{type(e).__name__}: {e}", name) from e
