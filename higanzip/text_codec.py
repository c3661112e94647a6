"""Text, JSON and native-literal encodings.

The native literal form is Python literal syntax read back with
``ast.literal_eval``. Unlike JSON it keeps tuples (used as vectors across
the engine), sets, bytes and non-string dict keys. ``pygame.math`` vectors
are written as tuples.
"""
from __future__ import annotations

import ast
import json
import math
from typing import Any

import pygame

from .errors import DecodeError, EncodeError


def encode_text(text: str) -> bytes:
    return text.encode("utf-8")


def decode_text(payload: bytes) -> str:
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"payload is not valid UTF-8: {e}") from e


def encode_json(data: Any) -> bytes:
    try:
        text = json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise EncodeError(f"value is not JSON serializable: {e}") from e
    return text.encode("utf-8")


def decode_json(payload: bytes) -> Any:
    try:
        return json.loads(decode_text(payload))
    except json.JSONDecodeError as e:
        raise DecodeError(f"invalid JSON: {e}") from e


class _InfLiteral(float):
    # literal_eval has no name for inf; an overflowing exponent reads back as one
    def __repr__(self) -> str:
        return "1e999" if self > 0 else "-1e999"


def _literal_ready(value: Any) -> Any:
    if isinstance(value, (pygame.math.Vector2, pygame.math.Vector3)):
        value = tuple(value)
    if isinstance(value, float):
        if math.isnan(value):
            raise EncodeError("NaN has no literal form")
        return _InfLiteral(value) if math.isinf(value) else value
    if isinstance(value, dict):
        return {_literal_ready(k): _literal_ready(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_literal_ready(v) for v in value]
    if isinstance(value, tuple):
        return tuple(_literal_ready(v) for v in value)
    if isinstance(value, set):
        return {_literal_ready(v) for v in value}
    return value


def to_literal(value: Any) -> str:
    """Render ``value`` as literal text; raise EncodeError if it would not read back.

    Infinite floats are written as ``1e999``/``-1e999``; NaN is rejected.
    """
    text = repr(_literal_ready(value))
    try:
        ast.literal_eval(text)
    except (ValueError, SyntaxError, MemoryError, RecursionError) as e:
        raise EncodeError(f"value has no literal form: {type(e).__name__}") from e
    return text


def from_literal(text: str) -> Any:
    try:
        return ast.literal_eval(text)
    except (ValueError, SyntaxError, MemoryError, RecursionError) as e:
        raise DecodeError(f"invalid literal text: {e}") from e


def encode_literal(data: Any) -> bytes:
    return to_literal(data).encode("utf-8")


def decode_literal(payload: bytes) -> Any:
    return from_literal(decode_text(payload))
