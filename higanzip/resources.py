"""
Resources and scene graph - serializable engine objects

Binary forms (.res / .scn) are pickles, optionally zlib-compressed with
``SaveFlags.COMPRESS``. Text forms (.tres / .tscn) are native literal text of
``{"type": <registered name>, "data": <to_dict()>}``; nested resources and
nodes inside ``data`` are tagged and rebuilt on load.

Everything is done in memory; no temporary files are involved.

Loading a binary form unpickles it, which can run arbitrary code: only read
.res / .scn entries from save files the game wrote itself. The text forms
are parsed with ``ast.literal_eval`` and only rebuild registered types.
"""
from __future__ import annotations

import dataclasses
import logging
import pickle
import zlib
from typing import Any, Dict, Iterator, List, Optional, Type

from .errors import DecodeError, EncodeError, TypeMismatchError, UnknownExtensionError
from .options import EncodeOptions, SaveFlags
from .text_codec import decode_text, from_literal, to_literal

logger = logging.getLogger(__name__)

RESOURCE_EXTENSIONS = {".res", ".tres"}
SCENE_EXTENSIONS = {".scn", ".tscn"}
TEXT_FORMS = {".tres", ".tscn"}

_PICKLE_MARK = b"\x80"  # pickle protocol >= 2 header byte

_RESOURCE_TYPES: Dict[str, Type["Resource"]] = {}
_NODE_TYPES: Dict[str, Type["Node"]] = {}

_TAG_RESOURCE = "__resource__"
_TAG_NODE = "__node__"


# ============================================================================
# Resource
# ============================================================================

class Resource:
    """Base class for serializable engine objects.

    Subclasses are registered by class name (override ``resource_type`` to
    choose another). Dataclass subclasses get ``to_dict``/``from_dict`` for
    free; other subclasses serialize their instance ``__dict__``.
    """

    resource_type: str = "Resource"

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if "resource_type" not in cls.__dict__:
            cls.resource_type = cls.__name__
        _RESOURCE_TYPES[cls.resource_type] = cls

    def to_dict(self) -> Dict[str, Any]:
        if dataclasses.is_dataclass(self):
            return {f.name: getattr(self, f.name) for f in dataclasses.fields(self)}
        return dict(vars(self))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Resource":
        if dataclasses.is_dataclass(cls):
            return cls(**data)
        obj = cls.__new__(cls)
        obj.__dict__.update(data)
        return obj


_RESOURCE_TYPES[Resource.resource_type] = Resource


def resource_class(name: str) -> Optional[Type[Resource]]:
    return _RESOURCE_TYPES.get(name)


# ============================================================================
# Scene graph
# ============================================================================

class Node:
    """A scene-graph node: a name, free-form properties and ordered children."""

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        _NODE_TYPES[cls.__name__] = cls

    def __init__(self, name: str = "Node", properties: Optional[Dict[str, Any]] = None):
        self.name = name
        self.properties: Dict[str, Any] = dict(properties or {})
        self.children: List[Node] = []
        self.parent: Optional[Node] = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, children={len(self.children)})"

    def add_child(self, child: "Node") -> "Node":
        if child.parent is not None:
            child.parent.remove_child(child)
        child.parent = self
        self.children.append(child)
        return child

    def remove_child(self, child: "Node") -> None:
        self.children.remove(child)
        child.parent = None

    def get_node(self, path: str) -> Optional["Node"]:
        """Resolve a ``a/b/c`` path of child names relative to this node."""
        node: Optional[Node] = self
        for part in [p for p in path.split("/") if p]:
            if node is None:
                return None
            node = next((c for c in node.children if c.name == part), None)
        return node

    def walk(self) -> Iterator["Node"]:
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": type(self).__name__,
            "name": self.name,
            "properties": dict(self.properties),
            "children": [c.to_dict() for c in self.children],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        node_cls = _NODE_TYPES.get(data.get("type", "Node"), Node)
        node = node_cls.__new__(node_cls)
        Node.__init__(node, data.get("name", "Node"), data.get("properties"))
        for child in data.get("children", []):
            node.add_child(Node.from_dict(child))
        return node


_NODE_TYPES["Node"] = Node


@dataclasses.dataclass
class PackedScene(Resource):
    """Serializable snapshot of a node tree."""
    root: Dict[str, Any] = dataclasses.field(default_factory=dict)

    @classmethod
    def pack(cls, node: Node) -> "PackedScene":
        return cls(root=node.to_dict())

    def instantiate(self) -> Node:
        if not self.root:
            raise ValueError("PackedScene is empty")
        return Node.from_dict(self.root)


# ============================================================================
# Serialization
# ============================================================================

def _tag(value: Any) -> Any:
    if isinstance(value, Resource):
        return {_TAG_RESOURCE: value.resource_type, "data": _tag(value.to_dict())}
    if isinstance(value, Node):
        return {_TAG_NODE: _tag(value.to_dict())}
    if isinstance(value, dict):
        return {k: _tag(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_tag(v) for v in value]
    if isinstance(value, tuple):
        return tuple(_tag(v) for v in value)
    return value


def _untag(value: Any) -> Any:
    if isinstance(value, dict):
        if _TAG_RESOURCE in value and len(value) == 2:
            return _build(value[_TAG_RESOURCE], _untag(value.get("data", {})))
        if _TAG_NODE in value and len(value) == 1:
            return Node.from_dict(_untag(value[_TAG_NODE]))
        return {k: _untag(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_untag(v) for v in value]
    if isinstance(value, tuple):
        return tuple(_untag(v) for v in value)
    return value


def _build(type_name: str, data: Dict[str, Any]) -> Resource:
    cls = resource_class(type_name)
    if cls is None:
        raise DecodeError(f"unknown resource type '{type_name}'")
    try:
        return cls.from_dict(data)
    except TypeError as e:
        raise DecodeError(f"cannot build '{type_name}': {e}") from e


def save_resource(resource: Resource, ext: str, options: Optional[EncodeOptions] = None) -> bytes:
    """Serialize ``resource`` for ``ext`` (.res/.scn binary, .tres/.tscn text)."""
    opts = options or EncodeOptions()
    if not isinstance(resource, Resource):
        raise TypeMismatchError(f"expected a Resource, got {type(resource).__name__}")
    if ext not in RESOURCE_EXTENSIONS | SCENE_EXTENSIONS:
        raise UnknownExtensionError(f"unknown resource extension '{ext}'")
    if ext in TEXT_FORMS:
        doc = {"type": resource.resource_type, "data": _tag(resource.to_dict())}
        return to_literal(doc).encode("utf-8")
    try:
        payload = pickle.dumps(resource, protocol=pickle.HIGHEST_PROTOCOL)
    except (pickle.PicklingError, TypeError, AttributeError) as e:
        raise EncodeError(f"cannot pickle {type(resource).__name__}: {e}") from e
    if opts.flags & SaveFlags.COMPRESS:
        payload = zlib.compress(payload)
    return payload


def save_scene(node: Node, ext: str, options: Optional[EncodeOptions] = None) -> bytes:
    if ext not in SCENE_EXTENSIONS:
        raise UnknownExtensionError(f"unknown scene extension '{ext}'")
    return save_resource(PackedScene.pack(node), ext, options)


def load_resource(payload: bytes, ext: str) -> Resource:
    """Rebuild a resource or scene; binary payloads must come from a trusted archive."""
    if ext not in RESOURCE_EXTENSIONS | SCENE_EXTENSIONS:
        raise UnknownExtensionError(f"unknown resource extension '{ext}'")
    if ext in TEXT_FORMS:
        doc = from_literal(decode_text(payload))
        if not isinstance(doc, dict) or "type" not in doc:
            raise DecodeError("text resource has no type header")
        return _build(doc["type"], _untag(doc.get("data", {})))
    if not payload.startswith(_PICKLE_MARK):
        try:
            payload = zlib.decompress(payload)
        except zlib.error as e:
            raise DecodeError(f"binary resource is neither pickle nor zlib: {e}") from e
    try:
        obj = pickle.loads(payload)
    except Exception as e:
        raise DecodeError(f"cannot unpickle resource: {e}") from e
    if not isinstance(obj, Resource):
        raise DecodeError(f"payload holds {type(obj).__name__}, not a Resource")
    return obj
