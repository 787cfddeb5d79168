"""Model serialization: JSON round-trip for node models.

Converts a NodeModel to/from a JSON-compatible dict. Useful for:
- Persisting the editor's workspace alongside the text
- Handing a model to another process
- Debugging and inspection

The payload lists every node once (id, type, fields, slot map, next id and,
optionally, span metadata and tokens), the top-level ids separately, and
the document's leading and trailing text. All output is deterministic
(sorted keys).

Example:
    from blocksync import build
    from blocksync.serialization import from_json, to_dict, to_json

    model = build('{"a": [1, 2]}')
    restored = from_json(to_json(model))
    assert to_dict(restored) == to_dict(model)

Thread Safety:
    All functions are pure and safe to call from any thread.

"""

import json
from dataclasses import asdict, fields
from typing import Any

from blocksync.errors import SerializationError, StructuralEditError
from blocksync.kinds import NEXT, NodeType, SlotTokens
from blocksync.location import SourceLocation
from blocksync.nodes import Node, NodeMeta, NodeModel

FORMAT_VERSION = 1


def to_dict(model: NodeModel, *, include_meta: bool = True) -> dict[str, Any]:
    """Convert a node model to a JSON-compatible dict.

    Args:
        model: Model to serialize.
        include_meta: Also store spans and formatting tokens. Without them
            the restored model renders with generated tokens.

    Returns:
        Dict with ``version``, ``leading``, ``trailing``, ``roots`` and
        ``nodes``.

    """
    return {
        "version": FORMAT_VERSION,
        "leading": model.leading,
        "trailing": model.trailing,
        "source_hash": model.source_hash,
        "roots": [root.id for root in model.roots],
        "nodes": [_node_to_dict(node, include_meta) for node in model],
    }


def _node_to_dict(node: Node, include_meta: bool) -> dict[str, Any]:
    result: dict[str, Any] = {
        "id": node.id,
        "type": node.type.value,
        "fields": dict(node.fields),
        "slots": {slot: None if child is None else child.id for slot, child in node.slots.items()},
        "next": None if node.next is None else node.next.id,
    }
    if include_meta:
        result["tokens"] = {slot: asdict(tokens) for slot, tokens in node.tokens.items()}
        result["meta"] = None if node.meta is None else _meta_to_dict(node.meta)
    return result


def _meta_to_dict(meta: NodeMeta) -> dict[str, Any]:
    return {
        "span": _location_to_dict(meta.span),
        "field_spans": {k: _location_to_dict(v) for k, v in meta.field_spans.items()},
        "slot_spans": {k: _location_to_dict(v) for k, v in meta.slot_spans.items()},
        "source_hash": meta.source_hash,
    }


def _location_to_dict(loc: SourceLocation) -> dict[str, Any]:
    return {f.name: getattr(loc, f.name) for f in fields(loc)}


def from_dict(data: dict[str, Any]) -> NodeModel:
    """Rebuild a node model from a dict produced by ``to_dict``.

    Node ids, links, top-level order and (when present) metadata are
    restored exactly.

    Raises:
        SerializationError: If the payload is malformed.

    """
    try:
        records = data["nodes"]
        root_ids = list(data["roots"])
    except (KeyError, TypeError) as exc:
        raise SerializationError(f"Missing model field: {exc}") from exc

    model = NodeModel(leading=data.get("leading", ""), trailing=data.get("trailing", ""))
    model.source_hash = data.get("source_hash")

    try:
        by_id = {
            record["id"]: model.create_node(
                _node_type(record.get("type")),
                record.get("fields", {}),
                node_id=record["id"],
                tokens=_tokens_from_dict(record.get("tokens") or {}),
                meta=_meta_from_dict(record.get("meta")),
            )
            for record in records
        }
        for record in records:
            parent = by_id[record["id"]]
            for slot, child_id in sorted((record.get("slots") or {}).items()):
                if child_id is not None:
                    model.link(parent, slot, by_id[child_id])
            if record.get("next") is not None:
                model.link(parent, NEXT, by_id[record["next"]])
    except SerializationError:
        raise
    except KeyError as exc:
        raise SerializationError(f"Malformed node record or dangling reference: {exc}") from exc
    except StructuralEditError as exc:
        raise SerializationError(f"Inconsistent links: {exc}") from exc
    except (TypeError, AttributeError, ValueError) as exc:
        raise SerializationError(f"Malformed node record: {exc}") from exc

    if [root.id for root in model.roots] != root_ids:
        raise SerializationError("Top-level node list does not match the links")
    return model


def _node_type(value: Any) -> NodeType:
    try:
        return NodeType(value)
    except ValueError as exc:
        raise SerializationError(f"Unknown node type: {value!r}") from exc


def _tokens_from_dict(data: dict[str, Any]) -> dict[str, SlotTokens]:
    return {slot: SlotTokens(**values) for slot, values in data.items()}


def _meta_from_dict(data: dict[str, Any] | None) -> NodeMeta | None:
    if data is None:
        return None
    return NodeMeta(
        span=_location_from_dict(data["span"]),
        field_spans={k: _location_from_dict(v) for k, v in data.get("field_spans", {}).items()},
        slot_spans={k: _location_from_dict(v) for k, v in data.get("slot_spans", {}).items()},
        source_hash=data.get("source_hash"),
    )


def _location_from_dict(value: dict[str, Any]) -> SourceLocation:
    return SourceLocation(
        lineno=value["lineno"],
        col_offset=value["col_offset"],
        offset=value.get("offset", 0),
        end_offset=value.get("end_offset", 0),
        end_lineno=value.get("end_lineno"),
        end_col_offset=value.get("end_col_offset"),
        source_file=value.get("source_file"),
    )


def to_json(model: NodeModel, *, indent: int | None = None, include_meta: bool = True) -> str:
    """Serialize a node model to a JSON string.

    Output is deterministic (sorted keys).

    Args:
        model: Model to serialize.
        indent: JSON indentation level (None for compact).
        include_meta: Also store spans and formatting tokens.

    Returns:
        JSON string.

    """
    return json.dumps(to_dict(model, include_meta=include_meta), sort_keys=True, indent=indent)


def from_json(data: str) -> NodeModel:
    """Deserialize a node model from a JSON string.

    Raises:
        SerializationError: If the JSON doesn't represent a node model.

    """
    try:
        raw = json.loads(data)
    except json.JSONDecodeError as exc:
        raise SerializationError(f"Invalid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise SerializationError(f"Expected an object, got {type(raw).__name__}")
    return from_dict(raw)
