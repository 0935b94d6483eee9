from __future__ import annotations

from typing import Any

from .bio.maf import Block
from .bio.maf import Comment
from .bio.maf import Item
from .bio.maf import SequenceRecord


def display_text(s: str) -> str:
    # Lines are decoded with surrogateescape; undo that so the result encodes as UTF-8.
    return s.encode("utf-8", errors="surrogateescape").decode("utf-8", errors="replace")


def sequence_to_dict(rec: SequenceRecord) -> dict[str, Any]:
    return {
        "name": display_text(rec.name),
        "start": rec.start,
        "aligned_length": rec.aligned_length,
        "strand": rec.strand.value,
        "source_length": rec.source_length,
        "residues": rec.text,
    }


def item_to_dict(item: Item) -> dict[str, Any]:
    if isinstance(item, Comment):
        return {"type": "comment", "text": display_text(item.text)}
    if isinstance(item, Block):
        return {
            "type": "block",
            "header": display_text(item.header),
            "sequences": [sequence_to_dict(rec) for rec in item.sequences],
        }
    raise TypeError(f"Not a MAF item: {item!r}")


def error_to_dict(err: Exception) -> dict[str, Any]:
    out: dict[str, Any] = {"type": type(err).__name__, "message": display_text(str(err))}
    for attr in ("line", "token", "value"):
        value = getattr(err, attr, None)
        if isinstance(value, str):
            out[attr] = display_text(value)
    return out
