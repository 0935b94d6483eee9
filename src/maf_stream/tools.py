from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
import io
import os
from typing import IO, Any

from .bio.maf import Block
from .bio.maf import Comment
from .bio.maf import Item
from .bio.maf import MafError
from .bio.maf import iter_items
from .config import ParseConfig
from .log import log
from .serialize import display_text
from .serialize import error_to_dict
from .serialize import item_to_dict


def _as_text(value: object | None) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="surrogateescape")
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return "\n".join(value)
    return str(value)


def _as_int(value: object | None, default: int | None) -> int | None:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValueError("Expected an integer, got a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str) and value.strip():
        return int(value.strip())
    return default


def tool_definitions() -> list[dict[str, Any]]:
    source_props = {
        "text": {"type": "string", "description": "Inline MAF content."},
        "path": {"type": "string", "description": "Path to a MAF file readable by the server."},
    }
    return [
        {
            "name": "maf.parse",
            "description": "Parse MAF text or a MAF file into comments and alignment blocks (stops at the first error).",
            "inputSchema": {
                "type": "object",
                "properties": {**source_props, "max_items": {"type": "integer", "minimum": 1}},
                "anyOf": [{"required": ["text"]}, {"required": ["path"]}],
            },
        },
        {
            "name": "maf.summary",
            "description": "Count blocks, comments and sequence lines of a MAF input without returning residues.",
            "inputSchema": {
                "type": "object",
                "properties": source_props,
                "anyOf": [{"required": ["text"]}, {"required": ["path"]}],
            },
        },
    ]


@dataclass(frozen=True)
class ToolDispatcher:
    config: ParseConfig

    def list_tools(self) -> dict[str, Any]:
        return {"tools": tool_definitions()}

    @contextmanager
    def _open_source(self, arguments: dict[str, Any]) -> Iterator[IO[bytes]]:
        path = str(arguments.get("path") or "").strip()
        text = _as_text(arguments.get("text"))
        if path and text:
            raise ValueError("Pass either text or path, not both")
        if path:
            if not os.path.isfile(path):
                raise ValueError(f"MAF file not found: {path}")
            with open(path, "rb") as handle:
                yield handle
            return
        if not text.strip():
            raise ValueError("One of text or path is required")
        raw = text.encode("utf-8", errors="surrogateescape")
        if len(raw) > self.config.max_text_bytes:
            raise ValueError(f"MAF text too large ({len(raw)} bytes > {self.config.max_text_bytes})")
        yield io.BytesIO(raw)

    def _collect(self, handle: IO[bytes], max_items: int | None) -> tuple[list[Item], MafError | None]:
        trace = log if self.config.trace else None
        items: list[Item] = []
        try:
            for item in iter_items(handle, trace=trace):
                items.append(item)
                if max_items is not None and len(items) >= max_items:
                    break
        except MafError as exc:
            log(f"maf parse stopped after {len(items)} items: {type(exc).__name__}: {exc}")
            return items, exc
        return items, None

    def call_tool(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        if name == "maf.parse":
            max_items = _as_int(arguments.get("max_items"), self.config.max_items)
            if max_items is not None and max_items <= 0:
                raise ValueError("max_items must be positive")
            with self._open_source(arguments) as handle:
                items, err = self._collect(handle, max_items)
            return {
                "items": [item_to_dict(item) for item in items],
                "counts": _counts(items),
                "error": error_to_dict(err) if err is not None else None,
            }

        if name == "maf.summary":
            with self._open_source(arguments) as handle:
                items, err = self._collect(handle, None)
            blocks = [item for item in items if isinstance(item, Block)]
            names: list[str] = []
            seen: set[str] = set()
            strands = {"+": 0, "-": 0}
            for block in blocks:
                for rec in block.sequences:
                    strands[rec.strand.value] += 1
                    if rec.name not in seen:
                        seen.add(rec.name)
                        names.append(display_text(rec.name))
            return {
                **_counts(items),
                "sequence_names": names,
                "strands": strands,
                "max_block_sequences": max((len(b.sequences) for b in blocks), default=0),
                "error": error_to_dict(err) if err is not None else None,
            }

        raise ValueError(f"Unknown tool: {name}")


def _counts(items: list[Item]) -> dict[str, int]:
    blocks = [item for item in items if isinstance(item, Block)]
    return {
        "blocks": len(blocks),
        "comments": sum(1 for item in items if isinstance(item, Comment)),
        "sequences": sum(len(block.sequences) for block in blocks),
    }
