from __future__ import annotations

from collections.abc import Callable
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
import os
import re
from typing import IO, Union


Trace = Callable[[str], None]

_UINT_RE = re.compile(r"\+?[0-9]+")
_UINT_MAX = 2**64 - 1


class MafError(Exception):
    pass


class EndOfInput(MafError):
    """No further items: the stream ended before a comment or block header."""


class MafIOError(MafError):
    pass


class MafParseError(MafError, ValueError):
    pass


class UnexpectedLine(MafParseError):
    def __init__(self, line: str) -> None:
        super().__init__(f"Unexpected line outside a block: {line!r}")
        self.line = line


class BadLineType(MafParseError):
    def __init__(self, token: str) -> None:
        super().__init__(f"Unsupported block line type: {token!r}")
        self.token = token


class IncompleteLine(MafParseError):
    def __init__(self, tokens: list[str]) -> None:
        super().__init__(f"s line needs 6 fields, got {len(tokens)}")
        self.tokens = list(tokens)


class _InvalidField(MafParseError):
    field_name = "field"

    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid {self.field_name}: {value!r}")
        self.value = value


class InvalidStrand(_InvalidField):
    field_name = "strand"


class InvalidStart(_InvalidField):
    field_name = "start"


class InvalidAlignedLength(_InvalidField):
    field_name = "aligned length"


class InvalidSequenceLength(_InvalidField):
    field_name = "sequence length"


class Strand(Enum):
    FORWARD = "+"
    REVERSE = "-"


@dataclass(frozen=True)
class SequenceRecord:
    name: str
    start: int
    aligned_length: int
    strand: Strand
    source_length: int
    residues: bytes

    @property
    def text(self) -> str:
        return self.residues.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class Block:
    # Raw header line, "a" marker included.
    header: str
    sequences: tuple[SequenceRecord, ...] = ()


@dataclass(frozen=True)
class Comment:
    text: str


Item = Union[Comment, Block]


def iter_lines(handle: IO) -> Iterator[str]:
    """Yield lines from ``handle`` with the trailing ``\\n`` / ``\\r\\n`` removed.

    Works on binary and text streams. Bytes are decoded as UTF-8 with
    ``surrogateescape`` so that any byte value can be recovered by encoding
    the same way. The stream is only read, never closed.
    """
    while True:
        try:
            raw = handle.readline()
        except OSError as exc:
            raise MafIOError(f"Failed to read MAF input: {exc}") from exc
        if not raw:
            return
        if isinstance(raw, (bytes, bytearray)):
            line = bytes(raw).decode("utf-8", errors="surrogateescape")
        else:
            line = raw
        if line.endswith("\n"):
            line = line[:-1]
            if line.endswith("\r"):
                line = line[:-1]
        yield line


def _parse_uint(token: str, error: type[_InvalidField]) -> int:
    if not _UINT_RE.fullmatch(token):
        raise error(token)
    value = int(token)
    if value > _UINT_MAX:
        raise error(token)
    return value


def parse_strand(token: str) -> Strand:
    if token == "+":
        return Strand.FORWARD
    if token == "-":
        return Strand.REVERSE
    raise InvalidStrand(token)


def decode_sequence_line(tokens: list[str]) -> SequenceRecord:
    """Decode the fields of an ``s`` line (marker already removed).

    Fields are taken from the end of the line: residues, source length,
    strand, aligned length, start, then the name. Surplus leading tokens are
    ignored.
    """
    if len(tokens) < 6:
        raise IncompleteLine(tokens)
    name, start, aligned_length, strand, source_length, residues = tokens[-6:]

    source_length_value = _parse_uint(source_length, InvalidSequenceLength)
    strand_value = parse_strand(strand)
    aligned_length_value = _parse_uint(aligned_length, InvalidAlignedLength)
    start_value = _parse_uint(start, InvalidStart)

    return SequenceRecord(
        name=name,
        start=start_value,
        aligned_length=aligned_length_value,
        strand=strand_value,
        source_length=source_length_value,
        residues=residues.encode("utf-8", errors="surrogateescape"),
    )


def parse_block(header: str, lines: Iterator[str], *, trace: Trace | None = None) -> Block:
    sequences: list[SequenceRecord] = []
    for line in lines:
        if trace is not None:
            trace(f"line: {line}")
        fields = line.split()
        if not fields:
            break
        if fields[0] != "s":
            if trace is not None:
                trace(f"bad block line type: {fields[0]!r}")
            raise BadLineType(fields[0])
        sequences.append(decode_sequence_line(fields[1:]))
    return Block(header=header, sequences=tuple(sequences))


def parse_next_item(handle: IO, *, trace: Trace | None = None) -> Item:
    """Read the next comment or block from ``handle``.

    Blank lines before the item are skipped. Raises ``EndOfInput`` once the
    stream is exhausted and a ``MafParseError`` subclass on malformed input;
    the offending line has been consumed in both error cases.
    """
    lines = iter_lines(handle)
    for line in lines:
        if trace is not None:
            trace(f"line: {line}")
        if not line.strip():
            continue
        if line.startswith("#"):
            return Comment(text=line[1:])
        if line.startswith("a"):
            return parse_block(line, lines, trace=trace)
        if trace is not None:
            trace(f"unexpected line: {line!r}")
        raise UnexpectedLine(line)
    raise EndOfInput("End of MAF input")


def iter_items(handle: IO, *, trace: Trace | None = None) -> Iterator[Item]:
    while True:
        try:
            item = parse_next_item(handle, trace=trace)
        except EndOfInput:
            return
        yield item


def read_items(handle: IO, *, trace: Trace | None = None, max_items: int | None = None) -> list[Item]:
    items: list[Item] = []
    for item in iter_items(handle, trace=trace):
        items.append(item)
        if max_items is not None and len(items) >= max_items:
            break
    return items


def read_blocks(
    path: str | os.PathLike[str],
    *,
    strict: bool = False,
    trace: Trace | None = None,
) -> list[Block]:
    """Collect every block of the MAF file at ``path``.

    Comments are dropped. Collection stops at the first parse error: with
    ``strict`` the error is re-raised, otherwise the blocks read so far are
    returned.
    """
    blocks: list[Block] = []
    with open(path, "rb") as handle:
        try:
            for item in iter_items(handle, trace=trace):
                if isinstance(item, Block):
                    blocks.append(item)
        except MafError as exc:
            if strict:
                raise
            if trace is not None:
                trace(f"stopped after {len(blocks)} blocks: {exc}")
    return blocks
