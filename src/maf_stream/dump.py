from __future__ import annotations

import argparse
import json
import sys

from .bio.maf import Block
from .bio.maf import MafError
from .bio.maf import iter_items
from .config import load_config
from .log import log
from .serialize import error_to_dict
from .serialize import item_to_dict


def main(argv: list[str] | None = None) -> int:
    cfg = load_config()

    parser = argparse.ArgumentParser(description="Parse a MAF file and print its alignment blocks.")
    parser.add_argument("path", help="MAF file to read.")
    parser.add_argument("--json", action="store_true", help="Print one JSON object per block.")
    parser.add_argument("--strict", action="store_true", help="Exit with status 1 when a parse error stops reading.")
    parser.add_argument("--max-items", type=int, default=cfg.parse.max_items)
    parser.add_argument("--trace", action="store_true", default=cfg.parse.trace, help="Log every line read.")
    args = parser.parse_args(argv)

    if args.max_items is not None and args.max_items <= 0:
        parser.error("--max-items must be positive")

    trace = log if args.trace else None
    blocks: list[Block] = []
    seen = 0
    error: MafError | None = None
    try:
        handle = open(args.path, "rb")
    except OSError as exc:
        log(f"cannot open {args.path}: {exc}")
        return 2

    with handle:
        try:
            for item in iter_items(handle, trace=trace):
                seen += 1
                if isinstance(item, Block):
                    blocks.append(item)
                if args.max_items is not None and seen >= args.max_items:
                    break
        except MafError as exc:
            error = exc

    for block in blocks:
        if args.json:
            print(json.dumps(item_to_dict(block), ensure_ascii=False))
        else:
            print(repr(block))

    if error is not None:
        log(f"stopped after {len(blocks)} blocks: {type(error).__name__}: {error}")
        if args.json:
            print(json.dumps({"type": "error", "error": error_to_dict(error)}, ensure_ascii=False))
        if args.strict:
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
