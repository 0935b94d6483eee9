from __future__ import annotations

import os
import sys
import time


def log(message: str) -> None:
    if os.environ.get("MAF_STREAM_QUIET", "").strip().lower() in {"1", "true", "yes"}:
        return
    ts = time.strftime("%Y-%m-%d %H:%M:%S", time.gmtime())
    print(f"[{ts}] {message}", file=sys.stderr, flush=True)
