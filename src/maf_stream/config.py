from __future__ import annotations

from dataclasses import dataclass
import os


@dataclass(frozen=True)
class ParseConfig:
    trace: bool
    max_items: int | None
    max_text_bytes: int


@dataclass(frozen=True)
class HttpConfig:
    host: str
    port: int
    path: str


@dataclass(frozen=True)
class AppConfig:
    parse: ParseConfig
    http: HttpConfig


def _env_true(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int | None) -> int | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


def load_config() -> AppConfig:
    max_items = _env_int("MAF_STREAM_MAX_ITEMS", None)
    if max_items is not None and max_items <= 0:
        raise RuntimeError("MAF_STREAM_MAX_ITEMS must be positive")

    max_text_bytes = _env_int("MAF_STREAM_MAX_TEXT_BYTES", 50 * 1024 * 1024)
    if max_text_bytes is None or max_text_bytes <= 0:
        raise RuntimeError("MAF_STREAM_MAX_TEXT_BYTES must be positive")

    host = os.environ.get("MCP_HTTP_HOST", "").strip() or "127.0.0.1"
    port = _env_int("MCP_HTTP_PORT", 18081)
    path = os.environ.get("MCP_HTTP_PATH", "").strip() or "/mcp"
    if not path.startswith("/"):
        path = f"/{path}"

    return AppConfig(
        parse=ParseConfig(
            trace=_env_true("MAF_STREAM_TRACE"),
            max_items=max_items,
            max_text_bytes=int(max_text_bytes),
        ),
        http=HttpConfig(host=host, port=int(port or 18081), path=path),
    )
