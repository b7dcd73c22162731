import argparse
import os
from dataclasses import dataclass, replace

DEFAULT_API_URL = "https://new.sbwsz.com/api/v1"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
TRANSPORTS = ("stdio", "http", "sse")
# Names both stdlib logging and uvicorn accept.
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
LOG_LEVEL_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL"}


def _get_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {raw!r}") from None


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class ServerConfig:
    transport: str = "stdio"
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    api_url: str = DEFAULT_API_URL
    timeout: float | None = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.transport not in TRANSPORTS:
            raise ValueError(
                f"Unknown transport {self.transport!r}, expected one of {', '.join(TRANSPORTS)}"
            )
        level = self.log_level.upper()
        level = LOG_LEVEL_ALIASES.get(level, level)
        if level not in LOG_LEVELS:
            raise ValueError(
                f"Unknown log level {self.log_level!r}, expected one of {', '.join(LOG_LEVELS)}"
            )
        object.__setattr__(self, "log_level", level)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        return cls(
            transport=os.getenv("TRANSPORT", "stdio").strip().lower(),
            host=os.getenv("HOST", DEFAULT_HOST),
            port=_get_int("PORT", DEFAULT_PORT),
            api_url=os.getenv("SBWSZ_API_URL") or DEFAULT_API_URL,
            timeout=_get_float("SBWSZ_TIMEOUT"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def with_args(self, args: argparse.Namespace) -> "ServerConfig":
        """Apply command line overrides on top of the environment."""
        changes: dict[str, object] = {}
        if args.http:
            changes["transport"] = "http"
        elif args.sse:
            changes["transport"] = "sse"
        if args.host is not None:
            changes["host"] = args.host
        if args.port is not None:
            changes["port"] = args.port
        if args.api_url is not None:
            changes["api_url"] = args.api_url
        if args.log_level is not None:
            changes["log_level"] = args.log_level.upper()
        return replace(self, **changes)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="sbwsz-mcp", description="SBWSZ card database MCP server")
    mode = ap.add_mutually_exclusive_group()
    mode.add_argument("--http", action="store_true", help="serve stateless streamable HTTP on /mcp")
    mode.add_argument("--sse", action="store_true", help="serve the legacy SSE transport on /sse")
    ap.add_argument("--host", default=None)
    ap.add_argument("--port", type=int, default=None, help=f"HTTP listen port (default {DEFAULT_PORT})")
    ap.add_argument("--api-url", default=None, help="override the SBWSZ API base URL")
    ap.add_argument("--log-level", default=None)
    return ap


def load_config(argv: list[str] | None = None) -> ServerConfig:
    args = build_parser().parse_args(argv)
    return ServerConfig.from_env().with_args(args)
