"""Observability helpers (correlation IDs, raw request dumps)."""
from __future__ import annotations
import uuid
from typing import Mapping

REQUEST_ID_HEADER = "X-Request-ID"

def ensure_request_id(headers: Mapping[str, str]) -> str:
    return headers.get(REQUEST_ID_HEADER, None) or str(uuid.uuid4())


def dump_request(method: str, url: str, headers: Mapping[str, str], body: bytes) -> str:
    """Render a request as text for debug logging of undecodable payloads."""
    lines = [f"{method} {url}"]
    lines.extend(f"{k}: {v}" for k, v in headers.items())
    lines.append("")
    lines.append(body.decode("utf-8", errors="replace"))
    return "\n".join(lines)

__all__ = ["ensure_request_id", "dump_request", "REQUEST_ID_HEADER"]
