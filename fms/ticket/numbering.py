# fms/ticket/numbering.py
import secrets
import threading
import time

_lock = threading.Lock()
_last_ms = 0


def _next_timestamp_ms() -> int:
    global _last_ms
    with _lock:
        now = int(time.time() * 1000)
        # strictly increasing even if the wall clock stalls or steps back
        _last_ms = now if now > _last_ms else _last_ms + 1
        return _last_ms


def generate_ticket_number(prefix: str = "TKT") -> str:
    """e.g. TKT-1760870400123-9F3A. The DB unique constraint still backs this up."""
    return f"{prefix}-{_next_timestamp_ms()}-{secrets.token_hex(2).upper()}"
