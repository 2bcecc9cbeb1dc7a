# /llmrouter/utils/sse.py

import json
from typing import Any, Optional

# Server-sent event framing for the streaming endpoints we serve ourselves.
# The proxy does not use this: it relays the upstream bytes untouched.

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def format_sse(data: Any, event: Optional[str] = None) -> str:
    """Frame one event. Non-string payloads are JSON encoded."""
    payload = data if isinstance(data, str) else json.dumps(data)
    prefix = f"event: {event}\n" if event else ""
    return f"{prefix}data: {payload}\n\n"
