import json
import time
from typing import Dict, Optional, Protocol

import httpx

from offerengine.errors import UpstreamUnavailable
from offerengine.logging_config import get_logger

logger = get_logger(__name__)

USER_SEGMENT_PATH = "/api/v1/user_segment"


class SegmentResolver(Protocol):
    def resolve_segment(self, user_id: int) -> Optional[str]:
        """Return the user's segment label, or None if the user has none.

        Raises UpstreamUnavailable when the lookup itself fails.
        """
        ...


class HttpSegmentResolver:
    """Looks users up in the segment service over HTTP.

    Single shot, no retries. ``timeout`` bounds each connection phase and
    also the whole exchange, so a server trickling its body cannot hold
    the caller past it. Any transport error, timeout, non-200 status or
    unparseable body surfaces as UpstreamUnavailable.
    """

    def __init__(self, base_url: str, timeout: float = 2.0, client: Optional[httpx.Client] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout))

    def resolve_segment(self, user_id: int) -> Optional[str]:
        url = f"{self.base_url}{USER_SEGMENT_PATH}"
        deadline = time.monotonic() + self.timeout
        try:
            with self._client.stream("GET", url, params={"user_id": user_id},
                                     timeout=httpx.Timeout(self.timeout)) as r:
                if r.status_code != 200:
                    raise UpstreamUnavailable(f"segment service returned {r.status_code}")
                chunks = []
                for chunk in r.iter_bytes():
                    chunks.append(chunk)
                    if time.monotonic() > deadline:
                        raise UpstreamUnavailable(f"segment service exceeded {self.timeout}s deadline")
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"segment service unreachable: {exc}") from exc

        try:
            body = json.loads(b"".join(chunks))
        except ValueError as exc:
            raise UpstreamUnavailable("segment service returned invalid JSON") from exc

        if not isinstance(body, dict):
            raise UpstreamUnavailable("segment service returned unexpected payload")
        segment = body.get("segment")
        if segment is None:
            return None
        if not isinstance(segment, str):
            raise UpstreamUnavailable("segment service returned unexpected payload")
        logger.debug("segment_resolved", user_id=user_id, segment=segment)
        return segment

    def close(self) -> None:
        self._client.close()


class StaticSegmentResolver:
    """Resolves segments from a fixed mapping. Unknown users have no segment."""

    def __init__(self, segments: Optional[Dict[int, str]] = None):
        self.segments = dict(segments or {})

    def resolve_segment(self, user_id: int) -> Optional[str]:
        return self.segments.get(user_id)
