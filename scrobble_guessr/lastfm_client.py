"""Last.fm HTTP client with request building and bounded retries.

Provides three main components:

- ``RequestDescriptor`` / ``build_request``: canonical description of one
  Last.fm call (method name + parameters), rendered to a URL on demand.
  Pure, no I/O.

- ``LastfmClient``: Async HTTP client (httpx) that decodes JSON bodies and
  retries 429/5xx responses with linear backoff. Everything else fails fast
  with ``RemoteError``.

- ``Friend`` and ``LastfmClient.friends``: paginated friends list used to
  assemble a leaderboard crowd.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping
from urllib.parse import urlencode

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from scrobble_guessr.config import LASTFM_API_URL, Settings
from scrobble_guessr.errors import RemoteError
from scrobble_guessr.models import CategoryKind

logger = logging.getLogger(__name__)

FRIENDS_PAGE_SIZE = 200

_TOP_LIST_METHODS: dict[CategoryKind, str] = {
    CategoryKind.TRACK: "user.getTopTracks",
    CategoryKind.ALBUM: "user.getTopAlbums",
    CategoryKind.ARTIST: "user.getTopArtists",
}


# ---------------------------------------------------------------------------
# Request building
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RequestDescriptor:
    """One Last.fm call: a method name and its string parameters."""

    method: str
    params: tuple[tuple[str, str], ...] = ()

    def to_url(self, base_url: str, api_key: str) -> str:
        """Render the full request URL, including ``api_key`` and ``format``."""
        query = [("method", self.method), ("api_key", api_key), ("format", "json")]
        query.extend(self.params)
        return f"{base_url}?{urlencode(query)}"


def build_request(method: str, params: Mapping[str, Any] | None = None) -> RequestDescriptor:
    """Build a request descriptor, dropping ``None`` values and stringifying the rest."""
    pairs = tuple(
        (key, str(value)) for key, value in (params or {}).items() if value is not None
    )
    return RequestDescriptor(method=method, params=pairs)


def top_list_request(
    user: str, kind: CategoryKind, period: str, limit: int = 10, page: int = 1
) -> RequestDescriptor:
    """Request for a user's top tracks, albums or artists over a built-in period."""
    return build_request(
        _TOP_LIST_METHODS[kind],
        {"user": user, "period": period, "limit": limit, "page": page},
    )


# ---------------------------------------------------------------------------
# Friends
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Friend:
    """A Last.fm user from someone's friends list."""

    name: str
    realname: str = ""
    avatar: str = ""


def _pick_avatar(images: Any) -> str:
    """Prefer the ``small`` image, fall back to the first one with a URL."""
    if not isinstance(images, list):
        return ""
    for image in images:
        if isinstance(image, dict) and image.get("size") == "small" and image.get("#text"):
            return str(image["#text"])
    first = images[0] if images else None
    if isinstance(first, dict) and first.get("#text"):
        return str(first["#text"])
    return ""


def parse_friends_page(payload: Any) -> tuple[list[Friend], int]:
    """Extract friends and ``totalPages`` from one ``user.getFriends`` page."""
    friends = payload.get("friends") if isinstance(payload, dict) else None
    if not isinstance(friends, dict):
        return [], 1

    users = friends.get("user") or []
    if isinstance(users, dict):
        users = [users]

    out: list[Friend] = []
    for user in users:
        if not isinstance(user, dict):
            continue
        out.append(
            Friend(
                name=str(user.get("name") or ""),
                realname=str(user.get("realname") or ""),
                avatar=_pick_avatar(user.get("image")),
            )
        )

    attr = friends.get("@attr") if isinstance(friends.get("@attr"), dict) else {}
    try:
        total_pages = int(attr.get("totalPages") or 1)
    except (TypeError, ValueError):
        total_pages = 1
    return out, total_pages


# ---------------------------------------------------------------------------
# LastfmClient
# ---------------------------------------------------------------------------


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, RemoteError) and exc.transient


def _log_retry(retry_state) -> None:
    """Log retry attempts with context."""
    logger.warning(
        "Transient error (attempt %d), retrying in %.1fs: %s",
        retry_state.attempt_number,
        retry_state.next_action.sleep,
        retry_state.outcome.exception(),
    )


@dataclass
class LastfmClient:
    """Async HTTP client for the Last.fm web service.

    Features:
        - Retries on 429 and any 5xx, up to ``max_retries`` additional attempts
        - Linear backoff: ``backoff_base * attempt_number`` seconds
        - Immediate failure on every other non-2xx status
        - Network failures surface as ``RemoteError(None)`` without retry

    Args:
        api_key: Last.fm API key appended to every request.
        base_url: Web service endpoint.
        timeout: Request timeout in seconds (default 10.0).
        max_retries: Additional attempts for transient statuses (default 2).
        backoff_base: Backoff step in seconds (default 0.5).
        http_client: Optional shared ``httpx.AsyncClient``. When omitted a
            short-lived client is opened per request.
        sleep: Async delay used between attempts.
    """

    api_key: str
    base_url: str = LASTFM_API_URL
    timeout: float = 10.0
    max_retries: int = 2
    backoff_base: float = 0.5
    http_client: httpx.AsyncClient | None = None
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    @classmethod
    def from_settings(cls, settings: Settings, api_key: str, **kwargs) -> "LastfmClient":
        """Create a client configured from ``Settings``."""
        return cls(
            api_key=api_key,
            base_url=settings.lastfm_api_url,
            timeout=settings.request_timeout,
            max_retries=settings.max_retries,
            backoff_base=settings.backoff_base,
            **kwargs,
        )

    async def request(self, descriptor: RequestDescriptor) -> Any:
        """Execute a request descriptor and return the decoded JSON body."""
        return await self.fetch_json(descriptor.to_url(self.base_url, self.api_key))

    async def fetch_json(self, url: str) -> Any:
        """Fetch *url* and decode its JSON body.

        Raises:
            RemoteError: Non-retryable status, network failure, undecodable
                body, or transient status after all retries.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(1 + self.max_retries),
            wait=wait_incrementing(start=self.backoff_base, increment=self.backoff_base),
            retry=retry_if_exception(_is_transient),
            before_sleep=_log_retry,
            sleep=self.sleep,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    body = await self._get_once(url)
        except RemoteError as exc:
            if exc.transient:
                logger.error(
                    "All %d attempts failed: %s", 1 + self.max_retries, exc
                )
            raise
        return body

    async def _get_once(self, url: str) -> Any:
        """Send a single GET and classify the outcome."""
        try:
            if self.http_client is not None:
                response = await self.http_client.get(url, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout)
                ) as http_client:
                    response = await http_client.get(url)
        except httpx.RequestError as exc:
            raise RemoteError(None, f"Network error: {exc}") from exc

        if not response.is_success:
            raise RemoteError(response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise RemoteError(
                response.status_code, f"Invalid JSON response: {exc}"
            ) from exc

    async def top_list(
        self, user: str, kind: CategoryKind, period: str, limit: int = 10
    ) -> Any:
        """Raw ``user.getTop*`` payload for one user, kind and period."""
        return await self.request(top_list_request(user, kind, period, limit=limit))

    async def friends(self, user: str) -> list[Friend]:
        """All friends of *user*, following ``totalPages``.

        Raises:
            RemoteError: Any page failed.
        """
        out: list[Friend] = []
        page = 1
        while True:
            payload = await self.request(
                build_request(
                    "user.getFriends",
                    {"user": user, "limit": FRIENDS_PAGE_SIZE, "page": page},
                )
            )
            friends, total_pages = parse_friends_page(payload)
            out.extend(friends)
            if page >= total_pages:
                break
            page += 1
        logger.info("Loaded %d friends for %s", len(out), user)
        return out
