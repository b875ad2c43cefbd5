"""Ordered retrieval strategies for obtaining file content to analyze

Strategies are tried in policy order; each failure is recorded under its own
stage so callers can tell a cold cache from an unreachable URL.
"""
import httpx
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Tuple
from urllib.parse import quote

from app.config import settings
from app.core.exceptions import ContentFetchError, ContentUnavailableError
from app.services.vault_session import VaultSession

logger = logging.getLogger(__name__)


class FetchStage:
    SESSION_CACHE = "session_cache"
    DIRECT = "direct"
    PROXY = "proxy"


@dataclass
class FetchRequest:
    file_id: str
    url: str
    name: str
    mime_type: str


@dataclass
class FetchedContent:
    content: bytes
    mime_type: str
    stage: str


Strategy = Callable[[FetchRequest], Awaitable[FetchedContent]]


class ContentFetcher:
    """Runs the retrieval policy for one vault session"""

    def __init__(
        self,
        session: Optional[VaultSession] = None,
        client: Optional[httpx.AsyncClient] = None,
        proxy_template: Optional[str] = None,
    ):
        self.session = session
        self.client = client
        self.proxy_template = proxy_template or settings.CONTENT_PROXY_URL

    @property
    def policy(self) -> List[Tuple[str, Strategy]]:
        return [
            (FetchStage.SESSION_CACHE, self._from_session_cache),
            (FetchStage.DIRECT, self._direct),
            (FetchStage.PROXY, self._via_proxy),
        ]

    async def fetch(self, request: FetchRequest) -> FetchedContent:
        failures: List[ContentFetchError] = []
        for stage, strategy in self.policy:
            try:
                result = await strategy(request)
                logger.info(f"Fetched content of {request.file_id} via {stage}")
                return result
            except ContentFetchError as e:
                logger.warning(f"Content fetch for {request.file_id} failed at {stage}: {e.reason}")
                failures.append(e)

        raise ContentUnavailableError(failures)

    async def _from_session_cache(self, request: FetchRequest) -> FetchedContent:
        cached = self.session.cached_content(request.file_id) if self.session else None
        if cached is None:
            raise ContentFetchError(FetchStage.SESSION_CACHE, "not cached in this session")
        return FetchedContent(cached.content, cached.mime_type or request.mime_type, FetchStage.SESSION_CACHE)

    async def _download(self, stage: str, url: str, request: FetchRequest) -> FetchedContent:
        try:
            if self.client is not None:
                response = await self.client.get(url)
            else:
                async with httpx.AsyncClient(
                    timeout=settings.CONTENT_FETCH_TIMEOUT_SECONDS,
                    follow_redirects=True,
                ) as client:
                    response = await client.get(url)
        except httpx.HTTPError as e:
            raise ContentFetchError(stage, f"request failed: {e}")

        if response.status_code != 200:
            raise ContentFetchError(stage, f"HTTP {response.status_code}")

        return FetchedContent(response.content, request.mime_type, stage)

    async def _direct(self, request: FetchRequest) -> FetchedContent:
        if not request.url.startswith(("http://", "https://")):
            raise ContentFetchError(FetchStage.DIRECT, "no durable URL")
        return await self._download(FetchStage.DIRECT, request.url, request)

    async def _via_proxy(self, request: FetchRequest) -> FetchedContent:
        if not self.proxy_template or not request.url.startswith(("http://", "https://")):
            raise ContentFetchError(FetchStage.PROXY, "proxy not applicable")
        proxy_url = self.proxy_template.format(url=quote(request.url, safe=""))
        return await self._download(FetchStage.PROXY, proxy_url, request)
