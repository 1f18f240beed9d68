"""
HTTP client utilities with connection pooling.
Provides reusable httpx clients for outbound API calls.
"""
import httpx
from config import Config


class HTTPClientManager:
    """Manages shared httpx clients with connection pooling."""

    _knowledge_client: httpx.AsyncClient | None = None

    @classmethod
    def get_knowledge_client(cls) -> httpx.AsyncClient:
        """
        Get or create the shared client used for knowledge base search.

        The client is read-only from the application's point of view and safe to
        share between concurrent requests. Its timeout bounds every lookup.

        Returns:
            Configured httpx.AsyncClient for knowledge base queries
        """
        if cls._knowledge_client is None:
            limits = httpx.Limits(
                max_connections=20,
                max_keepalive_connections=5,
                keepalive_expiry=30.0
            )

            cls._knowledge_client = httpx.AsyncClient(
                timeout=Config.KNOWLEDGE_SEARCH_TIMEOUT,
                limits=limits,
                headers={"Content-Type": "application/json"}
            )

        return cls._knowledge_client

    @classmethod
    async def close_all(cls) -> None:
        """
        Close all managed clients and clean up connections.
        """
        if cls._knowledge_client is not None:
            await cls._knowledge_client.aclose()
            cls._knowledge_client = None
