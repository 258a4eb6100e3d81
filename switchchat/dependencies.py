"""Shared client instances."""

from switchchat.api.client import ChatApiClient

# Global singleton; the client is bound to whichever event loop first uses it
_api_client: ChatApiClient | None = None


def get_api_client() -> ChatApiClient:
    """Return singleton ChatApiClient instance."""
    global _api_client
    if _api_client is None:
        _api_client = ChatApiClient()
    return _api_client


async def close_api_client() -> None:
    """Close and forget the singleton client."""
    global _api_client
    if _api_client is not None:
        await _api_client.close()
        _api_client = None
