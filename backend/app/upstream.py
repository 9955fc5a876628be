from typing import Optional

from .services.booru import BooruClient, E621Client

booru_client: Optional[BooruClient] = None

def init_client() -> BooruClient:
    """Initialize the shared upstream client"""
    global booru_client
    from .config import settings

    if booru_client is None:
        booru_client = E621Client.from_settings(settings)
    return booru_client

async def close_client():
    """Close the shared upstream client"""
    global booru_client

    if booru_client is not None:
        await booru_client.aclose()
        booru_client = None

def get_booru_client() -> BooruClient:
    """Get the upstream client"""
    if booru_client is None:
        return init_client()
    return booru_client
