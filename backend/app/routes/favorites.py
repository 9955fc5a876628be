from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from ..schemas import CredentialsPayload, FavoriteRequest
from ..services.booru import BooruClient, UpstreamError
from ..upstream import get_booru_client

router = APIRouter(prefix="/api/favorites", tags=["favorites"])

@router.post("")
@router.post("/")
async def add_favorite(
    req: FavoriteRequest,
    client: BooruClient = Depends(get_booru_client),
):
    """Favorite a post upstream"""
    try:
        result = await client.favorite(req.post_id, login=req.login, api_key=req.api_key)
    except UpstreamError:
        raise HTTPException(status_code=500, detail="Favorite failed.")

    return JSONResponse(status_code=result.status_code, content=result.body)

@router.delete("/{post_id}")
async def remove_favorite(
    post_id: int,
    req: Optional[CredentialsPayload] = None,
    client: BooruClient = Depends(get_booru_client),
):
    """Unfavorite a post upstream"""
    creds = req or CredentialsPayload()
    try:
        result = await client.unfavorite(post_id, login=creds.login, api_key=creds.api_key)
    except UpstreamError:
        raise HTTPException(status_code=500, detail="Unfavorite failed.")

    return JSONResponse(status_code=result.status_code, content=result.body)
