from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from ..schemas import VoteRequest
from ..services.booru import BooruClient, UpstreamError
from ..upstream import get_booru_client

router = APIRouter(prefix="/api/posts", tags=["posts"])

@router.get("")
@router.get("/")
async def search_posts(
    tags: str = "",
    page: int = 1,
    limit: int = 10,
    client: BooruClient = Depends(get_booru_client),
):
    """
    Proxy a post search to the booru.

    Flash posts are excluded both through the tag query and by filtering
    the returned posts array.
    """
    try:
        return await client.search_posts(tags=tags, page=page, limit=limit)
    except UpstreamError:
        raise HTTPException(status_code=500, detail="Failed to fetch posts.")

@router.post("/{post_id}/vote")
async def vote_post(
    post_id: int,
    req: VoteRequest,
    client: BooruClient = Depends(get_booru_client),
):
    """Relay a vote; upstream status and body are passed back as-is."""
    try:
        result = await client.vote(post_id, req.score, login=req.login, api_key=req.api_key)
    except UpstreamError:
        raise HTTPException(status_code=500, detail="Vote failed.")

    return JSONResponse(status_code=result.status_code, content=result.body)
