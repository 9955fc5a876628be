from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..schemas import CommentResponse, CommentsErrorResponse
from ..services.booru import BooruClient, CommentsUnavailable
from ..upstream import get_booru_client

router = APIRouter(prefix="/api/comments", tags=["comments"])

@router.get(
    "/{post_id}",
    response_model=List[CommentResponse],
    responses={502: {"model": CommentsErrorResponse}},
)
async def get_comments(
    post_id: int,
    client: BooruClient = Depends(get_booru_client),
):
    """
    Get up to 50 comments for a post, with avatars where they could be found.

    When every upstream URL variant fails, a 502 is returned carrying the
    last attempt's URL, status, content type and body snippet so the client
    can show what went wrong.

    The debug keys are snake_case: url, status, content_type and snippet,
    or url and error when the request itself raised. Clients written
    against the camelCase contentType key must read content_type instead.
    """
    try:
        comments = await client.fetch_comments(post_id)
    except CommentsUnavailable as e:
        error = CommentsErrorResponse(
            error=str(e),
            debug=e.diagnostics.to_dict() if e.diagnostics else None,
        )
        return JSONResponse(status_code=502, content=error.model_dump(exclude_none=True))

    return [c.to_dict() for c in comments]
