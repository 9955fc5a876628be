from .base import BooruClient, CommentsUnavailable, UpstreamError, UpstreamResponse
from .e621 import E621Client
from .types import BooruComment, BooruPost, CommentFetchDiagnostics

__all__ = [
    "BooruClient",
    "BooruComment",
    "BooruPost",
    "CommentFetchDiagnostics",
    "CommentsUnavailable",
    "E621Client",
    "UpstreamError",
    "UpstreamResponse",
]
