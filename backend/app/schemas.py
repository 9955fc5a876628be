from pydantic import BaseModel
from typing import Any, Optional

# Credential Schemas
class CredentialsPayload(BaseModel):
    login: Optional[str] = None
    api_key: Optional[str] = None

# Mutation Schemas
class VoteRequest(CredentialsPayload):
    score: Optional[int] = None

class FavoriteRequest(CredentialsPayload):
    post_id: Any = None

# Comment Schemas
class CommentResponse(BaseModel):
    id: Any = None
    body: str = ""
    creator_id: Any = None
    creator_name: str = "Unknown"
    avatar_url: Optional[str] = None

class CommentDiagnostics(BaseModel):
    url: str
    status: Optional[int] = None
    content_type: Optional[str] = None
    snippet: Optional[str] = None
    error: Optional[str] = None

class CommentsErrorResponse(BaseModel):
    error: str
    debug: Optional[CommentDiagnostics] = None
