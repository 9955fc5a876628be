from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

# Flash posts are never shown; filtered upstream via tag and again locally
EXCLUDED_FILE_EXT = "swf"

def post_file_ext(data: Any) -> str:
    """Lower-cased file extension of a raw upstream post, or ''."""
    if not isinstance(data, dict):
        return ""
    file_info = data.get("file")
    if not isinstance(file_info, dict):
        return ""
    return str(file_info.get("ext") or "").lower()

def is_excluded_post(data: Any) -> bool:
    return post_file_ext(data) == EXCLUDED_FILE_EXT

def _int_or(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default

@dataclass
class BooruPost:
    """A post from e621, reduced to the fields the feed displays."""
    id: Any
    file_url: Optional[str]
    file_ext: str
    artists: List[str] = field(default_factory=list)
    score_up: int = 0
    score_down: int = 0
    score_total: int = 0
    description: str = ""
    comment_count: int = 0

    @property
    def is_video(self) -> bool:
        return self.file_ext in ("webm", "mp4")

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "BooruPost":
        """
        Build a post from the loosely-typed upstream JSON.

        Every field is optional upstream; missing or malformed values fall
        back to empty defaults instead of raising.
        """
        file_info = data.get("file") if isinstance(data.get("file"), dict) else {}
        tags = data.get("tags") if isinstance(data.get("tags"), dict) else {}
        score = data.get("score") if isinstance(data.get("score"), dict) else {}

        artists = tags.get("artist") or []
        if not isinstance(artists, list):
            artists = []

        up = _int_or(score.get("up"), 0)
        down = _int_or(score.get("down"), 0)

        return cls(
            id=data.get("id"),
            file_url=file_info.get("url") or None,
            file_ext=post_file_ext(data),
            artists=[str(a) for a in artists],
            score_up=up,
            score_down=down,
            score_total=_int_or(score.get("total"), up - down),
            description=data.get("description") or "",
            comment_count=_int_or(data.get("comment_count"), 0),
        )

@dataclass
class BooruComment:
    """A comment normalized to the shape the feed renders."""
    id: Any
    body: str
    creator_id: Optional[Any]
    creator_name: str
    avatar_url: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "BooruComment":
        """Upstream values may be any JSON type; text fields are coerced to str."""
        return cls(
            id=data.get("id"),
            body=str(data.get("body") or data.get("body_html") or ""),
            creator_id=data.get("creator_id") or None,
            creator_name=str(data.get("creator_name") or data.get("author") or "Unknown"),
            avatar_url=None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

@dataclass
class CommentFetchDiagnostics:
    """What went wrong with the last comment URL tried."""
    url: str
    status: Optional[int] = None
    content_type: Optional[str] = None
    snippet: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}
