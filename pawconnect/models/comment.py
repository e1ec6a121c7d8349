# pawconnect/models/comment.py
from dataclasses import dataclass, field
from datetime import datetime, timezone

@dataclass
class Comment:
    """
    Firestore 'comments' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    """
    comment_id: str
    post_id: str
    user_id: str
    content: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
