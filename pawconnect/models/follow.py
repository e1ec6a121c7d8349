# pawconnect/models/follow.py
from dataclasses import dataclass, field
from datetime import datetime, timezone

@dataclass
class Follow:
    """'follows' 컬렉션 문서. 사용자가 반려동물을 팔로우합니다."""
    follow_id: str
    follower_id: str
    followed_pet_id: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
