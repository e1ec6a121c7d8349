# pawconnect/models/friend.py
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any

class FriendStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    BLOCKED = "blocked"

@dataclass
class Friend:
    """
    'friends' 컬렉션 문서.
    무방향 친구 관계를 요청자(user_id) -> 수신자(friend_id) 방향의 문서 하나로 저장하고,
    양방향 조회는 두 방향에 대한 OR 조건으로 처리합니다.
    """
    friendship_id: str
    user_id: str
    friend_id: str
    status: FriendStatus = FriendStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        friend_dict = asdict(self)
        friend_dict['status'] = self.status.value
        return friend_dict
