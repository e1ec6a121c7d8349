# pawconnect/models/notification.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

class NotificationType(Enum):
    """알림 유형을 정의하는 Enum 클래스"""
    LIKE = "like"
    COMMENT = "comment"
    FRIEND_REQUEST = "friend_request"
    FOLLOW = "follow"
    NEW_POST = "new_post"
    EVENT_JOIN = "event_join"
    EVENT_INVITE = "event_invite"

@dataclass
class Notification:
    """
    Firestore 'notifications' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    """
    notification_id: str
    user_id: str           # 알림을 받는 사용자 ID
    from_user_id: str      # 알림을 유발한 사용자 ID
    type: NotificationType
    message: str
    post_id: Optional[str] = None
    is_read: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
