# pawconnect/models/message.py
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any

class MessageType(Enum):
    TEXT = "text"
    IMAGE = "image"
    POST_SHARE = "post_share"

class ReportReason(Enum):
    SPAM = "spam"
    HARASSMENT = "harassment"
    INAPPROPRIATE = "inappropriate"
    OTHER = "other"

class ReportStatus(Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"

@dataclass
class Message:
    """
    'messages' 컬렉션 문서.
    message_type 으로 구분되는 타입별 내용은 metadata 딕셔너리에 담습니다.
    - image: {'image_url'}
    - post_share: {'post_id', 'post_title', 'post_image'}
    """
    message_id: str
    conversation_id: str
    sender_id: str
    message_type: MessageType
    content: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    is_read: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        message_dict = asdict(self)
        message_dict['message_type'] = self.message_type.value
        return message_dict

@dataclass
class MessageReport:
    """'message_reports' 컬렉션 문서."""
    report_id: str
    message_id: str
    reporter_id: str
    reason: ReportReason
    description: Optional[str] = None
    status: ReportStatus = ReportStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        report_dict = asdict(self)
        report_dict['reason'] = self.reason.value
        report_dict['status'] = self.status.value
        return report_dict
