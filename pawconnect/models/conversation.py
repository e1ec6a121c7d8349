# pawconnect/models/conversation.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List

def conversation_id_for(user1_id: str, user2_id: str) -> str:
    """두 참여자에 대해 항상 같은 대화 문서 ID를 만듭니다. (참여자 순서 무관)"""
    return "_".join(sorted([user1_id, user2_id]))

@dataclass
class Conversation:
    """
    'conversations' 컬렉션 문서. 참여자는 정확히 두 명입니다.
    목록 화면을 위해 마지막 메시지 정보를 비정규화하여 함께 저장합니다.
    """
    conversation_id: str
    participant_1_id: str
    participant_2_id: str
    participant_ids: List[str]
    last_message_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_message_content: Optional[str] = None
    last_message_sender_id: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
