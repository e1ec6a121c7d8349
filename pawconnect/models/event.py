# pawconnect/models/event.py
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any

class ParticipantStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    CANCELLED = "cancelled"

@dataclass
class EventType:
    """'event_types' 컬렉션 문서. (산책, 모임, 훈련 등 관리자가 등록)"""
    event_type_id: str
    name: str
    color: str
    description: Optional[str] = None
    icon: Optional[str] = None

@dataclass
class Event:
    """
    'events' 컬렉션 문서.
    참가자 수는 저장하지 않고 event_participants 를 집계하여 계산합니다.
    """
    event_id: str
    title: str
    event_type: str
    organizer_id: str
    date_start: datetime
    description: Optional[str] = None
    date_end: Optional[datetime] = None
    location: Optional[str] = None
    address: Optional[str] = None
    max_participants: Optional[int] = None
    is_public: bool = True
    is_active: bool = True
    image_url: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

@dataclass
class EventParticipant:
    """'event_participants' 컬렉션 문서. 문서 ID 는 f"{event_id}_{user_id}" 입니다."""
    participation_id: str
    event_id: str
    user_id: str
    status: ParticipantStatus = ParticipantStatus.CONFIRMED
    invited_by: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        participant_dict = asdict(self)
        participant_dict['status'] = self.status.value
        return participant_dict
