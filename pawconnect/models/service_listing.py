# pawconnect/models/service_listing.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

# 서비스 디렉터리에서 허용하는 카테고리 (저장 시 소문자)
SERVICE_CATEGORIES = [
    'toilettage',
    'vétérinaire',
    'pension',
    'éducateur',
    'pet-sitter',
    'photographe',
]

@dataclass
class ServiceListing:
    """'services' 컬렉션 문서. 지역 반려동물 서비스(미용, 병원, 펫시터 등) 게시물."""
    service_id: str
    user_id: str
    title: str
    category: str
    description: Optional[str] = None
    city: str = ''
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    contact_email: Optional[str] = None
    phone_number: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
