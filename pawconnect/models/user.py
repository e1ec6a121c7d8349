# pawconnect/models/user.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

@dataclass
class User:
    """
    Firestore 'users' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    문서 ID는 Firebase Auth 의 uid 와 같습니다.
    """
    user_id: str
    email: str
    username: str
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    ville: Optional[str] = None
    code_postal: Optional[str] = None
    pays: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
