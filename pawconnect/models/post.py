# pawconnect/models/post.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List

class PostType(Enum):
    STANDARD = "standard"
    STORY = "story"

@dataclass
class PetInfo:
    """Post 문서 내부에 저장될 작성 반려동물 정보."""
    pet_id: str
    name: str
    species: str
    avatar_url: Optional[str] = None

@dataclass
class Post:
    """
    Firestore 'posts' 컬렉션의 문서 구조.
    게시글은 반려동물이 작성하며, owner_id 는 권한 검사용으로 함께 저장합니다.
    좋아요/댓글 수는 저장하지 않고 조회 시 집계합니다.
    """
    post_id: str
    pet_id: str
    owner_id: str
    pet: PetInfo
    content: Optional[str] = None
    image_urls: List[str] = field(default_factory=list)
    video_url: Optional[str] = None
    location: Optional[str] = None
    post_type: str = PostType.STANDARD.value
    is_private: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

@dataclass
class Like:
    """'likes' 컬렉션 문서. 문서 ID 는 f"post_{user_id}_{post_id}" 입니다."""
    like_id: str
    post_id: str
    user_id: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
