# pawconnect/models/pet.py
from dataclasses import dataclass, field, asdict
from datetime import date, datetime, timezone
from typing import Optional, Dict, Any
from enum import Enum
import logging

class PetGender(Enum):
    MALE = "male"
    FEMALE = "female"
    UNKNOWN = "unknown"

@dataclass
class Pet:
    """
    Firestore 'pets' 컬렉션 문서 구조.
    반려동물은 정확히 한 명의 사용자(owner_id)에게 속합니다.
    """
    pet_id: str
    owner_id: str
    name: str
    species: str
    gender: PetGender = PetGender.UNKNOWN
    breed: Optional[str] = None
    birth_date: Optional[date] = None
    description: Optional[str] = None
    avatar_url: Optional[str] = None
    banner_url: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        pet_dict = asdict(self)
        pet_dict['gender'] = self.gender.value
        return pet_dict

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Pet":
        """
        Firestore에서 받은 딕셔너리로부터 Pet 인스턴스를 생성합니다.
        문자열로 저장된 gender 를 Enum 으로, Timestamp 를 date 로 변환합니다.
        """
        processed_data = data.copy()

        gender_str = processed_data.get('gender')
        if isinstance(gender_str, str):
            try:
                processed_data['gender'] = PetGender(gender_str)
            except ValueError:
                logging.warning(f"Invalid PetGender value '{gender_str}' for pet {processed_data.get('pet_id')}. Defaulting to unknown.")
                processed_data['gender'] = PetGender.UNKNOWN

        birth_date = processed_data.get('birth_date')
        if isinstance(birth_date, datetime):
            processed_data['birth_date'] = birth_date.date()

        return cls(**processed_data)
