# pawconnect/api/pets/services.py
import logging
import uuid
from dataclasses import asdict
from typing import Dict, Any, List, Optional
from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from werkzeug.datastructures import FileStorage

from pawconnect.models.pet import Pet, PetGender
from pawconnect.models.follow import Follow
from pawconnect.models.notification import NotificationType
from pawconnect.services.storage_service import StorageService
from pawconnect.services.notification_service import NotificationService
from pawconnect.services.firestore_service import get_document, get_users_by_ids, count_query
from pawconnect.utils.datetime_utils import DateTimeUtils

# 업로드한 이미지를 반영할 수 있는 필드
PET_IMAGE_FIELDS = ('avatar_url', 'banner_url')

class PetService:
    """반려동물 프로필 관리를 전담하는 서비스."""
    def __init__(self, storage_service: StorageService, db=None):
        self.db = db or firestore.client()
        self.pets_ref = self.db.collection('pets')
        self.storage_service = storage_service
        logging.info("PetService initialized with dependencies.")

    def _to_response(self, pet_data: Dict[str, Any]) -> Dict[str, Any]:
        return Pet.from_dict(pet_data).to_dict()

    def create_pet(self, owner_id: str, pet_data: Dict[str, Any]) -> Dict[str, Any]:
        """로그인한 사용자를 소유자로 하여 반려동물을 등록합니다."""
        new_pet = Pet(
            pet_id=str(uuid.uuid4()),
            owner_id=owner_id,
            name=pet_data['name'],
            species=pet_data['species'],
            gender=PetGender(pet_data.get('gender') or PetGender.UNKNOWN.value),
            breed=pet_data.get('breed'),
            birth_date=pet_data.get('birth_date'),
            description=pet_data.get('description'),
            avatar_url=pet_data.get('avatar_url'),
            banner_url=pet_data.get('banner_url')
        )
        firestore_data = DateTimeUtils.for_firestore(new_pet.to_dict())
        self.pets_ref.document(new_pet.pet_id).set(firestore_data)
        logging.info(f"Pet {new_pet.pet_id} registered for user {owner_id}")
        return new_pet.to_dict()

    def get_pet(self, pet_id: str) -> Dict[str, Any]:
        pet_data = get_document(self.pets_ref, pet_id)
        if not pet_data:
            raise ValueError("해당 ID의 반려동물을 찾을 수 없습니다.")
        return self._to_response(pet_data)

    def get_user_pets(self, user_id: str) -> List[Dict[str, Any]]:
        """사용자의 반려동물 목록을 최신 등록순으로 반환합니다."""
        docs = (self.pets_ref
                .where(filter=FieldFilter('owner_id', '==', user_id))
                .order_by('created_at', direction=firestore.Query.DESCENDING)
                .stream())
        return [self._to_response(doc.to_dict()) for doc in docs]

    def count_user_pets(self, user_id: str) -> int:
        return count_query(self.pets_ref.where(filter=FieldFilter('owner_id', '==', user_id)))

    def get_owned_pet(self, pet_id: str, user_id: str) -> Dict[str, Any]:
        """
        소유자 확인 후 반려동물 정보를 반환합니다.

        :raises ValueError: 반려동물이 없는 경우
        :raises PermissionError: 소유자가 아닌 경우
        """
        pet_data = get_document(self.pets_ref, pet_id)
        if not pet_data:
            raise ValueError("해당 ID의 반려동물을 찾을 수 없습니다.")
        if pet_data.get('owner_id') != user_id:
            raise PermissionError("이 반려동물에 대한 권한이 없습니다.")
        return pet_data

    def update_pet(self, pet_id: str, user_id: str, update_data: Dict[str, Any]) -> Dict[str, Any]:
        """[소유자 전용] 반려동물 프로필 정보를 부분 업데이트합니다."""
        self.get_owned_pet(pet_id, user_id)
        if not update_data:
            raise ValueError("수정할 데이터가 제공되지 않았습니다.")

        pet_ref = self.pets_ref.document(pet_id)
        pet_ref.update(DateTimeUtils.for_firestore(update_data))
        logging.info(f"Pet profile updated for {pet_id} with fields: {list(update_data.keys())}")
        return self._to_response(pet_ref.get().to_dict())

    def upload_pet_image(self, pet_id: str, user_id: str, file: FileStorage,
                         target_field: Optional[str] = None) -> Dict[str, Any]:
        """
        반려동물 이미지를 pet-images 폴더에 업로드합니다.
        target_field(avatar_url | banner_url)가 주어지면 프로필에도 반영합니다.
        """
        self.get_owned_pet(pet_id, user_id)
        if target_field and target_field not in PET_IMAGE_FIELDS:
            raise ValueError(f"'{target_field}'은(는) 이미지 필드가 아닙니다.")

        url = self.storage_service.upload_image("pet_image", user_id, file)
        result = {'url': url}
        if target_field:
            result['pet'] = self.update_pet(pet_id, user_id, {target_field: url})
        return result


class FollowService:
    """
    사용자가 반려동물을 팔로우하는 관계를 관리합니다.
    문서 ID 는 f"{follower_id}_{pet_id}" 로 고정하여 중복 팔로우를 막습니다.
    """
    def __init__(self, notification_service: NotificationService, db=None):
        self.db = db or firestore.client()
        self.follows_ref = self.db.collection('follows')
        self.pets_ref = self.db.collection('pets')
        self.notification_service = notification_service

    @staticmethod
    def _follow_id(follower_id: str, pet_id: str) -> str:
        return f"{follower_id}_{pet_id}"

    def follow_pet(self, follower_id: str, pet_id: str) -> Dict[str, Any]:
        pet = get_document(self.pets_ref, pet_id)
        if not pet:
            raise ValueError("해당 ID의 반려동물을 찾을 수 없습니다.")

        follow_ref = self.follows_ref.document(self._follow_id(follower_id, pet_id))
        if follow_ref.get().exists:
            raise ValueError("이미 팔로우하고 있는 반려동물입니다.")

        follow = Follow(follow_id=follow_ref.id, follower_id=follower_id, followed_pet_id=pet_id)
        follow_data = asdict(follow)
        follow_ref.set(follow_data)

        self.notification_service.create_notification(
            recipient_id=pet.get('owner_id'),
            sender_id=follower_id,
            n_type=NotificationType.FOLLOW,
            message=f"{pet.get('name')}을(를) 팔로우하기 시작했습니다."
        )
        return follow_data

    def unfollow_pet(self, follower_id: str, pet_id: str) -> None:
        follow_ref = self.follows_ref.document(self._follow_id(follower_id, pet_id))
        if not follow_ref.get().exists:
            raise ValueError("팔로우하고 있지 않은 반려동물입니다.")
        follow_ref.delete()

    def is_following(self, follower_id: str, pet_id: str) -> bool:
        return self.follows_ref.document(self._follow_id(follower_id, pet_id)).get().exists

    def get_followed_pets(self, user_id: str) -> List[Dict[str, Any]]:
        """사용자가 팔로우하는 반려동물 목록(최신 팔로우순)을 반려동물 정보와 함께 반환합니다."""
        docs = (self.follows_ref
                .where(filter=FieldFilter('follower_id', '==', user_id))
                .order_by('created_at', direction=firestore.Query.DESCENDING)
                .stream())
        follows = []
        for doc in docs:
            follow = doc.to_dict()
            pet = get_document(self.pets_ref, follow.get('followed_pet_id'))
            follow['followed_pet'] = Pet.from_dict(pet).to_dict() if pet else None
            follows.append(follow)
        return follows

    def get_pet_followers(self, pet_id: str) -> List[Dict[str, Any]]:
        docs = (self.follows_ref
                .where(filter=FieldFilter('followed_pet_id', '==', pet_id))
                .order_by('created_at', direction=firestore.Query.DESCENDING)
                .stream())
        follows = [doc.to_dict() for doc in docs]
        users = get_users_by_ids(self.db, [f.get('follower_id') for f in follows])
        for follow in follows:
            follow['follower'] = users.get(follow.get('follower_id'))
        return follows
