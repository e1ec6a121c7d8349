# pawconnect/api/users/services.py
import logging
from typing import Optional, Dict, Any
from firebase_admin import firestore
from werkzeug.datastructures import FileStorage

from pawconnect.services.storage_service import StorageService

class UserService:
    """
    사용자 프로필 관련 로직을 담당하는 서비스 클래스.
    - StorageService 와 같은 공용 서비스는 의존성 주입을 통해 받습니다.
    """
    def __init__(self, storage_service: StorageService, pet_service, db=None):
        self.db = db or firestore.client()
        self.users_ref = self.db.collection('users')
        self.storage_service = storage_service
        self.pet_service = pet_service

    def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        """사용자 ID로 Firestore에서 사용자 문서를 찾아 딕셔너리로 반환합니다."""
        doc = self.users_ref.document(user_id).get()
        return doc.to_dict() if doc.exists else None

    def get_user_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        공개 프로필 정보와 등록된 반려동물 수를 함께 조회합니다.
        :return: 사용자 데이터와 pet_count가 포함된 딕셔너리 또는 None
        """
        user_data = self.get_user_by_id(user_id)
        if not user_data:
            return None
        user_data['pet_count'] = self.pet_service.count_user_pets(user_id)
        return user_data

    def update_user_profile(self, user_id: str, update_data: Dict[str, Any]) -> Dict[str, Any]:
        """프로필 정보(username, bio, 위치 등)를 부분 업데이트합니다."""
        if not update_data:
            raise ValueError("수정할 데이터가 제공되지 않았습니다.")

        user_ref = self.users_ref.document(user_id)
        if not user_ref.get().exists:
            raise ValueError("사용자를 찾을 수 없습니다.")

        user_ref.update(update_data)
        logging.info(f"User profile updated for {user_id} with fields: {list(update_data.keys())}")
        return user_ref.get().to_dict()

    def upload_user_avatar(self, user_id: str, file: FileStorage) -> Dict[str, Any]:
        """
        아바타 이미지를 업로드하고 프로필의 avatar_url 을 갱신합니다.
        업로드 후 문서 갱신에 실패해도 업로드된 파일은 정리하지 않습니다.
        """
        avatar_url = self.storage_service.upload_image("avatar", user_id, file)
        return self.update_user_profile(user_id, {'avatar_url': avatar_url})
