# pawconnect/api/posts/services.py
import logging
import uuid
from dataclasses import asdict
from typing import Optional, Dict, Any, List
from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter, Or
from werkzeug.datastructures import FileStorage

from pawconnect.models.post import Post, PetInfo, Like
from pawconnect.models.notification import NotificationType
from pawconnect.services.notification_service import NotificationService
from pawconnect.services.storage_service import StorageService
from pawconnect.services.firestore_service import get_document, count_query, page_range, ChunkedBatch
from pawconnect.utils.datetime_utils import DateTimeUtils

class PostService:
    """
    게시글 관련 비즈니스 로직을 담당하는 서비스 클래스.
    - 게시글은 반려동물이 작성하고, 소유자만 수정/삭제할 수 있습니다.
    - 좋아요/댓글 수는 저장하지 않고 조회 시 count() 집계로 계산합니다.
    """
    def __init__(self, storage_service: StorageService, notification_service: NotificationService, db=None):
        self.db = db or firestore.client()
        self.posts_ref = self.db.collection('posts')
        self.pets_ref = self.db.collection('pets')
        self.likes_ref = self.db.collection('likes')
        self.comments_ref = self.db.collection('comments')
        self.notifications_ref = self.db.collection('notifications')
        self.storage_service = storage_service
        self.notification_service = notification_service

    @staticmethod
    def _like_id(user_id: str, post_id: str) -> str:
        return f"post_{user_id}_{post_id}"

    def _with_stats(self, post: Dict[str, Any], viewer_id: Optional[str]) -> Dict[str, Any]:
        """게시글에 최신 반려동물 정보, 좋아요/댓글 수, 조회자의 좋아요 여부를 붙입니다."""
        post_id = post['post_id']
        pet = get_document(self.pets_ref, post.get('pet_id'))
        if pet:
            post['pet'] = pet
        post['likes_count'] = count_query(self.likes_ref.where(filter=FieldFilter('post_id', '==', post_id)))
        post['comments_count'] = count_query(self.comments_ref.where(filter=FieldFilter('post_id', '==', post_id)))
        post['has_liked'] = self.has_liked(viewer_id, post_id)
        return post

    def has_liked(self, user_id: Optional[str], post_id: str) -> bool:
        if not user_id:
            return False
        return self.likes_ref.document(self._like_id(user_id, post_id)).get().exists

    def _get_post_data(self, post_id: str) -> Dict[str, Any]:
        post = get_document(self.posts_ref, post_id)
        if not post:
            raise ValueError("게시글을 찾을 수 없습니다.")
        return post

    def _get_owned_post(self, post_id: str, user_id: str) -> Dict[str, Any]:
        post = self._get_post_data(post_id)
        if post.get('owner_id') != user_id:
            raise PermissionError("이 게시글에 대한 권한이 없습니다.")
        return post

    def create_post(self, user_id: str, post_data: Dict[str, Any]) -> Dict[str, Any]:
        """사용자가 소유한 반려동물 이름으로 새 게시글을 작성합니다."""
        pet = get_document(self.pets_ref, post_data['pet_id'])
        if not pet:
            raise ValueError("게시글을 작성할 반려동물을 찾을 수 없습니다.")
        if pet.get('owner_id') != user_id:
            raise PermissionError("본인의 반려동물로만 게시글을 작성할 수 있습니다.")

        pet_info = PetInfo(pet_id=pet['pet_id'], name=pet.get('name'), species=pet.get('species'),
                           avatar_url=pet.get('avatar_url'))
        new_post = Post(
            post_id=str(uuid.uuid4()),
            pet_id=pet['pet_id'],
            owner_id=user_id,
            pet=pet_info,
            content=post_data.get('content'),
            image_urls=post_data.get('image_urls') or [],
            video_url=post_data.get('video_url'),
            location=post_data.get('location'),
            post_type=post_data.get('post_type') or 'standard',
            is_private=post_data.get('is_private', False)
        )
        post_dict = asdict(new_post)
        self.posts_ref.document(new_post.post_id).set(post_dict)
        logging.info(f"게시글 생성 완료 (post_id: {new_post.post_id}, pet_id: {new_post.pet_id})")
        post_dict.update({'likes_count': 0, 'comments_count': 0, 'has_liked': False})
        return post_dict

    def get_feed(self, viewer_id: str, page: int = 1, limit: int = 10) -> List[Dict[str, Any]]:
        """
        최신순 피드를 페이지 단위로 반환합니다.
        비공개 게시글은 작성자 본인에게만 보입니다.
        """
        offset, limit = page_range(page, limit)
        visibility = Or(filters=[
            FieldFilter('is_private', '==', False),
            FieldFilter('owner_id', '==', viewer_id),
        ])
        docs = (self.posts_ref
                .where(filter=visibility)
                .order_by('created_at', direction=firestore.Query.DESCENDING)
                .offset(offset)
                .limit(limit)
                .stream())
        return [self._with_stats(doc.to_dict(), viewer_id) for doc in docs]

    def get_pet_posts(self, pet_id: str, viewer_id: Optional[str], page: int = 1, limit: int = 10) -> List[Dict[str, Any]]:
        """특정 반려동물의 게시글 목록. 소유자가 아니면 공개 게시글만 반환합니다."""
        offset, limit = page_range(page, limit)
        pet = get_document(self.pets_ref, pet_id)
        query = self.posts_ref.where(filter=FieldFilter('pet_id', '==', pet_id))
        if not pet or pet.get('owner_id') != viewer_id:
            query = query.where(filter=FieldFilter('is_private', '==', False))
        docs = (query
                .order_by('created_at', direction=firestore.Query.DESCENDING)
                .offset(offset)
                .limit(limit)
                .stream())
        return [self._with_stats(doc.to_dict(), viewer_id) for doc in docs]

    def get_post(self, post_id: str, viewer_id: Optional[str]) -> Dict[str, Any]:
        post = self._get_post_data(post_id)
        if post.get('is_private') and post.get('owner_id') != viewer_id:
            # 비공개 게시글의 존재 여부를 드러내지 않습니다.
            raise ValueError("게시글을 찾을 수 없습니다.")
        return self._with_stats(post, viewer_id)

    def update_post(self, post_id: str, user_id: str, update_data: Dict[str, Any]) -> Dict[str, Any]:
        """[소유자 전용] 게시글 내용을 부분 수정합니다."""
        self._get_owned_post(post_id, user_id)
        if not update_data:
            raise ValueError("수정할 데이터가 제공되지 않았습니다.")

        update_data = dict(update_data, updated_at=DateTimeUtils.now())
        post_ref = self.posts_ref.document(post_id)
        post_ref.update(update_data)
        return self._with_stats(post_ref.get().to_dict(), user_id)

    def delete_post(self, post_id: str, user_id: str) -> None:
        """
        [소유자 전용] 게시글과 함께 좋아요, 댓글, 관련 알림, 저장된 이미지를 삭제합니다.
        """
        post = self._get_owned_post(post_id, user_id)

        batch = ChunkedBatch(self.db)
        for ref in (self.likes_ref, self.comments_ref, self.notifications_ref):
            for doc in ref.where(filter=FieldFilter('post_id', '==', post_id)).stream():
                batch.delete(doc.reference)
        batch.delete(self.posts_ref.document(post_id))
        batch.commit()

        for url in post.get('image_urls') or []:
            try:
                self.storage_service.delete_by_public_url(url)
            except Exception as e:
                logging.error(f"Storage 이미지 삭제 실패 (url: {url}): {e}")
        logging.info(f"게시글 삭제 완료 (post_id: {post_id})")

    def like_post(self, post_id: str, user_id: str) -> Dict[str, Any]:
        """게시글에 좋아요를 누르고 게시글 소유자에게 알림을 보냅니다."""
        transaction = self.db.transaction()
        like_ref = self.likes_ref.document(self._like_id(user_id, post_id))
        post_ref = self.posts_ref.document(post_id)

        @firestore.transactional
        def _like_in_transaction(transaction):
            post_doc = post_ref.get(transaction=transaction)
            if not post_doc.exists:
                raise ValueError("게시글을 찾을 수 없습니다.")
            if like_ref.get(transaction=transaction).exists:
                raise ValueError("이미 좋아요를 누른 게시글입니다.")

            like = Like(like_id=like_ref.id, post_id=post_id, user_id=user_id)
            like_data = asdict(like)
            transaction.set(like_ref, like_data)
            return like_data, post_doc.to_dict()

        like_data, post_data = _like_in_transaction(transaction)

        self.notification_service.create_notification(
            recipient_id=post_data.get('owner_id'),
            sender_id=user_id,
            n_type=NotificationType.LIKE,
            message=f"{post_data.get('pet', {}).get('name', '')}의 게시글을 좋아합니다.",
            post_id=post_id
        )
        return like_data

    def unlike_post(self, post_id: str, user_id: str) -> None:
        like_ref = self.likes_ref.document(self._like_id(user_id, post_id))
        if not like_ref.get().exists:
            raise ValueError("좋아요를 누르지 않은 게시글입니다.")
        like_ref.delete()

    def upload_post_image(self, user_id: str, file: FileStorage) -> str:
        return self.storage_service.upload_image("post_image", user_id, file)
