# pawconnect/services/notification_service.py
import logging
import uuid
from dataclasses import asdict
from typing import Optional, Dict, Any, List
from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from pawconnect.models.notification import Notification, NotificationType
from pawconnect.services.firestore_service import get_document, get_users_by_ids, count_query, ChunkedBatch

class NotificationService:
    """
    알림 관련 로직을 담당하는 공용 서비스 클래스.
    - 좋아요, 댓글, 친구 요청 등 다른 도메인 서비스가 알림 생성을 위임합니다.
    - 수신자 본인만 알림을 조회/읽음 처리/삭제할 수 있습니다.
    """
    def __init__(self, db=None):
        self.db = db or firestore.client()
        self.notifications_ref = self.db.collection('notifications')
        self.posts_ref = self.db.collection('posts')
        self.pets_ref = self.db.collection('pets')

    def create_notification(self, recipient_id: str, sender_id: str, n_type: NotificationType,
                            message: str, post_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        알림을 생성하여 Firestore에 저장합니다.
        - 자기 자신에게 보내는 알림은 생성하지 않습니다.
        - 알림 생성 실패가 원래 요청을 실패시키지 않도록 오류는 로그만 남깁니다.
        """
        if not recipient_id or recipient_id == sender_id:
            return None

        try:
            notification = Notification(
                notification_id=str(uuid.uuid4()),
                user_id=recipient_id,
                from_user_id=sender_id,
                type=n_type,
                message=message,
                post_id=post_id
            )

            # Enum 멤버를 문자열 값으로 변환하여 저장
            notification_dict = asdict(notification)
            notification_dict['type'] = notification.type.value

            self.notifications_ref.document(notification.notification_id).set(notification_dict)
            logging.info(f"{n_type.value} 알림 생성 완료: {sender_id} -> {recipient_id}")
            return notification_dict

        except Exception as e:
            logging.error(f"알림 생성 중 오류 발생: {e}", exc_info=True)
            return None

    def get_user_notifications(self, user_id: str) -> List[Dict[str, Any]]:
        """사용자의 알림 목록을 최신순으로, 보낸 사람과 게시글(반려동물 포함) 정보를 붙여 반환합니다."""
        docs = (self.notifications_ref
                .where(filter=FieldFilter('user_id', '==', user_id))
                .order_by('created_at', direction=firestore.Query.DESCENDING)
                .stream())
        notifications = [doc.to_dict() for doc in docs]

        senders = get_users_by_ids(self.db, [n.get('from_user_id') for n in notifications])
        posts_cache: Dict[str, Optional[Dict[str, Any]]] = {}
        for notification in notifications:
            notification['from_user'] = senders.get(notification.get('from_user_id'))
            post_id = notification.get('post_id')
            if post_id and post_id not in posts_cache:
                post = get_document(self.posts_ref, post_id)
                if post:
                    post['pet'] = get_document(self.pets_ref, post.get('pet_id')) or post.get('pet')
                posts_cache[post_id] = post
            notification['post'] = posts_cache.get(post_id) if post_id else None
        return notifications

    def get_unread_count(self, user_id: str) -> int:
        query = (self.notifications_ref
                 .where(filter=FieldFilter('user_id', '==', user_id))
                 .where(filter=FieldFilter('is_read', '==', False)))
        return count_query(query)

    def _get_owned_ref(self, notification_id: str, user_id: str):
        notification_ref = self.notifications_ref.document(notification_id)
        doc = notification_ref.get()
        if not doc.exists:
            raise ValueError("알림을 찾을 수 없습니다.")
        if doc.to_dict().get('user_id') != user_id:
            raise PermissionError("이 알림에 접근할 권한이 없습니다.")
        return notification_ref

    def mark_as_read(self, notification_id: str, user_id: str) -> None:
        self._get_owned_ref(notification_id, user_id).update({'is_read': True})

    def mark_all_as_read(self, user_id: str) -> int:
        """읽지 않은 알림을 모두 읽음 처리하고, 처리한 개수를 반환합니다."""
        docs = (self.notifications_ref
                .where(filter=FieldFilter('user_id', '==', user_id))
                .where(filter=FieldFilter('is_read', '==', False))
                .stream())
        batch = ChunkedBatch(self.db)
        for doc in docs:
            batch.update(doc.reference, {'is_read': True})
        return batch.commit()

    def delete_notification(self, notification_id: str, user_id: str) -> None:
        self._get_owned_ref(notification_id, user_id).delete()
