# pawconnect/api/friends/services.py
import logging
import uuid
from typing import Dict, Any, List, Optional
from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter, Or, And

from pawconnect.models.friend import Friend, FriendStatus
from pawconnect.models.notification import NotificationType
from pawconnect.services.notification_service import NotificationService
from pawconnect.services.firestore_service import get_document, get_users_by_ids, ChunkedBatch
from pawconnect.utils.datetime_utils import DateTimeUtils

def _between(user_a: str, user_b: str) -> Or:
    """두 사용자 사이의 관계를 방향에 상관없이 찾는 필터"""
    return Or(filters=[
        And(filters=[FieldFilter('user_id', '==', user_a), FieldFilter('friend_id', '==', user_b)]),
        And(filters=[FieldFilter('user_id', '==', user_b), FieldFilter('friend_id', '==', user_a)]),
    ])

class FriendService:
    """
    친구 관계(요청/수락/거절/삭제)를 관리하는 서비스.
    관계는 요청 방향의 문서 하나로 저장되며, 상태는 pending/accepted/blocked 중 하나입니다.
    """
    def __init__(self, notification_service: NotificationService, db=None):
        self.db = db or firestore.client()
        self.friends_ref = self.db.collection('friends')
        self.users_ref = self.db.collection('users')
        self.notification_service = notification_service

    def _attach_users(self, friendships: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        users = get_users_by_ids(self.db, [f.get('user_id') for f in friendships] +
                                 [f.get('friend_id') for f in friendships])
        for friendship in friendships:
            friendship['user'] = users.get(friendship.get('user_id'))
            friendship['friend'] = users.get(friendship.get('friend_id'))
        return friendships

    def get_friendship(self, user_id: str, other_id: str) -> Optional[Dict[str, Any]]:
        """두 사용자 사이의 관계 문서를 반환합니다. 없으면 None."""
        docs = list(self.friends_ref.where(filter=_between(user_id, other_id)).limit(1).stream())
        return docs[0].to_dict() if docs else None

    def send_request(self, user_id: str, friend_id: str) -> Dict[str, Any]:
        """
        친구 요청을 보냅니다.
        - 자기 자신에게는 보낼 수 없습니다.
        - 어느 방향으로든 이미 관계가 있으면 보낼 수 없습니다.
        """
        if user_id == friend_id:
            raise ValueError("자기 자신에게 친구 요청을 보낼 수 없습니다.")
        if not get_document(self.users_ref, friend_id):
            raise LookupError("사용자를 찾을 수 없습니다.")
        if self.get_friendship(user_id, friend_id):
            raise ValueError("이미 친구이거나 요청이 진행 중입니다.")

        friendship = Friend(friendship_id=str(uuid.uuid4()), user_id=user_id, friend_id=friend_id)
        friendship_data = friendship.to_dict()
        self.friends_ref.document(friendship.friendship_id).set(friendship_data)

        sender = get_document(self.users_ref, user_id) or {}
        self.notification_service.create_notification(
            recipient_id=friend_id,
            sender_id=user_id,
            n_type=NotificationType.FRIEND_REQUEST,
            message=f"{sender.get('username', '')}님이 친구 요청을 보냈습니다."
        )
        logging.info(f"친구 요청 생성: {user_id} -> {friend_id}")
        return self._attach_users([friendship_data])[0]

    def _get_friendship_doc(self, friendship_id: str):
        friendship_ref = self.friends_ref.document(friendship_id)
        doc = friendship_ref.get()
        if not doc.exists:
            raise LookupError("친구 요청을 찾을 수 없습니다.")
        return friendship_ref, doc.to_dict()

    def accept_request(self, friendship_id: str, user_id: str) -> Dict[str, Any]:
        """받은 친구 요청을 수락합니다. (요청을 받은 사용자만 가능)"""
        friendship_ref, friendship = self._get_friendship_doc(friendship_id)
        if friendship.get('friend_id') != user_id:
            raise PermissionError("이 친구 요청을 수락할 권한이 없습니다.")
        if friendship.get('status') != FriendStatus.PENDING.value:
            raise ValueError("대기 중인 친구 요청이 아닙니다.")

        friendship_ref.update({'status': FriendStatus.ACCEPTED.value, 'updated_at': DateTimeUtils.now()})
        return self._attach_users([friendship_ref.get().to_dict()])[0]

    def reject_request(self, friendship_id: str, user_id: str) -> None:
        """친구 요청을 거절(또는 보낸 사람이 취소)하고 문서를 삭제합니다."""
        friendship_ref, friendship = self._get_friendship_doc(friendship_id)
        if user_id not in (friendship.get('user_id'), friendship.get('friend_id')):
            raise PermissionError("이 친구 요청에 대한 권한이 없습니다.")
        friendship_ref.delete()

    def remove_friend(self, user_id: str, friend_id: str) -> int:
        """두 사용자 사이의 관계를 방향에 상관없이 삭제하고, 삭제한 문서 수를 반환합니다."""
        batch = ChunkedBatch(self.db)
        for doc in self.friends_ref.where(filter=_between(user_id, friend_id)).stream():
            batch.delete(doc.reference)
        return batch.commit()

    def get_friends(self, user_id: str) -> List[Dict[str, Any]]:
        """수락된 친구 관계 목록을 최신순으로 반환합니다. 'other_user' 에 상대방 정보를 담습니다."""
        either_side = Or(filters=[FieldFilter('user_id', '==', user_id), FieldFilter('friend_id', '==', user_id)])
        docs = (self.friends_ref
                .where(filter=either_side)
                .where(filter=FieldFilter('status', '==', FriendStatus.ACCEPTED.value))
                .order_by('created_at', direction=firestore.Query.DESCENDING)
                .stream())
        friendships = self._attach_users([doc.to_dict() for doc in docs])
        for friendship in friendships:
            friendship['other_user'] = friendship['friend'] if friendship.get('user_id') == user_id else friendship['user']
        return friendships

    def get_pending_requests(self, user_id: str) -> List[Dict[str, Any]]:
        """사용자가 받은 대기 중인 친구 요청 목록"""
        docs = (self.friends_ref
                .where(filter=FieldFilter('friend_id', '==', user_id))
                .where(filter=FieldFilter('status', '==', FriendStatus.PENDING.value))
                .order_by('created_at', direction=firestore.Query.DESCENDING)
                .stream())
        return self._attach_users([doc.to_dict() for doc in docs])
