# pawconnect/api/comments/services.py

import logging
import uuid
from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from dataclasses import asdict
from typing import Dict, Any, List

from pawconnect.models.comment import Comment
from pawconnect.models.notification import NotificationType
from pawconnect.services.notification_service import NotificationService
from pawconnect.services.firestore_service import get_document, get_users_by_ids

class CommentService:
    """
    댓글 관련 비즈니스 로직을 담당하는 서비스 클래스.
    - 댓글 작성 시 게시글 소유자에게 알림을 생성합니다.
    - 댓글 작성자 또는 게시글 소유자가 댓글을 삭제할 수 있습니다.
    """
    def __init__(self, notification_service: NotificationService, db=None):
        """서비스 초기화 시 Firestore 클라이언트 및 컬렉션 참조를 설정합니다."""
        self.db = db or firestore.client()
        self.comments_ref = self.db.collection('comments')
        self.posts_ref = self.db.collection('posts')
        self.notification_service = notification_service

    def create_comment(self, post_id: str, user_id: str, content: str) -> Dict[str, Any]:
        """새로운 댓글을 생성하고 작성자 정보를 붙여 반환합니다."""
        transaction = self.db.transaction()

        @firestore.transactional
        def _create_in_transaction(transaction):
            post_ref = self.posts_ref.document(post_id)
            post_snapshot = post_ref.get(transaction=transaction)
            if not post_snapshot.exists:
                raise ValueError("댓글을 작성할 게시물이 존재하지 않습니다.")

            new_comment = Comment(
                comment_id=str(uuid.uuid4()),
                post_id=post_id,
                user_id=user_id,
                content=content
            )
            transaction.set(self.comments_ref.document(new_comment.comment_id), asdict(new_comment))
            return asdict(new_comment), post_snapshot.to_dict()

        comment_data, post_data = _create_in_transaction(transaction)

        self.notification_service.create_notification(
            recipient_id=post_data.get('owner_id'),
            sender_id=user_id,
            n_type=NotificationType.COMMENT,
            message=content[:50],
            post_id=post_id
        )

        comment_data['user'] = get_users_by_ids(self.db, [user_id]).get(user_id)
        return comment_data

    def get_comments_for_post(self, post_id: str) -> List[Dict[str, Any]]:
        """특정 게시글의 댓글 목록을 오래된 순으로, 작성자 정보와 함께 조회합니다."""
        docs = (self.comments_ref
                .where(filter=FieldFilter('post_id', '==', post_id))
                .order_by('created_at')
                .stream())
        comments = [doc.to_dict() for doc in docs]
        users = get_users_by_ids(self.db, [c.get('user_id') for c in comments])
        for comment in comments:
            comment['user'] = users.get(comment.get('user_id'))
        return comments

    def delete_comment(self, comment_id: str, user_id: str) -> None:
        """댓글을 삭제합니다. (댓글 작성자 또는 게시글 소유자)"""
        comment_ref = self.comments_ref.document(comment_id)
        comment_doc = comment_ref.get()
        if not comment_doc.exists:
            raise ValueError("삭제할 댓글이 없습니다.")

        comment_data = comment_doc.to_dict()
        if comment_data.get('user_id') != user_id:
            post = get_document(self.posts_ref, comment_data.get('post_id'))
            if not post or post.get('owner_id') != user_id:
                raise PermissionError("댓글을 삭제할 권한이 없습니다.")

        comment_ref.delete()
        logging.info(f"댓글 삭제 완료 (comment_id: {comment_id}, by: {user_id})")
