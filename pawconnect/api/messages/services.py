# pawconnect/api/messages/services.py
import logging
import uuid
from dataclasses import asdict
from typing import Optional, Dict, Any, List, Callable
from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from werkzeug.datastructures import FileStorage

from pawconnect.models.conversation import Conversation, conversation_id_for
from pawconnect.models.message import Message, MessageType, MessageReport, ReportReason
from pawconnect.services.storage_service import StorageService
from pawconnect.services.firestore_service import get_document, get_users_by_ids, count_query, page_range, ChunkedBatch
from pawconnect.services.realtime_service import Subscription, watch_changes
from pawconnect.utils.datetime_utils import DateTimeUtils

# 대화 목록의 미리보기 문구 (텍스트가 아닌 메시지)
LAST_MESSAGE_PREVIEW = {
    MessageType.IMAGE: "사진을 보냈습니다.",
    MessageType.POST_SHARE: "게시글을 공유했습니다.",
}

DEFAULT_PAGE_SIZE = 50

class MessageService:
    """
    1:1 대화와 메시지를 관리하는 서비스.

    - get_or_create_conversation / get_user_conversations_with_unread 는
      클라이언트가 의존하는 두 저장 프로시저의 계약(파라미터, 반환 형태)을 그대로 유지합니다.
    - 메시지 전송 시 대화 문서의 마지막 메시지 필드를 같은 배치에서 갱신합니다.
    - 실시간 구독은 Firestore 리스너로 처리하며 Subscription 을 반환합니다.
    """
    def __init__(self, storage_service: StorageService, db=None, page_size: int = DEFAULT_PAGE_SIZE):
        self.db = db or firestore.client()
        self.conversations_ref = self.db.collection('conversations')
        self.messages_ref = self.db.collection('messages')
        self.reports_ref = self.db.collection('message_reports')
        self.storage_service = storage_service
        self.page_size = page_size

    # --- 대화 ---
    def get_or_create_conversation(self, user1_id: str, user2_id: str) -> str:
        """
        두 사용자 사이의 대화 ID를 반환하고, 없으면 새로 만듭니다.
        참여자 순서와 무관하게 항상 같은 대화가 반환됩니다.
        """
        if not user1_id or not user2_id or user1_id == user2_id:
            raise ValueError("서로 다른 두 사용자가 필요합니다.")

        first_id, second_id = sorted([user1_id, user2_id])
        conversation_ref = self.conversations_ref.document(conversation_id_for(first_id, second_id))
        transaction = self.db.transaction()

        @firestore.transactional
        def _get_or_create_in_transaction(transaction):
            snapshot = conversation_ref.get(transaction=transaction)
            if snapshot.exists:
                return False
            now = DateTimeUtils.now()
            conversation = Conversation(
                conversation_id=conversation_ref.id,
                participant_1_id=first_id,
                participant_2_id=second_id,
                participant_ids=[first_id, second_id],
                last_message_at=now,
                created_at=now
            )
            transaction.set(conversation_ref, asdict(conversation))
            return True

        if _get_or_create_in_transaction(transaction):
            logging.info(f"새 대화 생성: {conversation_ref.id}")
        return conversation_ref.id

    def _join_participants(self, conversations: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        user_ids = []
        for conversation in conversations:
            user_ids += [conversation.get('participant_1_id'), conversation.get('participant_2_id'),
                         conversation.get('last_message_sender_id')]
        users = get_users_by_ids(self.db, user_ids)
        for conversation in conversations:
            conversation['participant_1'] = users.get(conversation.get('participant_1_id'))
            conversation['participant_2'] = users.get(conversation.get('participant_2_id'))
            sender_id = conversation.get('last_message_sender_id')
            conversation['last_message_sender'] = users.get(sender_id) if sender_id else None
        return conversations

    def count_unread(self, conversation_id: str, user_id: str) -> int:
        """대화에서 상대방이 보낸 읽지 않은 메시지 수"""
        query = (self.messages_ref
                 .where(filter=FieldFilter('conversation_id', '==', conversation_id))
                 .where(filter=FieldFilter('sender_id', '!=', user_id))
                 .where(filter=FieldFilter('is_read', '==', False)))
        return count_query(query)

    def get_user_conversations_with_unread(self, user_uuid: str) -> List[Dict[str, Any]]:
        """
        사용자가 참여한 대화 목록을 마지막 메시지 시각 내림차순으로 반환합니다.
        각 항목에는 unread_count, participant_1, participant_2, last_message_sender 가 포함됩니다.
        """
        docs = (self.conversations_ref
                .where(filter=FieldFilter('participant_ids', 'array_contains', user_uuid))
                .stream())
        conversations = [doc.to_dict() for doc in docs]
        conversations.sort(key=lambda c: DateTimeUtils.sort_key(c.get('last_message_at')), reverse=True)
        for conversation in conversations:
            conversation['unread_count'] = self.count_unread(conversation['conversation_id'], user_uuid)
        return self._join_participants(conversations)

    def get_conversation(self, conversation_id: str, user_id: Optional[str] = None) -> Dict[str, Any]:
        """
        참여자 정보가 포함된 대화 한 건을 반환합니다.
        user_id 가 주어지면 참여자인지 확인합니다.
        """
        conversation = get_document(self.conversations_ref, conversation_id)
        if not conversation:
            raise ValueError("대화를 찾을 수 없습니다.")
        if user_id and user_id not in conversation.get('participant_ids', []):
            raise PermissionError("이 대화에 참여하고 있지 않습니다.")
        return self._join_participants([conversation])[0]

    def get_total_unread_count(self, user_id: str) -> int:
        """참여 중인 모든 대화의 읽지 않은 메시지 수 합계"""
        docs = (self.conversations_ref
                .where(filter=FieldFilter('participant_ids', 'array_contains', user_id))
                .stream())
        return sum(self.count_unread(doc.id, user_id) for doc in docs)

    # --- 메시지 ---
    def _with_sender(self, messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        senders = get_users_by_ids(self.db, [m.get('sender_id') for m in messages])
        for message in messages:
            message['sender'] = senders.get(message.get('sender_id'))
        return messages

    def get_message(self, message_id: str) -> Optional[Dict[str, Any]]:
        message = get_document(self.messages_ref, message_id)
        return self._with_sender([message])[0] if message else None

    def get_conversation_messages(self, conversation_id: str, page: int = 1,
                                  limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        대화의 메시지를 페이지 단위로 가져옵니다.
        최신 메시지부터 페이지를 나누고, 각 페이지는 오래된 순으로 반환합니다.
        """
        offset, limit = page_range(page, limit or self.page_size)
        docs = (self.messages_ref
                .where(filter=FieldFilter('conversation_id', '==', conversation_id))
                .order_by('created_at', direction=firestore.Query.DESCENDING)
                .offset(offset)
                .limit(limit)
                .stream())
        messages = self._with_sender([doc.to_dict() for doc in docs])
        messages.reverse()
        return messages

    def _send(self, conversation_id: str, sender_id: str, message_type: MessageType,
              content: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        conversation = get_document(self.conversations_ref, conversation_id)
        if not conversation:
            raise ValueError("대화를 찾을 수 없습니다.")
        if sender_id not in conversation.get('participant_ids', []):
            raise PermissionError("이 대화에 메시지를 보낼 수 없습니다.")

        message = Message(
            message_id=str(uuid.uuid4()),
            conversation_id=conversation_id,
            sender_id=sender_id,
            message_type=message_type,
            content=content,
            metadata=metadata or {}
        )
        message_data = message.to_dict()

        batch = self.db.batch()
        batch.set(self.messages_ref.document(message.message_id), message_data)
        batch.update(self.conversations_ref.document(conversation_id), {
            'last_message_at': message.created_at,
            'last_message_content': content if message_type == MessageType.TEXT else LAST_MESSAGE_PREVIEW[message_type],
            'last_message_sender_id': sender_id,
        })
        batch.commit()
        return self._with_sender([message_data])[0]

    def send_text_message(self, conversation_id: str, sender_id: str, content: str) -> Dict[str, Any]:
        if not content or not content.strip():
            raise ValueError("메시지 내용이 비어 있습니다.")
        return self._send(conversation_id, sender_id, MessageType.TEXT, content=content.strip())

    def send_image_message(self, conversation_id: str, sender_id: str, image_url: str) -> Dict[str, Any]:
        if not image_url:
            raise ValueError("이미지 URL이 필요합니다.")
        return self._send(conversation_id, sender_id, MessageType.IMAGE, metadata={'image_url': image_url})

    def send_post_share_message(self, conversation_id: str, sender_id: str, post_id: str,
                                post_title: Optional[str] = None, post_image: Optional[str] = None) -> Dict[str, Any]:
        metadata = {'post_id': post_id, 'post_title': post_title, 'post_image': post_image}
        return self._send(conversation_id, sender_id, MessageType.POST_SHARE, metadata=metadata)

    def mark_messages_as_read(self, conversation_id: str, user_id: str) -> int:
        """상대방이 보낸 읽지 않은 메시지를 모두 읽음 처리하고 처리한 개수를 반환합니다."""
        docs = (self.messages_ref
                .where(filter=FieldFilter('conversation_id', '==', conversation_id))
                .where(filter=FieldFilter('sender_id', '!=', user_id))
                .where(filter=FieldFilter('is_read', '==', False))
                .stream())
        batch = ChunkedBatch(self.db)
        for doc in docs:
            batch.update(doc.reference, {'is_read': True})
        return batch.commit()

    def delete_message(self, message_id: str, user_id: str) -> None:
        """본인이 보낸 메시지만 삭제할 수 있습니다."""
        message_ref = self.messages_ref.document(message_id)
        doc = message_ref.get()
        if not doc.exists:
            raise ValueError("메시지를 찾을 수 없습니다.")
        if doc.to_dict().get('sender_id') != user_id:
            raise PermissionError("본인이 보낸 메시지만 삭제할 수 있습니다.")
        message_ref.delete()

    def upload_message_image(self, user_id: str, file: FileStorage) -> str:
        """이미지 형식과 크기(최대 5MB)를 확인한 뒤 message-images 폴더에 업로드합니다."""
        return self.storage_service.upload_image("message_image", user_id, file)

    def report_message(self, message_id: str, reporter_id: str, reason: str,
                       description: Optional[str] = None) -> Dict[str, Any]:
        if not get_document(self.messages_ref, message_id):
            raise ValueError("신고할 메시지를 찾을 수 없습니다.")
        report = MessageReport(
            report_id=str(uuid.uuid4()),
            message_id=message_id,
            reporter_id=reporter_id,
            reason=ReportReason(reason),
            description=description
        )
        report_data = report.to_dict()
        self.reports_ref.document(report.report_id).set(report_data)
        logging.info(f"메시지 신고 접수 (message_id: {message_id}, reason: {reason})")
        return report_data

    # --- 실시간 구독 ---
    def subscribe_to_conversation(self, conversation_id: str,
                                  callback: Callable[[Dict[str, Any]], None]) -> Subscription:
        """대화에 새로 추가되는 메시지를 보낸 사람 정보와 함께 callback 으로 전달합니다."""
        def _on_insert(message: Dict[str, Any]):
            full_message = self.get_message(message['message_id'])
            if full_message:
                callback(full_message)

        name = f"conversation:{conversation_id}"
        query = self.messages_ref.where(filter=FieldFilter('conversation_id', '==', conversation_id))
        return Subscription(name, [watch_changes(query, ['ADDED'], _on_insert, name=name)])

    def subscribe_to_conversations(self, user_id: str,
                                   callback: Callable[[Dict[str, Any]], None]) -> Subscription:
        """
        사용자가 참여한 대화가 갱신될 때마다 참여자 정보가 포함된 대화를 callback 으로 전달합니다.
        participant_1_id / participant_2_id 두 조건에 각각 리스너를 등록합니다.
        """
        def _on_update(conversation: Dict[str, Any]):
            callback(self._join_participants([conversation])[0])

        name = f"user_conversations:{user_id}"
        subscription = Subscription(name)
        for field_name in ('participant_1_id', 'participant_2_id'):
            query = self.conversations_ref.where(filter=FieldFilter(field_name, '==', user_id))
            subscription.add(watch_changes(query, ['MODIFIED'], _on_update, name=name))
        return subscription
