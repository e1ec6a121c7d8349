# pawconnect/api/events/services.py
import logging
import uuid
from dataclasses import asdict
from datetime import datetime
from typing import Optional, Dict, Any, List
from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from werkzeug.datastructures import FileStorage

from pawconnect.models.event import Event, EventParticipant, ParticipantStatus
from pawconnect.models.notification import NotificationType
from pawconnect.services.storage_service import StorageService
from pawconnect.services.notification_service import NotificationService
from pawconnect.services.firestore_service import get_document, get_users_by_ids, count_query, ChunkedBatch
from pawconnect.utils.datetime_utils import DateTimeUtils

class EventFullError(ValueError):
    """확정 참가자가 정원에 도달한 이벤트에 참가(확정)하려 할 때"""

# offset 만 주어졌을 때 가져오는 이벤트 수
OFFSET_PAGE_SIZE = 10

INVITATION_TEMPLATE = (
    "🎉 \"{title}\" 이벤트에 초대합니다!\n"
    "📅 {date}\n"
    "📍 {location}\n\n"
    "자세한 내용과 참가 신청은 여기서 확인하세요: {link}"
)

class EventService:
    """
    이벤트와 참가 신청을 관리하는 서비스.
    - 참가자 수는 확정(confirmed) 참가 문서를 count() 로 집계합니다.
    - 수정/삭제는 주최자만 할 수 있습니다.
    - 초대는 대화방을 열고 이벤트 링크가 담긴 메시지를 보내는 방식입니다.
    """
    def __init__(self, storage_service: StorageService, notification_service: NotificationService,
                 message_service, friend_service, db=None, app_origin: str = ''):
        self.db = db or firestore.client()
        self.events_ref = self.db.collection('events')
        self.event_types_ref = self.db.collection('event_types')
        self.participants_ref = self.db.collection('event_participants')
        self.storage_service = storage_service
        self.notification_service = notification_service
        self.message_service = message_service
        self.friend_service = friend_service
        self.app_origin = app_origin.rstrip('/')

    @staticmethod
    def _participation_id(event_id: str, user_id: str) -> str:
        return f"{event_id}_{user_id}"

    # --- 조회 헬퍼 ---
    def _confirmed_query(self, event_id: str):
        return (self.participants_ref
                .where(filter=FieldFilter('event_id', '==', event_id))
                .where(filter=FieldFilter('status', '==', ParticipantStatus.CONFIRMED.value)))

    def count_participants(self, event_id: str) -> int:
        return count_query(self._confirmed_query(event_id))

    def _decorate(self, events: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """주최자, 이벤트 유형 정보, 확정 참가자 수를 붙입니다."""
        organizers = get_users_by_ids(self.db, [e.get('organizer_id') for e in events])
        type_cache: Dict[str, Optional[Dict[str, Any]]] = {}
        for event in events:
            event['organizer'] = organizers.get(event.get('organizer_id'))
            event_type = event.get('event_type')
            if event_type not in type_cache:
                type_cache[event_type] = get_document(self.event_types_ref, event_type)
            event['event_type_info'] = type_cache[event_type]
            event['participants_count'] = self.count_participants(event['event_id'])
        return events

    def _get_event_data(self, event_id: str) -> Dict[str, Any]:
        event = get_document(self.events_ref, event_id)
        if not event:
            raise ValueError("이벤트를 찾을 수 없습니다.")
        return event

    def _get_organized_event(self, event_id: str, user_id: str) -> Dict[str, Any]:
        event = self._get_event_data(event_id)
        if event.get('organizer_id') != user_id:
            raise PermissionError("이벤트 주최자만 할 수 있는 작업입니다.")
        return event

    # --- 이벤트 유형 ---
    def get_event_types(self) -> List[Dict[str, Any]]:
        return [doc.to_dict() for doc in self.event_types_ref.order_by('name').stream()]

    # --- 이벤트 ---
    def create_event(self, organizer_id: str, event_data: Dict[str, Any]) -> Dict[str, Any]:
        if not get_document(self.event_types_ref, event_data['event_type']):
            raise ValueError("존재하지 않는 이벤트 유형입니다.")

        new_event = Event(
            event_id=str(uuid.uuid4()),
            title=event_data['title'],
            event_type=event_data['event_type'],
            organizer_id=organizer_id,
            date_start=event_data['date_start'],
            description=event_data.get('description'),
            date_end=event_data.get('date_end'),
            location=event_data.get('location'),
            address=event_data.get('address'),
            max_participants=event_data.get('max_participants'),
            is_public=event_data.get('is_public', True),
            image_url=event_data.get('image_url')
        )
        event_dict = DateTimeUtils.for_firestore(asdict(new_event))
        self.events_ref.document(new_event.event_id).set(event_dict)
        logging.info(f"이벤트 생성 완료 (event_id: {new_event.event_id}, organizer: {organizer_id})")
        return self._decorate([event_dict])[0]

    def get_events(self, event_type: Optional[str] = None, location: Optional[str] = None,
                   date_from: Optional[datetime] = None, date_to: Optional[datetime] = None,
                   limit: Optional[int] = None, offset: int = 0) -> List[Dict[str, Any]]:
        """
        앞으로 열릴 공개/활성 이벤트를 시작 시각 오름차순으로 조회합니다.
        location 은 대소문자 구분 없는 부분 일치로 거릅니다.
        """
        if offset and not limit:
            limit = OFFSET_PAGE_SIZE
        start_bound = DateTimeUtils.now()
        if date_from and date_from > start_bound:
            start_bound = date_from

        query = (self.events_ref
                 .where(filter=FieldFilter('is_public', '==', True))
                 .where(filter=FieldFilter('is_active', '==', True))
                 .where(filter=FieldFilter('date_start', '>=', start_bound)))
        if date_to:
            query = query.where(filter=FieldFilter('date_start', '<=', date_to))
        if event_type:
            query = query.where(filter=FieldFilter('event_type', '==', event_type))
        query = query.order_by('date_start')

        if location:
            # Firestore 는 부분 문자열 검색을 지원하지 않으므로 조회 후 거릅니다.
            needle = location.lower()
            events = [doc.to_dict() for doc in query.stream()]
            events = [e for e in events if needle in (e.get('location') or '').lower()]
            end = offset + limit if limit else None
            events = events[offset:end]
        else:
            if offset:
                query = query.offset(offset)
            if limit:
                query = query.limit(limit)
            events = [doc.to_dict() for doc in query.stream()]
        return self._decorate(events)

    def get_participation(self, event_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        return get_document(self.participants_ref, self._participation_id(event_id, user_id))

    def get_event(self, event_id: str, viewer_id: Optional[str] = None) -> Dict[str, Any]:
        """이벤트 상세. 조회자가 있으면 참가 여부와 참가 정보를 함께 반환합니다."""
        event = self._decorate([self._get_event_data(event_id)])[0]
        if viewer_id:
            participation = self.get_participation(event_id, viewer_id)
            event['is_participating'] = bool(participation)
            event['user_participation'] = participation
        return event

    def get_user_events(self, user_id: str, kind: str = 'participating') -> List[Dict[str, Any]]:
        """
        kind='organized': 사용자가 주최한 이벤트 (시작 시각 오름차순)
        kind='participating': 확정 참가한 이벤트 (참가 신청 최신순)
        """
        if kind == 'organized':
            docs = (self.events_ref
                    .where(filter=FieldFilter('organizer_id', '==', user_id))
                    .order_by('date_start')
                    .stream())
            return self._decorate([doc.to_dict() for doc in docs])

        docs = (self.participants_ref
                .where(filter=FieldFilter('user_id', '==', user_id))
                .where(filter=FieldFilter('status', '==', ParticipantStatus.CONFIRMED.value))
                .order_by('created_at', direction=firestore.Query.DESCENDING)
                .stream())
        events = [get_document(self.events_ref, doc.to_dict().get('event_id')) for doc in docs]
        return self._decorate([e for e in events if e])

    def update_event(self, event_id: str, user_id: str, update_data: Dict[str, Any]) -> Dict[str, Any]:
        self._get_organized_event(event_id, user_id)
        if not update_data:
            raise ValueError("수정할 데이터가 제공되지 않았습니다.")
        if 'event_type' in update_data and not get_document(self.event_types_ref, update_data['event_type']):
            raise ValueError("존재하지 않는 이벤트 유형입니다.")

        update_data = DateTimeUtils.for_firestore(dict(update_data, updated_at=DateTimeUtils.now()))
        event_ref = self.events_ref.document(event_id)
        event_ref.update(update_data)
        return self._decorate([event_ref.get().to_dict()])[0]

    def delete_event(self, event_id: str, user_id: str) -> None:
        """[주최자 전용] 이벤트와 모든 참가 문서, 이벤트 이미지를 삭제합니다."""
        event = self._get_organized_event(event_id, user_id)

        batch = ChunkedBatch(self.db)
        for doc in self.participants_ref.where(filter=FieldFilter('event_id', '==', event_id)).stream():
            batch.delete(doc.reference)
        batch.delete(self.events_ref.document(event_id))
        batch.commit()

        if event.get('image_url'):
            try:
                self.storage_service.delete_by_public_url(event['image_url'])
            except Exception as e:
                logging.error(f"이벤트 이미지 삭제 실패 (event_id: {event_id}): {e}")
        logging.info(f"이벤트 삭제 완료 (event_id: {event_id})")

    def upload_event_image(self, user_id: str, file: FileStorage) -> str:
        return self.storage_service.upload_image("event_image", user_id, file)

    # --- 참가 ---
    def join_event(self, event_id: str, user_id: str, notes: Optional[str] = None) -> Dict[str, Any]:
        """
        이벤트에 확정 상태로 참가합니다.
        정원이 찼거나 이미 참가 중이면 ValueError 를 발생시킵니다.
        """
        event = self._get_event_data(event_id)
        if not event.get('is_active', True):
            raise ValueError("종료되었거나 비활성화된 이벤트입니다.")

        participation_ref = self.participants_ref.document(self._participation_id(event_id, user_id))
        transaction = self.db.transaction()

        @firestore.transactional
        def _join_in_transaction(transaction):
            existing = participation_ref.get(transaction=transaction)
            if existing.exists and existing.to_dict().get('status') == ParticipantStatus.CONFIRMED.value:
                raise ValueError("이미 참가 중인 이벤트입니다.")

            self._ensure_capacity(event, transaction)

            participation = EventParticipant(
                participation_id=participation_ref.id,
                event_id=event_id,
                user_id=user_id,
                notes=notes,
                invited_by=existing.to_dict().get('invited_by') if existing.exists else None
            )
            participation_data = participation.to_dict()
            transaction.set(participation_ref, participation_data)
            return participation_data

        participation_data = _join_in_transaction(transaction)

        self.notification_service.create_notification(
            recipient_id=event.get('organizer_id'),
            sender_id=user_id,
            n_type=NotificationType.EVENT_JOIN,
            message=f"\"{event.get('title')}\" 이벤트에 참가했습니다."
        )
        participation_data['user'] = get_users_by_ids(self.db, [user_id]).get(user_id)
        return participation_data

    def _ensure_capacity(self, event: Dict[str, Any], transaction) -> None:
        """
        확정 참가자가 정원에 도달했으면 EventFullError 를 발생시킵니다.
        참가 문서를 트랜잭션으로 읽으므로, 동시에 들어온 참가 확정 중 하나는 재시도됩니다.
        """
        max_participants = event.get('max_participants')
        if not max_participants:
            return
        confirmed = list(transaction.get(self._confirmed_query(event['event_id'])))
        if len(confirmed) >= max_participants:
            raise EventFullError("참가 인원이 모두 찼습니다.")

    def leave_event(self, event_id: str, user_id: str) -> None:
        participation_ref = self.participants_ref.document(self._participation_id(event_id, user_id))
        if not participation_ref.get().exists:
            raise ValueError("참가하지 않은 이벤트입니다.")
        participation_ref.delete()

    def update_participation(self, participation_id: str, user_id: str, update_data: Dict[str, Any]) -> Dict[str, Any]:
        """본인의 참가 정보(상태, 메모)를 수정합니다."""
        participation_ref = self.participants_ref.document(participation_id)
        doc = participation_ref.get()
        if not doc.exists:
            raise ValueError("참가 정보를 찾을 수 없습니다.")
        if doc.to_dict().get('user_id') != user_id:
            raise PermissionError("본인의 참가 정보만 수정할 수 있습니다.")
        if not update_data:
            raise ValueError("수정할 데이터가 제공되지 않았습니다.")

        current = doc.to_dict()
        update_data = dict(update_data, updated_at=DateTimeUtils.now())
        confirming = (update_data.get('status') == ParticipantStatus.CONFIRMED.value and
                      current.get('status') != ParticipantStatus.CONFIRMED.value)
        if confirming:
            # 다시 확정하는 경우에도 정원을 확인합니다.
            event = self._get_event_data(current.get('event_id'))
            transaction = self.db.transaction()

            @firestore.transactional
            def _confirm_in_transaction(transaction):
                self._ensure_capacity(event, transaction)
                transaction.update(participation_ref, update_data)

            _confirm_in_transaction(transaction)
        else:
            participation_ref.update(update_data)
        participation = participation_ref.get().to_dict()
        participation['user'] = get_users_by_ids(self.db, [user_id]).get(user_id)
        return participation

    def get_participants(self, event_id: str) -> List[Dict[str, Any]]:
        """확정 참가자 목록을 신청 순서대로, 참가자와 초대한 사람 정보를 붙여 반환합니다."""
        docs = self._confirmed_query(event_id).order_by('created_at').stream()
        participants = [doc.to_dict() for doc in docs]
        users = get_users_by_ids(self.db, [p.get('user_id') for p in participants] +
                                 [p.get('invited_by') for p in participants])
        for participant in participants:
            participant['user'] = users.get(participant.get('user_id'))
            participant['invited_by_user'] = users.get(participant.get('invited_by'))
        return participants

    # --- 초대 ---
    def get_friends_not_participating(self, user_id: str, event_id: str) -> List[Dict[str, Any]]:
        """아직 확정 참가하지 않은 친구 관계 목록"""
        participant_ids = {doc.to_dict().get('user_id') for doc in self._confirmed_query(event_id).stream()}
        friendships = self.friend_service.get_friends(user_id)
        return [
            f for f in friendships
            if (f.get('friend_id') if f.get('user_id') == user_id else f.get('user_id')) not in participant_ids
        ]

    def build_invitation_text(self, event: Dict[str, Any]) -> str:
        date_start = event.get('date_start')
        date_text = date_start.strftime('%Y-%m-%d %H:%M') if isinstance(date_start, datetime) else str(date_start)
        return INVITATION_TEMPLATE.format(
            title=event.get('title'),
            date=date_text,
            location=event.get('location') or '장소 미정',
            link=f"{self.app_origin}/events/{event.get('event_id')}"
        )

    def invite_friend(self, event_id: str, from_user_id: str, to_user_id: str) -> Dict[str, Any]:
        """
        친구와의 대화방을 열고 이벤트 링크가 담긴 초대 메시지를 보냅니다.
        초대받은 사용자에게 알림도 생성합니다.
        """
        event = self._get_event_data(event_id)
        conversation_id = self.message_service.get_or_create_conversation(from_user_id, to_user_id)
        message = self.message_service.send_text_message(conversation_id, from_user_id,
                                                         self.build_invitation_text(event))
        self.notification_service.create_notification(
            recipient_id=to_user_id,
            sender_id=from_user_id,
            n_type=NotificationType.EVENT_INVITE,
            message=f"\"{event.get('title')}\" 이벤트에 초대했습니다."
        )
        logging.info(f"이벤트 초대 전송 (event_id: {event_id}): {from_user_id} -> {to_user_id}")
        return {'conversation_id': conversation_id, 'message': message}
