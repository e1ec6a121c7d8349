# pawconnect/api/messages/test_message_controllers.py
"""
대화 목록 / 채팅 창 컨트롤러 테스트

메모리 Firestore 위에서 실제 MessageService 를 사용하므로,
리스너를 통한 실시간 갱신까지 함께 확인합니다.
"""
import io
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from werkzeug.datastructures import FileStorage

from pawconnect.api.messages.controllers import ConversationListController, ChatWindowController
from pawconnect.api.messages.services import MessageService
from pawconnect.services.storage_service import StorageService
from pawconnect.utils.datetime_utils import DateTimeUtils
from .test_message_service import seed_messages

@pytest.fixture
def service(db, bucket, make_user):
    for user_id in ('alice', 'bob', 'carol'):
        make_user(user_id, user_id)
    return MessageService(StorageService(bucket=bucket), db=db, page_size=50)

class RecordingListener:
    """on_change 로 전달된 (event, payload) 를 순서대로 기록합니다."""
    def __init__(self):
        self.recorded = []

    def __call__(self, event, payload):
        self.recorded.append((event, payload))

@pytest.fixture
def events():
    return RecordingListener()

# --- ConversationListController ---

def test_list_load_and_live_update(service, events):
    first = service.get_or_create_conversation('alice', 'bob')
    second = service.get_or_create_conversation('alice', 'carol')
    service.send_text_message(first, 'bob', 'older')
    service.send_text_message(second, 'carol', 'newer')

    controller = ConversationListController(service, 'alice', on_change=events)
    controller.load()
    controller.start()
    assert [c['conversation_id'] for c in controller.conversations] == [second, first]
    assert controller.conversations[1]['unread_count'] == 1

    service.send_text_message(first, 'bob', 'bump')

    assert [c['conversation_id'] for c in controller.conversations] == [first, second]
    assert controller.conversations[0]['last_message_content'] == 'bump'
    # 상대방 메시지로 갱신되면 읽지 않은 수를 다시 셈
    assert controller.conversations[0]['unread_count'] == 2
    assert ('conversation_updated', controller.conversations[0]) in events.recorded

    controller.close()
    controller.close()
    service.send_text_message(second, 'carol', 'ignored after close')
    assert controller.conversations[0]['conversation_id'] == first

def test_list_unread_count_follows_live_messages(service):
    conversation_id = service.get_or_create_conversation('alice', 'bob')
    controller = ConversationListController(service, 'alice')
    controller.load()
    controller.start()

    service.send_text_message(conversation_id, 'bob', 'first')
    service.send_text_message(conversation_id, 'bob', 'second')
    assert controller.conversations[0]['unread_count'] == 2

    # 내가 보낸 메시지로 갱신될 때는 기존 값 유지
    service.send_text_message(conversation_id, 'alice', 'reply')
    assert controller.conversations[0]['unread_count'] == 2

    service.mark_messages_as_read(conversation_id, 'alice')
    service.send_text_message(conversation_id, 'bob', 'third')
    assert controller.conversations[0]['unread_count'] == 1
    controller.close()

def test_list_keeps_unread_count_when_recount_fails(service):
    controller = ConversationListController(service, 'alice')
    controller.conversations = [{'conversation_id': 'alice_bob', 'last_message_at': None, 'unread_count': 4}]
    service.count_unread = MagicMock(side_effect=RuntimeError("firestore down"))

    controller.handle_conversation_update(
        {'conversation_id': 'alice_bob', 'last_message_at': None, 'last_message_sender_id': 'bob'})

    assert controller.conversations[0]['unread_count'] == 4

def test_list_inserts_unknown_conversation_at_top(service):
    controller = ConversationListController(service, 'alice')
    controller.conversations = [{'conversation_id': 'x', 'last_message_at': DateTimeUtils.now(), 'unread_count': 2}]

    controller.handle_conversation_update({'conversation_id': 'y', 'last_message_at': None})

    assert [c['conversation_id'] for c in controller.conversations] == ['y', 'x']
    assert controller.conversations[0]['unread_count'] == 0

def test_list_load_failure_sets_error(events):
    broken = MagicMock()
    broken.get_user_conversations_with_unread.side_effect = RuntimeError("firestore down")
    controller = ConversationListController(broken, 'alice', on_change=events)

    assert controller.load() == []
    assert controller.error == "대화 목록을 불러오지 못했습니다."
    assert controller.loading is False
    assert events.recorded == [('error', controller.error)]

def test_list_select(service):
    conversation_id = service.get_or_create_conversation('alice', 'bob')
    controller = ConversationListController(service, 'alice')
    controller.load()

    assert controller.select(conversation_id)['conversation_id'] == conversation_id
    assert controller.selected_id == conversation_id
    assert controller.select('unknown') is None

# --- ChatWindowController ---

def _open_window(service, user_id, conversation_id, page_size=None, on_change=None):
    conversation = service.get_conversation(conversation_id, user_id)
    window = ChatWindowController(service, conversation, user_id, on_change=on_change, page_size=page_size)
    window.open()
    return window

def test_open_loads_first_page_and_marks_read(service, db):
    conversation_id = service.get_or_create_conversation('alice', 'bob')
    seed_messages(db, conversation_id, 'bob', 5)

    window = _open_window(service, 'alice', conversation_id, page_size=3)

    assert [m['content'] for m in window.messages] == ['message 2', 'message 3', 'message 4']
    assert window.has_more is True
    assert service.count_unread(conversation_id, 'alice') == 0
    window.close()

def test_load_more_prepends_until_exhausted(service, db):
    conversation_id = service.get_or_create_conversation('alice', 'bob')
    seed_messages(db, conversation_id, 'bob', 5)
    window = _open_window(service, 'alice', conversation_id, page_size=3)

    older = window.load_more()

    assert [m['content'] for m in older] == ['message 0', 'message 1']
    assert [m['content'] for m in window.messages] == [f"message {i}" for i in range(5)]
    assert window.has_more is False
    assert window.load_more() == []
    window.close()

def test_load_more_is_ignored_while_loading(service):
    conversation_id = service.get_or_create_conversation('alice', 'bob')
    window = ChatWindowController(service, service.get_conversation(conversation_id), 'alice')
    window.loading = True
    assert window.load_more() == []
    assert window.page == 0

def test_live_messages_are_appended_once_and_marked_read(service, events):
    conversation_id = service.get_or_create_conversation('alice', 'bob')
    window = _open_window(service, 'alice', conversation_id, on_change=events)

    incoming = service.send_text_message(conversation_id, 'bob', 'are you there?')

    assert [m['content'] for m in window.messages] == ['are you there?']
    assert service.count_unread(conversation_id, 'alice') == 0
    assert ('message', window.messages[0]) in events.recorded

    # 같은 메시지가 다시 전달되어도 중복 추가되지 않음
    window.handle_new_message(dict(incoming))
    assert len(window.messages) == 1
    window.close()

def test_own_live_message_does_not_mark_read(service):
    mark_read = MagicMock(return_value=0)
    window = ChatWindowController(service, {'conversation_id': 'c1'}, 'alice')
    window.mark_read = mark_read

    window.handle_new_message({'message_id': 'm1', 'sender_id': 'alice'})
    window.handle_new_message({'message_id': 'm2', 'sender_id': 'bob'})

    assert mark_read.call_count == 1

def test_send_text_ignores_blank_and_inflight(service):
    conversation_id = service.get_or_create_conversation('alice', 'bob')
    window = _open_window(service, 'alice', conversation_id)

    assert window.send_text('   ') is None
    window.sending = True
    assert window.send_text('double click') is None
    window.sending = False

    sent = window.send_text('hello bob')
    assert sent['content'] == 'hello bob'
    assert window.sending is False
    # 본인이 보낸 메시지도 구독을 통해 목록에 추가됨
    assert [m['content'] for m in window.messages] == ['hello bob']
    window.close()

def test_send_text_failure_sets_error(events):
    broken = MagicMock()
    broken.page_size = 50
    broken.send_text_message.side_effect = RuntimeError("network")
    window = ChatWindowController(broken, {'conversation_id': 'c1'}, 'alice', on_change=events)

    assert window.send_text('hi') is None
    assert window.error == "메시지를 보내지 못했습니다."
    assert window.sending is False

def test_send_image_validates_and_sends(service, bucket):
    conversation_id = service.get_or_create_conversation('alice', 'bob')
    window = _open_window(service, 'alice', conversation_id)

    bad = FileStorage(stream=io.BytesIO(b'text'), filename='notes.txt', content_type='text/plain')
    assert window.send_image(bad) is None
    assert window.error == "유효한 이미지 파일을 선택해주세요."

    good = FileStorage(stream=io.BytesIO(b'png-bytes'), filename='dog.png', content_type='image/png')
    sent = window.send_image(good)
    assert sent['message_type'] == 'image'
    assert '/message-images/alice/' in sent['metadata']['image_url']
    assert window.error is None
    window.close()

def test_unread_after_close_is_not_marked(service):
    conversation_id = service.get_or_create_conversation('alice', 'bob')
    window = _open_window(service, 'alice', conversation_id)
    window.close()

    service.send_text_message(conversation_id, 'bob', 'you left')

    assert window.messages == []
    assert service.count_unread(conversation_id, 'alice') == 1

def test_open_failure_reports_error(events):
    broken = MagicMock()
    broken.page_size = 50
    broken.get_conversation_messages.side_effect = RuntimeError("boom")
    broken.mark_messages_as_read.return_value = 0
    window = ChatWindowController(broken, {'conversation_id': 'c1'}, 'alice', on_change=events)

    assert window.open() == []
    assert window.error == "메시지를 불러오지 못했습니다."
    assert window.loading is False
    broken.subscribe_to_conversation.assert_called_once()

def test_seeded_history_older_than_subscription_is_not_replayed(service, db):
    conversation_id = service.get_or_create_conversation('alice', 'bob')
    seed_messages(db, conversation_id, 'bob', 2, start=DateTimeUtils.now() - timedelta(days=2))
    window = _open_window(service, 'alice', conversation_id)

    assert len(window.messages) == 2
    service.send_text_message(conversation_id, 'bob', 'new')
    assert [m['content'] for m in window.messages] == ['message 0', 'message 1', 'new']
    window.close()
