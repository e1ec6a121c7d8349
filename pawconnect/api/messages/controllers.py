# pawconnect/api/messages/controllers.py
"""
메시지 화면의 상태를 관리하는 컨트롤러.

- ConversationListController: 대화 목록을 불러오고, 대화가 갱신되면 목록을 최신 상태로 유지합니다.
- ChatWindowController: 한 대화의 메시지를 페이지 단위로 불러오고, 새 메시지를 이어 붙이며,
  읽음 처리와 텍스트/이미지 전송을 담당합니다.

상태가 바뀔 때마다 on_change(event, payload) 를 호출하므로, SSE 스트림 등이 변경을 전달받을 수 있습니다.

두 컨트롤러는 같은 프로세스에서 메시지 화면을 구동하는 쪽(CLI, 봇, 서버 렌더링 등)이 쓰는
화면 상태 API 입니다. SSE 라우트는 그중 load/start/open 과 close 만 사용해 변경을 흘려보내고,
select, load_more, send_text, send_image 는 화면 쪽이 직접 호출합니다.
HTTP 클라이언트는 같은 동작을 REST 엔드포인트(메시지 페이지 조회, 전송, 이미지 업로드)로 수행합니다.
실시간 콜백은 리스너 스레드에서 호출되므로 상태 변경은 lock 안에서 수행합니다.
"""
import logging
import threading
from typing import Optional, Dict, Any, List, Callable

from werkzeug.datastructures import FileStorage

from pawconnect.utils.datetime_utils import DateTimeUtils

ChangeListener = Callable[[str, Any], None]

def _noop(event: str, payload: Any) -> None:
    pass


class ConversationListController:
    def __init__(self, message_service, user_id: str, on_change: Optional[ChangeListener] = None):
        self.message_service = message_service
        self.user_id = user_id
        self.on_change = on_change or _noop
        self.conversations: List[Dict[str, Any]] = []
        self.selected_id: Optional[str] = None
        self.loading = False
        self.error: Optional[str] = None
        self._subscription = None
        self._lock = threading.RLock()

    def load(self) -> List[Dict[str, Any]]:
        """대화 목록을 다시 불러옵니다. 실패하면 error 에 메시지를 남깁니다."""
        self.loading = True
        self.error = None
        try:
            conversations = self.message_service.get_user_conversations_with_unread(self.user_id)
            with self._lock:
                self.conversations = conversations
            self.on_change('conversations', self.conversations)
        except Exception as e:
            logging.error(f"대화 목록 로딩 실패 (user_id: {self.user_id}): {e}", exc_info=True)
            self.error = "대화 목록을 불러오지 못했습니다."
            self.on_change('error', self.error)
        finally:
            self.loading = False
        return self.conversations

    def start(self) -> None:
        """대화 갱신 구독을 시작합니다."""
        if self._subscription is None:
            self._subscription = self.message_service.subscribe_to_conversations(
                self.user_id, self.handle_conversation_update)

    def handle_conversation_update(self, conversation: Dict[str, Any]) -> None:
        """
        갱신된 대화로 기존 항목을 교체하고 마지막 메시지 시각 내림차순으로 다시 정렬합니다.
        목록에 없는 대화는 맨 앞에 추가합니다.
        """
        conversation_id = conversation.get('conversation_id')
        unread_count = self._refreshed_unread_count(conversation)
        with self._lock:
            for index, existing in enumerate(self.conversations):
                if existing.get('conversation_id') == conversation_id:
                    conversation['unread_count'] = (unread_count if unread_count is not None
                                                    else existing.get('unread_count', 0))
                    self.conversations[index] = conversation
                    self.conversations.sort(
                        key=lambda c: DateTimeUtils.sort_key(c.get('last_message_at')), reverse=True)
                    break
            else:
                conversation['unread_count'] = unread_count or 0
                self.conversations.insert(0, conversation)
            snapshot = list(self.conversations)
        self.on_change('conversation_updated', conversation)
        self.on_change('conversations', snapshot)

    def _refreshed_unread_count(self, conversation: Dict[str, Any]) -> Optional[int]:
        """
        상대방이 보낸 메시지로 갱신된 대화면 읽지 않은 메시지 수를 다시 셉니다.
        내가 보낸 메시지거나 다시 셀 수 없으면 None (기존 값 유지).
        """
        sender_id = conversation.get('last_message_sender_id')
        if not sender_id or sender_id == self.user_id:
            return None
        try:
            return self.message_service.count_unread(conversation.get('conversation_id'), self.user_id)
        except Exception as e:
            logging.error(f"읽지 않은 메시지 수 갱신 실패 (user_id: {self.user_id}): {e}", exc_info=True)
            return None

    def select(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            self.selected_id = conversation_id
            selected = next((c for c in self.conversations if c.get('conversation_id') == conversation_id), None)
        self.on_change('selected', conversation_id)
        return selected

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None


class ChatWindowController:
    def __init__(self, message_service, conversation: Dict[str, Any], user_id: str,
                 on_change: Optional[ChangeListener] = None, page_size: Optional[int] = None):
        self.message_service = message_service
        self.conversation = conversation
        self.conversation_id = conversation['conversation_id']
        self.user_id = user_id
        self.on_change = on_change or _noop
        self.page_size = page_size or message_service.page_size
        self.messages: List[Dict[str, Any]] = []
        self.page = 0
        self.has_more = True
        self.loading = False
        self.sending = False
        self.error: Optional[str] = None
        self._subscription = None
        self._lock = threading.RLock()

    def _fail(self, message: str, exc: Exception) -> None:
        logging.error(f"{message} (conversation_id: {self.conversation_id}): {exc}", exc_info=True)
        self.error = message
        self.on_change('error', message)

    def _load_page(self, page: int) -> Optional[List[Dict[str, Any]]]:
        self.loading = True
        try:
            messages = self.message_service.get_conversation_messages(
                self.conversation_id, page=page, limit=self.page_size)
        except Exception as e:
            self._fail("메시지를 불러오지 못했습니다.", e)
            return None
        finally:
            self.loading = False
        self.page = page
        self.has_more = len(messages) == self.page_size
        return messages

    def open(self) -> List[Dict[str, Any]]:
        """첫 페이지를 불러오고, 새 메시지를 구독하고, 읽음 처리합니다."""
        self.error = None
        messages = self._load_page(1)
        if messages is not None:
            with self._lock:
                self.messages = messages
            self.on_change('messages', list(self.messages))

        if self._subscription is None:
            self._subscription = self.message_service.subscribe_to_conversation(
                self.conversation_id, self.handle_new_message)
        self.mark_read()
        return self.messages

    def load_more(self) -> List[Dict[str, Any]]:
        """이전 페이지를 불러와 앞쪽에 붙입니다. 로딩 중이거나 더 없으면 아무것도 하지 않습니다."""
        if self.loading or not self.has_more:
            return []
        older = self._load_page(self.page + 1)
        if not older:
            return []
        with self._lock:
            self.messages = older + self.messages
        self.on_change('messages', list(self.messages))
        return older

    def handle_new_message(self, message: Dict[str, Any]) -> None:
        """실시간으로 받은 메시지를 뒤에 붙이고, 상대방 메시지면 읽음 처리합니다."""
        with self._lock:
            if any(m.get('message_id') == message.get('message_id') for m in self.messages):
                return
            self.messages.append(message)
        self.on_change('message', message)
        if message.get('sender_id') != self.user_id:
            self.mark_read()

    def mark_read(self) -> int:
        try:
            return self.message_service.mark_messages_as_read(self.conversation_id, self.user_id)
        except Exception as e:
            logging.error(f"읽음 처리 실패 (conversation_id: {self.conversation_id}): {e}", exc_info=True)
            return 0

    def send_text(self, content: str) -> Optional[Dict[str, Any]]:
        """공백뿐인 내용이나 전송 중의 중복 요청은 무시합니다."""
        if not content or not content.strip() or self.sending:
            return None
        self.sending = True
        self.error = None
        try:
            return self.message_service.send_text_message(self.conversation_id, self.user_id, content)
        except Exception as e:
            self._fail("메시지를 보내지 못했습니다.", e)
            return None
        finally:
            self.sending = False

    def send_image(self, file: FileStorage) -> Optional[Dict[str, Any]]:
        """이미지를 검증하고 업로드한 뒤 이미지 메시지로 보냅니다."""
        if self.sending:
            return None
        self.sending = True
        self.error = None
        try:
            image_url = self.message_service.upload_message_image(self.user_id, file)
            return self.message_service.send_image_message(self.conversation_id, self.user_id, image_url)
        except ValueError as e:
            self.error = str(e)
            self.on_change('error', self.error)
            return None
        except Exception as e:
            self._fail("이미지를 보내지 못했습니다.", e)
            return None
        finally:
            self.sending = False

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
