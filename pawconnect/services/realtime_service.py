# pawconnect/services/realtime_service.py
"""
Firestore on_snapshot 리스너를 감싸는 구독 헬퍼.

on_snapshot 은 등록 직후 현재 문서 전체를 ADDED 변경으로 한 번 전달하므로,
'새로 추가/수정된 것만' 받으려면 첫 스냅샷을 건너뛰어야 합니다.
콜백은 Firestore 리스너 스레드에서 호출됩니다.
"""
import logging
import threading
from typing import Callable, Iterable, List, Dict, Any

class Subscription:
    """하나 이상의 Firestore watch 를 묶어 한 번에 해제할 수 있게 합니다."""

    def __init__(self, name: str, watches: Iterable = ()):
        self.name = name
        self._watches = list(watches)
        self._lock = threading.Lock()
        self.active = True

    def add(self, watch) -> None:
        with self._lock:
            self._watches.append(watch)

    def unsubscribe(self) -> None:
        """모든 watch 를 해제합니다. 여러 번 호출해도 안전합니다."""
        with self._lock:
            watches, self._watches = self._watches, []
            self.active = False
        for watch in watches:
            try:
                watch.unsubscribe()
            except Exception as e:
                logging.error(f"구독 해제 실패 ({self.name}): {e}", exc_info=True)
        if watches:
            logging.info(f"구독 해제 완료: {self.name}")


def watch_changes(query, change_types: Iterable[str], handler: Callable[[Dict[str, Any]], None],
                  name: str = "query"):
    """
    query 에 리스너를 등록하고, 첫 스냅샷 이후 change_types(ADDED/MODIFIED/REMOVED)에
    해당하는 문서 변경만 handler(doc_dict) 로 전달합니다.

    :return: query.on_snapshot 이 반환한 watch 객체
    """
    wanted = set(change_types)
    state = {'initial': True}

    def _on_snapshot(docs, changes: List, read_time):
        if state['initial']:
            state['initial'] = False
            return
        for change in changes:
            if change.type.name not in wanted:
                continue
            try:
                handler(change.document.to_dict())
            except Exception as e:
                # 리스너 스레드가 죽지 않도록 처리 실패는 로그만 남깁니다.
                logging.error(f"실시간 변경 처리 실패 ({name}): {e}", exc_info=True)

    return query.on_snapshot(_on_snapshot)
