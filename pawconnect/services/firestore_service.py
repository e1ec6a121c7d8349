# pawconnect/services/firestore_service.py
"""
여러 도메인 서비스가 함께 쓰는 Firestore 조회 헬퍼.

관계형 조인에 해당하는 작업(작성자/참여자 정보 붙이기)과
개수 집계, 페이지 범위 계산을 한 곳에 모아둡니다.
"""
import logging
from typing import Any, Dict, Iterable, Optional, Tuple

def get_document(collection_ref, doc_id: Optional[str]) -> Optional[Dict[str, Any]]:
    """문서 ID로 조회하여 딕셔너리를 반환합니다. 없으면 None."""
    if not doc_id:
        return None
    doc = collection_ref.document(doc_id).get()
    return doc.to_dict() if doc.exists else None

def get_users_by_ids(db, user_ids: Iterable[Optional[str]]) -> Dict[str, Dict[str, Any]]:
    """
    여러 사용자 문서를 한 번에 조회하여 {user_id: user_dict} 로 반환합니다.
    존재하지 않는 사용자는 결과에서 빠집니다.
    """
    users_ref = db.collection('users')
    users = {}
    for user_id in {uid for uid in user_ids if uid}:
        user = get_document(users_ref, user_id)
        if user:
            users[user_id] = user
        else:
            logging.warning(f"참조된 사용자를 찾을 수 없음 (user_id: {user_id})")
    return users

def count_query(query) -> int:
    """
    count() 집계 쿼리로 문서를 모두 가져오지 않고 개수만 계산합니다.
    """
    count_result = query.count().get()
    return int(count_result[0][0].value)

def page_range(page: int, limit: int) -> Tuple[int, int]:
    """1부터 시작하는 페이지 번호를 (offset, limit) 으로 변환합니다."""
    page = max(page, 1)
    limit = max(limit, 1)
    return (page - 1) * limit, limit

# Firestore 는 한 번의 커밋에 500개까지의 쓰기만 허용합니다.
MAX_BATCH_WRITES = 500

class ChunkedBatch:
    """
    WriteBatch 와 같은 방식으로 쓰되, 쓰기가 MAX_BATCH_WRITES 개에 도달할 때마다
    커밋하고 새 배치를 엽니다. 청크 단위로 커밋되므로 전체가 원자적이지는 않습니다.
    """
    def __init__(self, db, max_writes: int = MAX_BATCH_WRITES):
        self.db = db
        self.max_writes = max_writes
        self._batch = db.batch()
        self._pending = 0
        self.written = 0

    def _added(self) -> None:
        self._pending += 1
        self.written += 1
        if self._pending >= self.max_writes:
            self._flush()

    def _flush(self) -> None:
        if self._pending:
            self._batch.commit()
            self._batch = self.db.batch()
            self._pending = 0

    def set(self, ref, data: Dict[str, Any], merge: bool = False) -> None:
        self._batch.set(ref, data, merge=merge)
        self._added()

    def update(self, ref, data: Dict[str, Any]) -> None:
        self._batch.update(ref, data)
        self._added()

    def delete(self, ref) -> None:
        self._batch.delete(ref)
        self._added()

    def commit(self) -> int:
        """남은 쓰기를 커밋하고 전체 쓰기 개수를 반환합니다."""
        self._flush()
        return self.written
