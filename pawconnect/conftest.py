# pawconnect/conftest.py
"""
테스트 공용 픽스처

Firestore/Storage 를 메모리에서 흉내 내는 최소한의 대역을 제공합니다.
서비스가 실제로 사용하는 API(where/order_by/offset/limit/stream/count,
batch, transaction, on_snapshot)만 구현되어 있습니다.
"""
import copy
from enum import Enum
from typing import Any, Dict, List, Optional

import pytest
from firebase_admin import firestore
from flask_jwt_extended import create_access_token
from google.api_core.exceptions import InvalidArgument, NotFound
from google.cloud.firestore_v1.base_query import FieldFilter, Or, And

from pawconnect import create_app

_MISSING = object()


class ChangeType(Enum):
    ADDED = 1
    REMOVED = 2
    MODIFIED = 3


def _lookup(data: Dict[str, Any], field_path: str):
    value = data
    for part in field_path.split('.'):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _compare(value, op: str, expected) -> bool:
    if op == '==':
        return value is not _MISSING and value == expected
    if op == '!=':
        return value is not _MISSING and value is not None and value != expected
    if op == 'in':
        return value is not _MISSING and value in expected
    if op == 'not-in':
        return value is not _MISSING and value is not None and value not in expected
    if op == 'array_contains':
        return isinstance(value, list) and expected in value
    if op == 'array_contains_any':
        return isinstance(value, list) and any(item in value for item in expected)
    if value is _MISSING or value is None:
        return False
    try:
        if op == '<':
            return value < expected
        if op == '<=':
            return value <= expected
        if op == '>':
            return value > expected
        if op == '>=':
            return value >= expected
    except TypeError:
        return False
    raise ValueError(f"지원하지 않는 연산자: {op}")


def _matches(data: Dict[str, Any], query_filter) -> bool:
    if isinstance(query_filter, Or):
        return any(_matches(data, f) for f in query_filter.filters)
    if isinstance(query_filter, And):
        return all(_matches(data, f) for f in query_filter.filters)
    if isinstance(query_filter, FieldFilter):
        return _compare(_lookup(data, query_filter.field_path), query_filter.op_string, query_filter.value)
    raise TypeError(f"지원하지 않는 필터: {query_filter!r}")


class FakeSnapshot:
    def __init__(self, reference: "FakeDocumentReference", data: Optional[Dict[str, Any]]):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocumentReference:
    def __init__(self, db: "FakeFirestore", collection: str, doc_id: str):
        self._db = db
        self.collection_name = collection
        self.id = doc_id

    def get(self, transaction=None, **kwargs) -> FakeSnapshot:
        return FakeSnapshot(self, self._db._store(self.collection_name).get(self.id))

    def set(self, data: Dict[str, Any], merge: bool = False):
        store = self._db._store(self.collection_name)
        if merge and self.id in store:
            store[self.id].update(copy.deepcopy(data))
        else:
            store[self.id] = copy.deepcopy(data)
        self._db._notify(self.collection_name)

    def create(self, data: Dict[str, Any]):
        if self.id in self._db._store(self.collection_name):
            raise ValueError(f"이미 존재하는 문서: {self.collection_name}/{self.id}")
        self.set(data)

    def update(self, data: Dict[str, Any]):
        store = self._db._store(self.collection_name)
        if self.id not in store:
            raise NotFound(f"No document to update: {self.collection_name}/{self.id}")
        store[self.id].update(copy.deepcopy(data))
        self._db._notify(self.collection_name)

    def delete(self):
        self._db._store(self.collection_name).pop(self.id, None)
        self._db._notify(self.collection_name)


class FakeAggregationResult:
    def __init__(self, value: int):
        self.alias = 'count'
        self.value = value


class FakeCountQuery:
    def __init__(self, query: "FakeQuery"):
        self._query = query

    def get(self, **kwargs):
        return [[FakeAggregationResult(len(self._query._snapshots()))]]


class FakeWatch:
    """on_snapshot 대역. 등록 즉시 현재 문서를 ADDED 로 전달하고, 이후에는 변경분만 전달합니다."""

    def __init__(self, query: "FakeQuery", callback):
        self.query = query
        self.callback = callback
        self.active = True
        self._state: Dict[str, Dict[str, Any]] = {}
        self._delivered = False
        self.refresh()

    def refresh(self):
        if not self.active:
            return
        snapshots = self.query._snapshots()
        new_state = {snap.id: snap.to_dict() for snap in snapshots}
        changes = []
        for snap in snapshots:
            if snap.id not in self._state:
                changes.append(FakeChange(ChangeType.ADDED, snap))
            elif self._state[snap.id] != new_state[snap.id]:
                changes.append(FakeChange(ChangeType.MODIFIED, snap))
        for doc_id, data in self._state.items():
            if doc_id not in new_state:
                ref = FakeDocumentReference(self.query._db, self.query._collection, doc_id)
                changes.append(FakeChange(ChangeType.REMOVED, FakeSnapshot(ref, data)))
        self._state = new_state
        if changes or not self._delivered:
            self._delivered = True
            self.callback(snapshots, changes, None)

    def unsubscribe(self):
        self.active = False
        if self in self.query._db._watches:
            self.query._db._watches.remove(self)


class FakeChange:
    def __init__(self, change_type: ChangeType, document: FakeSnapshot):
        self.type = change_type
        self.document = document


class FakeQuery:
    def __init__(self, db: "FakeFirestore", collection: str, filters=(), orders=(), offset_=0, limit_=None):
        self._db = db
        self._collection = collection
        self._filters = tuple(filters)
        self._orders = tuple(orders)
        self._offset = offset_
        self._limit = limit_

    def _copy(self, **overrides) -> "FakeQuery":
        params = dict(filters=self._filters, orders=self._orders, offset_=self._offset, limit_=self._limit)
        params.update(overrides)
        return FakeQuery(self._db, self._collection, **params)

    def where(self, field_path=None, op_string=None, value=None, *, filter=None):
        query_filter = filter if filter is not None else FieldFilter(field_path, op_string, value)
        return self._copy(filters=self._filters + (query_filter,))

    def order_by(self, field_path: str, direction: str = 'ASCENDING'):
        return self._copy(orders=self._orders + ((field_path, direction),))

    def offset(self, num: int):
        return self._copy(offset_=num)

    def limit(self, count: int):
        return self._copy(limit_=count)

    def _snapshots(self) -> List[FakeSnapshot]:
        store = self._db._store(self._collection)
        rows = [(doc_id, data) for doc_id, data in sorted(store.items())
                if all(_matches(data, f) for f in self._filters)]
        for field_path, direction in reversed(self._orders):
            rows = [row for row in rows if _lookup(row[1], field_path) is not _MISSING]
            rows.sort(key=lambda row: _lookup(row[1], field_path), reverse=(direction == 'DESCENDING'))
        rows = rows[self._offset:]
        if self._limit is not None:
            rows = rows[:self._limit]
        return [FakeSnapshot(FakeDocumentReference(self._db, self._collection, doc_id), data)
                for doc_id, data in rows]

    def stream(self, transaction=None):
        return iter(self._snapshots())

    def get(self, transaction=None):
        return self._snapshots()

    def count(self, alias=None):
        return FakeCountQuery(self)

    def on_snapshot(self, callback) -> FakeWatch:
        watch = FakeWatch(self, callback)
        self._db._watches.append(watch)
        return watch


class FakeCollection(FakeQuery):
    def __init__(self, db: "FakeFirestore", name: str):
        super().__init__(db, name)
        self.id = name

    def document(self, doc_id: Optional[str] = None) -> FakeDocumentReference:
        return FakeDocumentReference(self._db, self._collection, doc_id or self._db._next_id())


class FakeWriteBatch:
    MAX_WRITES = 500

    def __init__(self):
        self._ops = []
        self.commits = 0

    def set(self, ref, data, merge=False):
        self._ops.append(lambda: ref.set(data, merge=merge))

    def update(self, ref, data):
        self._ops.append(lambda: ref.update(data))

    def delete(self, ref):
        self._ops.append(ref.delete)

    def commit(self):
        if len(self._ops) > self.MAX_WRITES:
            raise InvalidArgument(f"maximum {self.MAX_WRITES} writes allowed per request")
        ops, self._ops = self._ops, []
        self.commits += 1
        for op in ops:
            op()


class FakeTransaction(FakeWriteBatch):
    """transactional 데코레이터를 대체한 상태에서 쓰기를 즉시 적용합니다."""

    def get(self, ref_or_query):
        if isinstance(ref_or_query, FakeDocumentReference):
            return iter([ref_or_query.get(transaction=self)])
        return iter(ref_or_query.stream())

    def set(self, ref, data, merge=False):
        ref.set(data, merge=merge)

    def update(self, ref, data):
        ref.update(data)

    def delete(self, ref):
        ref.delete()


class FakeFirestore:
    def __init__(self):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._watches: List[FakeWatch] = []
        self._counter = 0

    def _next_id(self) -> str:
        self._counter += 1
        return f"auto-{self._counter:06d}"

    def _store(self, collection: str) -> Dict[str, Dict[str, Any]]:
        return self._data.setdefault(collection, {})

    def _notify(self, collection: str):
        for watch in list(self._watches):
            if watch.query._collection == collection:
                watch.refresh()

    def collection(self, name: str) -> FakeCollection:
        return FakeCollection(self, name)

    def batch(self) -> FakeWriteBatch:
        return FakeWriteBatch()

    def transaction(self) -> FakeTransaction:
        return FakeTransaction()

    # 테스트 편의 메서드
    def docs(self, collection: str) -> Dict[str, Dict[str, Any]]:
        return copy.deepcopy(self._store(collection))


class FakeBlob:
    def __init__(self, bucket: "FakeBucket", name: str):
        self.bucket = bucket
        self.name = name
        self.cache_control = None
        self.content_type = None
        self.public = False

    def upload_from_string(self, data, content_type=None):
        self.content_type = content_type
        self.bucket.files[self.name] = data
        self.bucket.blobs[self.name] = self

    def make_public(self):
        self.public = True

    def exists(self) -> bool:
        return self.name in self.bucket.files

    def delete(self):
        self.bucket.files.pop(self.name, None)
        self.bucket.blobs.pop(self.name, None)

    @property
    def public_url(self) -> str:
        return f"https://storage.googleapis.com/{self.bucket.name}/{self.name}"


class FakeBucket:
    def __init__(self, name: str):
        self.name = name
        self.files: Dict[str, bytes] = {}
        self.blobs: Dict[str, FakeBlob] = {}

    def blob(self, name: str) -> FakeBlob:
        return self.blobs.get(name) or FakeBlob(self, name)


@pytest.fixture(autouse=True)
def immediate_transactions(monkeypatch):
    """firestore.transactional 재시도 래퍼를 제거하여 대역 트랜잭션을 그대로 사용합니다."""
    monkeypatch.setattr(firestore, 'transactional', lambda func: func)


@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def bucket():
    return FakeBucket('pawconnect-test.appspot.com')


@pytest.fixture
def app(db, bucket):
    return create_app('testing', db=db, bucket=bucket)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(db):
    def _make_user(user_id: str, username: Optional[str] = None, **extra) -> Dict[str, Any]:
        from pawconnect.utils.datetime_utils import DateTimeUtils
        user = {
            'user_id': user_id,
            'email': f"{user_id}@pawconnect.test",
            'username': username or user_id,
            'avatar_url': None,
            'bio': None,
            'ville': None,
            'code_postal': None,
            'pays': None,
            'created_at': DateTimeUtils.now(),
        }
        user.update(extra)
        db.collection('users').document(user_id).set(user)
        return user
    return _make_user


@pytest.fixture
def auth_headers(app):
    def _auth_headers(user_id: str) -> Dict[str, str]:
        with app.app_context():
            token = create_access_token(identity=user_id)
        return {'Authorization': f'Bearer {token}'}
    return _auth_headers
