# pawconnect/utils/test_datetime_utils.py
"""
시간 관리 유틸리티 기능 테스트

사용법: python -m pytest pawconnect/utils/test_datetime_utils.py -v
"""

import pytest
from datetime import datetime, date, timezone, timedelta
from pawconnect.utils.datetime_utils import DateTimeUtils, EPOCH

def test_parse_iso_datetime():
    """ISO 포맷 파싱 테스트"""
    test_cases = [
        "2024-01-15T10:30:00Z",
        "2024-01-15T10:30:00+09:00",
        "2024-01-15T10:30:00.123456Z",
        "2024-01-15T10:30:00"
    ]

    for iso_string in test_cases:
        dt = DateTimeUtils.parse_iso_datetime(iso_string)
        assert isinstance(dt, datetime)
        assert dt.tzinfo == timezone.utc  # UTC로 정규화되어야 함

    assert DateTimeUtils.parse_iso_datetime("2024-01-15T10:30:00+09:00").hour == 1

def test_parse_iso_datetime_invalid():
    """잘못된 입력은 ValueError"""
    for bad in ["", "not-a-date"]:
        with pytest.raises(ValueError):
            DateTimeUtils.parse_iso_datetime(bad)

def test_parse_date_string():
    """날짜 문자열 파싱 테스트"""
    for date_string in ["2024-01-15", "2024/01/15"]:
        assert DateTimeUtils.parse_date_string(date_string) == date(2024, 1, 15)

def test_to_iso_string():
    dt = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    assert DateTimeUtils.to_iso_string(dt) == "2024-01-15T10:30:00Z"
    assert DateTimeUtils.to_iso_string(datetime(2024, 1, 15, 10, 30)) == "2024-01-15T10:30:00Z"

def test_for_firestore():
    """Firestore 변환 테스트"""
    test_data = {
        'birth_date': date(2020, 1, 15),
        'timestamp': datetime(2024, 1, 15, 10, 30),
        'nested': {
            'date_start': date(2023, 12, 25)
        },
        'list_data': [
            {'created_at': datetime(2024, 1, 1)}
        ]
    }

    converted = DateTimeUtils.for_firestore(test_data)

    # date는 datetime으로 변환되어야 함
    assert isinstance(converted['birth_date'], datetime)
    assert isinstance(converted['nested']['date_start'], datetime)
    assert isinstance(converted['list_data'][0]['created_at'], datetime)

    # 모든 datetime은 timezone-aware여야 함
    assert converted['birth_date'].tzinfo == timezone.utc
    assert converted['timestamp'].tzinfo == timezone.utc

def test_sort_key():
    """비어 있는 last_message_at 은 가장 오래된 것으로 정렬"""
    aware = datetime(2024, 5, 1, tzinfo=timezone.utc)
    assert DateTimeUtils.sort_key(None) == EPOCH
    assert DateTimeUtils.sort_key("garbage") == EPOCH
    assert DateTimeUtils.sort_key("2024-05-01T00:00:00Z") == aware
    assert DateTimeUtils.sort_key(aware) == aware

    values = [None, aware, aware - timedelta(days=1)]
    ordered = sorted(values, key=DateTimeUtils.sort_key, reverse=True)
    assert ordered == [aware, aware - timedelta(days=1), None]

def test_calculate_age_months():
    today = DateTimeUtils.today()
    two_years_ago = date(today.year - 2, today.month, 1)
    assert DateTimeUtils.calculate_age_months(two_years_ago) == 24
    assert DateTimeUtils.calculate_age_months(date(today.year + 1, 1, 1)) == 0

if __name__ == "__main__":
    pytest.main([__file__, "-v"])
