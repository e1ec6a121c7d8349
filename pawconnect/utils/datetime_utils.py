# pawconnect/utils/datetime_utils.py
"""
PawConnect 시간/날짜 유틸리티

Firestore 문서의 시각 값은 모두 UTC aware datetime 입니다.
요청으로 들어온 ISO 문자열(이벤트 일정, 목록 필터)과 반려동물 생년월일,
비어 있을 수 있는 정렬 키(대화의 last_message_at)를 이곳에서 정규화합니다.
"""

import logging
from datetime import datetime, date, timezone, time
from typing import Union, Any
from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)

# 마지막 메시지가 없는 대화를 목록 맨 뒤로 보내기 위한 정렬 기준값
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

def _as_utc(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt.astimezone(timezone.utc)

class DateTimeUtils:
    """UTC 기준 시각 처리 모음"""

    @staticmethod
    def now() -> datetime:
        return datetime.now(timezone.utc)

    @staticmethod
    def today() -> date:
        return DateTimeUtils.now().date()

    @staticmethod
    def parse_iso_datetime(value: str) -> datetime:
        """
        ISO 8601 문자열을 UTC datetime 으로 변환합니다.
        'Z' 접미사, 오프셋(+09:00), 오프셋 없는 값(UTC 로 간주)을 모두 받습니다.
        """
        if not value:
            raise ValueError("빈 문자열은 날짜로 변환할 수 없습니다.")
        try:
            parsed = dateutil_parser.isoparse(value)
        except (ValueError, OverflowError) as e:
            logger.warning(f"ISO 날짜 파싱 실패: {value} ({e})")
            raise ValueError(f"잘못된 ISO 날짜 형식입니다: {value}")
        return _as_utc(parsed)

    @staticmethod
    def parse_date_string(value: str) -> date:
        """'2022-03-01', '2022/03/01' 같은 날짜 문자열을 date 로 변환합니다."""
        if not value:
            raise ValueError("빈 문자열은 날짜로 변환할 수 없습니다.")
        try:
            return dateutil_parser.parse(value).date()
        except (ValueError, OverflowError) as e:
            logger.warning(f"날짜 파싱 실패: {value} ({e})")
            raise ValueError(f"잘못된 날짜 형식입니다: {value}")

    @staticmethod
    def to_iso_string(dt: datetime) -> str:
        """UTC 로 맞춘 뒤 'Z' 접미사 ISO 문자열로 바꿉니다."""
        return _as_utc(dt).isoformat().replace('+00:00', 'Z')

    @staticmethod
    def for_firestore(obj: Any) -> Any:
        """
        저장 직전 값 정리.
        date 는 그날 00:00 UTC 로, naive datetime 은 UTC 로 바꾸며 dict/list 는 재귀적으로 처리합니다.
        """
        if isinstance(obj, datetime):
            return _as_utc(obj)
        if isinstance(obj, date):
            return datetime.combine(obj, time.min, tzinfo=timezone.utc)
        if isinstance(obj, dict):
            return {key: DateTimeUtils.for_firestore(value) for key, value in obj.items()}
        if isinstance(obj, list):
            return [DateTimeUtils.for_firestore(item) for item in obj]
        return obj

    @staticmethod
    def sort_key(value: Union[datetime, str, None]) -> datetime:
        """비어 있거나 읽을 수 없는 시각은 EPOCH 로 취급합니다."""
        if value is None:
            return EPOCH
        if isinstance(value, str):
            try:
                return DateTimeUtils.parse_iso_datetime(value)
            except ValueError:
                return EPOCH
        return _as_utc(value)

    @staticmethod
    def calculate_age_months(birth_date: Union[date, datetime, str]) -> int:
        """생년월일로부터 지난 개월 수. 미래 날짜는 0 입니다."""
        if isinstance(birth_date, str):
            birth_date = DateTimeUtils.parse_date_string(birth_date)
        elif isinstance(birth_date, datetime):
            birth_date = birth_date.date()

        today = DateTimeUtils.today()
        months = (today.year - birth_date.year) * 12 + (today.month - birth_date.month)
        return max(0, months)
