# pawconnect/utils/__init__.py
"""공용 유틸리티"""

from .datetime_utils import DateTimeUtils, EPOCH

__all__ = ['DateTimeUtils', 'EPOCH']
