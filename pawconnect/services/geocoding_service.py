# pawconnect/services/geocoding_service.py

import logging
import requests
from typing import List, Dict, Any

class GeocodingService:
    """
    서비스 등록 폼의 주소 자동완성을 위해 Nominatim(OpenStreetMap) 검색 API를 호출합니다.
    """
    MIN_QUERY_LENGTH = 3
    RESULT_LIMIT = 5

    def __init__(self, base_url: str, user_agent: str, timeout: float = 5.0):
        self.base_url = base_url
        self.user_agent = user_agent
        self.timeout = timeout

    def search_address(self, query: str, language: str = 'en') -> List[Dict[str, Any]]:
        """
        주소 검색어로 후보 주소 목록을 반환합니다.
        - 3자 미만의 검색어는 호출 없이 빈 목록을 반환합니다.

        :return: [{"label", "value", "lat", "lon"}, ...]
        """
        if not query or len(query) < self.MIN_QUERY_LENGTH:
            return []

        params = {
            "format": "json",
            "addressdetails": 1,
            "limit": self.RESULT_LIMIT,
            "accept-language": language,
            "q": query,
        }
        response = requests.get(
            self.base_url,
            params=params,
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout
        )
        response.raise_for_status()

        results = []
        for item in response.json():
            try:
                results.append({
                    "label": item["display_name"],
                    "value": item["display_name"],
                    "lat": float(item["lat"]),
                    "lon": float(item["lon"]),
                })
            except (KeyError, TypeError, ValueError) as e:
                logging.warning(f"Nominatim 응답 항목 무시: {e}")
        return results
