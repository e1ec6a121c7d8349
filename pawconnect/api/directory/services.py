# pawconnect/api/directory/services.py
import logging
import uuid
from dataclasses import asdict
from typing import Optional, Dict, Any, List
from firebase_admin import firestore

from pawconnect.models.service_listing import ServiceListing
from pawconnect.services.firestore_service import get_document
from pawconnect.services.geocoding_service import GeocodingService

class DirectoryService:
    """
    지역 반려동물 서비스 디렉터리.
    카테고리/도시 필터는 대소문자 구분 없는 부분 일치입니다.
    """
    def __init__(self, geocoding_service: GeocodingService, db=None):
        self.db = db or firestore.client()
        self.services_ref = self.db.collection('services')
        self.geocoding_service = geocoding_service

    def list_services(self, category: Optional[str] = None, city: Optional[str] = None) -> List[Dict[str, Any]]:
        docs = self.services_ref.order_by('created_at', direction=firestore.Query.DESCENDING).stream()
        services = [doc.to_dict() for doc in docs]
        if category:
            services = [s for s in services if category.lower() in (s.get('category') or '').lower()]
        if city:
            services = [s for s in services if city.lower() in (s.get('city') or '').lower()]
        return services

    def get_service(self, service_id: str) -> Dict[str, Any]:
        service = get_document(self.services_ref, service_id)
        if not service:
            raise ValueError("서비스를 찾을 수 없습니다.")
        return service

    def create_service(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        listing = ServiceListing(
            service_id=str(uuid.uuid4()),
            user_id=user_id,
            title=data['title'],
            category=data['category'].lower(),
            description=data.get('description'),
            city=data['city'],
            latitude=data.get('latitude'),
            longitude=data.get('longitude'),
            contact_email=data.get('contact_email'),
            phone_number=data.get('phone_number')
        )
        listing_data = asdict(listing)
        self.services_ref.document(listing.service_id).set(listing_data)
        logging.info(f"서비스 등록 완료 (service_id: {listing.service_id}, category: {listing.category})")
        return listing_data

    def search_address(self, query: str, language: str = 'en') -> List[Dict[str, Any]]:
        return self.geocoding_service.search_address(query, language)
