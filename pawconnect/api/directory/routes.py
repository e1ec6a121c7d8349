# pawconnect/api/directory/routes.py
import logging
import requests
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from pawconnect.models.service_listing import SERVICE_CATEGORIES
from .schemas import ServiceCreateSchema, ServiceResponseSchema

directory_bp = Blueprint('directory_bp', __name__)

@directory_bp.route('', methods=['GET'])
def list_services():
    """
    서비스 목록
    - Query Params: category, city (부분 일치)
    """
    directory_service = current_app.services['directory']
    services = directory_service.list_services(request.args.get('category'), request.args.get('city'))
    return jsonify({"services": ServiceResponseSchema(many=True).dump(services)}), 200

@directory_bp.route('/categories', methods=['GET'])
def list_categories():
    return jsonify({"categories": SERVICE_CATEGORIES}), 200

@directory_bp.route('/address-search', methods=['GET'])
@jwt_required()
def search_address():
    """주소 자동완성. 3자 미만 검색어는 빈 목록을 반환합니다."""
    directory_service = current_app.services['directory']
    query = request.args.get('q', '')
    try:
        results = directory_service.search_address(query, request.args.get('lang', 'en'))
        return jsonify({"results": results}), 200
    except requests.RequestException as e:
        logging.error(f"주소 검색 오류 (q: {query}): {e}", exc_info=True)
        return jsonify({"error_code": "GEOCODING_FAILED", "message": "주소 검색 중 오류가 발생했습니다."}), 502

@directory_bp.route('/<string:service_id>', methods=['GET'])
def get_service(service_id: str):
    directory_service = current_app.services['directory']
    try:
        return jsonify(ServiceResponseSchema().dump(directory_service.get_service(service_id))), 200
    except ValueError as e:
        return jsonify({"error_code": "SERVICE_NOT_FOUND", "message": str(e)}), 404

@directory_bp.route('', methods=['POST'])
@jwt_required()
def create_service():
    user_id = get_jwt_identity()
    directory_service = current_app.services['directory']
    try:
        data = ServiceCreateSchema().load(request.get_json() or {})
        service = directory_service.create_service(user_id, data)
        return jsonify(ServiceResponseSchema().dump(service)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except Exception as e:
        logging.error(f"서비스 등록 오류 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "SERVICE_CREATION_FAILED", "message": "서비스 등록 중 오류가 발생했습니다."}), 500
