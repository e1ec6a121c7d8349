# pawconnect/api/users/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from pawconnect.api.users.schemas import UserPublicResponseSchema, UserPrivateResponseSchema, UserUpdateSchema
from pawconnect.api.pets.schemas import PetResponseSchema
from pawconnect.api.auth.services import auth_service

users_bp = Blueprint('users_bp', __name__)

@users_bp.route('/<string:user_id>', methods=['GET'])
@jwt_required(optional=True)
def get_user_profile(user_id: str):
    """특정 사용자의 공개 프로필 정보(반려동물 수 포함)를 조회합니다."""
    user_service = current_app.services['users']
    try:
        user_profile = user_service.get_user_profile(user_id)
        if not user_profile:
            return jsonify({"error_code": "USER_NOT_FOUND", "message": "사용자를 찾을 수 없습니다."}), 404
        return jsonify(UserPublicResponseSchema().dump(user_profile)), 200
    except Exception as e:
        logging.error(f"사용자 프로필 조회 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "PROFILE_FETCH_FAILED", "message": "프로필 조회 중 오류가 발생했습니다."}), 500


@users_bp.route('/<string:user_id>/pets', methods=['GET'])
@jwt_required(optional=True)
def get_user_pets(user_id: str):
    """특정 사용자가 등록한 반려동물 목록을 최신순으로 조회합니다."""
    pet_service = current_app.services['pets']
    try:
        pets = pet_service.get_user_pets(user_id)
        return jsonify({"pets": PetResponseSchema(many=True).dump(pets)}), 200
    except Exception as e:
        logging.error(f"반려동물 목록 조회 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "반려동물 목록 조회 중 오류가 발생했습니다."}), 500


@users_bp.route('/me', methods=['PATCH'])
@jwt_required()
def update_my_profile():
    """현재 로그인된 사용자의 프로필을 수정합니다."""
    user_service = current_app.services['users']
    user_id = get_jwt_identity()
    try:
        update_data = UserUpdateSchema().load(request.get_json() or {})
        updated_user = user_service.update_user_profile(user_id, update_data)
        return jsonify(UserPrivateResponseSchema().dump(updated_user)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "UPDATE_FAILED", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"프로필 수정 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "프로필 수정 중 서버 오류가 발생했습니다."}), 500


@users_bp.route('/me/avatar', methods=['POST'])
@jwt_required()
def upload_my_avatar():
    """
    아바타 이미지를 업로드(multipart, 'file' 필드)하고 프로필에 반영합니다.
    """
    user_service = current_app.services['users']
    user_id = get_jwt_identity()
    try:
        updated_user = user_service.upload_user_avatar(user_id, request.files.get('file'))
        return jsonify(UserPrivateResponseSchema().dump(updated_user)), 200
    except ValueError as e:
        return jsonify({"error_code": "INVALID_IMAGE", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"아바타 업로드 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "UPLOAD_FAILED", "message": "이미지 업로드 중 서버 오류가 발생했습니다."}), 500


@users_bp.route('/me', methods=['DELETE'])
@jwt_required()
def delete_my_account():
    """
    현재 로그인된 사용자 본인의 계정을 영구적으로 삭제합니다.
    """
    user_id = get_jwt_identity()
    try:
        auth_service.delete_user_account(user_id)
        return Response(status=204)
    except Exception as e:
        logging.error(f"회원 탈퇴 처리 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "ACCOUNT_DELETION_FAILED", "message": "회원 탈퇴 처리 중 서버 오류가 발생했습니다."}), 500
