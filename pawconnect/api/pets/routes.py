# pawconnect/api/pets/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from .schemas import PetCreateSchema, PetUpdateSchema, PetResponseSchema, FollowResponseSchema

pets_bp = Blueprint('pets_bp', __name__)

@pets_bp.route('', methods=['POST'])
@jwt_required()
def create_pet():
    """반려동물 등록 API. 로그인한 사용자가 소유자가 됩니다."""
    user_id = get_jwt_identity()
    pet_service = current_app.services['pets']
    try:
        validated_data = PetCreateSchema().load(request.get_json() or {})
        new_pet = pet_service.create_pet(user_id, validated_data)
        return jsonify(PetResponseSchema().dump(new_pet)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except Exception as e:
        logging.error(f"Pet registration API error: {e}", exc_info=True)
        return jsonify({"error_code": "PET_REGISTRATION_FAILED", "message": "반려동물 등록 중 오류가 발생했습니다."}), 500

@pets_bp.route('/followed', methods=['GET'])
@jwt_required()
def get_followed_pets():
    """현재 사용자가 팔로우하는 반려동물 목록을 조회합니다."""
    user_id = get_jwt_identity()
    follow_service = current_app.services['follows']
    try:
        follows = follow_service.get_followed_pets(user_id)
        return jsonify({"follows": FollowResponseSchema(many=True).dump(follows)}), 200
    except Exception as e:
        logging.error(f"Get followed pets API error (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "팔로우 목록 조회 중 오류가 발생했습니다."}), 500

@pets_bp.route('/<string:pet_id>', methods=['GET'])
@jwt_required(optional=True)
def get_pet(pet_id: str):
    """반려동물 프로필을 조회합니다."""
    pet_service = current_app.services['pets']
    try:
        pet = pet_service.get_pet(pet_id)
        return jsonify(PetResponseSchema().dump(pet)), 200
    except ValueError as e:
        return jsonify({"error_code": "PET_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"Get pet profile API error (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "프로필 조회 중 오류가 발생했습니다."}), 500

@pets_bp.route('/<string:pet_id>', methods=['PATCH'])
@jwt_required()
def update_pet(pet_id: str):
    """[소유자 전용] 반려동물 프로필 정보를 수정합니다 (부분 업데이트)."""
    user_id = get_jwt_identity()
    pet_service = current_app.services['pets']
    try:
        update_data = PetUpdateSchema().load(request.get_json() or {})
        updated_pet = pet_service.update_pet(pet_id, user_id, update_data)
        return jsonify(PetResponseSchema().dump(updated_pet)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "UPDATE_FAILED", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"Update pet profile API error (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "프로필 수정 중 오류가 발생했습니다."}), 500

@pets_bp.route('/<string:pet_id>/image', methods=['POST'])
@jwt_required()
def upload_pet_image(pet_id: str):
    """
    반려동물 이미지를 업로드합니다 (multipart, 'file' 필드).
    ?field=avatar_url 또는 ?field=banner_url 이면 프로필에도 반영합니다.
    """
    user_id = get_jwt_identity()
    pet_service = current_app.services['pets']
    try:
        result = pet_service.upload_pet_image(pet_id, user_id, request.files.get('file'),
                                              target_field=request.args.get('field'))
        if 'pet' in result:
            result['pet'] = PetResponseSchema().dump(result['pet'])
        return jsonify(result), 201
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "UPLOAD_FAILED", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"Pet image upload API error (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "UPLOAD_FAILED", "message": "이미지 업로드 중 서버 오류가 발생했습니다."}), 500

# --- 팔로우 ---
@pets_bp.route('/<string:pet_id>/follow', methods=['POST'])
@jwt_required()
def follow_pet(pet_id: str):
    user_id = get_jwt_identity()
    follow_service = current_app.services['follows']
    try:
        follow = follow_service.follow_pet(user_id, pet_id)
        return jsonify(FollowResponseSchema().dump(follow)), 201
    except ValueError as e:
        return jsonify({"error_code": "FOLLOW_FAILED", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"Follow pet API error (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FOLLOW_FAILED", "message": "팔로우 처리 중 오류가 발생했습니다."}), 500

@pets_bp.route('/<string:pet_id>/follow', methods=['DELETE'])
@jwt_required()
def unfollow_pet(pet_id: str):
    user_id = get_jwt_identity()
    follow_service = current_app.services['follows']
    try:
        follow_service.unfollow_pet(user_id, pet_id)
        return Response(status=204)
    except ValueError as e:
        return jsonify({"error_code": "NOT_FOLLOWING", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"Unfollow pet API error (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "UNFOLLOW_FAILED", "message": "언팔로우 처리 중 오류가 발생했습니다."}), 500

@pets_bp.route('/<string:pet_id>/follow', methods=['GET'])
@jwt_required()
def get_follow_status(pet_id: str):
    user_id = get_jwt_identity()
    follow_service = current_app.services['follows']
    return jsonify({"is_following": follow_service.is_following(user_id, pet_id)}), 200

@pets_bp.route('/<string:pet_id>/followers', methods=['GET'])
@jwt_required(optional=True)
def get_pet_followers(pet_id: str):
    follow_service = current_app.services['follows']
    try:
        follows = follow_service.get_pet_followers(pet_id)
        return jsonify({"follows": FollowResponseSchema(many=True).dump(follows)}), 200
    except Exception as e:
        logging.error(f"Get pet followers API error (pet_id: {pet_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "팔로워 목록 조회 중 오류가 발생했습니다."}), 500
