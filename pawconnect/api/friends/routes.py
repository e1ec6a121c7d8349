# pawconnect/api/friends/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from .schemas import FriendRequestSchema, FriendshipResponseSchema

friends_bp = Blueprint('friends_bp', __name__)

@friends_bp.route('', methods=['GET'])
@jwt_required()
def get_friends():
    """수락된 친구 목록을 조회합니다."""
    user_id = get_jwt_identity()
    friend_service = current_app.services['friends']
    try:
        friends = friend_service.get_friends(user_id)
        return jsonify({"friends": FriendshipResponseSchema(many=True).dump(friends)}), 200
    except Exception as e:
        logging.error(f"친구 목록 조회 오류 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "친구 목록 조회 중 오류가 발생했습니다."}), 500

@friends_bp.route('/requests', methods=['GET'])
@jwt_required()
def get_friend_requests():
    """받은 친구 요청 중 대기 중인 목록을 조회합니다."""
    user_id = get_jwt_identity()
    friend_service = current_app.services['friends']
    try:
        requests_ = friend_service.get_pending_requests(user_id)
        return jsonify({"requests": FriendshipResponseSchema(many=True).dump(requests_)}), 200
    except Exception as e:
        logging.error(f"친구 요청 목록 조회 오류 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "친구 요청 조회 중 오류가 발생했습니다."}), 500

@friends_bp.route('/requests', methods=['POST'])
@jwt_required()
def send_friend_request():
    user_id = get_jwt_identity()
    friend_service = current_app.services['friends']
    try:
        data = FriendRequestSchema().load(request.get_json() or {})
        friendship = friend_service.send_request(user_id, data['friend_id'])
        return jsonify(FriendshipResponseSchema().dump(friendship)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except LookupError as e:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": str(e)}), 404
    except ValueError as e:
        return jsonify({"error_code": "REQUEST_NOT_ALLOWED", "message": str(e)}), 409
    except Exception as e:
        logging.error(f"친구 요청 오류 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "REQUEST_FAILED", "message": "친구 요청 중 오류가 발생했습니다."}), 500

@friends_bp.route('/requests/<string:friendship_id>/accept', methods=['POST'])
@jwt_required()
def accept_friend_request(friendship_id: str):
    user_id = get_jwt_identity()
    friend_service = current_app.services['friends']
    try:
        friendship = friend_service.accept_request(friendship_id, user_id)
        return jsonify(FriendshipResponseSchema().dump(friendship)), 200
    except LookupError as e:
        return jsonify({"error_code": "REQUEST_NOT_FOUND", "message": str(e)}), 404
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "INVALID_STATE", "message": str(e)}), 409
    except Exception as e:
        logging.error(f"친구 요청 수락 오류 (friendship_id: {friendship_id}): {e}", exc_info=True)
        return jsonify({"error_code": "ACCEPT_FAILED", "message": "친구 요청 수락 중 오류가 발생했습니다."}), 500

@friends_bp.route('/requests/<string:friendship_id>', methods=['DELETE'])
@jwt_required()
def reject_friend_request(friendship_id: str):
    user_id = get_jwt_identity()
    friend_service = current_app.services['friends']
    try:
        friend_service.reject_request(friendship_id, user_id)
        return Response(status=204)
    except LookupError as e:
        return jsonify({"error_code": "REQUEST_NOT_FOUND", "message": str(e)}), 404
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except Exception as e:
        logging.error(f"친구 요청 거절 오류 (friendship_id: {friendship_id}): {e}", exc_info=True)
        return jsonify({"error_code": "REJECT_FAILED", "message": "친구 요청 거절 중 오류가 발생했습니다."}), 500

@friends_bp.route('/<string:friend_id>', methods=['DELETE'])
@jwt_required()
def remove_friend(friend_id: str):
    user_id = get_jwt_identity()
    friend_service = current_app.services['friends']
    try:
        if not friend_service.remove_friend(user_id, friend_id):
            return jsonify({"error_code": "NOT_FRIENDS", "message": "친구 관계가 없습니다."}), 404
        return Response(status=204)
    except Exception as e:
        logging.error(f"친구 삭제 오류 ({user_id} - {friend_id}): {e}", exc_info=True)
        return jsonify({"error_code": "REMOVE_FAILED", "message": "친구 삭제 중 오류가 발생했습니다."}), 500

@friends_bp.route('/status/<string:other_id>', methods=['GET'])
@jwt_required()
def get_friendship_status(other_id: str):
    """
    상대방과의 관계 상태를 조회합니다.
    관계가 없으면 status 는 null 입니다.
    """
    user_id = get_jwt_identity()
    friend_service = current_app.services['friends']
    friendship = friend_service.get_friendship(user_id, other_id)
    if not friendship:
        return jsonify({"status": None, "friendship": None}), 200
    return jsonify({"status": friendship.get('status'),
                    "friendship": FriendshipResponseSchema().dump(friendship)}), 200
