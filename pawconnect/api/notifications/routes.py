# pawconnect/api/notifications/routes.py
import logging
from flask import Blueprint, jsonify, Response, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity

from .schemas import NotificationResponseSchema

notifications_bp = Blueprint('notifications_bp', __name__)

@notifications_bp.route('', methods=['GET'])
@jwt_required()
def get_notifications():
    """내 알림 목록(최신순)을 보낸 사람과 게시글 정보와 함께 조회합니다."""
    user_id = get_jwt_identity()
    notification_service = current_app.services['notifications']
    try:
        notifications = notification_service.get_user_notifications(user_id)
        return jsonify({"notifications": NotificationResponseSchema(many=True).dump(notifications)}), 200
    except Exception as e:
        logging.error(f"알림 목록 조회 오류 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "알림을 불러오지 못했습니다."}), 500

@notifications_bp.route('/unread-count', methods=['GET'])
@jwt_required()
def get_unread_count():
    user_id = get_jwt_identity()
    notification_service = current_app.services['notifications']
    return jsonify({"unread_count": notification_service.get_unread_count(user_id)}), 200

@notifications_bp.route('/<string:notification_id>/read', methods=['POST'])
@jwt_required()
def mark_as_read(notification_id: str):
    user_id = get_jwt_identity()
    notification_service = current_app.services['notifications']
    try:
        notification_service.mark_as_read(notification_id, user_id)
        return Response(status=204)
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "NOTIFICATION_NOT_FOUND", "message": str(e)}), 404

@notifications_bp.route('/read-all', methods=['POST'])
@jwt_required()
def mark_all_as_read():
    user_id = get_jwt_identity()
    notification_service = current_app.services['notifications']
    updated = notification_service.mark_all_as_read(user_id)
    return jsonify({"updated_count": updated}), 200

@notifications_bp.route('/<string:notification_id>', methods=['DELETE'])
@jwt_required()
def delete_notification(notification_id: str):
    user_id = get_jwt_identity()
    notification_service = current_app.services['notifications']
    try:
        notification_service.delete_notification(notification_id, user_id)
        return Response(status=204)
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "NOTIFICATION_NOT_FOUND", "message": str(e)}), 404
