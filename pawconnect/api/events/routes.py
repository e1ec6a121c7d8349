# pawconnect/api/events/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from pawconnect.utils.datetime_utils import DateTimeUtils
from pawconnect.api.friends.schemas import FriendshipResponseSchema
from pawconnect.api.messages.schemas import MessageResponseSchema
from .services import EventFullError
from .schemas import (
    EventTypeSchema,
    EventCreateSchema,
    EventUpdateSchema,
    EventResponseSchema,
    EventJoinSchema,
    ParticipationUpdateSchema,
    ParticipantResponseSchema,
    EventInviteSchema
)

events_bp = Blueprint('events_bp', __name__)

@events_bp.route('/types', methods=['GET'])
def get_event_types():
    """이벤트 유형 목록(이름순)"""
    event_service = current_app.services['events']
    return jsonify({"event_types": EventTypeSchema(many=True).dump(event_service.get_event_types())}), 200

@events_bp.route('', methods=['GET'])
@jwt_required(optional=True)
def get_events():
    """
    예정된 공개 이벤트 목록을 조회합니다.
    - Query Params: type, location, date_from, date_to (ISO 8601), limit, offset
    """
    event_service = current_app.services['events']
    try:
        date_from = request.args.get('date_from')
        date_to = request.args.get('date_to')
        events = event_service.get_events(
            event_type=request.args.get('type'),
            location=request.args.get('location'),
            date_from=DateTimeUtils.parse_iso_datetime(date_from) if date_from else None,
            date_to=DateTimeUtils.parse_iso_datetime(date_to) if date_to else None,
            limit=request.args.get('limit', None, type=int),
            offset=request.args.get('offset', 0, type=int)
        )
        return jsonify({"events": EventResponseSchema(many=True).dump(events)}), 200
    except ValueError as e:
        return jsonify({"error_code": "INVALID_FILTER", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"이벤트 목록 조회 오류: {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "이벤트 목록을 불러오지 못했습니다."}), 500

@events_bp.route('', methods=['POST'])
@jwt_required()
def create_event():
    user_id = get_jwt_identity()
    event_service = current_app.services['events']
    try:
        data = EventCreateSchema().load(request.get_json() or {})
        event = event_service.create_event(user_id, data)
        return jsonify(EventResponseSchema().dump(event)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "INVALID_EVENT_TYPE", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"이벤트 생성 오류 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "EVENT_CREATION_FAILED", "message": "이벤트 생성 중 오류가 발생했습니다."}), 500

@events_bp.route('/mine', methods=['GET'])
@jwt_required()
def get_my_events():
    """
    내 이벤트 목록
    - Query Params: type=organized | participating (기본)
    """
    user_id = get_jwt_identity()
    event_service = current_app.services['events']
    kind = request.args.get('type', 'participating')
    if kind not in ('organized', 'participating'):
        return jsonify({"error_code": "INVALID_FILTER", "message": "type 은 organized 또는 participating 이어야 합니다."}), 400
    events = event_service.get_user_events(user_id, kind)
    return jsonify({"events": EventResponseSchema(many=True).dump(events)}), 200

@events_bp.route('/images', methods=['POST'])
@jwt_required()
def upload_event_image():
    user_id = get_jwt_identity()
    event_service = current_app.services['events']
    try:
        url = event_service.upload_event_image(user_id, request.files.get('file'))
        return jsonify({"url": url}), 201
    except ValueError as e:
        return jsonify({"error_code": "INVALID_IMAGE", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"이벤트 이미지 업로드 오류 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "UPLOAD_FAILED", "message": "이미지 업로드 중 서버 오류가 발생했습니다."}), 500

@events_bp.route('/<string:event_id>', methods=['GET'])
@jwt_required(optional=True)
def get_event(event_id: str):
    event_service = current_app.services['events']
    try:
        event = event_service.get_event(event_id, get_jwt_identity())
        return jsonify(EventResponseSchema().dump(event)), 200
    except ValueError as e:
        return jsonify({"error_code": "EVENT_NOT_FOUND", "message": str(e)}), 404

@events_bp.route('/<string:event_id>', methods=['PATCH'])
@jwt_required()
def update_event(event_id: str):
    user_id = get_jwt_identity()
    event_service = current_app.services['events']
    try:
        data = EventUpdateSchema().load(request.get_json() or {})
        event = event_service.update_event(event_id, user_id, data)
        return jsonify(EventResponseSchema().dump(event)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "UPDATE_FAILED", "message": str(e)}), 400

@events_bp.route('/<string:event_id>', methods=['DELETE'])
@jwt_required()
def delete_event(event_id: str):
    user_id = get_jwt_identity()
    event_service = current_app.services['events']
    try:
        event_service.delete_event(event_id, user_id)
        return Response(status=204)
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "EVENT_NOT_FOUND", "message": str(e)}), 404

# --- 참가 ---
@events_bp.route('/<string:event_id>/participants', methods=['GET'])
@jwt_required(optional=True)
def get_participants(event_id: str):
    event_service = current_app.services['events']
    participants = event_service.get_participants(event_id)
    return jsonify({"participants": ParticipantResponseSchema(many=True).dump(participants)}), 200

@events_bp.route('/<string:event_id>/join', methods=['POST'])
@jwt_required()
def join_event(event_id: str):
    """이벤트에 참가합니다. 정원이 찼으면 409 를 반환합니다."""
    user_id = get_jwt_identity()
    event_service = current_app.services['events']
    try:
        data = EventJoinSchema().load(request.get_json(silent=True) or {})
        participation = event_service.join_event(event_id, user_id, data.get('notes'))
        return jsonify(ParticipantResponseSchema().dump(participation)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "JOIN_NOT_ALLOWED", "message": str(e)}), 409
    except Exception as e:
        logging.error(f"이벤트 참가 오류 (event_id: {event_id}): {e}", exc_info=True)
        return jsonify({"error_code": "JOIN_FAILED", "message": "이벤트 참가 중 오류가 발생했습니다."}), 500

@events_bp.route('/<string:event_id>/join', methods=['DELETE'])
@jwt_required()
def leave_event(event_id: str):
    user_id = get_jwt_identity()
    event_service = current_app.services['events']
    try:
        event_service.leave_event(event_id, user_id)
        return Response(status=204)
    except ValueError as e:
        return jsonify({"error_code": "NOT_PARTICIPATING", "message": str(e)}), 404

@events_bp.route('/participations/<string:participation_id>', methods=['PATCH'])
@jwt_required()
def update_participation(participation_id: str):
    user_id = get_jwt_identity()
    event_service = current_app.services['events']
    try:
        data = ParticipationUpdateSchema().load(request.get_json() or {})
        participation = event_service.update_participation(participation_id, user_id, data)
        return jsonify(ParticipantResponseSchema().dump(participation)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except EventFullError as e:
        return jsonify({"error_code": "EVENT_FULL", "message": str(e)}), 409
    except ValueError as e:
        return jsonify({"error_code": "PARTICIPATION_NOT_FOUND", "message": str(e)}), 404

# --- 초대 ---
@events_bp.route('/<string:event_id>/invitable-friends', methods=['GET'])
@jwt_required()
def get_invitable_friends(event_id: str):
    """아직 참가하지 않은 친구 목록"""
    user_id = get_jwt_identity()
    event_service = current_app.services['events']
    friends = event_service.get_friends_not_participating(user_id, event_id)
    return jsonify({"friends": FriendshipResponseSchema(many=True).dump(friends)}), 200

@events_bp.route('/<string:event_id>/invite', methods=['POST'])
@jwt_required()
def invite_friend(event_id: str):
    user_id = get_jwt_identity()
    event_service = current_app.services['events']
    try:
        data = EventInviteSchema().load(request.get_json() or {})
        result = event_service.invite_friend(event_id, user_id, data['friend_id'])
        return jsonify({"conversation_id": result['conversation_id'],
                        "message": MessageResponseSchema().dump(result['message'])}), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "INVITE_FAILED", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"이벤트 초대 오류 (event_id: {event_id}): {e}", exc_info=True)
        return jsonify({"error_code": "INVITE_FAILED", "message": "초대 메시지 전송 중 오류가 발생했습니다."}), 500
