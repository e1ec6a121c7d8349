# pawconnect/api/messages/routes.py
import json
import queue
import logging
from flask import Blueprint, request, jsonify, Response, current_app, stream_with_context
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from pawconnect.models.message import MessageType
from .controllers import ConversationListController, ChatWindowController
from .schemas import (
    ConversationCreateSchema,
    ConversationResponseSchema,
    MessageSendSchema,
    MessageResponseSchema,
    MessageReportSchema,
    MessageReportResponseSchema
)

messages_bp = Blueprint('messages_bp', __name__)

# SSE 연결 유지를 위한 keep-alive 주기(초)
SSE_KEEPALIVE_SECONDS = 15

# --- 대화 ---
@messages_bp.route('/conversations', methods=['GET'])
@jwt_required()
def get_conversations():
    """읽지 않은 메시지 수가 포함된 대화 목록을 조회합니다."""
    user_id = get_jwt_identity()
    message_service = current_app.services['messages']
    try:
        conversations = message_service.get_user_conversations_with_unread(user_id)
        return jsonify({"conversations": ConversationResponseSchema(many=True).dump(conversations)}), 200
    except Exception as e:
        logging.error(f"대화 목록 조회 오류 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "대화 목록을 불러오지 못했습니다."}), 500

@messages_bp.route('/conversations', methods=['POST'])
@jwt_required()
def open_conversation():
    """상대방과의 대화를 가져오거나 새로 만듭니다."""
    user_id = get_jwt_identity()
    message_service = current_app.services['messages']
    try:
        data = ConversationCreateSchema().load(request.get_json() or {})
        conversation_id = message_service.get_or_create_conversation(user_id, data['user_id'])
        conversation = message_service.get_conversation(conversation_id, user_id)
        return jsonify({"conversation_id": conversation_id,
                        "conversation": ConversationResponseSchema().dump(conversation)}), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "INVALID_PARTICIPANTS", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"대화 생성 오류 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "CONVERSATION_FAILED", "message": "대화를 여는 중 오류가 발생했습니다."}), 500

@messages_bp.route('/conversations/<string:conversation_id>', methods=['GET'])
@jwt_required()
def get_conversation(conversation_id: str):
    user_id = get_jwt_identity()
    message_service = current_app.services['messages']
    try:
        conversation = message_service.get_conversation(conversation_id, user_id)
        conversation['unread_count'] = message_service.count_unread(conversation_id, user_id)
        return jsonify(ConversationResponseSchema().dump(conversation)), 200
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "CONVERSATION_NOT_FOUND", "message": str(e)}), 404

@messages_bp.route('/conversations/<string:conversation_id>/messages', methods=['GET'])
@jwt_required()
def get_messages(conversation_id: str):
    """
    메시지 기록을 페이지 단위로 조회합니다. 각 페이지는 오래된 순으로 정렬됩니다.
    - Query Params: page (기본 1), limit (기본 MESSAGE_PAGE_SIZE)
    """
    user_id = get_jwt_identity()
    message_service = current_app.services['messages']
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', current_app.config.get('MESSAGE_PAGE_SIZE', 50), type=int)
    try:
        message_service.get_conversation(conversation_id, user_id)
        messages = message_service.get_conversation_messages(conversation_id, page, limit)
        return jsonify({"messages": MessageResponseSchema(many=True).dump(messages),
                        "page": page, "has_more": len(messages) == limit}), 200
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "CONVERSATION_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"메시지 조회 오류 (conversation_id: {conversation_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "메시지를 불러오지 못했습니다."}), 500

@messages_bp.route('/conversations/<string:conversation_id>/messages', methods=['POST'])
@jwt_required()
def send_message(conversation_id: str):
    """텍스트, 이미지, 게시글 공유 메시지를 보냅니다."""
    user_id = get_jwt_identity()
    message_service = current_app.services['messages']
    try:
        data = MessageSendSchema().load(request.get_json() or {})
        message_type = MessageType(data['message_type'])
        if message_type == MessageType.IMAGE:
            message = message_service.send_image_message(conversation_id, user_id, data['image_url'])
        elif message_type == MessageType.POST_SHARE:
            message = message_service.send_post_share_message(
                conversation_id, user_id, data['post_id'], data.get('post_title'), data.get('post_image'))
        else:
            message = message_service.send_text_message(conversation_id, user_id, data['content'])
        return jsonify(MessageResponseSchema().dump(message)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "CONVERSATION_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"메시지 전송 오류 (conversation_id: {conversation_id}): {e}", exc_info=True)
        return jsonify({"error_code": "SEND_FAILED", "message": "메시지를 보내지 못했습니다."}), 500

@messages_bp.route('/conversations/<string:conversation_id>/read', methods=['POST'])
@jwt_required()
def mark_conversation_read(conversation_id: str):
    user_id = get_jwt_identity()
    message_service = current_app.services['messages']
    try:
        message_service.get_conversation(conversation_id, user_id)
        updated = message_service.mark_messages_as_read(conversation_id, user_id)
        return jsonify({"updated_count": updated}), 200
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "CONVERSATION_NOT_FOUND", "message": str(e)}), 404

@messages_bp.route('/unread-count', methods=['GET'])
@jwt_required()
def get_unread_count():
    user_id = get_jwt_identity()
    message_service = current_app.services['messages']
    return jsonify({"unread_count": message_service.get_total_unread_count(user_id)}), 200

# --- 메시지 ---
@messages_bp.route('/<string:message_id>', methods=['DELETE'])
@jwt_required()
def delete_message(message_id: str):
    user_id = get_jwt_identity()
    message_service = current_app.services['messages']
    try:
        message_service.delete_message(message_id, user_id)
        return Response(status=204)
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "MESSAGE_NOT_FOUND", "message": str(e)}), 404

@messages_bp.route('/<string:message_id>/report', methods=['POST'])
@jwt_required()
def report_message(message_id: str):
    user_id = get_jwt_identity()
    message_service = current_app.services['messages']
    try:
        data = MessageReportSchema().load(request.get_json() or {})
        report = message_service.report_message(message_id, user_id, data['reason'], data.get('description'))
        return jsonify(MessageReportResponseSchema().dump(report)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "MESSAGE_NOT_FOUND", "message": str(e)}), 404

@messages_bp.route('/images', methods=['POST'])
@jwt_required()
def upload_message_image():
    """메시지에 첨부할 이미지를 업로드합니다 (image/*, 최대 5MB)."""
    user_id = get_jwt_identity()
    message_service = current_app.services['messages']
    try:
        url = message_service.upload_message_image(user_id, request.files.get('file'))
        return jsonify({"url": url}), 201
    except ValueError as e:
        return jsonify({"error_code": "INVALID_IMAGE", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"메시지 이미지 업로드 오류 (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "UPLOAD_FAILED", "message": "이미지 업로드 중 서버 오류가 발생했습니다."}), 500

# --- 실시간 스트림 (Server-Sent Events) ---
def _serialize_event(event: str, payload):
    if event == 'conversations':
        return ConversationResponseSchema(many=True).dump(payload)
    if event == 'conversation_updated':
        return ConversationResponseSchema().dump(payload)
    if event == 'messages':
        return MessageResponseSchema(many=True).dump(payload)
    if event == 'message':
        return MessageResponseSchema().dump(payload)
    return payload

def _event_stream(events: "queue.Queue", controller):
    """컨트롤러가 큐에 넣은 변경을 SSE 형식으로 내보냅니다. 연결이 끊기면 구독을 해제합니다."""
    try:
        while True:
            try:
                event, payload = events.get(timeout=SSE_KEEPALIVE_SECONDS)
                yield f"event: {event}\ndata: {json.dumps(_serialize_event(event, payload))}\n\n"
            except queue.Empty:
                yield ": keep-alive\n\n"
    finally:
        controller.close()

@messages_bp.route('/stream', methods=['GET'])
@jwt_required()
def stream_conversations():
    """대화 목록과 그 변경 사항을 SSE로 전달합니다."""
    user_id = get_jwt_identity()
    message_service = current_app.services['messages']
    events = queue.Queue()
    controller = ConversationListController(message_service, user_id,
                                            on_change=lambda event, payload: events.put((event, payload)))
    controller.load()
    controller.start()
    return Response(stream_with_context(_event_stream(events, controller)), mimetype='text/event-stream')

@messages_bp.route('/conversations/<string:conversation_id>/stream', methods=['GET'])
@jwt_required()
def stream_conversation(conversation_id: str):
    """대화의 메시지 기록과 새 메시지를 SSE로 전달합니다."""
    user_id = get_jwt_identity()
    message_service = current_app.services['messages']
    try:
        conversation = message_service.get_conversation(conversation_id, user_id)
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except ValueError as e:
        return jsonify({"error_code": "CONVERSATION_NOT_FOUND", "message": str(e)}), 404

    events = queue.Queue()
    controller = ChatWindowController(message_service, conversation, user_id,
                                      on_change=lambda event, payload: events.put((event, payload)),
                                      page_size=current_app.config.get('MESSAGE_PAGE_SIZE'))
    controller.open()
    return Response(stream_with_context(_event_stream(events, controller)), mimetype='text/event-stream')
