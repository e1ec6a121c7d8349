# pawconnect/api/messages/schemas.py
from marshmallow import Schema, fields, validate, validates_schema, ValidationError
from pawconnect.models.message import MessageType, ReportReason
from pawconnect.api.users.schemas import UserPublicResponseSchema

class ConversationCreateSchema(Schema):
    """POST /api/messages/conversations 상대방과의 대화 열기"""
    user_id = fields.Str(required=True)

class MessageSendSchema(Schema):
    """
    POST /api/messages/conversations/<id>/messages
    - text: content 필수
    - image: image_url 필수
    - post_share: post_id 필수
    """
    message_type = fields.Str(load_default=MessageType.TEXT.value,
                              validate=validate.OneOf([e.value for e in MessageType]))
    content = fields.Str(validate=validate.Length(max=2000))
    image_url = fields.URL()
    post_id = fields.Str()
    post_title = fields.Str(allow_none=True)
    post_image = fields.Str(allow_none=True)

    @validates_schema
    def validate_payload(self, data, **kwargs):
        message_type = data.get('message_type')
        if message_type == MessageType.TEXT.value and not (data.get('content') or '').strip():
            raise ValidationError("메시지 내용이 비어 있습니다.", field_name="content")
        if message_type == MessageType.IMAGE.value and not data.get('image_url'):
            raise ValidationError("이미지 URL이 필요합니다.", field_name="image_url")
        if message_type == MessageType.POST_SHARE.value and not data.get('post_id'):
            raise ValidationError("공유할 게시글 ID가 필요합니다.", field_name="post_id")

class MessageReportSchema(Schema):
    reason = fields.Str(required=True, validate=validate.OneOf([e.value for e in ReportReason]))
    description = fields.Str(allow_none=True, validate=validate.Length(max=1000))

class MessageResponseSchema(Schema):
    message_id = fields.Str()
    conversation_id = fields.Str()
    sender_id = fields.Str()
    message_type = fields.Str()
    content = fields.Str(allow_none=True)
    metadata = fields.Dict()
    is_read = fields.Bool()
    created_at = fields.DateTime()
    sender = fields.Nested(UserPublicResponseSchema, allow_none=True)

class ConversationResponseSchema(Schema):
    conversation_id = fields.Str()
    participant_1_id = fields.Str()
    participant_2_id = fields.Str()
    last_message_at = fields.DateTime(allow_none=True)
    last_message_content = fields.Str(allow_none=True)
    last_message_sender_id = fields.Str(allow_none=True)
    created_at = fields.DateTime()
    unread_count = fields.Int(dump_default=0)
    participant_1 = fields.Nested(UserPublicResponseSchema, allow_none=True)
    participant_2 = fields.Nested(UserPublicResponseSchema, allow_none=True)
    last_message_sender = fields.Nested(UserPublicResponseSchema, allow_none=True)

class MessageReportResponseSchema(Schema):
    report_id = fields.Str()
    message_id = fields.Str()
    reporter_id = fields.Str()
    reason = fields.Str()
    description = fields.Str(allow_none=True)
    status = fields.Str()
    created_at = fields.DateTime()
