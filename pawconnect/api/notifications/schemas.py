# pawconnect/api/notifications/schemas.py
from marshmallow import Schema, fields
from pawconnect.api.users.schemas import UserPublicResponseSchema
from pawconnect.api.posts.schemas import PetInfoSchema

class NotificationPostSchema(Schema):
    """알림에 포함되는 게시글 요약"""
    post_id = fields.Str()
    content = fields.Str(allow_none=True)
    image_urls = fields.List(fields.Str())
    pet = fields.Nested(PetInfoSchema, allow_none=True)

class NotificationResponseSchema(Schema):
    notification_id = fields.Str()
    user_id = fields.Str()
    from_user_id = fields.Str()
    type = fields.Str()
    message = fields.Str()
    post_id = fields.Str(allow_none=True)
    is_read = fields.Bool()
    created_at = fields.DateTime()
    from_user = fields.Nested(UserPublicResponseSchema, allow_none=True)
    post = fields.Nested(NotificationPostSchema, allow_none=True)
