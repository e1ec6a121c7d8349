# pawconnect/api/friends/schemas.py
from marshmallow import Schema, fields
from pawconnect.api.users.schemas import UserPublicResponseSchema

class FriendRequestSchema(Schema):
    """POST /api/friends/requests"""
    friend_id = fields.Str(required=True)

class FriendshipResponseSchema(Schema):
    friendship_id = fields.Str()
    user_id = fields.Str()
    friend_id = fields.Str()
    status = fields.Str()
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
    user = fields.Nested(UserPublicResponseSchema, allow_none=True)
    friend = fields.Nested(UserPublicResponseSchema, allow_none=True)
    other_user = fields.Nested(UserPublicResponseSchema, allow_none=True)
