# pawconnect/api/users/schemas.py
from marshmallow import Schema, fields, validate

class UserPublicResponseSchema(Schema):
    """
    다른 사용자의 프로필 정보를 응답할 때 사용하는 스키마.
    이메일 같은 민감한 정보는 제외합니다.
    """
    user_id = fields.Str(required=True, dump_only=True)
    username = fields.Str(required=True)
    avatar_url = fields.Str(allow_none=True)
    bio = fields.Str(allow_none=True)
    ville = fields.Str(allow_none=True)
    code_postal = fields.Str(allow_none=True)
    pays = fields.Str(allow_none=True)
    created_at = fields.DateTime()
    pet_count = fields.Int(dump_only=True)

class UserPrivateResponseSchema(UserPublicResponseSchema):
    """본인에게만 반환하는 프로필 스키마."""
    email = fields.Email()

class UserUpdateSchema(Schema):
    """PATCH /api/users/me 부분 업데이트 스키마."""
    username = fields.Str(validate=validate.Length(min=2, max=30))
    bio = fields.Str(allow_none=True, validate=validate.Length(max=500))
    avatar_url = fields.URL(allow_none=True)
    ville = fields.Str(allow_none=True)
    code_postal = fields.Str(allow_none=True)
    pays = fields.Str(allow_none=True)
