# pawconnect/api/auth/schemas.py
from marshmallow import Schema, fields, validate

class SignUpSchema(Schema):
    """회원가입 요청의 유효성을 검사하는 스키마"""
    email = fields.Email(required=True)
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=6, max=128))
    username = fields.Str(required=True, validate=validate.Length(min=2, max=30))
    ville = fields.Str(load_default=None, allow_none=True)
    code_postal = fields.Str(load_default=None, allow_none=True)
    pays = fields.Str(load_default=None, allow_none=True)

class SignInSchema(Schema):
    """로그인 요청의 유효성을 검사하는 스키마"""
    email = fields.Email(required=True)
    password = fields.Str(required=True, load_only=True)

class LogoutRequestSchema(Schema):
    """로그아웃 요청의 유효성을 검사하는 스키마"""
    access_token = fields.Str(required=True)
    refresh_token = fields.Str(required=True)
