# pawconnect/api/directory/schemas.py
from marshmallow import Schema, fields, validate
from pawconnect.models.service_listing import SERVICE_CATEGORIES

class ServiceCreateSchema(Schema):
    """POST /api/services 서비스 등록 요청 스키마"""
    title = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    category = fields.Str(required=True, validate=validate.OneOf(SERVICE_CATEGORIES))
    description = fields.Str(allow_none=True, validate=validate.Length(max=2000))
    city = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    latitude = fields.Float(allow_none=True, validate=validate.Range(min=-90, max=90))
    longitude = fields.Float(allow_none=True, validate=validate.Range(min=-180, max=180))
    contact_email = fields.Email(allow_none=True)
    phone_number = fields.Str(allow_none=True, validate=validate.Length(max=30))

class ServiceResponseSchema(Schema):
    service_id = fields.Str()
    user_id = fields.Str()
    title = fields.Str()
    category = fields.Str()
    description = fields.Str(allow_none=True)
    city = fields.Str()
    latitude = fields.Float(allow_none=True)
    longitude = fields.Float(allow_none=True)
    contact_email = fields.Str(allow_none=True)
    phone_number = fields.Str(allow_none=True)
    created_at = fields.DateTime()
