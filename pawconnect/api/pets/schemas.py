# pawconnect/api/pets/schemas.py
from marshmallow import Schema, fields, validate
from pawconnect.models.pet import PetGender
from pawconnect.utils.datetime_utils import DateTimeUtils
from pawconnect.api.users.schemas import UserPublicResponseSchema

class PetCreateSchema(Schema):
    """POST /api/pets 반려동물 등록 요청 스키마."""
    name = fields.Str(required=True, validate=validate.Length(min=1, max=50))
    species = fields.Str(required=True, validate=validate.Length(min=1, max=50))
    gender = fields.Str(load_default=PetGender.UNKNOWN.value, validate=validate.OneOf([e.value for e in PetGender]))
    breed = fields.Str(allow_none=True, validate=validate.Length(max=50))
    birth_date = fields.Date(allow_none=True, format="%Y-%m-%d")
    description = fields.Str(allow_none=True, validate=validate.Length(max=1000))
    avatar_url = fields.URL(allow_none=True)
    banner_url = fields.URL(allow_none=True)

class PetUpdateSchema(Schema):
    """PATCH /api/pets/<pet_id> 정보 수정을 위한 스키마 (부분 업데이트용)."""
    name = fields.Str(validate=validate.Length(min=1, max=50))
    species = fields.Str(validate=validate.Length(min=1, max=50))
    gender = fields.Str(validate=validate.OneOf([e.value for e in PetGender]))
    breed = fields.Str(allow_none=True)
    birth_date = fields.Date(allow_none=True, format="%Y-%m-%d")
    description = fields.Str(allow_none=True)
    avatar_url = fields.URL(allow_none=True)
    banner_url = fields.URL(allow_none=True)

class PetResponseSchema(Schema):
    pet_id = fields.Str(dump_only=True)
    owner_id = fields.Str(dump_only=True)
    name = fields.Str()
    species = fields.Str()
    gender = fields.Str()
    breed = fields.Str(allow_none=True)
    birth_date = fields.Date(allow_none=True)
    description = fields.Str(allow_none=True)
    avatar_url = fields.Str(allow_none=True)
    banner_url = fields.Str(allow_none=True)
    created_at = fields.DateTime()
    age_months = fields.Method("get_age_months")

    def get_age_months(self, obj):
        birth_date = obj.get("birth_date")
        return DateTimeUtils.calculate_age_months(birth_date) if birth_date else None

class FollowResponseSchema(Schema):
    follow_id = fields.Str()
    follower_id = fields.Str()
    followed_pet_id = fields.Str()
    created_at = fields.DateTime()
    followed_pet = fields.Nested(PetResponseSchema, allow_none=True)
    follower = fields.Nested(UserPublicResponseSchema, allow_none=True)
