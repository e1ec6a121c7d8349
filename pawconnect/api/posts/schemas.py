# pawconnect/api/posts/schemas.py
from marshmallow import Schema, fields, validate, validates_schema, ValidationError
from pawconnect.models.post import PostType

class PetInfoSchema(Schema):
    """게시글에 포함되는 반려동물 정보"""
    pet_id = fields.Str(required=True)
    name = fields.Str(required=True)
    species = fields.Str(allow_none=True)
    avatar_url = fields.Str(allow_none=True)

class PostCreateSchema(Schema):
    """
    POST /api/posts
    본문이나 이미지 중 하나는 반드시 있어야 합니다.
    """
    pet_id = fields.Str(required=True)
    content = fields.Str(allow_none=True, validate=validate.Length(max=2000))
    image_urls = fields.List(fields.URL(), load_default=list)
    video_url = fields.URL(allow_none=True)
    location = fields.Str(allow_none=True, validate=validate.Length(max=200))
    post_type = fields.Str(load_default=PostType.STANDARD.value, validate=validate.OneOf([e.value for e in PostType]))
    is_private = fields.Bool(load_default=False)

    @validates_schema
    def validate_body(self, data, **kwargs):
        if not (data.get('content') or '').strip() and not data.get('image_urls'):
            raise ValidationError("게시글 내용이나 이미지가 필요합니다.", field_name="content")

class PostUpdateSchema(Schema):
    """PATCH /api/posts/<post_id> 부분 수정 스키마"""
    content = fields.Str(allow_none=True, validate=validate.Length(max=2000))
    image_urls = fields.List(fields.URL())
    video_url = fields.URL(allow_none=True)
    location = fields.Str(allow_none=True)
    is_private = fields.Bool()

class PostResponseSchema(Schema):
    post_id = fields.Str(required=True)
    pet_id = fields.Str(required=True)
    owner_id = fields.Str(required=True)
    pet = fields.Nested(PetInfoSchema)
    content = fields.Str(allow_none=True)
    image_urls = fields.List(fields.Str())
    video_url = fields.Str(allow_none=True)
    location = fields.Str(allow_none=True)
    post_type = fields.Str()
    is_private = fields.Bool()
    created_at = fields.DateTime()
    updated_at = fields.DateTime()

    # 서비스 로직에서 채워주는 응답 전용 필드
    likes_count = fields.Int(dump_only=True, dump_default=0)
    comments_count = fields.Int(dump_only=True, dump_default=0)
    has_liked = fields.Bool(dump_only=True, dump_default=False)
