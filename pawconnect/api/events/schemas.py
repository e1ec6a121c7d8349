# pawconnect/api/events/schemas.py
from datetime import timezone
from marshmallow import Schema, fields, validate, validates_schema, ValidationError
from pawconnect.models.event import ParticipantStatus
from pawconnect.api.users.schemas import UserPublicResponseSchema

class EventTypeSchema(Schema):
    event_type_id = fields.Str()
    name = fields.Str()
    color = fields.Str()
    description = fields.Str(allow_none=True)
    icon = fields.Str(allow_none=True)

class EventCreateSchema(Schema):
    """POST /api/events 이벤트 생성 요청 스키마"""
    title = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    event_type = fields.Str(required=True)
    date_start = fields.AwareDateTime(required=True, default_timezone=timezone.utc)
    date_end = fields.AwareDateTime(allow_none=True, default_timezone=timezone.utc)
    description = fields.Str(allow_none=True, validate=validate.Length(max=2000))
    location = fields.Str(allow_none=True, validate=validate.Length(max=200))
    address = fields.Str(allow_none=True, validate=validate.Length(max=300))
    max_participants = fields.Int(allow_none=True, validate=validate.Range(min=1))
    is_public = fields.Bool(load_default=True)
    image_url = fields.URL(allow_none=True)

    @validates_schema
    def validate_dates(self, data, **kwargs):
        date_start, date_end = data.get('date_start'), data.get('date_end')
        if date_start and date_end and date_end < date_start:
            raise ValidationError("종료 시각은 시작 시각 이후여야 합니다.", field_name="date_end")

class EventUpdateSchema(Schema):
    """PATCH /api/events/<event_id> 부분 수정 스키마"""
    title = fields.Str(validate=validate.Length(min=1, max=100))
    event_type = fields.Str()
    date_start = fields.AwareDateTime(default_timezone=timezone.utc)
    date_end = fields.AwareDateTime(allow_none=True, default_timezone=timezone.utc)
    description = fields.Str(allow_none=True)
    location = fields.Str(allow_none=True)
    address = fields.Str(allow_none=True)
    max_participants = fields.Int(allow_none=True, validate=validate.Range(min=1))
    is_public = fields.Bool()
    is_active = fields.Bool()
    image_url = fields.URL(allow_none=True)

class EventJoinSchema(Schema):
    notes = fields.Str(allow_none=True, validate=validate.Length(max=500))

class ParticipationUpdateSchema(Schema):
    status = fields.Str(validate=validate.OneOf([e.value for e in ParticipantStatus]))
    notes = fields.Str(allow_none=True, validate=validate.Length(max=500))

class EventInviteSchema(Schema):
    friend_id = fields.Str(required=True)

class ParticipantResponseSchema(Schema):
    participation_id = fields.Str()
    event_id = fields.Str()
    user_id = fields.Str()
    status = fields.Str()
    invited_by = fields.Str(allow_none=True)
    notes = fields.Str(allow_none=True)
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
    user = fields.Nested(UserPublicResponseSchema, allow_none=True)
    invited_by_user = fields.Nested(UserPublicResponseSchema, allow_none=True)

class EventResponseSchema(Schema):
    event_id = fields.Str()
    title = fields.Str()
    event_type = fields.Str()
    organizer_id = fields.Str()
    date_start = fields.DateTime()
    date_end = fields.DateTime(allow_none=True)
    description = fields.Str(allow_none=True)
    location = fields.Str(allow_none=True)
    address = fields.Str(allow_none=True)
    max_participants = fields.Int(allow_none=True)
    is_public = fields.Bool()
    is_active = fields.Bool()
    image_url = fields.Str(allow_none=True)
    created_at = fields.DateTime()
    updated_at = fields.DateTime()

    # 서비스 로직에서 채워주는 응답 전용 필드
    organizer = fields.Nested(UserPublicResponseSchema, allow_none=True)
    event_type_info = fields.Nested(EventTypeSchema, allow_none=True)
    participants_count = fields.Int(dump_default=0)
    is_participating = fields.Bool()
    user_participation = fields.Nested(ParticipantResponseSchema, allow_none=True)
