from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

URL_VALIDATION_EVENT = "endpoint.url_validation"
WEBINAR_STARTED_EVENT = "webinar.started"
WEBINAR_ENDED_EVENT = "webinar.ended"

Record = Dict[str, Any]


class WebhookEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event: str = ""
    event_ts: Optional[int] = None
    payload: Any = Field(default_factory=dict)


class UrlValidationPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    plainToken: str = Field(..., min_length=1)


class WebinarObject(BaseModel):
    """The `payload.object` block Zoom sends with webinar events."""

    model_config = ConfigDict(extra="ignore")

    id: Union[int, str]
    uuid: Optional[str] = None
    host_id: Optional[str] = None
    topic: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[int] = None
    timezone: Optional[str] = None

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, value: Union[int, str]) -> Union[int, str]:
        if not value or (isinstance(value, str) and not value.strip()):
            raise ValueError("id must not be empty")
        return value


class WebinarInfo(BaseModel):
    id: Union[int, str]
    topic: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[int] = None


class StartedWebinarInfo(BaseModel):
    id: Union[int, str]
    topic: Optional[str] = None
    start_time: Optional[str] = None
    timezone: Optional[str] = None


class AttendanceStats(BaseModel):
    total_registrants: int
    total_participants: int
    no_shows_count: int
    attendance_rate_percent: int


class EnrichedBody(BaseModel):
    webinar_info: WebinarInfo
    statistics: AttendanceStats
    participants: List[Record]
    registrants: List[Record]
    no_shows: List[Record]


class EnrichedEventPayload(BaseModel):
    event: str = WEBINAR_ENDED_EVENT
    payload: EnrichedBody


class StartedBody(BaseModel):
    webinar_info: StartedWebinarInfo


class StartedEventPayload(BaseModel):
    event: str = WEBINAR_STARTED_EVENT
    payload: StartedBody
