from typing import List

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from safety.alerts import Alert
from safety.models import EventStatus, VitalSample
from safety.thresholds import ClassificationResult


class _Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CurrentVitals(_Schema):
    sample: VitalSample
    classifications: List[ClassificationResult]
    alerts: List[Alert]


class StatusUpdate(_Schema):
    status: EventStatus


class LoginRequest(_Schema):
    email: str
    password: str


class RegisterRequest(_Schema):
    name: str
    email: str
    password: str
