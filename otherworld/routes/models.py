"""Pydantic request models for API endpoints."""

from typing import Literal

from pydantic import BaseModel

AttributeKey = Literal["essence", "qi", "spirit", "root_bone", "merit"]


class AllocateBody(BaseModel):
    attribute: AttributeKey
    value: int


class StepBody(BaseModel):
    attribute: AttributeKey
    delta: Literal[1, -1]


class ChoiceBody(BaseModel):
    option_id: str


class RecordBody(BaseModel):
    text: str


class CheckConnectionBody(BaseModel):
    provider_url: str
    api_key: str = ""
