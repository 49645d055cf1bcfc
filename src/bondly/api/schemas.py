"""Shared request/response schemas. The wire format is camelCase."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from bondly.advice import EMOTIONS
from bondly.advice.prompts import MAX_FEELINGS_LENGTH, MAX_SITUATION_LENGTH


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Submission(CamelModel):
    """Fields both participants fill in."""

    model_config = ConfigDict(str_strip_whitespace=True)

    situation: str = Field(min_length=1, max_length=MAX_SITUATION_LENGTH)
    feelings: str = Field(min_length=1, max_length=MAX_FEELINGS_LENGTH)
    emotions: list[str] = Field(default_factory=list)
    user_id: str | None = Field(default=None, max_length=64)

    @field_validator("emotions")
    @classmethod
    def known_emotions(cls, value: list[str]) -> list[str]:
        unknown = [e for e in value if e not in EMOTIONS]
        if unknown:
            raise ValueError(f"unknown emotions: {', '.join(unknown)}")
        # Drop repeats, keep order
        return list(dict.fromkeys(value))

