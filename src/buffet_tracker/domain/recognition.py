"""Models for food recognition results."""

from pydantic import BaseModel, Field


class RecognizedItem(BaseModel):
    """Single dish guessed by the recognition model."""

    name: str
    price: float | None = Field(default=None, ge=0)
    calories: float | None = Field(default=None, ge=0)
    count: int | None = Field(default=None, ge=0)


class RecognitionResult(BaseModel):
    """Structured output for a recognized plate photo."""

    items: list[RecognizedItem] = Field(default_factory=list)
    comment: str = ""
