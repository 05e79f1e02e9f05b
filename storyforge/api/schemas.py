"""Pydantic schemas for API request/response validation."""

from pydantic import BaseModel, ConfigDict, Field


class GenerateRequest(BaseModel):
    """Request schema for story and image generation."""

    prompt: str = Field(..., min_length=1, max_length=10000)

    model_config = ConfigDict(
        json_schema_extra={"example": {"prompt": "a cat sailing a paper boat"}}
    )


class GenerateResponse(BaseModel):
    """Response schema for a completed generation."""

    image_url: str = Field(
        ...,
        alias="imageUrl",
        description="URL path of the stored image",
    )
    story: str

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "imageUrl": "/images/6f1c0d5e9a6b4f0f8f3a2b1c4d5e6f70.png",
                "story": "Once upon a time, a cat set sail...",
            }
        },
    )


class HistoryEntry(BaseModel):
    """One entry of the generation history."""

    prompt: str
    story: str | None = None
    filename: str
    created_at: str
