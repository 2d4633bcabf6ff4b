"""
Generation Routes
==================

POST /generate  - {"topic": "..."} -> {"content": "<markdown mind map>"}
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from ..config import Settings
from ..dependencies import get_settings
from ..services.generation_service import (
    GenerationError,
    GenerationNotConfiguredError,
    generate_mindmap_markdown,
)


router = APIRouter()


class GenerateRequest(BaseModel):
    # Any JSON value is accepted so a non-string topic gets the same 400
    topic: Optional[Any] = None


class GenerateResponse(BaseModel):
    content: str


@router.post("", response_model=GenerateResponse)
def generate(
    request: GenerateRequest,
    settings: Settings = Depends(get_settings),
):
    """
    Generate mind map Markdown for a topic with the AI provider.

    The provider's error message is passed through on failure.
    """
    topic = request.topic
    if not isinstance(topic, str) or not topic.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Topic is required and must be a non-empty string",
        )

    try:
        content = generate_mindmap_markdown(topic, settings)
    except GenerationNotConfiguredError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except GenerationError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate content: {e}",
        )

    return GenerateResponse(content=content)
