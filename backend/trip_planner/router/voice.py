"""
Voice Router
Turns a voice transcript into partial trip-request fields for the planning form
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from trip_planner.agents.voice_parser import VoiceInputParser
from trip_planner.models.common import APIResponse
from trip_planner.router.deps import get_voice_parser

router = APIRouter(prefix="/voice", tags=["Voice"])


class VoiceParseRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Transcript from the speech recognizer")
    use_llm: bool = Field(default=True, description="Try structured extraction before the keyword parse")


@router.post("/parse", response_model=APIResponse)
async def parse_voice(body: VoiceParseRequest, parser: VoiceInputParser = Depends(get_voice_parser)):
    if body.use_llm:
        fields = await parser.parse(body.text)
    else:
        fields = parser.parse_basic(body.text)
    return APIResponse(code=0, msg="ok", data=fields.model_dump(mode="json"))
