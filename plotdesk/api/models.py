"""Pydantic models for API request/response."""
from pydantic import BaseModel, Field
from typing import List, Any, Optional, Union


class GenerateTextRequest(BaseModel):
    """Request model for the Gemini proxy endpoint.

    Fields are untyped here so a missing or wrong-typed one is answered with
    400 by the proxy instead of a validation error.
    """

    model: Optional[Any] = Field(default=None, description="Gemini model id, e.g. gemini-2.0-flash")
    payload: Optional[Any] = Field(default=None, description="generateContent body, forwarded verbatim")


class ErrorResponse(BaseModel):
    """Failure body of the proxy endpoint."""

    error: str
    details: Optional[Any] = None


class StatusResponse(BaseModel):
    """Server and database status."""

    serverStatus: str
    dbStatus: str
    message: str
    geminiKeys: int


class MessageResponse(BaseModel):
    message: str
    id: Optional[Union[int, str]] = None


# Story models

class SaveSettingsRequest(BaseModel):
    """Create a setting, or update it when `id` is given."""

    id: Optional[Union[int, str]] = None
    title: Optional[str] = None
    worldSetting: Optional[str] = None
    characterDetails: Optional[str] = None
    plotDetails: Optional[str] = None
    previousContent: Optional[str] = None
    episode_number: Optional[int] = None


class WorldSettingRequest(BaseModel):
    setting_id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None


class CharacterRequest(BaseModel):
    setting_id: Optional[int] = None
    name: Optional[str] = None
    role: Optional[str] = None
    description: Optional[str] = None


class BulkCharactersRequest(BaseModel):
    """Characters generated in one go, usually by the model."""

    characters: Optional[List[CharacterRequest]] = None


class StoryRequest(BaseModel):
    setting_id: Optional[int] = None
    episode_number: Optional[int] = None
    title: Optional[str] = None
    content: Optional[str] = None
    prompt: Optional[str] = None


class EpisodeRequest(BaseModel):
    setting_id: Optional[int] = None
    episode_number: Optional[int] = None
    title: Optional[str] = None
    content: Optional[str] = None
    prompt: Optional[str] = None


class CreatedResponse(BaseModel):
    message: str
    id: Optional[Union[int, str]] = None
    episode_number: Optional[int] = None
