"""
Pydantic schemas for the travel journal API.

Wire names are camelCase; record identifiers go out as ``_id``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class CreateAccountRequest(BaseModel):
    fullName: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class EditStoryRequest(BaseModel):
    title: Optional[str] = None
    story: Optional[str] = None
    visitedLocation: Optional[Any] = None
    imageUrl: Optional[str] = None
    visitedDate: Optional[Any] = None


class FavouriteRequest(BaseModel):
    isFavourite: Optional[bool] = None


class UserSummary(BaseModel):
    fullName: str
    email: str


class UserOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    fullName: str
    email: str
    createdOn: datetime


class StoryOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    title: str
    story: str
    visitedLocation: list[str]
    isFavourite: bool
    userId: str
    imageUrl: str
    visitedDate: datetime
    createdOn: datetime


class AuthResponse(BaseModel):
    error: bool = False
    message: str
    user: UserSummary
    accessToken: str


class CurrentUserResponse(BaseModel):
    user: UserOut
    message: str = ""


class StoryResponse(BaseModel):
    story: StoryOut
    message: str


class StoryListResponse(BaseModel):
    stories: list[StoryOut]


class MessageResponse(BaseModel):
    error: bool = False
    message: str
