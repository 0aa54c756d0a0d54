"""
HTTP routes for the travel journal API.
"""

from __future__ import annotations

import json
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from pydantic import ValidationError as PydanticValidationError
from starlette.concurrency import run_in_threadpool

from travelstory.auth import Identity, require_identity
from travelstory.db import StoryRecord
from travelstory.dependencies import get_account_service, get_story_service
from travelstory.errors import ValidationError
from travelstory.schemas import (
    AuthResponse,
    CreateAccountRequest,
    CurrentUserResponse,
    EditStoryRequest,
    FavouriteRequest,
    LoginRequest,
    MessageResponse,
    StoryListResponse,
    StoryOut,
    StoryResponse,
    UserOut,
    UserSummary,
)
from travelstory.services import (
    AccountService,
    AuthResult,
    StoryService,
    UploadedImage,
)

router = APIRouter()


def _auth_response(result: AuthResult, message: str) -> AuthResponse:
    return AuthResponse(
        message=message,
        user=UserSummary(fullName=result.user.full_name, email=result.user.email),
        accessToken=result.access_token,
    )


def _story_out(story: StoryRecord) -> StoryOut:
    return StoryOut(**story.as_dict())


def _story_list(stories: list[StoryRecord]) -> StoryListResponse:
    return StoryListResponse(stories=[_story_out(s) for s in stories])


async def _read_edit_payload(request: Request) -> EditStoryRequest:
    """The web client sends either JSON or form fields for edits."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except json.JSONDecodeError:
            raise ValidationError("Malformed JSON body")
        if not isinstance(body, dict):
            raise ValidationError("Request body must be an object")
    else:
        form = await request.form()
        locations = form.getlist("visitedLocation")
        if len(locations) <= 1:
            locations = form.get("visitedLocation")
        image_url = form.get("imageUrl")
        body = {
            "title": form.get("title"),
            "story": form.get("story"),
            "visitedLocation": locations,
            "imageUrl": image_url if isinstance(image_url, str) else None,
            "visitedDate": form.get("visitedDate"),
        }

    try:
        return EditStoryRequest(**body)
    except PydanticValidationError as exc:
        problem = exc.errors()[0]
        field = ".".join(str(part) for part in problem.get("loc", ()))
        raise ValidationError(f"{field}: {problem.get('msg')}")


@router.post("/create-account", response_model=AuthResponse, status_code=201)
def create_account(
    payload: CreateAccountRequest,
    accounts: AccountService = Depends(get_account_service),
):
    result = accounts.register(payload.fullName, payload.email, payload.password)
    return _auth_response(result, "User created successfully")


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    accounts: AccountService = Depends(get_account_service),
):
    result = accounts.login(payload.email, payload.password)
    return _auth_response(result, "Login Successful")


@router.get("/get-user", response_model=CurrentUserResponse)
def get_user(
    identity: Identity = Depends(require_identity),
    accounts: AccountService = Depends(get_account_service),
):
    user = accounts.get_current_user(identity.user_id)
    return CurrentUserResponse(user=UserOut(**user.as_public_dict()))


@router.delete("/delete-image", response_model=MessageResponse)
def delete_image(
    imageUrl: Optional[str] = Query(None),
    identity: Identity = Depends(require_identity),
    stories: StoryService = Depends(get_story_service),
):
    if stories.delete_image(identity.user_id, imageUrl):
        return MessageResponse(message="Image deleted successfully")
    return MessageResponse(message="Image not found")


@router.post("/add-travel-story", response_model=StoryResponse, status_code=201)
async def add_travel_story(
    title: Optional[str] = Form(None),
    story: Optional[str] = Form(None),
    visitedLocation: Optional[list[str]] = Form(None),
    visitedDate: Optional[str] = Form(None),
    imageUrl: Optional[UploadFile] = File(None),
    identity: Identity = Depends(require_identity),
    stories: StoryService = Depends(get_story_service),
):
    image = None
    if imageUrl is not None and imageUrl.filename:
        image = UploadedImage(
            data=await imageUrl.read(),
            filename=imageUrl.filename,
            content_type=imageUrl.content_type,
        )
    # A single form value may itself be a comma-separated list.
    locations = visitedLocation
    if visitedLocation and len(visitedLocation) == 1:
        locations = visitedLocation[0]
    created = await run_in_threadpool(
        stories.add_story,
        identity.user_id,
        title=title,
        story=story,
        visited_location=locations,
        visited_date=visitedDate,
        image=image,
    )
    return StoryResponse(story=_story_out(created), message="Added Successfully")


@router.get("/get-all-stories", response_model=StoryListResponse)
def get_all_stories(
    identity: Identity = Depends(require_identity),
    stories: StoryService = Depends(get_story_service),
):
    return _story_list(stories.list_stories(identity.user_id))


@router.put("/edit-story/{story_id}", response_model=StoryResponse)
async def edit_story(
    story_id: str,
    request: Request,
    identity: Identity = Depends(require_identity),
    stories: StoryService = Depends(get_story_service),
):
    payload = await _read_edit_payload(request)
    updated = await run_in_threadpool(
        stories.edit_story,
        story_id,
        identity.user_id,
        title=payload.title,
        story=payload.story,
        visited_location=payload.visitedLocation,
        visited_date=payload.visitedDate,
        image_url=payload.imageUrl,
    )
    return StoryResponse(story=_story_out(updated), message="Update Successful")


@router.delete("/delete-story/{story_id}", response_model=MessageResponse)
def delete_story(
    story_id: str,
    identity: Identity = Depends(require_identity),
    stories: StoryService = Depends(get_story_service),
):
    stories.delete_story(story_id, identity.user_id)
    return MessageResponse(message="Travel story deleted successfully")


@router.put("/update-is-favourite/{story_id}", response_model=StoryResponse)
def update_is_favourite(
    story_id: str,
    payload: FavouriteRequest,
    identity: Identity = Depends(require_identity),
    stories: StoryService = Depends(get_story_service),
):
    updated = stories.set_favourite(story_id, identity.user_id, payload.isFavourite)
    return StoryResponse(story=_story_out(updated), message="Update Successful")


@router.get("/search", response_model=StoryListResponse)
def search_stories(
    query: Optional[str] = Query(None),
    identity: Identity = Depends(require_identity),
    stories: StoryService = Depends(get_story_service),
):
    return _story_list(stories.search(identity.user_id, query))


@router.get("/travel-stories/filter", response_model=StoryListResponse)
def filter_stories(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    identity: Identity = Depends(require_identity),
    stories: StoryService = Depends(get_story_service),
):
    return _story_list(
        stories.filter_by_date_range(identity.user_id, startDate, endDate)
    )
