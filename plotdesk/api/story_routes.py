"""
CRUD routes for settings, world settings, characters, stories and roadmap episodes.
"""
import logging
from contextlib import contextmanager
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ..services.story_store import StoryStore, get_story_store
from .models import (
    SaveSettingsRequest, WorldSettingRequest, CharacterRequest, BulkCharactersRequest,
    StoryRequest, EpisodeRequest, MessageResponse, CreatedResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@contextmanager
def db_errors(action: str):
    """Turn database failures into a 500 with the driver's message."""
    try:
        yield
    except Exception as e:
        logger.error(f"Database error while {action}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


def _require(condition, detail: str):
    if not condition:
        raise HTTPException(status_code=400, detail=detail)


def _found(row, detail: str):
    if not row:
        raise HTTPException(status_code=404, detail=detail)
    return row


# ── Settings ─────────────────────────────────────────────────────

@router.get("/settings-list")
def settings_list(store: StoryStore = Depends(get_story_store)):
    """All plot settings, most recently updated first."""
    with db_errors("listing settings"):
        return store.list_settings()


@router.get("/load-settings")
def load_settings(id: Optional[int] = None, store: StoryStore = Depends(get_story_store)):
    _require(id is not None, "ID is required")
    with db_errors(f"loading setting {id}"):
        row = store.get_setting(id)
    return _found(row, "Setting not found")


@router.post("/save-settings", response_model=MessageResponse)
def save_settings(req: SaveSettingsRequest, store: StoryStore = Depends(get_story_store)):
    """Update the setting when `id` is given (and not the string "null"), else create it."""
    _require(req.title and req.episode_number is not None, "Title and episode number are required.")
    data = req.model_dump(exclude={"id"})

    if req.id is not None and req.id != "null":
        with db_errors(f"updating setting {req.id}"):
            store.update_setting(req.id, data)
        return MessageResponse(message="Updated successfully", id=req.id)

    with db_errors("creating setting"):
        row = store.create_setting(data)
    return MessageResponse(message="Created successfully", id=row["id"])


@router.delete("/delete-settings", response_model=MessageResponse)
def delete_settings(id: Optional[int] = None, store: StoryStore = Depends(get_story_store)):
    _require(id is not None, "ID is required")
    with db_errors(f"deleting setting {id}"):
        store.delete_setting(id)
    return MessageResponse(
        message="Setting, associated world settings, characters, and stories deleted successfully"
    )


# ── World settings ───────────────────────────────────────────────

@router.get("/worldsettings")
def list_world_settings(setting_id: Optional[int] = None, store: StoryStore = Depends(get_story_store)):
    _require(setting_id is not None, "setting_id is required")
    with db_errors("listing world settings"):
        return store.list_world_settings(setting_id)


@router.get("/worldsettings/{world_setting_id}")
def get_world_setting(world_setting_id: int, store: StoryStore = Depends(get_story_store)):
    with db_errors(f"loading world setting {world_setting_id}"):
        row = store.get_world_setting(world_setting_id)
    return _found(row, "World setting not found.")


@router.post("/worldsettings", status_code=201, response_model=MessageResponse)
def create_world_setting(req: WorldSettingRequest, store: StoryStore = Depends(get_story_store)):
    _require(req.setting_id and req.title, "setting_id and title are required.")
    with db_errors("creating world setting"):
        row = store.create_world_setting(req.setting_id, req.title, req.description)
    return MessageResponse(message="World setting created successfully", id=row["id"])


@router.put("/worldsettings/{world_setting_id}", response_model=MessageResponse)
def update_world_setting(
    world_setting_id: int, req: WorldSettingRequest, store: StoryStore = Depends(get_story_store)
):
    _require(req.title, "World Setting ID and title are required for update.")
    with db_errors(f"updating world setting {world_setting_id}"):
        row = store.update_world_setting(world_setting_id, req.title, req.description)
    _found(row, "World setting not found or no changes made.")
    return MessageResponse(message="World setting updated successfully", id=world_setting_id)


@router.delete("/worldsettings/{world_setting_id}", response_model=MessageResponse)
def delete_world_setting(world_setting_id: int, store: StoryStore = Depends(get_story_store)):
    with db_errors(f"deleting world setting {world_setting_id}"):
        deleted = store.delete_world_setting(world_setting_id)
    _found(deleted, "World setting not found or already deleted")
    return MessageResponse(message="World setting deleted successfully")


# ── Characters ───────────────────────────────────────────────────

@router.get("/characters")
def list_characters(setting_id: Optional[int] = None, store: StoryStore = Depends(get_story_store)):
    _require(setting_id is not None, "setting_id is required")
    with db_errors("listing characters"):
        return store.list_characters(setting_id)


@router.post("/characters", status_code=201, response_model=MessageResponse)
def create_character(req: CharacterRequest, store: StoryStore = Depends(get_story_store)):
    _require(req.setting_id and req.name, "setting_id and name are required.")
    with db_errors("creating character"):
        row = store.create_character(req.model_dump())
    return MessageResponse(message="Character created successfully", id=row["id"])


@router.post("/characters/bulk", status_code=201)
def create_characters_bulk(req: BulkCharactersRequest, store: StoryStore = Depends(get_story_store)):
    """Insert a batch of characters (used after the model drafts a cast)."""
    _require(req.characters, 'The request body must contain a non-empty array of "characters".')
    _require(req.characters[0].setting_id, "All characters must have a valid setting_id.")

    with db_errors("bulk adding characters"):
        count = store.create_characters([c.model_dump() for c in req.characters])
    logger.info(f"Bulk added {count} characters")
    return {"message": f"{count} characters added successfully.", "rowsAffected": count}


@router.put("/characters/{character_id}", response_model=MessageResponse)
def update_character(character_id: int, req: CharacterRequest, store: StoryStore = Depends(get_story_store)):
    _require(req.name, "Character ID and name are required for update.")
    data = {"name": req.name, "role": req.role, "description": req.description}
    with db_errors(f"updating character {character_id}"):
        row = store.update_character(character_id, data)
    _found(row, "Character not found or no changes made.")
    return MessageResponse(message="Character updated successfully", id=character_id)


@router.delete("/characters/{character_id}", response_model=MessageResponse)
def delete_character(character_id: int, store: StoryStore = Depends(get_story_store)):
    with db_errors(f"deleting character {character_id}"):
        deleted = store.delete_character(character_id)
    _found(deleted, "Character not found")
    return MessageResponse(message="Character deleted successfully")


# ── Stories ──────────────────────────────────────────────────────

@router.get("/stories")
def list_stories(setting_id: Optional[int] = None, store: StoryStore = Depends(get_story_store)):
    """Stories of a setting from episode 1 upwards."""
    _require(setting_id is not None, "setting_id is required")
    with db_errors("listing stories"):
        return store.list_stories(setting_id)


@router.post("/stories", status_code=201, response_model=CreatedResponse)
def create_story(req: StoryRequest, store: StoryStore = Depends(get_story_store)):
    # content may be empty; the writer fills it in later
    _require(req.setting_id and req.episode_number and req.title,
             "Missing required fields: setting_id, episode_number, title")
    data = {
        "setting_id": req.setting_id,
        "episode_number": req.episode_number,
        "title": req.title,
        "content": req.content if req.content is not None else "",
        "prompt": req.prompt or "User Created",
    }
    with db_errors("creating story"):
        row = store.create_story(data)
    logger.info(f"Created story {row['id']} (episode {req.episode_number})")
    return CreatedResponse(message="Created successfully", id=row["id"], episode_number=req.episode_number)


@router.put("/stories/{story_id}", response_model=MessageResponse)
def update_story(story_id: int, req: StoryRequest, store: StoryStore = Depends(get_story_store)):
    _require(req.title, "ID and title are required.")
    data = {"title": req.title, "content": req.content if req.content is not None else ""}
    if req.episode_number is not None:
        data["episode_number"] = req.episode_number
    with db_errors(f"updating story {story_id}"):
        row = store.update_story(story_id, data)
    _found(row, "Story not found.")
    return MessageResponse(message="Updated successfully", id=story_id)


@router.delete("/stories/{story_id}", response_model=MessageResponse)
def delete_story(story_id: int, store: StoryStore = Depends(get_story_store)):
    with db_errors(f"deleting story {story_id}"):
        deleted = store.delete_story(story_id)
    _found(deleted, "No story to delete.")
    return MessageResponse(message="Deleted successfully")


# ── Episodes (roadmap) ───────────────────────────────────────────

@router.get("/episodes")
def list_episodes(setting_id: Optional[int] = None, store: StoryStore = Depends(get_story_store)):
    _require(setting_id is not None, "Setting ID is required.")
    with db_errors(f"fetching episodes for setting {setting_id}"):
        return store.list_episodes(setting_id)


@router.get("/previous-stories")
def previous_stories(
    setting_id: Optional[int] = None,
    episode_number: Optional[int] = None,
    store: StoryStore = Depends(get_story_store),
):
    """Up to five episodes right before `episode_number`, for prompt context."""
    _require(setting_id is not None and episode_number is not None,
             "Setting ID and episode number are required.")
    with db_errors("fetching previous stories"):
        return store.previous_episodes(setting_id, episode_number)


@router.post("/episodes", status_code=201, response_model=CreatedResponse)
def create_episode(req: EpisodeRequest, store: StoryStore = Depends(get_story_store)):
    _require(req.setting_id and req.episode_number and req.title and req.content is not None,
             "Required fields are missing.")
    data = {
        "setting_id": req.setting_id,
        "episode_number": req.episode_number,
        "title": req.title,
        "content": req.content,
        "prompt": req.prompt or "AI Generated",
    }
    with db_errors("saving episode"):
        row = store.create_episode(data)
    logger.info(f"Inserted episode {req.episode_number} (ID: {row['id']})")
    return CreatedResponse(message="Episode successfully saved.", id=row["id"], episode_number=req.episode_number)


@router.put("/episodes/{episode_id}", response_model=MessageResponse)
def update_episode(episode_id: int, req: EpisodeRequest, store: StoryStore = Depends(get_story_store)):
    _require(req.episode_number and req.title and req.content is not None,
             "Required update fields are missing.")
    data = {"episode_number": req.episode_number, "title": req.title, "content": req.content}
    with db_errors(f"updating episode {episode_id}"):
        row = store.update_episode(episode_id, data)
    _found(row, f"Episode ID {episode_id} not found.")
    return MessageResponse(message=f"Episode ID {episode_id} successfully updated.", id=episode_id)


@router.delete("/episodes/{episode_id}", response_model=MessageResponse)
def delete_episode(episode_id: int, store: StoryStore = Depends(get_story_store)):
    with db_errors(f"deleting episode {episode_id}"):
        deleted = store.delete_episode(episode_id)
    _found(deleted, "Episode not found")
    return MessageResponse(message="Episode deleted successfully")
