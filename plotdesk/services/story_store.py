"""
Read and write story data (settings, world settings, characters, stories, episodes) in Supabase.
"""
from datetime import datetime, timezone
from functools import lru_cache
from typing import List, Dict, Any, Optional
import logging

from supabase import Client, create_client

from ..config import settings

logger = logging.getLogger(__name__)

SETTING_SUMMARY_COLUMNS = (
    "id, title, episode_number, worldSetting, characterDetails, plotDetails, updated_at"
)
WORLD_SETTING_COLUMNS = "id, setting_id, title, description, created_at"
CHARACTER_COLUMNS = "id, setting_id, name, role, description, created_at"
STORY_COLUMNS = "id, setting_id, episode_number, title, content, prompt, createdAt:created_at"
EPISODE_COLUMNS = "id, setting_id, episode_number, title, prompt, content, createdAt"
PREVIOUS_EPISODE_COLUMNS = "episode_number, title, prompt, content"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class StoryStore:
    """
    Table access for the writing tool.

    Write methods return the affected row (or None when no row matched) so the
    API layer can answer 404 without a second query.
    """

    def __init__(self, client: Client):
        self.client = client

    # ── Generic helpers ──────────────────────────────────────────

    def _get(self, table: str, row_id: Any, columns: str = "*") -> Optional[Dict[str, Any]]:
        result = self.client.table(table).select(columns).eq("id", row_id).execute()
        return result.data[0] if result.data else None

    def _insert(self, table: str, data: Dict[str, Any]) -> Dict[str, Any]:
        result = self.client.table(table).insert(data).execute()
        return result.data[0]

    def _update(self, table: str, row_id: Any, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        result = self.client.table(table).update(data).eq("id", row_id).execute()
        return result.data[0] if result.data else None

    def _delete(self, table: str, row_id: Any) -> bool:
        result = self.client.table(table).delete().eq("id", row_id).execute()
        return bool(result.data)

    def _list_for_setting(self, table: str, columns: str, setting_id: Any, order: str):
        result = (
            self.client.table(table)
            .select(columns)
            .eq("setting_id", setting_id)
            .order(order)
            .execute()
        )
        return result.data

    def ping(self) -> None:
        """Raise if the database cannot be reached."""
        self.client.table("settings").select("id").limit(1).execute()

    # ── Settings ─────────────────────────────────────────────────

    def list_settings(self) -> List[Dict[str, Any]]:
        result = (
            self.client.table("settings")
            .select(SETTING_SUMMARY_COLUMNS)
            .order("updated_at", desc=True)
            .execute()
        )
        return result.data

    def get_setting(self, setting_id: Any) -> Optional[Dict[str, Any]]:
        return self._get("settings", setting_id)

    def create_setting(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("settings", {**data, "updated_at": _now()})

    def update_setting(self, setting_id: Any, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("settings", setting_id, {**data, "updated_at": _now()})

    def delete_setting(self, setting_id: Any) -> None:
        """Delete a setting with its world settings, characters and stories."""
        for table in ("world_settings", "characters", "stories"):
            self.client.table(table).delete().eq("setting_id", setting_id).execute()
        self.client.table("settings").delete().eq("id", setting_id).execute()
        logger.info(f"Deleted setting {setting_id} and its dependent rows")

    # ── World settings ───────────────────────────────────────────

    def list_world_settings(self, setting_id: Any) -> List[Dict[str, Any]]:
        return self._list_for_setting("world_settings", WORLD_SETTING_COLUMNS, setting_id, "created_at")

    def get_world_setting(self, world_setting_id: Any) -> Optional[Dict[str, Any]]:
        return self._get("world_settings", world_setting_id, WORLD_SETTING_COLUMNS)

    def create_world_setting(self, setting_id: Any, title: str, description: Optional[str]) -> Dict[str, Any]:
        return self._insert(
            "world_settings",
            {"setting_id": setting_id, "title": title, "description": description},
        )

    def update_world_setting(
        self, world_setting_id: Any, title: str, description: Optional[str]
    ) -> Optional[Dict[str, Any]]:
        return self._update(
            "world_settings", world_setting_id, {"title": title, "description": description}
        )

    def delete_world_setting(self, world_setting_id: Any) -> bool:
        return self._delete("world_settings", world_setting_id)

    # ── Characters ───────────────────────────────────────────────

    def list_characters(self, setting_id: Any) -> List[Dict[str, Any]]:
        return self._list_for_setting("characters", CHARACTER_COLUMNS, setting_id, "created_at")

    def create_character(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("characters", data)

    def create_characters(self, rows: List[Dict[str, Any]]) -> int:
        """Insert many characters in one request. Returns the number inserted."""
        result = self.client.table("characters").insert(rows).execute()
        return len(result.data)

    def update_character(self, character_id: Any, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("characters", character_id, data)

    def delete_character(self, character_id: Any) -> bool:
        return self._delete("characters", character_id)

    # ── Stories ──────────────────────────────────────────────────

    def list_stories(self, setting_id: Any) -> List[Dict[str, Any]]:
        return self._list_for_setting("stories", STORY_COLUMNS, setting_id, "episode_number")

    def create_story(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("stories", {**data, "created_at": _now()})

    def update_story(self, story_id: Any, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("stories", story_id, data)

    def delete_story(self, story_id: Any) -> bool:
        return self._delete("stories", story_id)

    # ── Episodes (roadmap) ───────────────────────────────────────

    def list_episodes(self, setting_id: Any) -> List[Dict[str, Any]]:
        return self._list_for_setting("episodes", EPISODE_COLUMNS, setting_id, "episode_number")

    def previous_episodes(self, setting_id: Any, episode_number: int, limit: int = 5) -> List[Dict[str, Any]]:
        """The `limit` episodes right before `episode_number`, oldest first."""
        result = (
            self.client.table("episodes")
            .select(PREVIOUS_EPISODE_COLUMNS)
            .eq("setting_id", setting_id)
            .lt("episode_number", episode_number)
            .order("episode_number", desc=True)
            .limit(limit)
            .execute()
        )
        return list(reversed(result.data))

    def create_episode(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("episodes", {**data, "createdAt": _now()})

    def update_episode(self, episode_id: Any, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("episodes", episode_id, {**data, "updatedAt": _now()})

    def delete_episode(self, episode_id: Any) -> bool:
        return self._delete("episodes", episode_id)


@lru_cache()
def get_story_store() -> StoryStore:
    """Get cached StoryStore on a Supabase client built from settings."""
    return StoryStore(create_client(settings.supabase_url, settings.supabase_key))
