import json
from typing import List, Optional
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncEngine
from models.db import KeyValueDB, make_engine, make_session_factory, create_tables
from models.schemas import ChannelProfile, SavedProject, VideoIdea
from loguru import logger

PROJECTS_KEY = "saved_projects"


class KeyValueStore:
    """String values under string keys, backed by a single table"""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._sessions = make_session_factory(engine)

    async def get(self, key: str) -> Optional[str]:
        async with self._sessions() as db:
            row = await db.get(KeyValueDB, key)
            return row.value if row else None

    async def set(self, key: str, value: str):
        async with self._sessions() as db:
            row = await db.get(KeyValueDB, key)
            if row:
                row.value = value
            else:
                db.add(KeyValueDB(key=key, value=value))
            await db.commit()


class ProjectStore:
    """Saved {profile, ideas} projects kept as one JSON array, most recent first.

    Every mutation rewrites the whole array. Names identify projects for
    de-duplication; ids identify them for load/delete.
    """

    def __init__(self, database_url: Optional[str] = None, engine: Optional[AsyncEngine] = None):
        self.engine = engine or make_engine(database_url)
        self.kv = KeyValueStore(self.engine)
        self._ready = False

    async def _ensure_tables(self):
        if not self._ready:
            await create_tables(self.engine)
            self._ready = True

    async def list_projects(self) -> List[SavedProject]:
        await self._ensure_tables()
        raw = await self.kv.get(PROJECTS_KEY)
        if not raw:
            return []
        try:
            return [SavedProject.model_validate(item) for item in json.loads(raw)]
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            logger.error(f"Failed to load saved projects: {e}")
            return []

    async def _write(self, projects: List[SavedProject]):
        payload = [p.model_dump(mode="json", by_alias=True) for p in projects]
        await self.kv.set(PROJECTS_KEY, json.dumps(payload))

    async def save(self, profile: ChannelProfile, ideas: List[VideoIdea]) -> SavedProject:
        project = SavedProject.new(profile, ideas)
        existing = await self.list_projects()
        updated = [project] + [p for p in existing if p.name != project.name]
        await self._write(updated)
        logger.info(f"Saved project '{project.name}' ({len(ideas)} ideas)")
        return project

    async def load(self, project_id: str) -> Optional[SavedProject]:
        for project in await self.list_projects():
            if project.id == project_id:
                return project
        return None

    async def delete(self, project_id: str) -> bool:
        existing = await self.list_projects()
        updated = [p for p in existing if p.id != project_id]
        if len(updated) == len(existing):
            return False
        await self._write(updated)
        logger.info(f"Deleted project {project_id}")
        return True

    async def close(self):
        await self.engine.dispose()
