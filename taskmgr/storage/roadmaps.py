import logging

from taskmgr.domain.models import Roadmap, utc_now
from taskmgr.lib.errors import NotFoundError

from .base import Repository

logger = logging.getLogger(__name__)


class RoadmapRepository(Repository):
    table = "roadmaps"
    schema = "roadmap"
    label = "roadmap"

    def save(self, roadmap: Roadmap) -> Roadmap:
        self._insert(roadmap.to_record())
        logger.info(f"[DB] created roadmap {roadmap.id}")
        return roadmap

    def get(self, roadmap_id: str) -> Roadmap:
        return Roadmap.from_row(self._row(roadmap_id))

    def get_active(self) -> Roadmap:
        """Most recently created roadmap."""
        row = self.db.query_one("SELECT * FROM roadmaps ORDER BY created_at DESC, id DESC LIMIT 1")
        if row is None:
            raise NotFoundError("no roadmap exists")
        return Roadmap.from_row(row)

    def update(self, roadmap: Roadmap) -> Roadmap:
        roadmap.updated_at = utc_now()
        self._update(roadmap.to_record())
        logger.info(f"[DB] updated roadmap {roadmap.id}")
        return roadmap

    def list(self) -> list[Roadmap]:
        return [Roadmap.from_row(r) for r in self.db.query("SELECT * FROM roadmaps ORDER BY created_at")]
