"""
Ranking Service

Rebuilds and exports stage rankings.

Rankings are derived data: a rebuild replaces every stored entry of the stage
and never touches registrations or captures. Exports carry a SHA-256 checksum
over deterministic JSON so consumers can detect tampering.
"""
import hashlib
import json
import logging
from datetime import datetime
from typing import List, Optional

from trickfish.domain.models import RankingEntry
from trickfish.domain.ranking import build_stage_rankings
from trickfish.errors import NotFoundError
from trickfish.repositories.base import TournamentRepository
from trickfish.schemas.ranking import RankingEntryResponse, RankingSnapshot

logger = logging.getLogger(__name__)


def compute_checksum(snapshot: RankingSnapshot) -> str:
    """SHA-256 over the snapshot's canonical JSON (sorted keys, compact)."""
    payload = json.dumps(snapshot.canonical_payload(), sort_keys=True, separators=(',', ':'))
    return hashlib.sha256(payload.encode()).hexdigest()


class RankingService:
    """Ranking snapshots backed by a tournament repository."""

    def __init__(self, repo: TournamentRepository):
        self.repo = repo

    async def rebuild(self, stage_id: int) -> List[RankingEntry]:
        """
        Build overall and per-species rankings for a stage and replace the
        stored ones.

        Participants are read in registration order, which is what keeps
        equal totals in a reproducible order.
        """
        try:
            stage = await self.repo.get_stage(stage_id)
            if stage is None:
                raise NotFoundError("Stage", stage_id)

            participants = await self.repo.list_participants(stage_id)
            entries = build_stage_rankings(stage_id, participants)
            await self.repo.replace_ranking(stage_id, entries)
            await self.repo.commit()
        except Exception:
            await self.repo.rollback()
            raise

        logger.info(f"Ranking rebuilt for stage {stage_id}: {len(participants)} participants, "
                    f"{len(entries)} entries")
        return entries

    async def get_ranking(self, stage_id: int, category=None) -> List[RankingEntry]:
        """Stored entries in build order, optionally for one category."""
        return await self.repo.list_ranking(stage_id, category=category)

    async def list_rankings(
        self,
        stage_id: Optional[int] = None,
        edition_id: Optional[int] = None,
        competitor_id: Optional[int] = None
    ) -> List[RankingEntry]:
        """
        Stored entries across stages, filtered by any combination of stage,
        edition and competitor, ordered by position.
        """
        return await self.repo.list_rankings(
            stage_id=stage_id, edition_id=edition_id, competitor_id=competitor_id
        )

    async def export_snapshot(self, stage_id: int, now: Optional[datetime] = None) -> RankingSnapshot:
        if await self.repo.get_stage(stage_id) is None:
            raise NotFoundError("Stage", stage_id)

        entries = await self.repo.list_ranking(stage_id)
        snapshot = RankingSnapshot(
            stage_id=stage_id,
            generated_at=now or datetime.utcnow(),
            entries=[RankingEntryResponse.model_validate(entry) for entry in entries],
        )
        snapshot.checksum = compute_checksum(snapshot)
        return snapshot

    @staticmethod
    def verify_snapshot(snapshot: RankingSnapshot) -> bool:
        """True when the snapshot's checksum matches its content."""
        valid = compute_checksum(snapshot) == snapshot.checksum
        if not valid:
            logger.warning(f"Ranking snapshot checksum mismatch for stage {snapshot.stage_id}")
        return valid
