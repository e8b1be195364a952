"""
trickfish/orm/ranking.py
Persisted ranking snapshots; fully replaced on every rebuild
"""
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, Index

from trickfish.orm.base import BaseModel


class RankingEntryRecord(BaseModel):
    __tablename__ = "ranking_entries"

    stage_id = Column(Integer, ForeignKey("stages.id", ondelete="CASCADE"), nullable=False, index=True)
    registration_id = Column(Integer, ForeignKey("registrations.id", ondelete="CASCADE"), nullable=False)
    competitor_id = Column(Integer, ForeignKey("competitors.id"), nullable=True)
    capture_id = Column(Integer, ForeignKey("captures.id"), nullable=True)

    category = Column(String(30), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    total_score = Column(Numeric(10, 2), nullable=False, default=0)
    largest_fish = Column(Numeric(10, 2), nullable=False, default=0)
    fish_count = Column(Integer, nullable=False, default=0)
    award = Column(String(200), nullable=False, default="")

    __table_args__ = (
        Index("idx_ranking_stage_category_position", "stage_id", "category", "position"),
    )

    def __repr__(self):
        return f"<RankingEntryRecord(stage_id={self.stage_id}, category='{self.category}', position={self.position})>"
