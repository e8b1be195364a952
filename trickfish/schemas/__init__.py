from trickfish.schemas.ranking import RankingEntryResponse, RankingSnapshot

__all__ = ["RankingEntryResponse", "RankingSnapshot"]
