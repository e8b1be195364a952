"""
ORM models. Importing this package registers every table on Base.metadata.
"""
from trickfish.orm.base import Base, BaseModel
from trickfish.orm.competitor import CompetitorRecord
from trickfish.orm.edition import EditionRecord
from trickfish.orm.stage import StageRecord, RulerRecord
from trickfish.orm.registration import RegistrationRecord, CaptureRecord
from trickfish.orm.ranking import RankingEntryRecord

__all__ = [
    "Base",
    "BaseModel",
    "CompetitorRecord",
    "EditionRecord",
    "StageRecord",
    "RulerRecord",
    "RegistrationRecord",
    "CaptureRecord",
    "RankingEntryRecord",
]
