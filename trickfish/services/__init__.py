from trickfish.services.competitor_service import CompetitorService
from trickfish.services.edition_service import EditionService
from trickfish.services.stage_service import StageService
from trickfish.services.registration_service import RegistrationService
from trickfish.services.capture_service import CaptureService
from trickfish.services.ruler_service import RulerService
from trickfish.services.ranking_service import RankingService

__all__ = [
    "CompetitorService",
    "EditionService",
    "StageService",
    "RegistrationService",
    "CaptureService",
    "RulerService",
    "RankingService",
]
