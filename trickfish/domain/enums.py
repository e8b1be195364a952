"""
Closed vocabularies for the tournament domain.

Stored values keep the tournament's original wire vocabulary.
"""
from enum import Enum

from trickfish.errors import ValidationError, ErrorCode


class _ParseableEnum(str, Enum):
    """String enum that validates raw values at the boundary."""

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(member.value for member in cls)
            raise ValidationError(
                f"Invalid {cls.__name__} '{value}'. Expected one of: {allowed}",
                code=ErrorCode.INVALID_CHOICE,
                details={"field": cls.__name__, "value": str(value)}
            ) from None


class Species(_ParseableEnum):
    """Fish species accepted in the tournament."""
    BLUE_PEACOCK_BASS = "tucunare_azul"
    YELLOW_PEACOCK_BASS = "tucunare_amarelo"
    WOLFFISH = "traira"

    @property
    def display_name(self) -> str:
        return SPECIES_DISPLAY_NAMES[self]

    @property
    def is_peacock_bass(self) -> bool:
        return self is not Species.WOLFFISH


SPECIES_DISPLAY_NAMES = {
    Species.BLUE_PEACOCK_BASS: "Tucunaré Azul",
    Species.YELLOW_PEACOCK_BASS: "Tucunaré Amarelo",
    Species.WOLFFISH: "Traíra",
}


class PaymentStatus(_ParseableEnum):
    """Registration payment status"""
    PENDING = "pendente"
    PAID = "pago"
    CANCELLED = "cancelado"
    REFUNDED = "reembolsado"


class StageStatus(_ParseableEnum):
    """Stage lifecycle status"""
    OPEN = "aberta"
    IN_PROGRESS = "em_andamento"
    FINISHED = "finalizada"
    CANCELLED = "cancelada"


class RankingCategory(_ParseableEnum):
    """Ranking categories produced for each stage"""
    OVERALL = "geral"
    LARGEST_BLUE = "maior_azul"
    LARGEST_YELLOW = "maior_amarelo"
    LARGEST_WOLFFISH = "maior_traira"

    @classmethod
    def for_species(cls, species: Species) -> "RankingCategory":
        return SPECIES_CATEGORIES[Species.parse(species)]


SPECIES_CATEGORIES = {
    Species.BLUE_PEACOCK_BASS: RankingCategory.LARGEST_BLUE,
    Species.YELLOW_PEACOCK_BASS: RankingCategory.LARGEST_YELLOW,
    Species.WOLFFISH: RankingCategory.LARGEST_WOLFFISH,
}
