"""
Optional scoring inputs that come from outside the application record.

Both signals are passed to the scorer as Optional values; None means "not
available" and the matching dimension scores 0.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ProfileSignal:
    """Member profile fields that count toward completion."""
    email: str = ''
    user_id: Optional[str] = None
    display_name: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    handicap: Optional[float] = None
    favorite_club: Optional[str] = None
    avatar_url: Optional[str] = None
    completion_percentage: Optional[float] = None   # precomputed upstream, if any

    def completion_fields(self):
        return (
            bool(self.display_name),
            bool(self.bio),
            bool(self.location),
            self.handicap is not None,   # a 0 handicap is still filled in
            bool(self.favorite_club),
            bool(self.avatar_url),
        )

    def profile_completion_percentage(self) -> float:
        """Precomputed percentage if present, else share of filled optional fields."""
        if self.completion_percentage is not None:
            return self.completion_percentage
        fields = self.completion_fields()
        return round(sum(fields) / len(fields) * 100)


@dataclass(frozen=True)
class EquipmentSignal:
    item_count: int = 0
    has_photo: bool = False
    unique_brands: int = 0
