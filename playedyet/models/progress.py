"""Progress tracking data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ImageRefreshProgress:
    """Progress information for a bulk cover refresh."""
    current_title: str
    games_processed: int
    total_games: int
    covers_updated: int = 0  # Games whose cover path was replaced

    @property
    def percentage(self) -> float:
        if self.total_games <= 0:
            return 100.0
        return (self.games_processed / self.total_games) * 100
