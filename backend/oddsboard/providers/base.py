from abc import ABC, abstractmethod

from oddsboard.models.odds import Event


class OddsFetcher(ABC):
    """Abstract upstream odds source consumed by the update scheduler."""

    @abstractmethod
    async def fetch(self, sport_key: str) -> list[Event]:
        """Fetch the current odds board for a sport.

        Returns validated events (possibly empty). Any failure, including an
        error payload from the provider, raises FetchError.
        """
        ...
