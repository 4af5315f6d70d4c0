"""Abstract base class for site routers."""

from abc import ABC, abstractmethod

from src.core.schemas import CrawlRequest
from src.crawler.engine import RequestScheduler
from src.crawler.fetcher import FetchResponse


class SiteRouter(ABC):
    """Base class that every site router must implement.

    The crawler calls ``handle`` once per fetched request; the router picks
    the handler for the request's label.
    """

    @property
    @abstractmethod
    def site_id(self) -> str:
        """Unique identifier for this site (e.g. 'dice')."""

    @abstractmethod
    async def handle(
        self,
        request: CrawlRequest,
        response: FetchResponse,
        scheduler: RequestScheduler,
    ) -> None:
        """Process one fetched request, persisting records and queuing follow-ups."""
