"""
Explicit engine context.

Lifecycle is ``init(config) -> use -> dispose()``. Everything the engine
holds (backend client, catalog, calendar, lifecycle manager) lives on the
context object instead of module globals, so several engines can run side
by side and each test builds its own.

Usage:
    async with BookingEngine.init(config) as engine:
        await engine.catalog.load()
        wizard = engine.new_wizard()
"""

import logging
from datetime import date
from typing import Any, Callable, Optional

import httpx

from booking_engine.api.client import BackendClient, TokenProvider
from booking_engine.config import AppConfig
from booking_engine.tools.availability import CalendarAvailabilityManager
from booking_engine.tools.booking import BookingLifecycleManager
from booking_engine.tools.catalog import CatalogCache
from booking_engine.wizard.session import BookingWizard

logger = logging.getLogger(__name__)


class BookingEngine:
    """Owns the shared collaborators for one configured backend."""

    def __init__(self, config: AppConfig, client: BackendClient) -> None:
        self.config = config
        self.client = client
        self.catalog = CatalogCache(client)
        self.availability = CalendarAvailabilityManager(client)
        self.lifecycle = BookingLifecycleManager(client)
        self._disposed = False

    @classmethod
    def init(
        cls,
        config: AppConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        token_provider: Optional[TokenProvider] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
    ) -> "BookingEngine":
        client = BackendClient(
            config.api,
            token_provider=token_provider,
            on_unauthorized=on_unauthorized,
            transport=transport,
        )
        logger.info("Booking engine initialised against %s", config.api.base_url)
        return cls(config, client)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def new_wizard(
        self,
        clock: Callable[[], date] = date.today,
        session_id: Optional[str] = None,
    ) -> BookingWizard:
        """Start an independent wizard session sharing this engine's catalog."""
        if self._disposed:
            raise RuntimeError("Booking engine has been disposed")
        return BookingWizard(
            self.client,
            self.catalog,
            self.availability,
            pricing=self.config.pricing,
            rules=self.config.booking,
            clock=clock,
            session_id=session_id,
        )

    async def dispose(self) -> None:
        if self._disposed:
            return
        await self.client.aclose()
        self._disposed = True
        logger.info("Booking engine disposed")

    async def __aenter__(self) -> "BookingEngine":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.dispose()
