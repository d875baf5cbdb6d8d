"""
Postal code validation against configured service areas.

Matching is exact string equality after trimming whitespace; no case
folding or punctuation stripping. Empty input yields a neutral
"not yet validated" result, distinct from "entered but out of area".
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from booking_engine.errors import BookingEngineError, ServiceAreaError
from booking_engine.schemas.catalog_schema import ServiceArea
from booking_engine.tools.catalog import CatalogCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PostalCodeResult:
    """Outcome of a postal code check.

    ``is_valid`` is None when nothing was entered yet.
    """
    is_valid: Optional[bool] = None
    area_name: Optional[str] = None

    @property
    def validated(self) -> bool:
        return self.is_valid is not None


NOT_VALIDATED = PostalCodeResult()


def validate_postal_code(postal_code: str, areas: list[ServiceArea]) -> PostalCodeResult:
    """Match a postal code against the service area list."""
    code = postal_code.strip()
    if not code:
        return NOT_VALIDATED
    for area in areas:
        if area.postal_code == code:
            return PostalCodeResult(is_valid=True, area_name=area.area_name)
    return PostalCodeResult(is_valid=False)


class ServiceAreaChecker:
    """Validates postal codes against the catalog's current service areas."""

    def __init__(self, catalog: CatalogCache) -> None:
        self._catalog = catalog

    async def check(self, postal_code: str) -> PostalCodeResult:
        if not postal_code.strip():
            return NOT_VALIDATED
        if not self._catalog.is_loaded:
            await self._catalog.load()
        result = validate_postal_code(postal_code, self._catalog.service_areas)
        logger.debug("Postal code %r valid=%s", postal_code.strip(), result.is_valid)
        return result

    async def require(self, postal_code: str) -> ServiceArea:
        """Return the matching area or raise ServiceAreaError."""
        result = await self.check(postal_code)
        if not result.is_valid:
            raise ServiceAreaError(postal_code.strip())
        code = postal_code.strip()
        return next(a for a in self._catalog.service_areas if a.postal_code == code)


class DebouncedPostalValidator:
    """
    Runs a postal check only after input has been quiet for ``delay_sec``.

    A new submission cancels a check that is still waiting out its quiet
    period, but not one already in flight. By default every in-flight
    result is recorded as it lands, so a slow earlier request can overwrite
    a newer one. Pass ``drop_stale=True`` to ignore results from requests
    superseded by a later one. ``on_result`` is called with every
    result that is recorded.
    """

    def __init__(
        self,
        check: Callable[[str], Awaitable[PostalCodeResult]],
        delay_sec: float = 0.5,
        drop_stale: bool = False,
        on_result: Optional[Callable[[str, PostalCodeResult], None]] = None,
    ) -> None:
        self._check = check
        self._on_result = on_result
        self._delay_sec = delay_sec
        self._drop_stale = drop_stale
        self._waiting: Optional[asyncio.Task] = None
        self._in_flight: set[asyncio.Task] = set()
        self._sequence = 0
        self._latest_started = 0
        self.result: PostalCodeResult = NOT_VALIDATED
        self.last_error: Optional[BookingEngineError] = None

    @property
    def is_validating(self) -> bool:
        return bool(self._in_flight)

    def submit(self, postal_code: str) -> None:
        """Record a keystroke. Must be called from a running event loop."""
        if self._waiting is not None and not self._waiting.done():
            self._waiting.cancel()
        self._waiting = None
        if not postal_code.strip():
            self.result = NOT_VALIDATED
            self.last_error = None
            return
        self._waiting = asyncio.get_running_loop().create_task(self._run(postal_code))

    async def _run(self, postal_code: str) -> None:
        await asyncio.sleep(self._delay_sec)
        task = asyncio.current_task()
        self._waiting = None
        self._in_flight.add(task)
        self._sequence += 1
        sequence = self._sequence
        self._latest_started = sequence
        try:
            result = await self._check(postal_code)
        except BookingEngineError as e:
            logger.warning("Postal code check failed: %s", e)
            self.last_error = e
            result = PostalCodeResult(is_valid=False)
        finally:
            self._in_flight.discard(task)

        if self._drop_stale and sequence < self._latest_started:
            logger.debug("Dropping stale postal result for %r", postal_code)
            return
        self.result = result
        if self._on_result is not None:
            self._on_result(postal_code, result)

    async def wait(self) -> PostalCodeResult:
        """Wait for the pending and in-flight checks, then return the latest result."""
        while True:
            pending = [t for t in (self._waiting, *self._in_flight) if t is not None]
            if not pending:
                return self.result
            await asyncio.gather(*pending, return_exceptions=True)
