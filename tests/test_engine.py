"""Tests for the engine context lifecycle."""

import pytest

from booking_engine.engine import BookingEngine
from booking_engine.errors import AuthenticationError
from booking_engine.wizard.state_machine import WizardStep
from tests.conftest import TODAY, make_config


class TestEngineLifecycle:
    @pytest.mark.asyncio
    async def test_init_use_dispose(self, backend):
        engine = BookingEngine.init(make_config(), transport=backend.transport)
        await engine.catalog.load()
        assert engine.catalog.is_loaded
        await engine.dispose()
        assert engine.disposed

    @pytest.mark.asyncio
    async def test_dispose_is_idempotent(self, backend):
        engine = BookingEngine.init(make_config(), transport=backend.transport)
        await engine.dispose()
        await engine.dispose()
        assert engine.disposed

    @pytest.mark.asyncio
    async def test_no_wizard_after_dispose(self, backend):
        async with BookingEngine.init(make_config(), transport=backend.transport) as engine:
            pass
        with pytest.raises(RuntimeError):
            engine.new_wizard()

    @pytest.mark.asyncio
    async def test_wizards_share_catalog_but_not_drafts(self, backend):
        async with BookingEngine.init(make_config(), transport=backend.transport) as engine:
            first = engine.new_wizard(clock=lambda: TODAY)
            second = engine.new_wizard(clock=lambda: TODAY)
            await first.load()
            await first.check_postal_code("12345")
            assert second.draft.postal_code == ""
            assert second.step == WizardStep.SERVICE_SELECTION
            assert first.session_id != second.session_id
            catalog_calls = len(backend.calls("GET"))
            await second.load()
            assert ("GET", "/calendar/blocked-dates") == backend.requests[-1]
            assert len(backend.calls("GET")) == catalog_calls + 1

    @pytest.mark.asyncio
    async def test_engines_are_independent(self, backend):
        async with BookingEngine.init(make_config(), transport=backend.transport) as one, \
                BookingEngine.init(make_config(), transport=backend.transport) as two:
            await one.catalog.load()
            assert not two.catalog.is_loaded

    @pytest.mark.asyncio
    async def test_unauthorized_callback_wired(self, backend):
        calls = []
        backend.fail("GET", "/bookings", 401)
        async with BookingEngine.init(
            make_config(), transport=backend.transport, on_unauthorized=lambda: calls.append(1),
        ) as engine:
            with pytest.raises(AuthenticationError):
                await engine.lifecycle.refresh()
        assert calls == [1]
