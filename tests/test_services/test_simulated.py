"""Tests for SimulatedClassificationService."""

import asyncio

import pytest

from fakes import WOLF, make_asset
from sounddecoder.services.protocols import ClassificationService
from sounddecoder.services.simulated import SIMULATED_RESULTS, SimulatedClassificationService


class TestSimulatedClassificationService:
    def test_satisfies_protocol(self):
        assert isinstance(SimulatedClassificationService(), ClassificationService)

    def test_catalog(self):
        species = [r.species for r in SIMULATED_RESULTS]
        assert species == [
            "Bird (Yellow Warbler)",
            "Wolf (Canis lupus)",
            "Dolphin (Bottlenose)",
            "Cat (Domestic)",
        ]
        assert [r.confidence_bps for r in SIMULATED_RESULTS] == [8800, 9200, 9500, 7600]

    @pytest.mark.asyncio
    async def test_answers_from_catalog(self):
        service = SimulatedClassificationService(delay=0.0, seed=3)
        assert await service.classify(make_asset()) in SIMULATED_RESULTS

    @pytest.mark.asyncio
    async def test_seeded_choices_repeat(self):
        async def picks(seed):
            service = SimulatedClassificationService(delay=0.0, seed=seed)
            return [await service.classify(make_asset()) for _ in range(6)]

        assert await picks(11) == await picks(11)

    @pytest.mark.asyncio
    async def test_custom_catalog(self):
        service = SimulatedClassificationService(delay=0.0, catalog=[WOLF])
        assert await service.classify(make_asset()) == WOLF

    def test_empty_catalog_rejected(self):
        with pytest.raises(ValueError):
            SimulatedClassificationService(catalog=[])

    def test_default_catalog_when_omitted(self):
        assert SimulatedClassificationService(catalog=None).catalog == SIMULATED_RESULTS

    @pytest.mark.asyncio
    async def test_delay_is_observed(self):
        service = SimulatedClassificationService(delay=5.0)
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(service.classify(make_asset()), timeout=0.05)
