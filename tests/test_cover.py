"""Tests for volume cover generation."""

import pytest


class TestCoverGenerator:
    def _generator(self, art_agent, settings):
        from workflow.cover import CoverGenerator
        return CoverGenerator(art_agent=art_agent, settings=settings)

    @pytest.mark.asyncio
    async def test_sets_cover(self, art_agent, settings, noir_profile, master_png):
        from models.volume import Volume
        volume = Volume.default_for(noir_profile)
        image = await self._generator(art_agent, settings).generate(noir_profile, volume, "Moonlit rooftop")
        assert image == master_png
        assert volume.cover_image == master_png

    @pytest.mark.asyncio
    async def test_failure_leaves_volume_untouched(self, art_agent, settings, noir_profile, mock_images, export_png):
        from config.exceptions import AITransportError, GenerationStageError
        from models.volume import Volume
        volume = Volume.default_for(noir_profile)
        volume.cover_image = export_png
        mock_images.generate_image.side_effect = AITransportError("quota exceeded")
        generator = self._generator(art_agent, settings)
        with pytest.raises(GenerationStageError) as exc_info:
            await generator.generate(noir_profile, volume)
        assert exc_info.value.stage == "cover"
        assert volume.cover_image == export_png
        assert not generator._running

    @pytest.mark.asyncio
    async def test_does_not_touch_asset_store(self, art_agent, settings, noir_profile):
        from models.project import ProjectState
        from models.volume import Volume
        state = ProjectState(series_profiles=[noir_profile])
        volume = Volume.default_for(noir_profile)
        await self._generator(art_agent, settings).generate(noir_profile, volume)
        assert state.strips == []
