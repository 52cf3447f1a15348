from __future__ import annotations

import pytest

from src.trail_media.media.media_errors import FallbackCopyError
from src.trail_media.media.media_storage import UploadStore
from src.trail_media.media.transcoder import Transcoder
from tests.mocks.toolchain import TRANSCODED_BYTES, FakeToolchain, ToolScenario

pytestmark = pytest.mark.unit


@pytest.mark.asyncio
async def test_successful_transcode_removes_raw(store: UploadStore) -> None:
    paths = store.video_paths("vid1", "mov")
    paths.raw.write_bytes(b"original-hevc")

    outcome = await Transcoder(FakeToolchain(), store).normalize(paths.raw, paths.video)

    assert outcome.transcoded is True
    assert paths.video.read_bytes() == TRANSCODED_BYTES
    assert not paths.raw.exists()


@pytest.mark.asyncio
@pytest.mark.parametrize("scenario", [ToolScenario.ERROR, ToolScenario.TIMEOUT])
async def test_failed_transcode_falls_back_to_original_bytes(store: UploadStore, scenario: ToolScenario) -> None:
    paths = store.video_paths("vid2", "mov")
    paths.raw.write_bytes(b"original-hevc")

    outcome = await Transcoder(FakeToolchain(transcode_scenario=scenario), store).normalize(paths.raw, paths.video)

    assert outcome.transcoded is False
    assert outcome.error
    assert paths.video.read_bytes() == b"original-hevc"
    assert not paths.raw.exists()


@pytest.mark.asyncio
async def test_empty_transcode_output_falls_back(store: UploadStore) -> None:
    class EmptyOutputToolchain(FakeToolchain):
        async def transcode(self, source, target) -> None:
            target.write_bytes(b"")

    paths = store.video_paths("vid3", "webm")
    paths.raw.write_bytes(b"original-vp9")

    outcome = await Transcoder(EmptyOutputToolchain(), store).normalize(paths.raw, paths.video)

    assert outcome.transcoded is False
    assert paths.video.read_bytes() == b"original-vp9"


@pytest.mark.asyncio
async def test_fallback_failure_propagates(store: UploadStore) -> None:
    paths = store.video_paths("vid4", "mov")

    with pytest.raises(FallbackCopyError):
        await Transcoder(FakeToolchain(transcode_scenario=ToolScenario.ERROR), store).normalize(
            paths.raw, paths.video
        )
