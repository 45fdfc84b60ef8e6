"""Shared pytest fixtures for the comicstudio test suite."""

import io
import itertools

import pytest
from unittest.mock import AsyncMock, MagicMock


# ---------------------------------------------------------------------------
# Settings fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path):
    """Return a Settings instance with all paths pointing to tmp_path."""
    from config.settings import Settings
    return Settings(
        _env_file=None,
        storage_path=tmp_path / "studio.db",
        export_dir=tmp_path / "exports",
        log_dir=tmp_path / "logs",
        gemini_api_key="test-key",
    )


# ---------------------------------------------------------------------------
# Image fixtures
# ---------------------------------------------------------------------------

def _png_data_url(color, size=(64, 36)) -> str:
    from PIL import Image
    from tools.image_utils import to_data_url
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return to_data_url(buffer.getvalue(), "image/png")


@pytest.fixture
def make_png():
    """Factory for tiny solid-color PNG data URLs."""
    return _png_data_url


@pytest.fixture
def master_png():
    return _png_data_url((200, 30, 30))


@pytest.fixture
def export_png():
    return _png_data_url((30, 30, 200))


# ---------------------------------------------------------------------------
# AI client mocks
# ---------------------------------------------------------------------------

def script_payload(panel_count: int = 3) -> list[dict]:
    return [
        {
            "panelNumber": n,
            "visualDescription": f"Detective Paws in the rainy alley, beat {n}",
            "dialogue": [{"character": "Detective Paws", "text": f"Line {n}"}] if n != 2 else [],
        }
        for n in range(1, panel_count + 1)
    ]


@pytest.fixture
def make_script():
    """Factory for raw panel arrays as the script service returns them."""
    return script_payload


@pytest.fixture
def mock_llm():
    """Return an AsyncMock replacing AgentSDKClient with a valid 3-panel script."""
    llm = AsyncMock()
    llm.chat.return_value = "A gritty alley slick with rain under a flickering neon sign."
    llm.chat_json_array.return_value = script_payload(3)
    llm.get_usage_summary = MagicMock(return_value={"total_calls": 1})
    return llm


@pytest.fixture
def mock_images(master_png, export_png):
    """Return an AsyncMock replacing GeminiImageClient."""
    images = AsyncMock()
    images.generate_image.return_value = master_png
    images.edit_image.return_value = export_png
    images.get_usage_summary = MagicMock(return_value={"total_calls": 1})
    return images


@pytest.fixture
def script_agent(mock_llm, settings):
    from agents.script_agent import ScriptAgent
    return ScriptAgent(llm_client=mock_llm, settings=settings)


@pytest.fixture
def art_agent(mock_images, mock_llm, settings):
    from agents.art_agent import ArtAgent
    return ArtAgent(image_client=mock_images, llm_client=mock_llm, settings=settings)


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def noir_profile():
    """The seeded "Noir Whiskers" series (id c1)."""
    from models.catalog import default_series
    return default_series()[0]


@pytest.fixture
def clock():
    """Deterministic millisecond clock advancing by one second per call."""
    counter = itertools.count(1_700_000_000_000, 1000)
    return lambda: next(counter)


@pytest.fixture
def pipeline(noir_profile, script_agent, art_agent, settings, clock):
    from workflow.pipeline import GenerationPipeline
    return GenerationPipeline(
        noir_profile,
        script_agent=script_agent,
        art_agent=art_agent,
        settings=settings,
        clock=clock,
    )


@pytest.fixture
def make_strip(master_png):
    """Factory for saved strips."""
    from models.strip import DialogueLine, Panel, Strip

    def _make(strip_id="s1", series_id="c1", export_image=None, name=None, created_at=1):
        return Strip(
            id=strip_id,
            ar_target_id="DIAL-AAAA-BBBB",
            series_id=series_id,
            name=name or f"Episode {strip_id}",
            prompt="A cat loses his hat",
            panel_script=[
                Panel(1, "Cat walks in the rain", [DialogueLine("Detective Paws", "Wet again.")]),
                Panel(2, "Wind takes the hat", []),
            ],
            master_image=master_png,
            export_image=export_image,
            panel_count=2,
            created_at=created_at,
        )
    return _make


# ---------------------------------------------------------------------------
# Storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def kv():
    from models.kv_store import InMemoryKeyValueStore
    return InMemoryKeyValueStore()


@pytest.fixture
def session_store(kv, settings, clock):
    from workspace.session_store import SessionStore
    return SessionStore(kv, settings, clock=clock)


@pytest.fixture
def workspace(session_store):
    from workspace.workspace import Workspace
    return Workspace(session_store, "alice")
