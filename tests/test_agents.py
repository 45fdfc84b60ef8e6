"""Tests for Agent classes and BaseAgent utilities."""

import pytest


_SECTION_TEMPLATE = """\
## System Prompt
This is the system prompt.

## Other Section
Content that must not leak into the System Prompt extraction.

## Last Section
Final content.
"""


class TestPromptTemplate:
    def test_sections_parsed_by_exact_title(self):
        from agents.base_agent import PromptTemplate
        template = PromptTemplate.parse("t", _SECTION_TEMPLATE)
        assert template.section("System Prompt") == "This is the system prompt."
        assert template.section("Last Section") == "Final content."

    def test_section_stops_at_next_header(self):
        from agents.base_agent import PromptTemplate
        template = PromptTemplate.parse("t", _SECTION_TEMPLATE)
        assert "must not leak" not in template.section("System Prompt")

    def test_missing_section_raises(self):
        from agents.base_agent import PromptTemplate
        from config.exceptions import InvalidConfigError
        template = PromptTemplate.parse("t", _SECTION_TEMPLATE)
        with pytest.raises(InvalidConfigError, match="Missing"):
            template.section("Missing")

    def test_empty_section_counts_as_missing(self):
        from agents.base_agent import PromptTemplate
        from config.exceptions import InvalidConfigError
        template = PromptTemplate.parse("t", "## Empty\n\n## Full\ntext\n")
        with pytest.raises(InvalidConfigError, match="Empty"):
            template.require("Empty", "Full")

    def test_render_fills_placeholders(self):
        from agents.base_agent import PromptTemplate
        template = PromptTemplate.parse("t", "## Task\nDraw {count} panels\n")
        assert template.render("Task", count=4) == "Draw 4 panels"

    def test_render_unknown_placeholder_raises(self):
        from agents.base_agent import PromptTemplate
        from config.exceptions import InvalidConfigError
        template = PromptTemplate.parse("t", "## Task\nDraw {count} panels\n")
        with pytest.raises(InvalidConfigError, match="count"):
            template.render("Task")

    def test_missing_template_file_raises(self, tmp_path):
        from agents.base_agent import load_template
        from config.exceptions import InvalidConfigError
        with pytest.raises(InvalidConfigError, match="not found"):
            load_template("does_not_exist", tmp_path)


class TestBaseAgent:
    def test_agents_check_their_sections(self, mock_llm, settings):
        from agents.script_agent import ScriptAgent
        agent = ScriptAgent(llm_client=mock_llm, settings=settings)
        for title in ScriptAgent.required_sections:
            assert agent.prompts.section(title)

    def test_template_without_required_section_rejected(self, mock_llm, settings, tmp_path, monkeypatch):
        from agents import base_agent
        from config.exceptions import InvalidConfigError
        (tmp_path / "broken.md").write_text("## System Prompt\nHello\n", encoding="utf-8")
        monkeypatch.setattr(base_agent, "_PROMPTS_DIR", tmp_path)

        class BrokenAgent(base_agent.BaseAgent):
            template_name = "broken"
            required_sections = ("System Prompt", "Script Task")

        with pytest.raises(InvalidConfigError, match="Script Task"):
            BrokenAgent(llm_client=mock_llm, settings=settings)


class TestValidateScript:
    def test_valid_script(self, make_script):
        from agents.script_agent import validate_script
        panels = validate_script(make_script(3), 3)
        assert [p.panel_number for p in panels] == [1, 2, 3]
        assert panels[1].dialogue == []
        assert panels[0].dialogue[0].character == "Detective Paws"

    def test_wrong_panel_count_rejected(self, make_script):
        from agents.script_agent import validate_script
        from config.exceptions import AIResponseParseError
        with pytest.raises(AIResponseParseError, match="Expected panels 1..4"):
            validate_script(make_script(3), 4)

    def test_gap_in_numbering_rejected(self):
        from agents.script_agent import validate_script
        from config.exceptions import AIResponseParseError
        raw = [
            {"panelNumber": 1, "visualDescription": "a", "dialogue": []},
            {"panelNumber": 3, "visualDescription": "b", "dialogue": []},
        ]
        with pytest.raises(AIResponseParseError):
            validate_script(raw, 2)

    def test_wrong_types_rejected(self):
        from agents.script_agent import validate_script
        from config.exceptions import AIResponseParseError
        raw = [{"panelNumber": "1", "visualDescription": "a", "dialogue": []}]
        with pytest.raises(AIResponseParseError, match="schema"):
            validate_script(raw, 1)

    def test_missing_dialogue_defaults_to_empty(self):
        from agents.script_agent import validate_script
        panels = validate_script([{"panelNumber": 1, "visualDescription": "a"}], 1)
        assert panels[0].dialogue == []


class TestScriptAgent:
    def test_prompt_embeds_series_context(self, script_agent, noir_profile):
        prompt = script_agent.build_script_prompt(noir_profile, "The hat is stolen", 3)
        assert "Noir Whiskers" in prompt
        assert "Detective Paws: Tabby cat in a trench coat" in prompt
        assert "Rainy Alley" in prompt
        assert "Plot: The hat is stolen" in prompt
        assert "3" in prompt

    def test_random_prompt_ignores_plot(self, script_agent, noir_profile):
        from agents.script_agent import RANDOM_TASK
        prompt = script_agent.build_script_prompt(noir_profile, "ignored plot", 3, randomize=True)
        assert RANDOM_TASK in prompt
        assert "ignored plot" not in prompt

    @pytest.mark.asyncio
    async def test_write_script(self, script_agent, mock_llm, noir_profile, settings):
        panels = await script_agent.write_script(noir_profile, "The hat is stolen", 3)
        assert len(panels) == 3
        kwargs = mock_llm.chat_json_array.await_args.kwargs
        assert kwargs["model"] == settings.llm_model_script
        system_prompt = mock_llm.chat_json_array.await_args.args[0]
        assert '"panelNumber"' in system_prompt
        assert "{{" not in system_prompt

    @pytest.mark.asyncio
    async def test_write_script_rejects_bad_shape(self, script_agent, mock_llm, noir_profile):
        from config.exceptions import AIResponseParseError
        mock_llm.chat_json_array.return_value = [{"panelNumber": 1}]
        with pytest.raises(AIResponseParseError):
            await script_agent.write_script(noir_profile, "x", 1)

    @pytest.mark.asyncio
    async def test_describe_environment(self, script_agent, mock_llm, settings):
        mock_llm.chat.return_value = "  Neon puddles.  \n"
        text = await script_agent.describe_environment("rainy alley")
        assert text == "Neon puddles."
        assert mock_llm.chat.await_args.kwargs["model"] == settings.llm_model_description
        assert "rainy alley" in mock_llm.chat.await_args.args[1]


class TestArtAgent:
    def _script(self):
        from models.strip import DialogueLine, Panel
        return [
            Panel(1, "Cat in rain", [DialogueLine("Detective Paws", "Wet again.")]),
            Panel(2, "Hat flies", []),
        ]

    def test_render_prompt_contents(self, art_agent, noir_profile):
        prompt = art_agent.build_render_prompt(noir_profile, self._script())
        assert "Horizontal 2-panel comic strip" in prompt
        assert noir_profile.art_style_directive in prompt
        assert "Panel 1: Cat in rain" in prompt
        assert 'Panel 1 Dialogue: Detective Paws says "Wet again."' in prompt

    @pytest.mark.asyncio
    async def test_render_strip_passes_reference_images(self, art_agent, mock_images, noir_profile, master_png):
        noir_profile.characters[0].reference_image = master_png
        result = await art_agent.render_strip(noir_profile, self._script(), model="gemini-2.5-flash-image")
        assert result == master_png
        kwargs = mock_images.generate_image.await_args.kwargs
        assert kwargs["references"] == [("Detective Paws", master_png)]
        assert kwargs["model"] == "gemini-2.5-flash-image"

    def test_cover_panel_embeds_title(self, art_agent, noir_profile):
        from models.volume import Volume
        volume = Volume.default_for(noir_profile)
        panel = art_agent.cover_panel(noir_profile, volume, "Detective under a streetlight")
        assert panel.panel_number == 1
        assert panel.dialogue == []
        assert '"Noir Whiskers"' in panel.visual_description
        assert "Detective under a streetlight" in panel.visual_description

    @pytest.mark.asyncio
    async def test_render_cover_uses_single_panel(self, art_agent, mock_images, noir_profile):
        from models.volume import Volume
        await art_agent.render_cover(noir_profile, Volume.default_for(noir_profile))
        prompt = mock_images.generate_image.await_args.args[0]
        assert "Horizontal 1-panel comic strip" in prompt
        assert "Grand cover illustration" in prompt

    @pytest.mark.asyncio
    async def test_remove_text(self, art_agent, mock_images, master_png, export_png):
        result = await art_agent.remove_text(master_png)
        assert result == export_png
        source, instruction = mock_images.edit_image.await_args.args
        assert source == master_png
        assert "REMOVE ALL DIALOGUE TEXT" in instruction
