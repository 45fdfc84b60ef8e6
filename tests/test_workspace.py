"""Tests for session persistence, document import/export, autosave and the Workspace facade."""

import asyncio
import json

import pytest


class TestSessionStoreLoad:
    def test_seeds_default_session(self, session_store, kv):
        sessions = session_store.load("alice")
        assert len(sessions) == 1
        session = sessions[0]
        assert session.name == "Chronicle 1"
        assert session.owner_id == "alice"
        assert session.snapshot.active_series_id == "c1"
        assert kv.get("comicstudio:active_session:alice") == session.id
        assert kv.get("comicstudio:sessions:alice") is not None

    def test_seed_happens_once(self, session_store):
        first = session_store.load("alice")
        second = session_store.load("alice")
        assert [s.id for s in first] == [s.id for s in second]

    def test_every_series_has_a_volume(self, session_store):
        snapshot = session_store.load("alice")[0].snapshot
        assert {v.id for v in snapshot.volumes} == {p.id for p in snapshot.series_profiles}

    def test_missing_volumes_synthesized_on_load(self, session_store, kv):
        session = session_store.load("alice")[0]
        data = json.loads(kv.get("comicstudio:sessions:alice"))
        data[0]["snapshot"]["volumes"] = []
        kv.set("comicstudio:sessions:alice", json.dumps(data))
        reloaded = session_store.get("alice", session.id)
        assert len(reloaded.snapshot.volumes) == len(reloaded.snapshot.series_profiles)
        assert reloaded.snapshot.volumes[0].page_order == []

    def test_users_are_isolated(self, session_store):
        alice = session_store.load("alice")[0]
        bob = session_store.load("bob")[0]
        assert alice.id != bob.id
        from config.exceptions import SessionNotFoundError
        with pytest.raises(SessionNotFoundError):
            session_store.get("bob", alice.id)

    def test_dangling_active_pointer_repaired(self, session_store, kv):
        session = session_store.load("alice")[0]
        kv.set("comicstudio:active_session:alice", "session_gone")
        assert session_store.active_session("alice").id == session.id

    def test_corrupt_storage_raises(self, session_store, kv):
        from config.exceptions import StorageError
        kv.set("comicstudio:sessions:alice", "{not json")
        with pytest.raises(StorageError):
            session_store.load("alice")


class TestSessionStoreLifecycle:
    def test_create_activates(self, session_store):
        session_store.load("alice")
        created = session_store.create("alice")
        assert created.name == "Chronicle 2"
        assert session_store.active_session("alice").id == created.id

    def test_switch(self, session_store):
        first = session_store.load("alice")[0]
        session_store.create("alice", "Side Story")
        session_store.switch_active("alice", first.id)
        assert session_store.active_session("alice").id == first.id

    def test_switch_unknown(self, session_store):
        from config.exceptions import SessionNotFoundError
        with pytest.raises(SessionNotFoundError):
            session_store.switch_active("alice", "session_nope")

    def test_rename(self, session_store):
        session = session_store.load("alice")[0]
        renamed = session_store.rename("alice", session.id, "  Main Arc  ")
        assert renamed.name == "Main Arc"
        assert renamed.last_modified >= session.last_modified

    def test_rename_empty_rejected(self, session_store):
        from config.exceptions import ValidationError
        session = session_store.load("alice")[0]
        with pytest.raises(ValidationError):
            session_store.rename("alice", session.id, "   ")

    def test_delete_last_session_rejected(self, session_store):
        from config.exceptions import LastSessionError
        session = session_store.load("alice")[0]
        with pytest.raises(LastSessionError):
            session_store.delete("alice", session.id)
        assert len(session_store.load("alice")) == 1

    def test_delete_active_activates_first_remaining(self, session_store):
        first = session_store.load("alice")[0]
        second = session_store.create("alice")
        session_store.delete("alice", second.id)
        assert session_store.active_session("alice").id == first.id
        assert [s.id for s in session_store.load("alice")] == [first.id]


class TestMutateSnapshot:
    def test_merge_keeps_other_fields(self, session_store):
        session = session_store.load("alice")[0]
        updated = session_store.mutate_snapshot("alice", session.id, {"global_background_color": "#000000"})
        assert updated.snapshot.global_background_color == "#000000"
        assert updated.snapshot.series_profiles == session.snapshot.series_profiles
        assert session_store.get("alice", session.id).snapshot.global_background_color == "#000000"

    def test_unknown_field_rejected(self, session_store):
        from config.exceptions import ValidationError
        session = session_store.load("alice")[0]
        with pytest.raises(ValidationError, match="bogus"):
            session_store.mutate_snapshot("alice", session.id, {"bogus": 1})

    def test_last_modified_monotonic(self, kv, settings):
        from workspace.session_store import SessionStore
        ticks = iter([500, 400, 300, 200, 100, 50, 25])
        store = SessionStore(kv, settings, clock=lambda: next(ticks))
        session = store.load("alice")[0]
        before = session.last_modified
        updated = store.mutate_snapshot("alice", session.id, {"timestamp": 1})
        assert updated.last_modified >= before

    def test_later_write_wins(self, session_store):
        session = session_store.load("alice")[0]
        session_store.mutate_snapshot("alice", session.id, {"global_background_color": "#111111"})
        session_store.mutate_snapshot("alice", session.id, {"global_background_color": "#222222"})
        assert session_store.get("alice", session.id).snapshot.global_background_color == "#222222"


class TestImportExport:
    def test_round_trip_preserves_snapshot(self, session_store, make_strip):
        session = session_store.load("alice")[0]
        session.snapshot.strips.append(make_strip("s1"))
        session.snapshot.volumes[0].add_page("s1")
        session_store.mutate_snapshot(
            "alice", session.id, {"strips": session.snapshot.strips, "volumes": session.snapshot.volumes}
        )

        document = session_store.export_session(session_store.get("alice", session.id))
        imported = session_store.import_session("bob", document)
        assert imported.owner_id == "bob"
        assert imported.id != session.id
        assert imported.name == session.name
        assert imported.snapshot.to_dict() == session_store.get("alice", session.id).snapshot.to_dict()
        assert session_store.active_session("bob").id == imported.id

    @pytest.mark.parametrize("path, key", [
        (("volumes", 0), "coverImage"),
        (("volumes", 0), "logoImage"),
        (("seriesProfiles", 0), "styleReferenceImage"),
    ])
    def test_null_image_keys_rejected(self, session_store, path, key):
        from config.exceptions import DocumentError
        data = session_store.load("alice")[0].to_dict()
        collection, index = path
        data["snapshot"][collection][index][key] = None
        with pytest.raises(DocumentError) as exc_info:
            session_store.import_session("alice", data)
        assert any(key in e for e in exc_info.value.errors)
        assert len(session_store.load("alice")) == 1

    def test_null_strip_export_image_rejected(self, make_strip):
        from config.exceptions import DocumentError
        from workspace.documents import parse_session_document
        strip = make_strip("s1").to_dict()
        strip["exportImage"] = None
        with pytest.raises(DocumentError) as exc_info:
            parse_session_document({"snapshot": {"strips": [strip]}})
        assert "snapshot.strips.0.exportImage" in " ".join(exc_info.value.errors)

    def test_reexport_of_imported_document_is_identical(self, session_store, make_strip, export_png):
        session = session_store.load("alice")[0]
        session.snapshot.strips.append(make_strip("s1", export_image=export_png))
        session.snapshot.volumes[0].cover_image = export_png
        session_store.mutate_snapshot(
            "alice", session.id, {"strips": session.snapshot.strips, "volumes": session.snapshot.volumes}
        )
        document = json.loads(session_store.export_session(session_store.get("alice", session.id)))

        imported = session_store.import_session("bob", document)
        again = json.loads(session_store.export_session(imported))
        assert again["snapshot"] == document["snapshot"]

    def test_import_accepts_dict(self, session_store):
        session = session_store.load("alice")[0]
        imported = session_store.import_session("alice", session.to_dict())
        assert len(session_store.load("alice")) == 2
        assert imported.snapshot.active_series_id == "c1"

    def test_malformed_json_rejected(self, session_store):
        from config.exceptions import DocumentError
        before = [s.id for s in session_store.load("alice")]
        with pytest.raises(DocumentError, match="not valid JSON"):
            session_store.import_session("alice", "{oops")
        assert [s.id for s in session_store.load("alice")] == before

    def test_schema_violation_lists_errors(self, session_store):
        from config.exceptions import DocumentError
        data = session_store.load("alice")[0].to_dict()
        data["snapshot"]["strips"] = [{"id": "s1"}]
        data["snapshot"]["volumes"][0]["pageNumberPosition"] = "middle"
        with pytest.raises(DocumentError) as exc_info:
            session_store.import_session("alice", data)
        assert exc_info.value.errors
        assert any("pageNumberPosition" in e for e in exc_info.value.errors)
        assert len(session_store.load("alice")) == 1

    def test_unknown_keys_rejected(self):
        from config.exceptions import DocumentError
        from workspace.documents import parse_session_document
        with pytest.raises(DocumentError):
            parse_session_document({"id": "x", "surprise": True})

    def test_non_object_rejected(self):
        from config.exceptions import DocumentError
        from workspace.documents import parse_session_document
        with pytest.raises(DocumentError, match="JSON object"):
            parse_session_document("[1, 2]")

    def test_duplicate_pages_rejected(self, session_store):
        from config.exceptions import DocumentError
        data = session_store.load("alice")[0].to_dict()
        data["snapshot"]["volumes"][0]["pageOrder"] = ["s1", "s1"]
        with pytest.raises(DocumentError):
            session_store.import_session("alice", data)

    def test_document_is_pretty_json(self, session_store):
        session = session_store.load("alice")[0]
        document = session_store.export_session(session)
        assert document.startswith("{\n  ")
        assert json.loads(document)["ownerId"] == "alice"


class TestAutosave:
    @pytest.mark.asyncio
    async def test_changes_coalesce_into_one_write(self, session_store):
        from unittest.mock import patch
        from workspace.autosave import AutosaveScheduler
        session = session_store.load("alice")[0]
        scheduler = AutosaveScheduler(session_store, delay=0.01)
        with patch.object(session_store, "mutate_snapshot", wraps=session_store.mutate_snapshot) as mutate:
            scheduler.schedule("alice", session.id, {"global_background_color": "#111111"})
            scheduler.schedule("alice", session.id, {"global_background_color": "#222222"})
            scheduler.schedule("alice", session.id, {"active_series_id": "c2"})
            await asyncio.sleep(0.05)
        assert mutate.call_count == 1
        assert not scheduler.pending
        stored = session_store.get("alice", session.id).snapshot
        assert stored.global_background_color == "#222222"
        assert stored.active_series_id == "c2"

    @pytest.mark.asyncio
    async def test_flush_writes_immediately(self, session_store):
        from workspace.autosave import AutosaveScheduler
        session = session_store.load("alice")[0]
        scheduler = AutosaveScheduler(session_store, delay=60)
        scheduler.schedule("alice", session.id, {"global_background_color": "#333333"})
        written = scheduler.flush()
        assert [s.id for s in written] == [session.id]
        assert session_store.get("alice", session.id).snapshot.global_background_color == "#333333"

    @pytest.mark.asyncio
    async def test_cancel_drops_pending(self, session_store):
        from workspace.autosave import AutosaveScheduler
        session = session_store.load("alice")[0]
        scheduler = AutosaveScheduler(session_store, delay=0.01)
        scheduler.schedule("alice", session.id, {"global_background_color": "#444444"})
        scheduler.cancel()
        await asyncio.sleep(0.03)
        assert session_store.get("alice", session.id).snapshot.global_background_color != "#444444"

    @pytest.mark.asyncio
    async def test_failed_timed_write_stays_pending(self, session_store, caplog):
        import logging
        from unittest.mock import patch
        from config.exceptions import StorageError
        from workspace.autosave import AutosaveScheduler
        session = session_store.load("alice")[0]
        scheduler = AutosaveScheduler(session_store, delay=0.01)
        failing = patch.object(session_store, "mutate_snapshot", side_effect=StorageError("disk full"))
        with failing, caplog.at_level(logging.ERROR, logger="workspace.autosave"):
            scheduler.schedule("alice", session.id, {"global_background_color": "#555555"})
            await asyncio.sleep(0.05)
            assert scheduler.pending
            assert "Autosave of alice" in caplog.text
        scheduler.flush()
        assert not scheduler.pending
        assert session_store.get("alice", session.id).snapshot.global_background_color == "#555555"

    @pytest.mark.asyncio
    async def test_flush_failure_raises_and_keeps_newer_fields(self, session_store):
        from unittest.mock import patch
        from config.exceptions import StorageError
        from workspace.autosave import AutosaveScheduler
        session = session_store.load("alice")[0]
        scheduler = AutosaveScheduler(session_store, delay=60)
        scheduler.schedule("alice", session.id, {"global_background_color": "#666666"})
        with patch.object(session_store, "mutate_snapshot", side_effect=StorageError("disk full")):
            with pytest.raises(StorageError):
                scheduler.flush()
        assert scheduler.pending
        scheduler.schedule("alice", session.id, {"global_background_color": "#777777"})
        scheduler.flush()
        assert session_store.get("alice", session.id).snapshot.global_background_color == "#777777"

    @pytest.mark.asyncio
    async def test_deleted_session_changes_dropped(self, session_store, caplog):
        import logging
        from workspace.autosave import AutosaveScheduler
        session_store.load("alice")
        scheduler = AutosaveScheduler(session_store, delay=0.01)
        with caplog.at_level(logging.WARNING, logger="workspace.autosave"):
            scheduler.schedule("alice", "session_gone", {"global_background_color": "#888888"})
            await asyncio.sleep(0.05)
        assert not scheduler.pending
        assert "deleted session" in caplog.text


class TestWorkspace:
    def test_user_required(self, session_store):
        from config.exceptions import ValidationError
        from workspace.workspace import Workspace
        with pytest.raises(ValidationError):
            Workspace(session_store, "")

    def test_active_series_defaults(self, workspace):
        assert workspace.series().name == "Noir Whiskers"

    def test_set_active_series_persists(self, workspace, session_store):
        workspace.set_active_series("c2")
        assert session_store.active_session("alice").snapshot.active_series_id == "c2"

    def test_unknown_series(self, workspace):
        from config.exceptions import ValidationError
        with pytest.raises(ValidationError):
            workspace.series("nope")

    def test_add_character_persists(self, workspace, session_store):
        ref = workspace.add_character("c1", "Officer Mittens", "Grey cat in uniform")
        assert ref.id.startswith("char_")
        stored = session_store.active_session("alice").snapshot.get_series("c1")
        assert stored.characters[-1].name == "Officer Mittens"

    def test_update_series_panel_count_bounds(self, workspace):
        from config.exceptions import ValidationError
        with pytest.raises(ValidationError):
            workspace.update_series("c1", default_panel_count=0)

    @pytest.mark.asyncio
    async def test_save_strip_and_build_volume(self, workspace, pipeline, session_store):
        await pipeline.generate("Paws finds a clue")
        strip = workspace.save_strip(pipeline, "The Clue")
        workspace.add_page("c1", strip.id)
        workspace.add_page("c1", strip.id)

        stored = session_store.active_session("alice").snapshot
        assert [s.id for s in stored.strips] == [strip.id]
        assert stored.get_volume("c1").page_order == [strip.id]
        assert [p.strip.id for p in workspace.reader_pages("c1")] == [strip.id]

    @pytest.mark.asyncio
    async def test_bake_strip_attaches_export_in_place(self, workspace, pipeline, session_store, export_png):
        await pipeline.generate("Paws finds a clue")
        strip = workspace.save_strip(pipeline)
        workspace.add_page("c1", strip.id)

        baked = await workspace.bake_strip(pipeline, strip.id)
        assert baked.id == strip.id
        assert baked.export_image == export_png
        stored = session_store.active_session("alice").snapshot
        assert [s.id for s in stored.strips] == [strip.id]
        assert stored.strips[0].export_image == export_png
        assert stored.get_volume("c1").page_order == [strip.id]

    @pytest.mark.asyncio
    async def test_regenerate_strip_saves_a_new_strip(self, workspace, pipeline, mock_images, make_png):
        await pipeline.generate("Paws finds a clue")
        original = workspace.save_strip(pipeline, "The Clue")
        redrawn = make_png((10, 120, 10))
        mock_images.generate_image.return_value = redrawn

        strip = await workspace.regenerate_strip(pipeline, original.id, bake=True)
        assert strip.id != original.id
        assert strip.name == "The Clue"
        assert strip.master_image == redrawn
        assert strip.export_image is not None
        assert strip.panel_script == original.panel_script
        assert workspace.strip(original.id).master_image == original.master_image
        assert [s.id for s in workspace.strips()] == [strip.id, original.id]

    @pytest.mark.asyncio
    async def test_bake_failure_leaves_strip_untouched(self, workspace, pipeline, mock_images):
        from config.exceptions import AITransportError, GenerationStageError
        await pipeline.generate("Paws finds a clue")
        strip = workspace.save_strip(pipeline)
        mock_images.edit_image.side_effect = AITransportError("quota")
        with pytest.raises(GenerationStageError, match="baking"):
            await workspace.bake_strip(pipeline, strip.id)
        assert workspace.strip(strip.id).export_image is None

    def test_reopen_strip_of_other_series_rejected(self, workspace, pipeline, make_strip):
        from config.exceptions import ValidationError
        workspace.asset_store().append(make_strip("s2", series_id="c2"))
        with pytest.raises(ValidationError, match="belongs to series c2"):
            workspace.reopen_strip(pipeline, "s2")

    def test_add_unknown_strip_rejected(self, workspace):
        from config.exceptions import ValidationError
        with pytest.raises(ValidationError):
            workspace.add_page("c1", "strip_missing")

    def test_move_page(self, workspace, make_strip):
        for strip_id in ("s1", "s2", "s3"):
            workspace.snapshot.strips.append(make_strip(strip_id))
            workspace.add_page("c1", strip_id)
        volume = workspace.move_page("c1", 2, 0)
        assert volume.page_order == ["s3", "s1", "s2"]

    def test_update_volume_invalid(self, workspace):
        from config.exceptions import InvalidVolumeSettingsError
        with pytest.raises(InvalidVolumeSettingsError):
            workspace.update_volume("c1", height=-1)

    def test_reader_pages_empty_volume(self, workspace):
        from config.exceptions import ValidationError
        with pytest.raises(ValidationError, match="no pages"):
            workspace.reader_pages("c1")

    def test_volume_synthesized_when_missing(self, workspace):
        workspace.snapshot.volumes.clear()
        volume = workspace.volume("c2")
        assert volume.id == "c2"
        assert volume.page_order == []

    @pytest.mark.asyncio
    async def test_generate_cover(self, workspace, art_agent, settings, master_png, session_store):
        from workflow.cover import CoverGenerator
        await workspace.generate_cover("c1", CoverGenerator(art_agent, settings))
        assert session_store.active_session("alice").snapshot.get_volume("c1").cover_image == master_png

    def test_session_switch_changes_snapshot(self, workspace):
        first = workspace.session.id
        workspace.set_background_color("#123456")
        created = workspace.new_session("Side Story")
        assert workspace.snapshot.global_background_color != "#123456"
        workspace.switch_session(first)
        assert workspace.session.id == first
        assert workspace.snapshot.global_background_color == "#123456"
        assert created.id != first

    def test_delete_session_falls_back(self, workspace):
        first = workspace.session.id
        second = workspace.new_session().id
        workspace.delete_session(second)
        assert workspace.session.id == first

    def test_import_keeps_active_untouched_on_failure(self, workspace):
        from config.exceptions import DocumentError
        active = workspace.session.id
        with pytest.raises(DocumentError):
            workspace.import_session('{"id": 1}')
        assert workspace.reload().id == active

    @pytest.mark.asyncio
    async def test_autosave_workspace_flushes_on_reload(self, session_store):
        from workspace.autosave import AutosaveScheduler
        from workspace.workspace import Workspace
        workspace = Workspace(session_store, "alice", autosave=AutosaveScheduler(session_store, delay=60))
        workspace.set_background_color("#abcdef")
        assert workspace.autosave.pending
        assert workspace.reload().snapshot.global_background_color == "#abcdef"

    def test_export_pdf(self, workspace, make_strip, settings):
        workspace.snapshot.strips.append(make_strip("s1"))
        workspace.add_page("c1", "s1")
        workspace.update_volume("c1", width=320, height=180)
        path = workspace.export_pdf("c1", "master")
        assert path == settings.export_dir / "Noir_Whiskers_master.pdf"
        assert path.exists()

    def test_open_on_sqlite(self, settings):
        from workspace.workspace import Workspace
        first = Workspace.open("carol", settings)
        first.set_active_series("c3")
        again = Workspace.open("carol", settings)
        assert again.snapshot.active_series_id == "c3"
        assert settings.storage_path.exists()

    @pytest.mark.asyncio
    async def test_open_with_autosave(self, settings, kv):
        from workspace.workspace import Workspace
        settings.autosave_delay_seconds = 0.01
        ws = Workspace.open("carol", settings, kv=kv, autosave=True)
        ws.set_background_color("#0000ff")
        await asyncio.sleep(0.05)
        assert not ws.autosave.pending
        assert Workspace.open("carol", settings, kv=kv).snapshot.global_background_color == "#0000ff"
