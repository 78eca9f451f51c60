"""Integration tests for the Session facade."""

import pytest

from jobengine import Session
from jobengine.errors import ConfigurationError
from jobengine.model import QuotaSetting, SinglePreset
from tests.helpers.factories import mock_colony, mock_worker


class TestInit:
    def test_defaults(self, session):
        assert session.config.updates_per_tick == 10
        assert session.settings.illness_threshold == "major_injuries"
        assert session.engine.pipeline.names[0] == "prepare"
        assert session.now == 0

    def test_precedence(self, small_colony):
        s = Session.init(
            small_colony,
            {"updates_per_tick": 3, "idle_top_k": 2},
            updates_per_tick=5,
        )
        assert s.config.updates_per_tick == 5
        assert s.config.idle_top_k == 2

    def test_invalid_config(self, small_colony):
        with pytest.raises(ValueError, match="must be >= 1"):
            Session.init(small_colony, ticks_per_hour=0)

    def test_invalid_importance(self, small_colony):
        with pytest.raises(ValueError, match="Invalid importance"):
            Session.init(small_colony, importance={"Cooking": "yes"})

    def test_yaml_root_must_be_mapping(self, small_colony, tmp_path):
        path = tmp_path / "cfg.yml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(TypeError, match="mapping"):
            Session.init(small_colony, path)

    def test_custom_pipeline_path(self, small_colony, tmp_path):
        path = tmp_path / "pipeline.yml"
        path.write_text("passes:\n  - prepare\n  - pinned_roles\n  - auto_primaries\n")
        with Session.init(
            small_colony, pipeline_path=str(path), auto_assign_enabled=False
        ) as s:
            assert s.engine.pipeline.names == [
                "prepare",
                "pinned_roles",
                "auto_primaries",
            ]
            s.recompute_all(force=True)
        # primaries and always-enabled tasks only
        for levels in small_colony.snapshot().values():
            assert set(levels.values()) == {1}
            assert len(levels) == 2

    def test_missing_pipeline_path(self, small_colony, tmp_path):
        with pytest.raises(ValueError, match="does not exist"):
            Session.init(small_colony, pipeline_path=str(tmp_path / "none.yml"))

    def test_subscribes_to_provider(self, session, small_colony):
        small_colony.add_worker(mock_worker("eve"))
        assert session.context.critical == ["eve"]


class TestWorkerConfiguration:
    def test_set_role_by_name(self, session):
        role = session.set_role("ana", "Cook")
        assert role == SinglePreset("Cooking", name="cook")
        assert session.role_of("ana") == role

    def test_unknown_role(self, session):
        with pytest.raises(ConfigurationError):
            session.set_role("ana", "astronaut")
        assert session.context.pending() == 0

    def test_auto_assign_toggle(self, session):
        session.set_auto_assign("bo", False)
        assert not session.context.record("bo").managed
        session.set_auto_assign("bo", True)
        assert session.context.record("bo").managed


class TestSettingsEdits:
    def test_set_quota(self, session):
        quota = session.set_quota("Cooking", 1, 2)
        assert quota == QuotaSetting(1, 2)
        assert session.settings.quota("Cooking") == quota
        assert session.context.pending() == 4

    def test_set_toggle(self, session):
        session.set_toggle("illness_threshold", "severe_only")
        assert session.settings.illness_threshold == "severe_only"
        assert session.context.pending() == 4

    def test_unknown_toggle(self, session):
        with pytest.raises(ValueError, match="Unknown toggle"):
            session.set_toggle("turbo", True)

    def test_bad_threshold(self, session):
        with pytest.raises(KeyError):
            session.set_toggle("illness_threshold", "sometimes")
        assert session.settings.illness_threshold == "major_injuries"


class TestRunning:
    def test_tick_advances(self, session):
        session.tick()
        session.tick()
        assert session.now == 2

    def test_run_returns_last_report(self, session):
        session.request_recompute(force=True)
        report = session.run(3)
        assert report is not None
        assert report.mode == "colony"
        assert session.last_report is report
        assert session.now == 3

    def test_request_single_worker(self, session):
        session.request_recompute("cy")
        report = session.tick()
        assert report.workers == ["cy"]


class TestLifecycle:
    def test_context_manager_closes(self, small_colony):
        with Session.init(small_colony) as s:
            pass
        assert s.context.closed

    def test_close_is_idempotent(self, small_colony):
        s = Session.init(small_colony)
        s.close()
        s.close()
        assert s.context.closed

    def test_closed_session_rejects_events(self, small_colony):
        s = Session.init(small_colony)
        s.close()
        with pytest.raises(RuntimeError, match="closed"):
            s.request_recompute("ana", force=True)

    def test_single_worker_colony(self):
        colony = mock_colony([mock_worker("solo")])
        with Session.init(colony) as s:
            report = s.tick()
        assert report.mode == "solo"
