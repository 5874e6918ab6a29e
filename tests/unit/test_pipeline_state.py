"""
Unit tests for pipeline ordering/resume and state persistence.
"""
import json

import pytest
import yaml

from workstation_provisioner.errors import StateFileError, UnknownStep
from workstation_provisioner.pipeline import run_pipeline, select_steps
from workstation_provisioner.state_store import begin_run, ensure_defaults, is_step_completed, load_state, save_state


class RecordingStep:
    def __init__(self, step_id, log, fail=False):
        self.step_id = step_id
        self.log = log
        self.fail = fail

    def run(self, state):
        self.log.append(self.step_id)
        if self.fail:
            raise RuntimeError(f"{self.step_id} failed")
        return state


def make_steps(log, fail_at=None):
    return [RecordingStep(s, log, fail=(s == fail_at)) for s in ("10_a", "20_b", "30_c")]


class TestPipeline:
    def test_runs_in_order(self):
        log = []
        result = run_pipeline(state=ensure_defaults({}), steps=make_steps(log))
        assert log == ["10_a", "20_b", "30_c"]
        assert result.ran_steps == log
        assert result.state["execution"]["current_step"] is None

    def test_failure_leaves_current_step_and_resume_skips_completed(self):
        state = ensure_defaults({})
        with pytest.raises(RuntimeError):
            run_pipeline(state=state, steps=make_steps([], fail_at="20_b"))
        assert state["execution"]["current_step"] == "20_b"
        assert is_step_completed(state, "10_a")

        log = []
        result = run_pipeline(state=state, steps=make_steps(log), resume=True)
        assert log == ["20_b", "30_c"]
        assert result.skipped_steps == ["10_a"]

    def test_repeat_run_reruns_every_step(self):
        state = ensure_defaults({})
        run_pipeline(state=state, steps=make_steps([]))
        log = []
        result = run_pipeline(state=state, steps=make_steps(log))
        assert log == ["10_a", "20_b", "30_c"]
        assert result.skipped_steps == []

    def test_fresh_run_clears_earlier_completion(self):
        state = ensure_defaults({})
        run_pipeline(state=state, steps=make_steps([]))
        with pytest.raises(RuntimeError):
            run_pipeline(state=state, steps=make_steps([], fail_at="20_b"))
        assert state["execution"]["completed_steps"] == ["10_a"]

    def test_dry_run_marks_nothing_completed(self):
        state = ensure_defaults({})
        log = []
        run_pipeline(state=state, steps=make_steps(log), dry_run=True)
        assert log == ["10_a", "20_b", "30_c"]
        assert state["execution"]["completed_steps"] == []

        log = []
        result = run_pipeline(state=state, steps=make_steps(log), resume=True)
        assert log == ["10_a", "20_b", "30_c"]
        assert result.skipped_steps == []

    def test_start_and_stop(self):
        log = []
        run_pipeline(state=ensure_defaults({}), steps=make_steps(log), start_at="20_b", stop_after="20_b")
        assert log == ["20_b"]

    def test_select_steps_slice(self):
        steps = make_steps([])
        assert [s.step_id for s in select_steps(steps, start_at="20_b")] == ["20_b", "30_c"]
        assert [s.step_id for s in select_steps(steps, stop_after="20_b")] == ["10_a", "20_b"]

    def test_unknown_step_rejected(self):
        with pytest.raises(UnknownStep):
            run_pipeline(state=ensure_defaults({}), steps=make_steps([]), start_at="99_nope")


class TestStateStore:
    def test_missing_file_is_empty(self, tmp_path):
        assert load_state(str(tmp_path / "nope.json")) == {}

    def test_json_roundtrip_keeps_user_values(self, tmp_path):
        path = str(tmp_path / "state.json")
        state = ensure_defaults({"config": {"username": "alice"}})
        save_state(path, state)
        loaded = ensure_defaults(load_state(path))
        assert loaded["config"]["username"] == "alice"
        assert loaded["config"]["root"] == "/"

    def test_yaml_state(self, tmp_path):
        path = tmp_path / "state.yaml"
        path.write_text(yaml.safe_dump({"config": {"os": "debian", "dist": "sid"}}))
        assert load_state(str(path))["config"]["dist"] == "sid"

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("[1, 2]")
        with pytest.raises(StateFileError):
            load_state(str(path))

    def test_run_scoped_sections_not_saved(self, tmp_path):
        path = tmp_path / "state.json"
        state = begin_run({}, {"dry_run": True, "os": "ubuntu", "dist": "trusty"})
        state["host"] = {"os": "ubuntu", "dist": "trusty", "source": "preset"}
        state["apt"] = {"version": "2.6.1", "major": 2, "minor": 6, "code": 260}
        save_state(str(path), state)

        saved = json.loads(path.read_text())
        assert "run" not in saved
        assert "host" not in saved
        assert "apt" not in saved
        assert state["run"]["dry_run"] is True

    def test_begin_run_resets_run_sections(self):
        state = begin_run({"run": {"dry_run": True, "os": "ubuntu"}, "host": {"dist": "trusty"}, "config": {"username": "alice"}})
        assert state["run"] == {"dry_run": False, "os": None, "dist": None}
        assert state["host"] == {}
        assert state["config"]["username"] == "alice"
