"""Tests for niji.core.engine."""

from __future__ import annotations

import sys
import threading
import time
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import yaml

from niji.core.engine import ApplyEngine
from niji.core.models import OutcomeStatus, ReloadCommand, Theme
from niji.core.module_registry import ModuleRegistry
from niji.core.state_store import StateStore
from niji.core.theme_store import ThemeStore
from niji.errors import NoCurrentThemeError, ReloadError, ThemeNotFoundError, UnknownModuleError


class Workspace:
    """Theme and module roots plus an output directory under tmp_path."""

    def __init__(self, root: Path) -> None:
        self.themes = root / "themes"
        self.modules = root / "modules"
        self.out = root / "out"
        self.state_file = root / "state" / "current_theme"
        self.themes.mkdir(parents=True)
        self.modules.mkdir(parents=True)

    def theme(self, name: str, **variables: object) -> None:
        (self.themes / f"{name}.yaml").write_text(yaml.safe_dump(variables), encoding="utf-8")

    def module(
        self,
        name: str,
        templates: dict[str, str],
        reload: list[str] | None = None,
    ) -> list[Path]:
        module_dir = self.modules / name
        module_dir.mkdir(parents=True)
        entries = []
        outputs = []
        for filename, source in templates.items():
            (module_dir / filename).write_text(source, encoding="utf-8")
            output = self.out / name / filename
            entries.append({"template": filename, "output": str(output)})
            outputs.append(output)
        data: dict[str, object] = {"templates": entries}
        if reload is not None:
            data["reload"] = reload
        (module_dir / "module.yaml").write_text(yaml.safe_dump(data), encoding="utf-8")
        return outputs

    def engine(self, runner=None, **kwargs) -> ApplyEngine:
        if runner is not None:
            kwargs["command_runner"] = runner
        return ApplyEngine(
            ThemeStore([self.themes]),
            ModuleRegistry([self.modules]),
            StateStore(self.state_file),
            **kwargs,
        )


@pytest.fixture
def ws(tmp_path):
    workspace = Workspace(tmp_path)
    workspace.theme("mocha", fg="#cdd6f4", bg="#1e1e2e", font_size=11)
    workspace.theme("latte", fg="#4c4f69", bg="#eff1f5", font_size=11)
    StateStore(workspace.state_file).set("mocha")
    return workspace


class TestResolution:
    def test_uses_current_theme(self, ws):
        ws.module("kitty", {"colors.conf": "fg {{ fg }}\n"})
        report = ws.engine(MagicMock()).apply()
        assert report.theme == "mocha"
        assert (ws.out / "kitty" / "colors.conf").read_text(encoding="utf-8") == "fg #cdd6f4\n"

    def test_explicit_theme_overrides_current(self, ws):
        ws.module("kitty", {"colors.conf": "fg {{ fg }}\n"})
        report = ws.engine(MagicMock()).apply(theme="latte")
        assert report.theme == "latte"
        assert (ws.out / "kitty" / "colors.conf").read_text(encoding="utf-8") == "fg #4c4f69\n"

    def test_no_current_theme(self, ws):
        StateStore(ws.state_file).unset()
        ws.module("kitty", {"colors.conf": "fg {{ fg }}\n"})
        with pytest.raises(NoCurrentThemeError):
            ws.engine(MagicMock()).apply()
        assert not ws.out.exists()

    def test_no_current_theme_is_a_theme_not_found(self, ws):
        StateStore(ws.state_file).unset()
        with pytest.raises(ThemeNotFoundError):
            ws.engine(MagicMock()).apply()

    def test_unknown_current_theme(self, ws):
        StateStore(ws.state_file).set("gone")
        with pytest.raises(ThemeNotFoundError):
            ws.engine(MagicMock()).apply()

    def test_unknown_module_in_filter_has_no_side_effects(self, ws):
        outputs = ws.module("known", {"a.conf": "{{ fg }}"}, reload=["reload-known"])
        outputs[0].parent.mkdir(parents=True)
        outputs[0].write_text("previous", encoding="utf-8")
        runner = MagicMock()

        with pytest.raises(UnknownModuleError):
            ws.engine(runner).apply(reload=True, modules={"known", "unknown"})

        assert outputs[0].read_text(encoding="utf-8") == "previous"
        runner.assert_not_called()


class TestApply:
    def test_renders_all_templates_and_reloads(self, ws):
        outputs = ws.module(
            "kitty",
            {"colors.conf": "fg {{ fg }}\n", "font.conf": "size {{ font_size }}\n"},
            reload=["kitty", "@", "load-config"],
        )
        runner = MagicMock()

        report = ws.engine(runner, reload_timeout=3).apply(reload=True)

        assert report.ok
        outcome = report.outcomes["kitty"]
        assert outcome.status is OutcomeStatus.SUCCESS
        assert outcome.written == outputs
        assert outcome.reloaded is True
        assert outputs[1].read_text(encoding="utf-8") == "size 11\n"
        runner.assert_called_once_with(ReloadCommand("kitty", ("@", "load-config")), 3)

    def test_no_reload_still_writes(self, ws):
        outputs = ws.module("kitty", {"colors.conf": "fg {{ fg }}\n"}, reload=["kitty"])
        runner = MagicMock()

        report = ws.engine(runner).apply(reload=False)

        assert report.ok
        assert outputs[0].read_text(encoding="utf-8") == "fg #cdd6f4\n"
        assert report.outcomes["kitty"].reloaded is False
        runner.assert_not_called()

    def test_module_without_reload_command(self, ws):
        ws.module("static", {"a.conf": "{{ bg }}"})
        runner = MagicMock()
        report = ws.engine(runner).apply(reload=True)
        assert report.ok
        runner.assert_not_called()

    def test_empty_module_is_noop(self, ws):
        module_dir = ws.modules / "empty"
        module_dir.mkdir()
        (module_dir / "module.yaml").write_text(yaml.safe_dump({"reload": ["x"]}), encoding="utf-8")
        runner = MagicMock()

        report = ws.engine(runner).apply()

        assert report.outcomes["empty"].ok
        assert report.outcomes["empty"].written == []
        runner.assert_not_called()

    def test_undefined_variable_fails_only_that_module(self, ws):
        good = ws.module("a", {"a.conf": "fg {{ fg }}\n"}, reload=["reload-a"])
        bad = ws.module("b", {"b1.conf": "bg {{ bg }}\n", "b2.conf": "{{ undefined }}\n"}, reload=["reload-b"])
        for output in bad:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text("previous", encoding="utf-8")
        runner = MagicMock()

        report = ws.engine(runner).apply(reload=True)

        assert not report.ok
        assert report.outcomes["a"].ok
        assert good[0].read_text(encoding="utf-8") == "fg #cdd6f4\n"
        assert report.outcomes["b"].status is OutcomeStatus.RENDER_FAILURE
        assert "undefined" in report.outcomes["b"].reason
        assert [o.read_text(encoding="utf-8") for o in bad] == ["previous", "previous"]
        runner.assert_called_once_with(ReloadCommand("reload-a"), 10.0)

    def test_missing_template_is_render_failure(self, ws):
        ws.module("a", {"a.conf": "{{ fg }}"})
        (ws.modules / "a" / "a.conf").unlink()

        report = ws.engine(MagicMock()).apply()

        assert report.outcomes["a"].status is OutcomeStatus.RENDER_FAILURE

    def test_write_failure_keeps_earlier_siblings(self, ws):
        outputs = ws.module("a", {"one.conf": "{{ fg }}", "two.conf": "{{ bg }}"}, reload=["reload-a"])
        # A directory in place of the second output makes its replace fail.
        outputs[1].mkdir(parents=True)
        (outputs[1] / "blocker").write_text("x", encoding="utf-8")
        ws.module("z", {"z.conf": "{{ fg }}"})
        runner = MagicMock()

        report = ws.engine(runner).apply()

        outcome = report.outcomes["a"]
        assert outcome.status is OutcomeStatus.WRITE_FAILURE
        assert outcome.reason.startswith("Unable to write output")
        assert str(outputs[1]) in outcome.reason
        assert outcome.written == [outputs[0]]
        assert outputs[0].read_text(encoding="utf-8") == "#cdd6f4"
        assert report.outcomes["z"].ok
        runner.assert_not_called()

    def test_unencodable_value_fails_only_that_module(self, ws):
        ws.module("a", {"a.conf": "{{ bad }}"})
        b_outputs = ws.module("b", {"b.conf": "{{ fg }}"})
        themes = MagicMock()
        themes.get.return_value = Theme(
            name="odd",
            variables={"fg": "red", "bad": "\ud800"},
            source=Path("odd.yaml"),
        )
        engine = ApplyEngine(
            themes,
            ModuleRegistry([ws.modules]),
            StateStore(ws.state_file),
            command_runner=MagicMock(),
        )

        report = engine.apply(theme="odd")

        assert report.outcomes["a"].status is OutcomeStatus.WRITE_FAILURE
        assert report.outcomes["b"].ok
        assert b_outputs[0].read_text(encoding="utf-8") == "red"
        assert [p.name for p in (ws.out / "a").iterdir()] == []

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX symlinks")
    def test_symlinked_output_is_updated_in_place(self, ws, tmp_path):
        outputs = ws.module("a", {"a.conf": "fg {{ fg }}"})
        dotfile = tmp_path / "dotfiles" / "a.conf"
        dotfile.parent.mkdir()
        dotfile.write_text("old", encoding="utf-8")
        outputs[0].parent.mkdir(parents=True)
        outputs[0].symlink_to(dotfile)

        report = ws.engine(MagicMock()).apply()

        assert report.ok
        assert outputs[0].is_symlink()
        assert dotfile.read_text(encoding="utf-8") == "fg #cdd6f4"

    def test_reload_failure_keeps_files(self, ws):
        outputs = ws.module("a", {"a.conf": "{{ fg }}"}, reload=["reload-a"])
        ws.module("b", {"b.conf": "{{ bg }}"}, reload=["reload-b"])
        runner = MagicMock(side_effect=[ReloadError(message="'reload-a' exited with status 1"), None])

        report = ws.engine(runner).apply()

        assert report.outcomes["a"].status is OutcomeStatus.RELOAD_FAILURE
        assert report.outcomes["a"].reason == "'reload-a' exited with status 1"
        assert outputs[0].read_text(encoding="utf-8") == "#cdd6f4"
        assert report.outcomes["b"].ok
        assert report.outcomes["b"].reloaded
        assert [o.module for o in report.failed] == ["a"]

    def test_real_reload_command(self, ws, tmp_path):
        marker = tmp_path / "reloaded.txt"
        code = f"open({str(marker)!r}, 'w').write('done')"
        ws.module("a", {"a.conf": "{{ fg }}"}, reload=[sys.executable, "-c", code])

        report = ws.engine().apply()

        assert report.outcomes["a"].reloaded
        assert marker.read_text(encoding="utf-8") == "done"

    def test_real_reload_timeout(self, ws):
        ws.module("slow", {"a.conf": "{{ fg }}"}, reload=[sys.executable, "-c", "import time; time.sleep(10)"])

        report = ws.engine(reload_timeout=0.5).apply()

        assert report.outcomes["slow"].status is OutcomeStatus.RELOAD_FAILURE
        assert "timed out" in report.outcomes["slow"].reason

    def test_apply_is_idempotent(self, ws):
        outputs = ws.module("a", {"a.conf": "fg {{ fg }}\nbg {{ bg }}\n", "b.conf": "{{ font_size }}"})
        engine = ws.engine(MagicMock())

        engine.apply()
        first = [o.read_bytes() for o in outputs]
        engine.apply()
        second = [o.read_bytes() for o in outputs]

        assert first == second

    def test_unset_does_not_touch_outputs(self, ws):
        outputs = ws.module("a", {"a.conf": "fg {{ fg }}"})
        ws.engine(MagicMock()).apply()
        before = outputs[0].read_bytes()

        StateStore(ws.state_file).unset()

        assert outputs[0].read_bytes() == before

    def test_report_follows_module_order(self, ws):
        for name in ("c", "a", "b"):
            ws.module(name, {f"{name}.conf": "{{ fg }}"})
        report = ws.engine(MagicMock()).apply()
        assert list(report.outcomes) == ["a", "b", "c"]


class TestParallelApply:
    def test_parallel_report_is_order_independent(self, ws):
        for name in ("a", "b", "c", "d"):
            ws.module(name, {f"{name}.conf": "{{ fg }}"}, reload=[f"reload-{name}"])

        delays = {"reload-a": 0.3, "reload-b": 0.0, "reload-c": 0.2, "reload-d": 0.1}
        threads = set()
        lock = threading.Lock()

        def runner(command, timeout):
            with lock:
                threads.add(threading.current_thread().name)
            time.sleep(delays[command.program])

        report = ws.engine(runner, max_workers=4).apply()

        assert report.ok
        assert list(report.outcomes) == ["a", "b", "c", "d"]
        assert all(outcome.reloaded for outcome in report.outcomes.values())
        assert all(name.startswith("niji-apply") for name in threads)

    def test_parallel_isolates_failures(self, ws):
        ws.module("a", {"a.conf": "{{ fg }}"})
        ws.module("b", {"b.conf": "{{ nope }}"})
        ws.module("c", {"c.conf": "{{ bg }}"})

        report = ws.engine(MagicMock(), max_workers=3).apply()

        assert [o.module for o in report.succeeded] == ["a", "c"]
        assert [o.module for o in report.failed] == ["b"]
