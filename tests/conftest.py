import io
import time
from contextlib import redirect_stderr, redirect_stdout
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import fncli
import pytest

from tally import config, db
from tally.core.errors import TallyError
from tally.lib import ansi, clock

NOW = datetime(2026, 10, 19, 14, 30)


@pytest.fixture
def tmp_tally_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "TALLY_DIR", tmp_path)
    monkeypatch.setattr(config, "DB_PATH", tmp_path / "tally.db")
    monkeypatch.setattr(config, "CONFIG_PATH", tmp_path / "config.yaml")
    monkeypatch.setattr(config, "EXPORT_DIR", tmp_path / "exports")
    monkeypatch.setattr(config, "WIDGET_PATH", tmp_path / "widget.json")
    config.Config.reset()
    db.init()
    yield tmp_path
    config.Config.reset()


@pytest.fixture
def frozen_now(monkeypatch):
    monkeypatch.setattr(clock, "now", lambda: NOW)
    return NOW


@pytest.fixture
def shanghai_tz():
    """Run with a local zone eight hours ahead of UTC."""
    with pytest.MonkeyPatch.context() as mp:
        mp.setenv("TZ", "Asia/Shanghai")
        time.tzset()
        yield
    time.tzset()


@pytest.fixture
def plain_output():
    ansi.use(ansi.PLAIN)
    yield
    ansi.use(ansi.DEFAULT)


@dataclass
class CLIResult:
    exit_code: int
    stdout: str
    stderr: str


_discovered = False


class FnCLIRunner:
    def invoke(self, args: list[str]) -> CLIResult:
        global _discovered
        if not _discovered:
            fncli.autodiscover(Path(__file__).parent.parent / "tally", "tally")
            _discovered = True

        out, err = io.StringIO(), io.StringIO()
        code = 0
        with redirect_stdout(out), redirect_stderr(err):
            try:
                code = fncli.dispatch(["tally", *args]) or 0
            except TallyError as e:
                err.write(f"{e}\n")
                code = 1
            except SystemExit as e:
                code = e.code if isinstance(e.code, int) else 1
        return CLIResult(exit_code=code, stdout=out.getvalue(), stderr=err.getvalue())


@pytest.fixture
def runner(tmp_tally_dir, frozen_now, plain_output):
    return FnCLIRunner()
