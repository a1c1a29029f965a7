"""
Brief: Tests for nukedns.main.main start-up wiring.

Inputs:
  - None

Outputs:
  - None

The Supervisor is replaced with a recorder so no sockets are bound.
"""

import logging

import pytest

from nukedns import main as main_mod
from nukedns.config.config_parser import BindTarget


class _RecordingSupervisor:
    instances = []

    def __init__(self, targets, handler, cache, *, sweep_interval=60.0):
        self.targets = targets
        self.handler = handler
        self.cache = cache
        self.sweep_interval = sweep_interval
        self.result = 0
        _RecordingSupervisor.instances.append(self)

    def run(self):
        if isinstance(self.result, Exception):
            raise self.result
        return self.result

    def stop(self):
        pass


@pytest.fixture(autouse=True)
def isolated_main(monkeypatch):
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    _RecordingSupervisor.instances = []
    monkeypatch.setattr(main_mod, "Supervisor", _RecordingSupervisor)
    monkeypatch.setattr(main_mod.signal, "signal", lambda *a, **kw: None)
    monkeypatch.setenv("HOST", "127.0.0.1")
    monkeypatch.setenv("PORT", "5353")
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


def _argv(tmp_path, *extra):
    return [
        "--config",
        str(tmp_path / "absent.yaml"),
        "--dotenv",
        str(tmp_path / "absent.env"),
        *extra,
    ]


def test_main_runs_supervisor_with_bundled_denylist(tmp_path):
    """
    Brief: Without config the bundled denylist and env bind target are used.

    Inputs:
      - argv pointing at missing config and dotenv files

    Outputs:
      - None: Asserts exit code, targets and denylist contents
    """
    rc = main_mod.main(_argv(tmp_path))
    assert rc == 0
    sup = _RecordingSupervisor.instances[0]
    assert sup.targets == [BindTarget(address="127.0.0.1", port=5353)]
    assert sup.sweep_interval == 60.0
    assert "doubleclick.net" in sup.handler.denylist


def test_main_uses_config_file(tmp_path):
    deny = tmp_path / "deny.txt"
    deny.write_text("||only.test^\n", encoding="utf-8")
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        "listen:\n"
        "  - address: 127.0.0.2\n"
        "    port: 5300\n"
        f"denylist:\n  file: {deny}\n"
        "cache:\n  sweep_interval: 5\n",
        encoding="utf-8",
    )
    rc = main_mod.main(["--config", str(cfg), "--dotenv", str(tmp_path / "x.env")])
    assert rc == 0
    sup = _RecordingSupervisor.instances[0]
    assert sup.targets == [BindTarget(address="127.0.0.2", port=5300)]
    assert sup.sweep_interval == 5.0
    assert "only.test" in sup.handler.denylist
    assert "doubleclick.net" not in sup.handler.denylist


def test_main_denylist_flag_overrides_config(tmp_path):
    deny = tmp_path / "cli.txt"
    deny.write_text("cli.test\n", encoding="utf-8")
    rc = main_mod.main(_argv(tmp_path, "--denylist", str(deny)))
    assert rc == 0
    assert "cli.test" in _RecordingSupervisor.instances[0].handler.denylist


def test_main_missing_denylist_returns_error(tmp_path):
    rc = main_mod.main(_argv(tmp_path, "--denylist", str(tmp_path / "nope.txt")))
    assert rc == 1
    assert _RecordingSupervisor.instances == []


def test_main_bind_failure_returns_error(tmp_path, monkeypatch):
    """
    Brief: An OSError raised while starting listeners maps to exit code 1.

    Inputs:
      - Supervisor.run raising OSError

    Outputs:
      - None: Asserts exit code 1
    """
    original_init = _RecordingSupervisor.__init__

    def failing_init(self, *a, **kw):
        original_init(self, *a, **kw)
        self.result = OSError("address in use")

    monkeypatch.setattr(_RecordingSupervisor, "__init__", failing_init)
    assert main_mod.main(_argv(tmp_path)) == 1


def test_main_returns_supervisor_exit_code(tmp_path, monkeypatch):
    original_init = _RecordingSupervisor.__init__

    def failing_init(self, *a, **kw):
        original_init(self, *a, **kw)
        self.result = 1

    monkeypatch.setattr(_RecordingSupervisor, "__init__", failing_init)
    assert main_mod.main(_argv(tmp_path)) == 1


def test_main_loads_dotenv(tmp_path, monkeypatch):
    """
    Brief: HOST/PORT from the dotenv file drive the bind target.

    Inputs:
      - .env with HOST and PORT, process env cleared of both

    Outputs:
      - None: Asserts target built from dotenv values
    """
    monkeypatch.delenv("HOST")
    monkeypatch.delenv("PORT")
    env = tmp_path / ".env"
    env.write_text("HOST=127.0.0.3\nPORT=5399\n", encoding="utf-8")
    rc = main_mod.main(
        ["--config", str(tmp_path / "absent.yaml"), "--dotenv", str(env)]
    )
    assert rc == 0
    assert _RecordingSupervisor.instances[0].targets == [
        BindTarget(address="127.0.0.3", port=5399)
    ]


def test_install_signal_handlers_routes_to_stop(monkeypatch):
    installed = {}
    monkeypatch.setattr(
        main_mod.signal, "signal", lambda sig, fn: installed.setdefault(sig, fn)
    )

    class _Sup:
        stopped = False

        def stop(self):
            self.stopped = True

    sup = _Sup()
    main_mod._install_signal_handlers(sup, logging.getLogger("test"))
    installed[main_mod.signal.SIGTERM](main_mod.signal.SIGTERM, None)
    assert sup.stopped
