# These imports should work if PYTHONPATH is set to include /src
from site_agent.config import SiteSettings
from site_agent.main import run


def test_site_agent_imports_and_settings():
    """
    Sanity test:
    - SiteSettings can be constructed
    - Basic field types are correct (pydantic validation works)
    """
    cfg = SiteSettings()

    assert isinstance(cfg.store_id, str)
    assert isinstance(cfg.http_port, int)
    assert isinstance(cfg.max_events, int)


def test_settings_coerce_env(monkeypatch):
    monkeypatch.setenv("ROBOT_COUNT", "7")
    monkeypatch.setenv("RANDOM_SEED", "42")
    monkeypatch.setenv("STORE_ID", "s-env")

    cfg = SiteSettings()
    assert cfg.robot_count == 7
    assert cfg.random_seed == 42
    assert cfg.store_id == "s-env"


def test_run_does_not_crash(monkeypatch):
    """
    run() uses argparse (which reads sys.argv).
    In pytest, sys.argv includes pytest arguments, so we patch it to keep run() clean.
    """
    monkeypatch.setattr("sys.argv", ["site_agent"])

    code = run()
    assert code == 0
