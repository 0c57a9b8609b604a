from pathlib import Path

from sevdash.config import SHEET_ID, DashboardConfig


def test_defaults():
    cfg = DashboardConfig()
    assert cfg.sheet_id == SHEET_ID
    assert cfg.max_retries == 3
    assert cfg.cache_ttl == 1800.0
    assert len(cfg.candidate_urls()) == 2


def test_gviz_candidate_is_last():
    urls = DashboardConfig(use_gviz=True).candidate_urls()
    assert len(urls) == 3
    assert "gviz/tq" in urls[-1]


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("SEVDASH_SHEET_ID", "ENVSHEET")
    monkeypatch.setenv("SEVDASH_CACHE_TTL", "60")
    monkeypatch.setenv("SEVDASH_CACHE_DIR", str(tmp_path))
    cfg = DashboardConfig.from_env(gid="5", sheet_id=None)
    assert cfg.sheet_id == "ENVSHEET"
    assert cfg.gid == "5"
    assert cfg.cache_ttl == 60.0
    assert cfg.cache_dir == Path(tmp_path)
    assert DashboardConfig.from_env(cache_dir=str(tmp_path / "x")).cache_dir == tmp_path / "x"
