import pytest

from geoattend.core.env import env_flag, env_list, get_project_root, resolve_project_path


def test_env_flag_reads_common_spellings(monkeypatch):
    monkeypatch.setenv("GEOATTEND_CORS_ALLOW_LOCAL", " Off ")
    assert env_flag("GEOATTEND_CORS_ALLOW_LOCAL", default=True) is False

    monkeypatch.setenv("GEOATTEND_CORS_ALLOW_LOCAL", "yes")
    assert env_flag("GEOATTEND_CORS_ALLOW_LOCAL") is True

    monkeypatch.setenv("GEOATTEND_CORS_ALLOW_LOCAL", "")
    assert env_flag("GEOATTEND_CORS_ALLOW_LOCAL", default=True) is True

    monkeypatch.setenv("GEOATTEND_CORS_ALLOW_LOCAL", "maybe")
    with pytest.raises(ValueError, match="GEOATTEND_CORS_ALLOW_LOCAL"):
        env_flag("GEOATTEND_CORS_ALLOW_LOCAL")


def test_env_list_drops_blank_items(monkeypatch):
    monkeypatch.setenv("GEOATTEND_CORS_ORIGINS", "http://localhost:5173, ,https://hr.example.test ")
    assert env_list("GEOATTEND_CORS_ORIGINS") == ["http://localhost:5173", "https://hr.example.test"]

    monkeypatch.delenv("GEOATTEND_CORS_ORIGINS")
    assert env_list("GEOATTEND_CORS_ORIGINS") == []


def test_cache_paths_resolve_against_project_root(monkeypatch, tmp_path):
    monkeypatch.setenv("GEOATTEND_PROJECT_ROOT", str(tmp_path))
    get_project_root.cache_clear()
    try:
        assert resolve_project_path(".cache/geoattend") == tmp_path.resolve() / ".cache" / "geoattend"
        assert resolve_project_path(tmp_path / "abs") == tmp_path / "abs"
    finally:
        get_project_root.cache_clear()
