import importlib

import pytest

import parkpay.config as config

@pytest.fixture
def reload_config(monkeypatch):
    """Recharge parkpay.config avec l'environnement modifié (sans lire .env), puis le restaure."""
    monkeypatch.setattr("dotenv.load_dotenv", lambda *args, **kwargs: False)
    def _reload():
        return importlib.reload(config)
    yield _reload
    monkeypatch.undo()
    importlib.reload(config)

def test_supabase_url_falls_back_to_next_public_variable(monkeypatch, reload_config):
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.setenv("NEXT_PUBLIC_SUPABASE_URL", "demo.supabase.co/")
    monkeypatch.setenv("DATABASE_URL", "postgres://user:pw@db:5432/app")
    cfg = reload_config()
    assert cfg.SUPABASE_URL == "https://demo.supabase.co"

def test_database_url_is_never_used_as_supabase_url(monkeypatch, reload_config):
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("NEXT_PUBLIC_SUPABASE_URL", raising=False)
    monkeypatch.setenv("DATABASE_URL", "postgres://user:pw@db:5432/app")
    cfg = reload_config()
    assert cfg.SUPABASE_URL == ""

def test_supabase_url_cleaned_of_quotes(monkeypatch, reload_config):
    monkeypatch.setenv("SUPABASE_URL", '"https://demo.supabase.co"')
    cfg = reload_config()
    assert cfg.SUPABASE_URL == "https://demo.supabase.co"

def test_costing_base_url_has_no_trailing_slash(monkeypatch, reload_config):
    monkeypatch.setenv("COSTING_BASE_URL", "http://costing.internal/")
    cfg = reload_config()
    assert cfg.COSTING_BASE_URL == "http://costing.internal"
