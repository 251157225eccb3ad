import logging

from tesouraria import config


def test_env_int_falls_back_on_malformed(monkeypatch):
    monkeypatch.setenv("MAX_COMPROVANTE_MB", "cinco")
    assert config.env_int("MAX_COMPROVANTE_MB", 5) == 5
    monkeypatch.setenv("MAX_COMPROVANTE_MB", "8")
    assert config.env_int("MAX_COMPROVANTE_MB", 5) == 8
    monkeypatch.delenv("MAX_COMPROVANTE_MB", raising=False)
    assert config.env_int("MAX_COMPROVANTE_MB", 5) == 5


def test_env_bool(monkeypatch):
    for raw in ("1", "true", "Sim", " on "):
        monkeypatch.setenv("SEED_SAMPLE_DATA", raw)
        assert config.env_bool("SEED_SAMPLE_DATA") is True
    monkeypatch.setenv("SEED_SAMPLE_DATA", "nao")
    assert config.env_bool("SEED_SAMPLE_DATA", True) is False
    monkeypatch.setenv("SEED_SAMPLE_DATA", "  ")
    assert config.env_bool("SEED_SAMPLE_DATA", True) is True


def test_configure_logging_is_idempotent():
    logger = logging.getLogger("tesouraria")
    before = list(logger.handlers)
    level = logger.level
    try:
        config.configure_logging("DEBUG")
        config.configure_logging("DEBUG")
        ours = [h for h in logger.handlers if getattr(h, "_tesouraria", False)]
        assert len(ours) == 1
        assert logger.level == logging.DEBUG
    finally:
        logger.handlers[:] = before
        logger.setLevel(level)
