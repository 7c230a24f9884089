"""Match policy validation and environment-driven settings."""

import logging

import pytest
from pydantic import ValidationError

from catalog_linker.config import MatchPolicy, Settings, configure_logging


def test_default_settings(monkeypatch):
    for name in ("AUTO_APPROVE_THRESHOLD", "PENDING_REVIEW_THRESHOLD", "MAX_WORKERS"):
        monkeypatch.delenv(f"CATALOG_LINKER_{name}", raising=False)
    settings = Settings()
    assert settings.policy() == MatchPolicy(auto_approve_threshold=0.85, pending_review_threshold=0.60)
    assert settings.fallback_policy() == MatchPolicy(auto_approve_threshold=0.92, pending_review_threshold=0.75)
    assert settings.brand_guard is True
    assert settings.max_workers is None


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("CATALOG_LINKER_AUTO_APPROVE_THRESHOLD", "0.9")
    monkeypatch.setenv("CATALOG_LINKER_PENDING_REVIEW_THRESHOLD", "0.7")
    monkeypatch.setenv("CATALOG_LINKER_MAX_WORKERS", "4")
    monkeypatch.setenv("CATALOG_LINKER_BRAND_GUARD", "false")
    settings = Settings()
    assert settings.policy().auto_approve_threshold == 0.9
    assert settings.policy().pending_review_threshold == 0.7
    assert settings.max_workers == 4
    assert settings.brand_guard is False


def test_policy_rejects_inverted_thresholds():
    with pytest.raises(ValidationError):
        MatchPolicy(auto_approve_threshold=0.5, pending_review_threshold=0.7)


@pytest.mark.parametrize("auto, review", [(1.2, 0.5), (0.8, -0.1)])
def test_policy_rejects_out_of_range(auto, review):
    with pytest.raises(ValidationError):
        MatchPolicy(auto_approve_threshold=auto, pending_review_threshold=review)


def test_invalid_environment_policy_fails_at_use(monkeypatch):
    monkeypatch.setenv("CATALOG_LINKER_AUTO_APPROVE_THRESHOLD", "0.5")
    monkeypatch.setenv("CATALOG_LINKER_PENDING_REVIEW_THRESHOLD", "0.7")
    with pytest.raises(ValidationError):
        Settings().policy()


def test_policy_is_immutable():
    policy = MatchPolicy(auto_approve_threshold=0.85, pending_review_threshold=0.6)
    with pytest.raises(ValidationError):
        policy.auto_approve_threshold = 0.1


def test_log_level_setting_reaches_package_loggers(monkeypatch):
    monkeypatch.setenv("CATALOG_LINKER_LOG_LEVEL", "debug")
    package_logger = logging.getLogger("catalog_linker")
    previous = package_logger.level
    try:
        configure_logging(Settings().log_level)
        assert package_logger.level == logging.DEBUG
        assert logging.getLogger("catalog_linker.pipeline").isEnabledFor(logging.DEBUG)
    finally:
        package_logger.setLevel(previous)


def test_marketplace_retailers_from_environment(monkeypatch):
    monkeypatch.setenv("CATALOG_LINKER_MARKETPLACE_RETAILERS", '["aliexpress", "shopee"]')
    assert Settings().marketplace_retailers == ["aliexpress", "shopee"]
