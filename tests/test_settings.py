from app.core.config import Settings
from signatures.library import default_library


def test_defaults_map_to_engine_config():
    config = Settings().to_diagnostic_config(default_library().ids())

    assert config.sampling_limit == 2
    assert config.timeout_ceiling_ms == 300000
    assert config.threshold_for("timeout", 70) == 70
    assert config.max_workers == 1


def test_declared_pattern_thresholds_survive_without_global_threshold():
    library = default_library()
    config = Settings().to_diagnostic_config(library.ids() + ["disk_full"])

    assert config.threshold_overrides == {}
    assert config.threshold_for("disk_full", 55) == 55


def test_match_threshold_applies_to_every_pattern():
    config = Settings(match_threshold=60, threshold_overrides={"timeout": 90}).to_diagnostic_config(
        default_library().ids()
    )

    assert config.threshold_for("rate_limiting", 70) == 60
    assert config.threshold_for("timeout", 70) == 90


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("EXEC_DIAGNOSTICS_SAMPLING_LIMIT", "5")
    monkeypatch.setenv("EXEC_DIAGNOSTICS_SINK", "json")
    monkeypatch.setenv("EXEC_DIAGNOSTICS_THRESHOLD_OVERRIDES", '{"type_mismatch": 80}')

    settings = Settings()

    assert settings.sampling_limit == 5
    assert settings.sink == "json"
    assert settings.to_diagnostic_config().threshold_for("type_mismatch", 70) == 80
