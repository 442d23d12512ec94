import pytest

from gradebook.config import load_config
from gradebook.core.exceptions import ConfigurationError
from gradebook.main import GradebookPlatform

ENV_NAMES = (
    "GRADEBOOK_DATABASE_TYPE", "GRADEBOOK_DATABASE_PATH", "GRADEBOOK_DATABASE_HOST",
    "GRADEBOOK_DATABASE_PORT", "GRADEBOOK_DATABASE_NAME", "GRADEBOOK_DATABASE_USER",
    "GRADEBOOK_DATABASE_PASSWORD", "GRADEBOOK_LOG_LEVEL", "GRADEBOOK_ASSESSMENT_WEIGHT",
    "GRADEBOOK_ACTIVITY_WEIGHT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults(tmp_path):
    config = load_config(env_file=str(tmp_path / "missing.env"))

    assert config['database_type'] == "sqlite"
    assert config['database_config'] == {'database_path': "gradebook.db"}
    assert config['log_level'] == "INFO"
    assert config['grading'] == {'assessment_weight': 0.7, 'activity_weight': 0.3}


def test_env_file_then_environment(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("GRADEBOOK_LOG_LEVEL=debug\nGRADEBOOK_ACTIVITY_WEIGHT=0.4\n")
    monkeypatch.setenv("GRADEBOOK_ACTIVITY_WEIGHT", "0.2")
    monkeypatch.setenv("GRADEBOOK_ASSESSMENT_WEIGHT", "0.8")

    config = load_config(env_file=str(env_file))

    assert config['log_level'] == "DEBUG"
    assert config['grading'] == {'assessment_weight': 0.8, 'activity_weight': 0.2}


def test_postgresql_settings(monkeypatch):
    monkeypatch.setenv("GRADEBOOK_DATABASE_TYPE", "PostgreSQL")
    monkeypatch.setenv("GRADEBOOK_DATABASE_HOST", "db.internal")
    monkeypatch.setenv("GRADEBOOK_DATABASE_PORT", "6543")
    monkeypatch.setenv("GRADEBOOK_DATABASE_NAME", "grades")

    config = load_config()

    assert config['database_type'] == "postgresql"
    assert config['database_config'] == {'host': "db.internal", 'port': 6543, 'database': "grades"}


def test_overrides_win(monkeypatch):
    monkeypatch.setenv("GRADEBOOK_LOG_LEVEL", "ERROR")

    config = load_config({'log_level': "WARNING", 'database_config': {'database_path': "x.db"}})

    assert config['log_level'] == "WARNING"
    assert config['database_config'] == {'database_path': "x.db"}


def test_invalid_values(monkeypatch):
    monkeypatch.setenv("GRADEBOOK_ASSESSMENT_WEIGHT", "most")
    with pytest.raises(ConfigurationError):
        load_config()

    monkeypatch.delenv("GRADEBOOK_ASSESSMENT_WEIGHT")
    with pytest.raises(ConfigurationError):
        load_config({'database_type': "mongodb"})


def test_platform_uses_configured_weights(tmp_path, monkeypatch):
    monkeypatch.setenv("GRADEBOOK_ASSESSMENT_WEIGHT", "0.6")
    monkeypatch.setenv("GRADEBOOK_ACTIVITY_WEIGHT", "0.4")

    platform = GradebookPlatform({'database_config': {'database_path': str(tmp_path / "p.db")}})

    assert platform.policy.blend(100, 50) == pytest.approx(80.0)
    assert platform.database.table_exists("activity_grades")


def test_platform_rejects_bad_weight_sum(tmp_path):
    with pytest.raises(ConfigurationError):
        GradebookPlatform({'database_config': {'database_path': str(tmp_path / "p.db")},
                           'grading': {'assessment_weight': 0.9, 'activity_weight': 0.9}})
