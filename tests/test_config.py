from pos_backend.core.config import DEFAULT_JWT_SECRET, EnvironmentMode, Settings


def test_defaults():
    settings = Settings(_env_file=None)
    assert settings.api_port == 4000
    assert settings.delivery_table_id == 57
    assert settings.jwt_expire_minutes == 60


def test_cors_origins_list():
    settings = Settings(_env_file=None, cors_origins="http://a.test, http://b.test,")
    assert settings.cors_origins_list == ["http://a.test", "http://b.test"]


def test_env_mode_is_case_insensitive():
    settings = Settings(_env_file=None, env_mode="PRODUCTION")
    assert settings.env_mode is EnvironmentMode.PRODUCTION
    assert settings.is_production


def test_production_requires_real_secret():
    settings = Settings(_env_file=None, env_mode="production", jwt_secret=DEFAULT_JWT_SECRET)
    assert settings.validate_production_config() == ["JWT_SECRET"]

    settings = Settings(_env_file=None, env_mode="production", jwt_secret="s3cret")
    assert settings.validate_production_config() == []

    settings = Settings(_env_file=None, env_mode="development", jwt_secret=DEFAULT_JWT_SECRET)
    assert settings.validate_production_config() == []


def test_health(pos):
    resp = pos.client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "operational"
    assert body["database"] == "healthy"
    assert body["redis"] == "disabled"
    assert body["realtime_provider"] == "socketio"


def test_root(pos):
    body = pos.client.get("/").json()
    assert body["documentation"] == "/docs"
