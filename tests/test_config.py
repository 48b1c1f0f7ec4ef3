import json

import pytest
from pydantic import ValidationError

from msreg.config import Config, MicroserviceConfig, load_config, load_microservice_config
from msreg.errors import ConfigError


def test_load_config(config_file):
    cfg = load_config(config_file)

    assert cfg.gateway_url == "http://kong:8000"
    assert cfg.gateway_admin_url == "http://kong:8001"
    assert cfg.system_key == "/run/secrets/system"
    assert cfg.mail["port"] == "587"
    assert cfg.microservice.name == "registration-microservice"
    assert cfg.microservice.virtual_host == "registration.services.jormugandr.org"
    assert cfg.microservice.paths == ["/users/register"]
    assert cfg.microservice.max_slots == 100
    assert cfg.microservice.weight == 10


def test_service_url_strips_trailing_slash(config_dict):
    config_dict["services"]["user-microservice"] = "http://kong:8000/users/"
    cfg = Config.model_validate(config_dict)
    assert cfg.service_url("user-microservice") == "http://kong:8000/users"


def test_service_url_unknown_service(config_dict):
    cfg = Config.model_validate(config_dict)
    with pytest.raises(ConfigError):
        cfg.service_url("billing")


def test_microservice_config_is_immutable():
    cfg = MicroserviceConfig(name="a", port=1, virtual_host="v", slots=5)
    with pytest.raises(ValidationError):
        cfg.port = 2


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "nope.json"))


def test_invalid_json(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError):
        load_config(str(path))


def test_not_an_object(tmp_path):
    path = tmp_path / "list.json"
    path.write_text("[1, 2]")
    with pytest.raises(ConfigError):
        load_config(str(path))


def test_invalid_values(tmp_path, config_dict):
    config_dict["microservice"]["port"] = "eighty"
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config_dict))
    with pytest.raises(ConfigError):
        load_config(str(path))


def test_load_microservice_config(tmp_path, config_dict):
    path = tmp_path / "ms.json"
    path.write_text(json.dumps(config_dict["microservice"]))
    ms = load_microservice_config(str(path))
    assert ms.port == 8080
    assert ms.hosts == ["localhost", "registration.services.jormugandr.org"]
