# tests/test_models.py
import pytest

from lambdas.log_shipper.errors import LabelConfigError
from lambdas.log_shipper.models import (
    AppSettings,
    is_valid_label_name,
    label_set_key,
    parse_extra_labels,
)


@pytest.mark.parametrize("name, valid", [
    ("team", True),
    ("_private", True),
    ("__aws_log_type", True),
    ("Team2", True),
    ("2team", False),
    ("team-name", False),
    ("", False),
])
def test_label_names(name, valid):
    assert is_valid_label_name(name) is valid


def test_label_set_key_ignores_order():
    assert label_set_key({"a": "1", "b": "2"}) == label_set_key({"b": "2", "a": "1"})
    assert label_set_key({"a": "1", "b": "2"}) != label_set_key({"a": "1", "b": "3"})


def test_parse_extra_labels():
    assert parse_extra_labels("") == {}
    assert parse_extra_labels("env,prod, team , payments") == {"__extra_env": "prod", "__extra_team": "payments"}


def test_parse_extra_labels_rejects_odd_list():
    with pytest.raises(LabelConfigError):
        parse_extra_labels("env,prod,team")


def test_parse_extra_labels_rejects_bad_name():
    with pytest.raises(LabelConfigError):
        parse_extra_labels("bad-name,value")


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("WRITE_ADDRESS", "http://loki:3100/loki/api/v1/push")
    monkeypatch.setenv("PRINT_LOG_LINE", "false")
    monkeypatch.setenv("STREAM_DESIRED_RATE", "0.5")
    monkeypatch.setenv("STREAM_RATE_TRACKER_WINDOW_SIZE", "30")
    monkeypatch.setenv("ELB_TAGS_AS_LABELS", '{"Team": "/^(?P<team>\\\\w+)-(?P<env>\\\\w+)$/"}')

    settings = AppSettings()

    assert settings.write_address == "http://loki:3100/loki/api/v1/push"
    assert settings.print_log_line is False
    assert settings.stream_desired_rate == 0.5
    assert settings.stream_rate_tracker_window_size == 30
    assert settings.elb_tags_as_labels == {"Team": r"/^(?P<team>\w+)-(?P<env>\w+)$/"}


def test_settings_reject_non_positive_rate(monkeypatch):
    monkeypatch.setenv("STREAM_DESIRED_RATE", "0")

    with pytest.raises(ValueError):
        AppSettings()
