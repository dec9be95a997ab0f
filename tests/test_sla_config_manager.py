"""Tests for YAML SLA policy loading and reload."""

import pytest

from compliance_engine.core import ConfigurationException
from compliance_engine.sla.infrastructure import SlaConfigManager

POLICY_YAML = """
default:
  total_days: 14
  warning_threshold_percent: 80
  critical_threshold_hours: 24
work_types:
  intake_triage:
    total_days: 3
    critical_threshold_hours: 8
  investigation:
    defaultDays: 30
    warningThresholdPercent: 75
"""


@pytest.fixture()
def policy_file(tmp_path):
    path = tmp_path / "sla_config.yaml"
    path.write_text(POLICY_YAML)
    return path


def test_load_policies(policy_file):
    manager = SlaConfigManager()

    manager.load(policy_file)

    triage = manager.get_config("intake_triage")
    assert triage.total_days == 3
    assert triage.warning_threshold_percent == 80
    assert triage.critical_threshold_hours == 8
    assert manager.get_config("investigation").total_days == 30
    assert manager.get_config("investigation").warning_threshold_percent == 75
    assert manager.get_config("unknown").total_days == 14


def test_missing_file_uses_defaults(tmp_path):
    manager = SlaConfigManager()

    policies = manager.load(tmp_path / "absent.yaml")

    assert policies.work_types == {}
    assert manager.get_config(None).total_days == 14


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "sla_config.yaml"
    path.write_text("")
    manager = SlaConfigManager()

    manager.load(path)

    assert manager.get_config("anything").warning_threshold_percent == 80


@pytest.mark.parametrize("content", [
    "default: [unclosed",
    "default:\n  total_days: -3\n",
])
def test_invalid_file_raises(tmp_path, content):
    path = tmp_path / "sla_config.yaml"
    path.write_text(content)

    with pytest.raises(ConfigurationException):
        SlaConfigManager().load(path)


def test_reload_picks_up_changes(policy_file):
    manager = SlaConfigManager()
    manager.load(policy_file)

    policy_file.write_text("work_types:\n  intake_triage:\n    total_days: 2\n")

    assert manager.reload() is True
    assert manager.get_config("intake_triage").total_days == 2
    assert manager.get_config("investigation").total_days == 14


def test_failed_reload_keeps_previous_policies(policy_file):
    manager = SlaConfigManager()
    manager.load(policy_file)

    policy_file.write_text("work_types: [broken")

    assert manager.reload() is False
    assert manager.get_config("intake_triage").total_days == 3


def test_reload_before_load_is_noop():
    assert SlaConfigManager().reload() is False


def test_get_config_before_load_raises():
    with pytest.raises(RuntimeError):
        SlaConfigManager().get_config("intake_triage")


def test_watching_lifecycle(policy_file):
    manager = SlaConfigManager()
    manager.load(policy_file)

    manager.start_watching()
    manager.stop_watching()
    manager.stop_watching()


def test_start_watching_requires_load():
    with pytest.raises(RuntimeError):
        SlaConfigManager().start_watching()


def test_snapshot_is_unaffected_by_later_reload(policy_file):
    manager = SlaConfigManager()
    manager.load(policy_file)
    snapshot = manager.snapshot()

    policy_file.write_text("work_types:\n  intake_triage:\n    total_days: 2\n")
    assert manager.reload() is True

    assert snapshot.get_config("intake_triage").total_days == 3
    assert manager.snapshot().get_config("intake_triage").total_days == 2
