"""
Tests for the command-line interface.
"""

import json

import pendulum
import pytest
from typer.testing import CliRunner

from bookingengine.cli.app import app

runner = CliRunner()

CONFIG = """
timezone: UTC
booking_page_enabled: true
min_advance_booking: 0
max_advance_booking: 60
slot_interval: 30
weekly_availability:
  monday: [{start: "09:00", end: "12:00"}]
  tuesday: [{start: "09:00", end: "12:00"}]
  wednesday: [{start: "09:00", end: "12:00"}]
  thursday: [{start: "09:00", end: "12:00"}]
  friday: [{start: "09:00", end: "12:00"}]
  saturday: [{start: "09:00", end: "12:00"}]
  sunday: [{start: "09:00", end: "12:00"}]
appointment_types:
  - id: consultation
    name: General Consultation
    duration: 30
  - id: tour
    name: Kennel Tour
    duration: 45
    enabled: false
"""


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    """Keep Rich from wrapping table cells."""
    monkeypatch.setenv("COLUMNS", "200")


@pytest.fixture
def paths(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(CONFIG, encoding="utf-8")
    return config_path, tmp_path / "bookings.json"


@pytest.fixture
def next_week():
    return pendulum.now("UTC").add(days=7).to_date_string()


def _common(paths):
    config_path, ledger_path = paths
    return ["--config", str(config_path), "--ledger", str(ledger_path)]


def _ledger(paths):
    return json.loads(paths[1].read_text(encoding="utf-8"))


def test_types_lists_enabled_only(paths):
    result = runner.invoke(app, ["types", "--config", str(paths[0])])

    assert result.exit_code == 0
    assert "consultation" in result.output
    assert "Kennel Tour" not in result.output


def test_slots(paths, next_week):
    result = runner.invoke(app, ["slots", next_week, "--type", "consultation", *_common(paths)])

    assert result.exit_code == 0
    assert "6 available slot(s) found" in result.output
    assert "09:00" in result.output
    assert "11:30" in result.output


def test_book_confirm_cancel_flow(paths, next_week):
    booked = runner.invoke(
        app,
        [
            "book", "consultation", f"{next_week}T09:30",
            "--name", "Ada Lovelace",
            "--email", "ada@example.com",
            *_common(paths),
        ],
    )
    assert booked.exit_code == 0
    assert "Booking created" in booked.output

    booking_id = _ledger(paths)[0]["id"]
    assert _ledger(paths)[0]["status"] == "pending"

    confirmed = runner.invoke(app, ["confirm", booking_id, *_common(paths)])
    assert confirmed.exit_code == 0
    assert _ledger(paths)[0]["status"] == "confirmed"

    cancelled = runner.invoke(app, ["cancel", booking_id, "--reason", "Rescheduled", *_common(paths)])
    assert cancelled.exit_code == 0
    assert _ledger(paths)[0]["status"] == "cancelled"
    assert _ledger(paths)[0]["cancellationReason"] == "Rescheduled"


def test_double_booking_reports_error(paths, next_week):
    args = [
        "book", "consultation", f"{next_week}T10:00",
        "--name", "Ada Lovelace",
        "--email", "ada@example.com",
        *_common(paths),
    ]

    assert runner.invoke(app, args).exit_code == 0
    second = runner.invoke(app, args)

    assert second.exit_code == 1
    assert "no longer available" in second.output
    assert len(_ledger(paths)) == 1


def test_bookings_lists_records(paths, next_week):
    runner.invoke(
        app,
        [
            "book", "consultation", f"{next_week}T11:00",
            "--name", "Grace Hopper",
            "--email", "grace@example.com",
            *_common(paths),
        ],
    )

    result = runner.invoke(app, ["bookings", "--status", "pending", *_common(paths)])

    assert result.exit_code == 0
    assert "pending" in result.output


def test_no_bookings(paths):
    result = runner.invoke(app, ["bookings", *_common(paths)])

    assert result.exit_code == 0
    assert "No bookings found" in result.output


def test_disabled_type_reports_error(paths, next_week):
    result = runner.invoke(app, ["slots", next_week, "--type", "tour", *_common(paths)])

    assert result.exit_code == 1
    assert "disabled" in result.output


def test_missing_config_reports_error(tmp_path):
    result = runner.invoke(app, ["types", "--config", str(tmp_path / "nope.yaml")])

    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "bookingengine" in result.output
