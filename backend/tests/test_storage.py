"""Tests for settings persistence and the bounded console log."""
from __future__ import annotations

from homebound.config import LOG_CAPACITY, PLACEHOLDER_TARGET
from homebound.models import Coordinate, LogEntry, Settings
from homebound.storage import Storage


def _entry(i: int) -> LogEntry:
    return LogEntry(timestamp="00:00:00", message=f"m{i}", severity="info")


def test_default_settings_use_placeholder():
    s = Storage(settings_path=None).get_settings()
    assert s.connect_target == PLACEHOLDER_TARGET
    assert s.agent_name


def test_log_ring_never_exceeds_capacity():
    st = Storage(settings_path=None)
    for i in range(LOG_CAPACITY):
        st.append_log(_entry(i))
    assert len(st.get_log()) == LOG_CAPACITY
    assert st.get_log()[0].message == "m0"

    st.append_log(_entry(LOG_CAPACITY))
    log = st.get_log()
    assert len(log) == LOG_CAPACITY
    assert log[0].message == "m1"
    assert log[-1].message == f"m{LOG_CAPACITY}"


def test_clear_log():
    st = Storage(settings_path=None)
    st.append_log(_entry(1))
    st.clear_log()
    assert st.get_log() == []


def test_settings_round_trip_through_file(tmp_path):
    path = tmp_path / "settings.json"
    st = Storage(settings_path=path)
    st.update_settings(Settings(connect_target="play.example.org", agent_name="Keeper", home=Coordinate(10, 70, -4)))
    assert path.exists()

    reloaded = Storage(settings_path=path).get_settings()
    assert reloaded.connect_target == "play.example.org"
    assert reloaded.agent_name == "Keeper"
    assert reloaded.home == Coordinate(10, 70, -4)


def test_corrupt_settings_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")
    assert Storage(settings_path=path).get_settings().connect_target == PLACEHOLDER_TARGET
