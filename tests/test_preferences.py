"""
Tests for preferences, the password gate and the local key/value stores.
"""

import json
import pytest

from money_manager.audit import AuditLogger
from money_manager.models.audit import AuditEventType
from money_manager.models.ledger import DisplayCurrency, Language
from money_manager.preferences import (
    THEME_PRESETS,
    AppPreferences,
    PasswordGate,
    PreferencesRepository,
    ThemeConfig,
)
from money_manager.services.storage import (
    KEY_LANGUAGE,
    KEY_PASSWORD,
    KEY_SPREADSHEET_ID,
    InMemoryStore,
    JsonFileStore,
)


class TestKeyValueStores:
    """Tests for InMemoryStore and JsonFileStore."""

    def test_in_memory_get_set_delete(self):
        store = InMemoryStore()
        assert store.get("a", "default") == "default"
        store.set("a", {"x": 1})
        assert store.get("a") == {"x": 1}
        assert store.contains("a")
        assert store.delete("a") is True
        assert store.delete("a") is False

    def test_json_file_persists_across_instances(self, tmp_path):
        path = tmp_path / "state" / "state.json"
        JsonFileStore(path).set("language", "uk")

        assert JsonFileStore(path).get("language") == "uk"
        assert json.loads(path.read_text(encoding="utf-8")) == {"language": "uk"}

    def test_json_file_delete(self, tmp_path):
        path = tmp_path / "state.json"
        store = JsonFileStore(path)
        store.set("a", 1)
        store.set("b", 2)
        assert store.delete("a") is True
        assert JsonFileStore(path).get("a") is None
        assert JsonFileStore(path).get("b") == 2

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{broken", encoding="utf-8")
        assert JsonFileStore(path).get("language") is None

    def test_no_temp_files_left_behind(self, tmp_path):
        store = JsonFileStore(tmp_path / "state.json")
        store.set("a", 1)
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]


class TestPreferences:
    """Tests for PreferencesRepository."""

    def test_defaults_on_empty_store(self):
        prefs = PreferencesRepository(InMemoryStore()).load()
        assert prefs.language == Language.EN
        assert prefs.display_currency == DisplayCurrency.USD
        assert prefs.theme == THEME_PRESETS["light"]
        assert prefs.spreadsheet_id is None

    def test_save_and_load(self):
        store = InMemoryStore()
        repo = PreferencesRepository(store)
        repo.save(AppPreferences(
            language=Language.RU,
            display_currency=DisplayCurrency.UAH,
            theme=ThemeConfig.preset("dark"),
            spreadsheet_id="sheet-1",
        ))

        prefs = repo.load()

        assert prefs.language == Language.RU
        assert prefs.display_currency == DisplayCurrency.UAH
        assert prefs.theme.background_color == "#0f172a"
        assert prefs.spreadsheet_id == "sheet-1"
        assert store.get(KEY_LANGUAGE) == "ru"

    def test_clearing_spreadsheet_id_deletes_key(self):
        store = InMemoryStore({KEY_SPREADSHEET_ID: "old"})
        PreferencesRepository(store).save(AppPreferences())
        assert not store.contains(KEY_SPREADSHEET_ID)

    def test_invalid_values_fall_back_per_key(self):
        store = InMemoryStore({
            "language": "de",
            "display_currency": "UAH",
            "theme": {"name": "x", "primary_color": "blue"},
        })
        prefs = PreferencesRepository(store).load()
        assert prefs.language == Language.EN
        assert prefs.display_currency == DisplayCurrency.UAH
        assert prefs.theme == THEME_PRESETS["light"]

    def test_unknown_preset_is_light(self):
        assert ThemeConfig.preset("neon") == THEME_PRESETS["light"]


class TestPasswordGate:
    """Tests for the UI password gate."""

    def test_disabled_by_default(self):
        gate = PasswordGate(InMemoryStore())
        assert not gate.is_enabled
        assert gate.check("anything")

    def test_set_and_check(self):
        audit = AuditLogger()
        store = InMemoryStore()
        gate = PasswordGate(store, audit_logger=audit)

        result = gate.set_password("1234", "1234")

        assert result.is_valid
        assert gate.is_enabled
        assert gate.check("1234")
        assert not gate.check("4321")
        assert store.get(KEY_PASSWORD) == "1234"
        assert audit.recent_events()[0].event_type == AuditEventType.LOGIN_FAILED

    def test_too_short_is_rejected(self):
        gate = PasswordGate(InMemoryStore())
        result = gate.set_password("123", "123")
        assert not result.is_valid
        assert not gate.is_enabled

    def test_mismatch_is_rejected(self):
        gate = PasswordGate(InMemoryStore())
        result = gate.set_password("abcd", "abce")
        assert not result.is_valid
        assert result.issues[0].field == "confirm_password"
        assert not gate.is_enabled

    def test_remove(self):
        gate = PasswordGate(InMemoryStore())
        gate.set_password("abcd", "abcd")
        assert gate.remove_password() is True
        assert not gate.is_enabled
        assert gate.remove_password() is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
