"""
User Preferences

Language, display currency, theme, spreadsheet id and the optional
password are explicit objects, loaded from and saved to the key/value
store one key at a time.

The password is a UI gate only. It is stored as entered and is not a
security boundary.
"""

from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from money_manager.audit import AuditLogger
from money_manager.config import get_settings
from money_manager.models.ledger import DisplayCurrency, Language
from money_manager.services.storage.interface import (
    KEY_DISPLAY_CURRENCY,
    KEY_LANGUAGE,
    KEY_PASSWORD,
    KEY_SPREADSHEET_ID,
    KEY_THEME,
    KeyValueStore,
)
from money_manager.validation import ValidationResult, validate_password


logger = structlog.get_logger(__name__)

HEX_COLOR = r"^#[0-9a-fA-F]{6}$"


class ThemeConfig(BaseModel):
    """Colours used by the UI."""
    model_config = ConfigDict(frozen=True)

    name: str = "light"
    primary_color: str = Field(default="#0ea5e9", pattern=HEX_COLOR)
    background_color: str = Field(default="#f8fafc", pattern=HEX_COLOR)
    card_color: str = Field(default="#ffffff", pattern=HEX_COLOR)
    text_color: str = Field(default="#0f172a", pattern=HEX_COLOR)

    @classmethod
    def preset(cls, name: str) -> "ThemeConfig":
        """A named preset; unknown names give the light theme."""
        return THEME_PRESETS.get(name, THEME_PRESETS["light"])


THEME_PRESETS = {
    "light": ThemeConfig(),
    "dark": ThemeConfig(
        name="dark",
        primary_color="#38bdf8",
        background_color="#0f172a",
        card_color="#1e293b",
        text_color="#f1f5f9",
    ),
}


class AppPreferences(BaseModel):
    """Everything the user can configure, minus the password."""

    language: Language = Language.EN
    display_currency: DisplayCurrency = DisplayCurrency.USD
    theme: ThemeConfig = Field(default_factory=ThemeConfig)
    spreadsheet_id: Optional[str] = None


class PreferencesRepository:
    """
    Loads and saves AppPreferences through a KeyValueStore.

    Values that fail validation are replaced by defaults with a warning,
    so a damaged state file never stops the app.
    """

    def __init__(self, store: KeyValueStore):
        self._store = store

    def defaults(self) -> AppPreferences:
        app_settings = get_settings().app
        return AppPreferences(
            language=Language(app_settings.default_language),
            display_currency=DisplayCurrency(app_settings.default_display_currency),
        )

    def load(self) -> AppPreferences:
        prefs = self.defaults()
        raw = {
            "language": self._store.get(KEY_LANGUAGE),
            "display_currency": self._store.get(KEY_DISPLAY_CURRENCY),
            "theme": self._store.get(KEY_THEME),
            "spreadsheet_id": self._store.get(KEY_SPREADSHEET_ID),
        }

        updates = {}
        for field_name, value in raw.items():
            if value is None:
                continue
            try:
                candidate = AppPreferences.model_validate({
                    **prefs.model_dump(),
                    field_name: value,
                })
            except ValidationError as e:
                logger.warning(
                    "preference_invalid",
                    key=field_name,
                    error_count=e.error_count(),
                )
                continue
            updates[field_name] = getattr(candidate, field_name)

        return prefs.model_copy(update=updates)

    def save(self, prefs: AppPreferences) -> None:
        self._store.set(KEY_LANGUAGE, prefs.language.value)
        self._store.set(KEY_DISPLAY_CURRENCY, prefs.display_currency.value)
        self._store.set(KEY_THEME, prefs.theme.model_dump())
        if prefs.spreadsheet_id:
            self._store.set(KEY_SPREADSHEET_ID, prefs.spreadsheet_id)
        else:
            self._store.delete(KEY_SPREADSHEET_ID)


class PasswordGate:
    """
    Optional password prompt in front of the UI.

    There is no lockout; a wrong password only produces a message.
    """

    def __init__(
        self,
        store: KeyValueStore,
        audit_logger: Optional[AuditLogger] = None,
        min_length: Optional[int] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._min_length = min_length or get_settings().app.min_password_length

    @property
    def min_length(self) -> int:
        return self._min_length

    @property
    def is_enabled(self) -> bool:
        return bool(self._store.get(KEY_PASSWORD))

    def check(self, candidate: Optional[str]) -> bool:
        """True when no password is set or the candidate matches."""
        stored = self._store.get(KEY_PASSWORD)
        if not stored:
            return True
        if candidate == stored:
            return True
        if self._audit_logger:
            self._audit_logger.log_login_failed()
        return False

    def set_password(self, new_password: str, confirm_password: str) -> ValidationResult:
        """Set or change the password. Nothing is stored if validation fails."""
        result = validate_password(new_password, confirm_password, self._min_length)
        if not result.is_valid:
            return result
        self._store.set(KEY_PASSWORD, new_password)
        if self._audit_logger:
            self._audit_logger.log_password_changed(enabled=True)
        return result

    def remove_password(self) -> bool:
        """Disable the gate. Returns False if no password was set."""
        removed = self._store.delete(KEY_PASSWORD)
        if removed and self._audit_logger:
            self._audit_logger.log_password_changed(enabled=False)
        return removed
