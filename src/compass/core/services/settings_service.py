from __future__ import annotations

from typing import Optional

from compass.core.events.observable import ObservableValue
from compass.core.models import CompassTheme
from compass.utils.config_sections import HapticConfig, load_haptic_config


class SettingsService:
    """
    User preferences exposed as observable values.

    The pipeline reads ``is_haptic_enabled`` before every pulse. Theme is
    exposed for the renderer and never read by the core. Persisting these
    values belongs to the host app.
    """

    def __init__(
        self,
        haptic_enabled: Optional[bool] = None,
        theme: CompassTheme = CompassTheme.CLASSIC,
        config: Optional[HapticConfig] = None,
    ) -> None:
        config = config or load_haptic_config()
        if haptic_enabled is None:
            haptic_enabled = config.default_enabled
        self.is_haptic_enabled: ObservableValue[bool] = ObservableValue(haptic_enabled)
        self.selected_theme: ObservableValue[CompassTheme] = ObservableValue(theme)

    def set_haptic_enabled(self, enabled: bool) -> None:
        self.is_haptic_enabled.set(bool(enabled))

    def set_theme(self, theme: CompassTheme) -> None:
        self.selected_theme.set(theme)
