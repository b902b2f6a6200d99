from claudemeter.preferences.models import AppSettings, NotificationDedupState, NotificationThresholds
from claudemeter.preferences.store import SettingsStore

__all__ = ["AppSettings", "NotificationDedupState", "NotificationThresholds", "SettingsStore"]
