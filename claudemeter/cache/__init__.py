from claudemeter.cache.repository import UsageCache

__all__ = ["UsageCache"]
