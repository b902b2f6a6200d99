from claudemeter.credentials.session_key import SessionKey, parse_cookie_string
from claudemeter.credentials.store import FileSecretStore, SecretStore

__all__ = ["FileSecretStore", "SecretStore", "SessionKey", "parse_cookie_string"]
