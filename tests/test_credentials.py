"""Tests for session key parsing and the file secret store."""

from __future__ import annotations

import json
import os
import stat

import pytest

from claudemeter.credentials.session_key import SessionKey, parse_cookie_string
from claudemeter.credentials.store import FileSecretStore
from claudemeter.errors import CredentialInvalidError, InvalidSessionKeyError, SecretNotFoundError

from conftest import ORG_UUID, VALID_KEY


class TestParseCookieString:
    def test_bare_value(self) -> None:
        assert parse_cookie_string(f"  {VALID_KEY}\n") == {"sessionKey": VALID_KEY}

    def test_cookie_header(self) -> None:
        cookies = parse_cookie_string(f"sessionKey={VALID_KEY}; lastActiveOrg={ORG_UUID}; junk")
        assert cookies == {"sessionKey": VALID_KEY, "lastActiveOrg": ORG_UUID}


class TestSessionKey:
    def test_bare_key(self) -> None:
        key = SessionKey(VALID_KEY)
        assert key.value == VALID_KEY
        assert key.organization_id is None
        assert key.cookie_header == f"sessionKey={VALID_KEY}"

    def test_embedded_organization(self) -> None:
        key = SessionKey(f"sessionKey={VALID_KEY}; lastActiveOrg={ORG_UUID}")
        assert key.organization_id == ORG_UUID

    def test_embedded_organization_must_be_uuid(self) -> None:
        key = SessionKey(f"sessionKey={VALID_KEY}; lastActiveOrg=personal")
        assert key.organization_id is None

    def test_cloudflare_cookies_dropped(self) -> None:
        key = SessionKey(f"sessionKey={VALID_KEY}; cf_clearance=abc; __cf_bm=def; _cfuvid=ghi; anthropic-device-id=x")
        assert set(key.cookies) == {"sessionKey", "anthropic-device-id"}
        assert "cf_clearance" not in key.cookie_header

    @pytest.mark.parametrize(
        "raw",
        ["", "   ", "not-a-key", "sk-ant-short", "sk-ant-has spaces in it ok?", "sessionKey=; lastActiveOrg=x"],
    )
    def test_rejects_malformed(self, raw) -> None:
        with pytest.raises(InvalidSessionKeyError):
            SessionKey(raw)

    def test_invalid_key_is_credential_error(self) -> None:
        assert issubclass(InvalidSessionKeyError, CredentialInvalidError)

    def test_repr_masks_secret(self) -> None:
        assert VALID_KEY not in repr(SessionKey(VALID_KEY))

    def test_equality(self) -> None:
        assert SessionKey(VALID_KEY) == SessionKey(f" {VALID_KEY} ")
        assert len({SessionKey(VALID_KEY), SessionKey(VALID_KEY)}) == 1


class TestFileSecretStore:
    def test_missing_account(self, secrets) -> None:
        assert not secrets.exists("default")
        with pytest.raises(SecretNotFoundError):
            secrets.get("default")

    def test_set_get_delete(self, secrets) -> None:
        secrets.set("default", VALID_KEY)
        secrets.set("work", "sk-ant-other")
        assert secrets.get("default") == VALID_KEY
        assert secrets.exists("work")

        secrets.delete("default")
        assert not secrets.exists("default")
        assert secrets.get("work") == "sk-ant-other"

    def test_delete_missing_is_noop(self, secrets) -> None:
        secrets.delete("nobody")
        assert not secrets.exists("nobody")

    def test_file_is_owner_only(self, secrets, tmp_path) -> None:
        secrets.set("default", VALID_KEY)
        mode = stat.S_IMODE(os.stat(tmp_path / "secrets.json").st_mode)
        assert mode == 0o600

    def test_corrupt_file_reads_empty(self, tmp_path) -> None:
        path = tmp_path / "secrets.json"
        path.write_text("{not json")
        store = FileSecretStore(path)
        assert not store.exists("default")
        store.set("default", VALID_KEY)
        assert json.loads(path.read_text()) == {"default": VALID_KEY}
