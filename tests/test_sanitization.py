import pytest

from util import sanitization as sanny
from util.sanitization import NamingError, Sanitization


def test_clean_replaces_invalid_characters_with_separator():
    assert Sanitization.clean("My App!!", sanny.WEB_APP) == "my-app"
    assert Sanitization.clean("--edge--", sanny.WEB_APP) == "edge"


def test_clean_storage_drops_everything_but_alphanumerics():
    assert Sanitization.clean("My-App_2", sanny.STORAGE_ACCOUNT) == "myapp2"


def test_clean_rejects_non_strings():
    with pytest.raises(TypeError):
        Sanitization.clean(123, sanny.WEB_APP)


def test_fit_joins_parts_with_rule_separator():
    assert sanny.fit(sanny.RESOURCE_GROUP, "app", "production", "rg") == "app-production-rg"
    assert sanny.fit(sanny.POSTGRES_DATABASE, "my-app", "db") == "my_app_db"
    assert sanny.fit(sanny.STORAGE_ACCOUNT, "app", "prod", suffix="123456") == "appprod123456"


def test_fit_truncates_base_and_keeps_suffix():
    name = sanny.fit(sanny.STORAGE_ACCOUNT, "a" * 40, suffix="654321")
    assert name == "a" * 18 + "654321"


def test_fit_does_not_leave_trailing_separator_before_suffix():
    # base truncated right after a hyphen
    name = sanny.fit(sanny.KEY_VAULT, "abcdefghijklmnop", "qrst", suffix="000001")
    assert "--" not in name
    assert name.endswith("-000001")
    assert len(name) <= 24


def test_fit_raises_when_suffix_leaves_no_room():
    with pytest.raises(NamingError):
        sanny.fit(sanny.STORAGE_ACCOUNT, "app", suffix="1" * 24)


def test_validate_key_vault_must_start_with_letter():
    with pytest.raises(NamingError):
        Sanitization.validate("1vault-abc", sanny.KEY_VAULT)


def test_validate_length_bounds():
    with pytest.raises(NamingError):
        Sanitization.validate("ab", sanny.STORAGE_ACCOUNT)
    with pytest.raises(NamingError):
        Sanitization.validate("a" * 25, sanny.STORAGE_ACCOUNT)


def test_validate_resource_group_cannot_end_with_period():
    with pytest.raises(NamingError):
        Sanitization.validate("group.", sanny.RESOURCE_GROUP)


def test_purge_keeps_key_vault_secret_charset():
    assert sanny.purge("Django_Secret.Key") == "djangosecretkey"
    assert sanny.purge("database-password") == "database-password"
