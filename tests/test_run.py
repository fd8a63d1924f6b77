import pytest

from djazure.errors import AzureCLIError, PreconditionError
from djazure.run import mask, run_az


def test_run_az_appends_json_output_and_parses(fake_az):
    fake_az.respond("group show", {"name": "rg", "location": "westeurope"})
    result = run_az(["az", "group", "show", "--name", "rg"])
    assert result == {"name": "rg", "location": "westeurope"}
    assert fake_az.calls[-1] == ["group", "show", "--name", "rg"]


def test_run_az_query_returns_scalar(fake_az):
    assert run_az(["az", "storage", "account", "keys", "list", "--query", "[0].value"]) == "c3RvcmFnZS1rZXk="


def test_run_az_empty_output_is_empty_dict(fake_az):
    assert run_az(["az", "webapp", "update", "--https-only", "true"]) == {}


def test_run_az_raises_on_failure(fake_az):
    fake_az.fail("group create", stderr="ERROR: (AuthorizationFailed) not allowed", returncode=3)
    with pytest.raises(AzureCLIError) as exc:
        run_az(["az", "group", "create", "--name", "rg"])
    assert exc.value.returncode == 3
    assert "AuthorizationFailed" in exc.value.stderr
    assert "AuthorizationFailed" in str(exc.value)


def test_run_az_ignore_errors(fake_az):
    fake_az.fail("group delete", stderr="ERROR: Resource group 'rg' could not be found.")
    assert run_az(["az", "group", "delete", "--name", "rg"],
                  ignore_errors={"not_found": ["could not be found"]}) == {}


def test_run_az_missing_cli(fake_az):
    fake_az.binaries.clear()
    with pytest.raises(PreconditionError):
        run_az(["az", "account", "show"])
    assert fake_az.calls == []


def test_mask_hides_sensitive_values():
    cmd = ["az", "postgres", "flexible-server", "create", "--admin-user", "admin",
           "--admin-password", "S3cret", "--yes"]
    assert mask(cmd) == "az postgres flexible-server create --admin-user admin --admin-password *** --yes"


def test_mask_hides_every_app_setting():
    cmd = ["az", "webapp", "config", "appsettings", "set", "--name", "web",
           "--settings", "A=1", "DATABASE_URL=postgresql://u:pw@h/db", "C=3"]
    masked = mask(cmd)
    assert "pw" not in masked
    assert masked.endswith("--settings *** *** ***")
    assert "--name web" in masked


def test_failed_command_log_does_not_leak_password(fake_az, log_messages):
    fake_az.fail("postgres flexible-server create")
    with pytest.raises(AzureCLIError):
        run_az(["az", "postgres", "flexible-server", "create", "--admin-password", "TopSecret1"])
    assert not any("TopSecret1" in m for m in log_messages)
