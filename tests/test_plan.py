import re

import pytest

from context.config import Config
import djazure.plan as plan_module
from djazure.plan import ProvisioningPlan
from tests.conftest import NOW, SALT
from util import sanitization as sanny


def build(settings_data, now=NOW, salt=SALT, **overrides):
    return ProvisioningPlan.build(Config.validate({**settings_data, **overrides}), now=now, salt=salt)


def test_plan_names_follow_project_and_environment(plan):
    assert plan.resource_group == "app-production-rg"
    assert plan.web_app == "app-production-1700000000"
    assert plan.db_server == "app-production-db-1700000000"
    assert plan.db_name == "app_db"
    assert plan.storage_account == "appproduction000000a1b2"
    assert plan.key_vault == "app-kv-000000a1b2"
    assert plan.app_insights == "app-production-insights"
    assert plan.app_service_plan == "app-production-plan"


def test_plan_tags_identify_project_environment_and_creator(plan):
    assert plan.tags == {"project": "app", "environment": "production", "created-by": "djazure"}
    assert plan.tag_args() == ["--tags", "project=app", "environment=production", "created-by=djazure"]


@pytest.mark.parametrize("project,environment", [
    ("app", "production"),
    ("My_Very_Long_Project_Name_That_Goes_On", "staging-environment-west"),
    ("shop", "dev"),
    ("x", "qa.v2"),
])
def test_generated_names_satisfy_resource_rules(settings_data, project, environment):
    plan = build(settings_data, project=project, environment=environment)

    assert re.fullmatch(r"[a-z0-9]{3,24}", plan.storage_account)
    assert 3 <= len(plan.key_vault) <= 24
    assert plan.key_vault[0].isalpha()
    assert "--" not in plan.key_vault
    assert re.fullmatch(r"[a-z0-9-]{2,60}", plan.web_app)
    assert re.fullmatch(r"[a-z][a-z0-9-]{2,62}", plan.db_server)
    assert len(plan.resource_group) <= 90
    assert len(plan.app_service_plan) <= 40

    sanny.validate(plan.resource_group, sanny.RESOURCE_GROUP)
    sanny.validate(plan.db_name, sanny.POSTGRES_DATABASE)
    sanny.validate(plan.app_insights, sanny.APP_INSIGHTS)


def test_truncation_keeps_unique_suffix(settings_data):
    plan = build(settings_data, project="averyveryverylongprojectname", environment="production")
    assert len(plan.storage_account) == 24
    assert plan.storage_account.endswith("000000a1b2")
    assert plan.key_vault == "averyveryvery-000000a1b2"
    assert plan.web_app.endswith("-1700000000")


def test_reruns_do_not_collide_on_unique_names(settings_data):
    first = build(settings_data, now=NOW)
    second = build(settings_data, now=NOW + 1)

    for attr in ("web_app", "db_server", "storage_account", "key_vault"):
        assert getattr(first, attr) != getattr(second, attr), attr
    # Shared containers keep their names
    assert first.resource_group == second.resource_group


def test_short_names_are_salted_against_timestamp_wrap(settings_data, monkeypatch):
    salts = iter(["0a0a", "0b0b"])
    monkeypatch.setattr(plan_module.secrets, "token_hex", lambda nbytes: next(salts))
    first = build(settings_data, salt=None)
    # 1_000_000 seconds later the last 6 timestamp digits repeat
    second = build(settings_data, now=NOW + 1_000_000, salt=None)

    assert first.storage_account == "appproduction0000000a0a"
    assert second.storage_account == "appproduction0000000b0b"
    assert first.key_vault != second.key_vault


def test_reruns_generate_fresh_secrets(settings_data):
    first = build(settings_data)
    second = build(settings_data)
    assert first.db_admin_password != second.db_admin_password
    assert first.django_secret_key != second.django_secret_key


def test_connection_string_format(plan):
    assert plan.connection_string == (
        f"postgresql://djangoadmin:{plan.db_admin_password}"
        "@app-production-db-1700000000.postgres.database.azure.com:5432/app_db?sslmode=require"
    )


def test_plan_is_immutable(plan):
    with pytest.raises(AttributeError):
        plan.web_app = "something-else"


def test_secrets_are_hidden_from_repr(plan):
    text = repr(plan)
    assert plan.db_admin_password not in text
    assert plan.django_secret_key not in text
    assert "app-production-rg" in text


def test_default_hostname(plan):
    assert plan.default_hostname == "app-production-1700000000.azurewebsites.net"
