import contextlib
import json
import subprocess

import pytest
from loguru import logger as loguru_logger

import context._globals as _globals
from context.config import Config
from context.logger import Logger
from djazure import vault
from djazure.plan import ProvisioningPlan
from util.cmd import CMD

NOW = 1700000000
SALT = "a1b2"


class FakeAzure:
    """
    Stand-in for the `az` binary. Records each invocation (without the resolved path and
    the trailing '--output json') and answers from canned responses keyed by command prefix.

    Example:
        def test_x(fake_az):
            fake_az.fail("postgres flexible-server create")
            ...
            assert not fake_az.called("keyvault create")
    """

    def __init__(self):
        self.calls = []
        self.responses = {}
        self.failures = {}
        self.binaries = {"az"}

    def respond(self, prefix: str, value):
        self.responses[prefix] = value

    def fail(self, prefix: str, stderr: str = "ERROR: (Conflict) something went wrong", returncode: int = 1):
        self.failures[prefix] = (returncode, stderr)

    def which(self, binary):
        return f"/usr/bin/{binary}" if binary in self.binaries else None

    def _match(self, table, joined):
        hits = [p for p in table if joined.startswith(p)]
        return max(hits, key=len) if hits else None

    def __call__(self, cmd, **kwargs):
        args = list(cmd[1:])
        if args[-2:] == ["--output", "json"]:
            args = args[:-2]
        self.calls.append(args)
        joined = " ".join(args)

        failure = self._match(self.failures, joined)
        if failure is not None:
            code, stderr = self.failures[failure]
            raise subprocess.CalledProcessError(code, cmd, output="", stderr=stderr)

        prefix = self._match(self.responses, joined)
        value = self.responses[prefix] if prefix is not None else None
        if callable(value):
            value = value(args)
        stdout = "" if value is None else json.dumps(value)
        return subprocess.CompletedProcess(cmd, 0, stdout=stdout, stderr="")

    # --- assertions helpers ---
    def joined(self):
        return [" ".join(c) for c in self.calls]

    def called(self, prefix: str) -> bool:
        return any(j.startswith(prefix) for j in self.joined())

    def index(self, prefix: str) -> int:
        for i, j in enumerate(self.joined()):
            if j.startswith(prefix):
                return i
        raise AssertionError(f"'{prefix}' was never called")

    def args_of(self, prefix: str) -> list:
        return self.calls[self.index(prefix)]


def _arg(args, flag):
    return args[args.index(flag) + 1]


@pytest.fixture
def fake_az(monkeypatch):
    fake = FakeAzure()
    fake.respond("account show", {
        "id": "00000000-0000-0000-0000-000000000001",
        "name": "Test Subscription",
        "user": {"name": "dev@example.com", "type": "user"},
    })
    fake.respond("storage account keys list", "c3RvcmFnZS1rZXk=")
    fake.respond("monitor app-insights component create", {"instrumentationKey": "ikey-1234"})
    fake.respond("webapp identity assign", {"principalId": "principal-5678"})
    fake.respond("webapp show", lambda args: f"{_arg(args, '--name')}.azurewebsites.net")
    monkeypatch.setattr(CMD, "run", fake)
    monkeypatch.setattr(CMD, "which", fake.which)
    return fake


class FakeSecretStore:
    def __init__(self):
        self.written = []
        self.attempted = []
        self.failing = set()
        self.clients = 0
        self.credentials = 0

    def credential(self):
        self.credentials += 1
        return object()

    def client_factory(self):
        store = self

        class FakeSecretClient:
            def __init__(self, vault_url, credential):
                store.clients += 1
                self.vault_url = vault_url

            def set_secret(self, name, value):
                store.attempted.append(name)
                if name in store.failing:
                    from azure.core.exceptions import HttpResponseError
                    raise HttpResponseError(message=f"Forbidden: {name}")
                store.written.append((self.vault_url, name, value))

        return FakeSecretClient


@pytest.fixture
def fake_vault(monkeypatch):
    store = FakeSecretStore()
    monkeypatch.setattr(vault, "SecretClient", store.client_factory())
    monkeypatch.setattr(vault, "DefaultAzureCredential", store.credential)
    return store


@pytest.fixture
def settings_data():
    return {**_globals.SETTINGS_DEFAULT, "project": "app", "environment": "production", "region": "West Europe"}


@pytest.fixture
def settings(settings_data, tmp_path):
    return Config.validate({**settings_data, "output_dir": str(tmp_path)})


@pytest.fixture
def plan(settings):
    return ProvisioningPlan.build(settings, now=NOW, salt=SALT)


@pytest.fixture
def log_messages():
    messages = []
    handler_id = loguru_logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    # Logger.init_logger() may already have removed every handler
    with contextlib.suppress(ValueError):
        loguru_logger.remove(handler_id)


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    Logger.reset()
