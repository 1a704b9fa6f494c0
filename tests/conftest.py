import asyncio
import base64
import os
from datetime import datetime, timezone

import pytest
from langgraph.checkpoint.memory import InMemorySaver

os.environ.setdefault("ENCRYPTION_KEY", base64.b64encode(b"k" * 32).decode("utf-8"))

from config.postgres import PostgresConfig
from config.settings import PII_CHANNELS
from persistence.users import DuplicateEmailError, User
from registration.collaborators import CollaboratorError
from registration.graph import RegistrationGraphFactory
from registration.session import SessionRegistry
from registration.validator import RegistrationValidator


class FakeOtpProvider:
    def __init__(self, fail=False, gate=None):
        self.fail = fail
        self.gate = gate
        self.calls = []
        self.started = asyncio.Event()

    async def send_otp(self, aadhaar, name):
        self.calls.append((aadhaar, name))
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise CollaboratorError("gateway down")


class FakeSubmitter:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    async def submit_step(self, step, values):
        self.calls.append((step, dict(values)))
        if self.fail:
            raise CollaboratorError("backend rejected step")


class FakeUserStore:
    def __init__(self):
        self.pg = PostgresConfig(host="db", port=5432, dbname="openbiz", user="u", password="p")
        self.users = {}
        self.calls = []
        self.fail_with = None
        self.insert_fails_with = None
        self.setup_calls = 0

    def setup(self):
        self.setup_calls += 1

    def _maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with

    def now(self):
        self.calls.append(("now",))
        self._maybe_fail()
        return datetime(2024, 1, 1, tzinfo=timezone.utc)

    def exists(self, email):
        self.calls.append(("exists", email))
        self._maybe_fail()
        return email in self.users

    def insert(self, email, password_hash, first_name, last_name):
        self.calls.append(("insert", email))
        if self.insert_fails_with is not None:
            raise self.insert_fails_with
        if email in self.users:
            raise DuplicateEmailError(email)
        user = User(
            id=len(self.users) + 1,
            email=email,
            first_name=first_name,
            last_name=last_name,
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        self.users[email] = (user, password_hash)
        return user


@pytest.fixture
def otp_provider():
    return FakeOtpProvider()


@pytest.fixture
def submitter():
    return FakeSubmitter()


@pytest.fixture
def checkpointer():
    return InMemorySaver()


def build_registry(otp_provider, submitter, checkpointer, timeout=5.0):
    factory = RegistrationGraphFactory(RegistrationValidator(), otp_provider, submitter, timeout=timeout)
    graph = factory.compile(checkpointer=checkpointer)
    return SessionRegistry(graph, checkpointer, list(PII_CHANNELS))


@pytest.fixture
def registry(otp_provider, submitter, checkpointer):
    return build_registry(otp_provider, submitter, checkpointer)


@pytest.fixture
def session(registry):
    return registry.create()


async def fill_step1(session, aadhaar="123456789012", name="Khushi", consent=True):
    await session.input("aadhaar", aadhaar)
    await session.input("entrepreneurName", name)
    await session.input("consent", consent)
