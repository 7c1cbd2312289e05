import os

# Must be set before config.settings is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AI_GATEWAY_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

import database.models  # noqa: F401  registers tables
from database.connection import engine, get_session
from database.models import Company
from services.llm_client import get_llm_client
from main import app


class FakeLLMClient:
    """Stands in for the AI gateway. Raises for prompts containing any of ``fail_on``."""

    def __init__(self, reply="Updated section with the latest numbers and facts.", fail_on=(), configured=True):
        self.reply = reply
        self.fail_on = list(fail_on)
        self.configured = configured
        self.prompts = []

    def is_configured(self):
        return self.configured

    def chat_completion(self, messages, max_tokens=4000, temperature=0.7, **kwargs):
        prompt = messages[-1]["content"]
        self.prompts.append(prompt)
        for marker in self.fail_on:
            if marker in prompt:
                raise RuntimeError(f"gateway error for {marker}")
        return self.reply, {"prompt_tokens": 10, "completion_tokens": 10, "total_tokens": 20}


@pytest.fixture
def session():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def llm_factory():
    return FakeLLMClient


@pytest.fixture
def fake_llm():
    return FakeLLMClient()


@pytest.fixture
def company(session):
    company = Company(name="Acme Analytics")
    session.add(company)
    session.commit()
    session.refresh(company)
    return company


@pytest.fixture
def client(session, fake_llm):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_llm_client] = lambda: fake_llm
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
