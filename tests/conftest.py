import io
import json
import uuid
from unittest import mock

import pytest
import requests

from app import create_app
from config import Config
from record_store import RecordStore
from validator import RecordValidator


def build_user(n=1, score=950, active=True, country="Brasil", team="Backend",
               leader=False, projects=(), logs=()):
    """Raw upload dict for one user; ``n`` seeds a stable UUID."""
    return {
        "id": str(uuid.UUID(int=n)),
        "nome": f"User {n}",
        "idade": 30,
        "score": score,
        "ativo": active,
        "pais": country,
        "equipe": {
            "nome": team,
            "lider": leader,
            "projetos": [{"nome": name, "concluido": done} for name, done in projects],
        },
        "logs": [{"data": day, "acao": action} for day, action in logs],
    }


def as_stream(value):
    return io.BytesIO(json.dumps(value).encode("utf-8"))


@pytest.fixture
def make_user():
    return build_user


@pytest.fixture
def sample_users():
    return [
        build_user(1, score=950, country="Brasil", team="Backend", leader=True,
                   projects=[("API", True), ("Docs", False)],
                   logs=[("2024-01-01", "login"), ("2024-01-01", "logout")]),
        build_user(2, score=980, country="Brasil", team="Backend",
                   projects=[("API", True)],
                   logs=[("2024-01-01", "login"), ("2024-01-02", "login")]),
        build_user(3, score=910, country="Portugal", team="Frontend", active=False,
                   logs=[("2024-01-02", "login")]),
        build_user(4, score=500, country="Chile", team="Frontend",
                   logs=[("2024-01-03", "logout")]),
    ]


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def validator(config):
    return RecordValidator(config["schema"]["path"])


@pytest.fixture
def store():
    return RecordStore()


@pytest.fixture
def http_session():
    """Stand-in for requests.Session; tests set ``get`` behaviour per case."""
    return mock.create_autospec(requests.Session, instance=True)


@pytest.fixture
def app(config, http_session):
    """Create a Flask test app."""
    application = create_app(config, http_session=http_session)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    """Create a Flask test client."""
    return app.test_client()


@pytest.fixture
def upload(client):
    """POST a list of raw users as the multipart upload field."""
    def _upload(users):
        return client.post(
            "/users",
            data={"arquivos": (as_stream(users), "users.json")},
            content_type="multipart/form-data",
        )
    return _upload


@pytest.fixture
def json_stream():
    return as_stream
