from unittest.mock import MagicMock

import pytest
import requests
from eth_account import Account
from fastapi.testclient import TestClient
from requests.structures import CaseInsensitiveDict

from agristore.heuristics import Estimator
from agristore.lighthouse import LighthouseClient
from agristore.main import create_app
from agristore.settings import Settings


class FixedRandom:
    """Stands in for random.Random: uniform(a, b) is always a + (b - a) * frac."""

    def __init__(self, frac: float):
        self.frac = frac

    def uniform(self, a, b):
        return a + (b - a) * self.frac


def fake_response(status=200, json_body=None, headers=None, text=""):
    res = MagicMock()
    res.status_code = status
    res.ok = 200 <= status < 300
    res.text = text
    res.headers = CaseInsensitiveDict(headers or {})
    res.json.return_value = json_body if json_body is not None else {}
    if res.ok:
        res.raise_for_status.return_value = None
    else:
        res.raise_for_status.side_effect = requests.HTTPError(f"{status} Error", response=res)
    return res


@pytest.fixture
def upload_dir(tmp_path):
    d = tmp_path / "uploads"
    d.mkdir()
    return d


@pytest.fixture
def settings(upload_dir):
    return Settings(
        _env_file=None,
        LIGHTHOUSE_API_KEY="test-key",
        UPLOAD_DIR=str(upload_dir),
        CONTRACT_ADDRESS=None,
        ENVIRONMENT="development",
    )


@pytest.fixture
def lighthouse(settings):
    return LighthouseClient(settings)


@pytest.fixture
def chain():
    chain = MagicMock()
    chain.is_connected.return_value = True
    return chain


@pytest.fixture
def estimator():
    return Estimator(FixedRandom(0.5))


@pytest.fixture
def app(settings, lighthouse, chain, estimator):
    return create_app(settings, lighthouse=lighthouse, chain=chain, estimator=estimator)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def account():
    return Account.create()
