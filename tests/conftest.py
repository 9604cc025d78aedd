import json
from types import SimpleNamespace

import pytest

from application import create_app
from storage import build_stores


SCENARIO_TWEETS = ["bullish post", "bearish post", "bullish post", "bearish post"]


class FakeLLM:
    """Anthropic-shaped client: client.messages.create(...) -> content[0].text"""

    def __init__(self, replies=None, error=None, narrative="The wolf lifts his head."):
        self.replies = replies or {}
        self.error = error
        self.narrative = narrative
        self.calls = []

    @property
    def messages(self):
        return self

    def create(self, model, max_tokens, messages, **kwargs):
        prompt = messages[-1]["content"]
        self.calls.append({"model": model, "max_tokens": max_tokens, "prompt": prompt})
        if self.error:
            raise self.error
        if 'Tweet: "' in prompt:
            tweet = prompt.split('Tweet: "', 1)[1].rstrip('"')
            text = self.replies.get(tweet)
            if text is None:
                text = "Bearish" if "bearish" in tweet else "Bullish"
        else:
            text = self.narrative
        return SimpleNamespace(content=[SimpleNamespace(text=text)])


class FakeResponse:

    def __init__(self, status_code=200, payload=None, text="", reason="OK"):
        self.status_code = status_code
        self.payload = payload
        self.text = text
        self.reason = reason

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        return self.payload


def created_receipt(blob_id):
    return {
        "newlyCreated": {
            "blobObject": {"blobId": blob_id, "storage": {"endEpoch": 42}},
            "cost": 1000,
        }
    }


class FakeWalrusSession:
    """Stands in for requests.Session; records every PUT"""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.requests = []

    def put(self, url, params=None, data=None, headers=None, timeout=None):
        self.requests.append({
            "url": url, "params": params, "data": data,
            "headers": headers, "timeout": timeout,
        })
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return FakeResponse(200, created_receipt(f"blob-{len(self.requests)}"))


def write_tweets(data_dir, contents):
    tweets = [{"id": i + 1, "content": c} for i, c in enumerate(contents)]
    (data_dir / "tweets.json").write_text(json.dumps({"tweets": tweets}), encoding="utf-8")


@pytest.fixture
def data_dir(tmp_path):
    # One full batch plus a short second batch
    write_tweets(tmp_path, SCENARIO_TWEETS + ["bullish extra", "bearish extra"])
    return tmp_path


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def walrus_session():
    return FakeWalrusSession()


@pytest.fixture
def stores(data_dir):
    return build_stores("json", str(data_dir))


@pytest.fixture
def app(data_dir, llm, walrus_session):
    app = create_app(
        {
            "TESTING": True,
            "DATA_DIR": str(data_dir),
            "STORAGE_BACKEND": "json",
            "SYNC_IN_BACKGROUND": False,
            "SOCKETIO_ASYNC_MODE": "threading",
            "JUDGE_STRICT": False,
        },
        llm_client=llm,
        http_session=walrus_session,
    )
    return app


@pytest.fixture
def client(app):
    return app.test_client()
