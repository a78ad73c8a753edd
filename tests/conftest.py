"""
Shared test fixtures for the assessment engine.
File logging is disabled and retry delays are zeroed before any project
module is imported. Zero network calls: GitHub is served by httpx.MockTransport.
"""
import os

os.environ.setdefault("ASSESS_LOG_FILE", "")
os.environ.setdefault("ASSESS_RETRY_DELAY_SECONDS", "0")

import json
from typing import Dict, Optional

import httpx
import pytest

import config
from core.answer_key import AnswerOption, Question
from core.certificates import CertificateRecord
from services.github_api import GitHubService

API_ROOT = "https://api.github.com"

TODO_README = (
    "# Todo App\n\n"
    "A small todo list application built for the lab exercise with Express.\n\n"
    "## Usage\n\n"
    "Run the server locally and open the browser to add items to your list.\n\n"
    "```bash\nnpm start\n```\n\n"
    "See [docs](docs/README.md).\n"
)

TODO_FILES = {
    "index.js": "import express from 'express'\n// Entry point\nconst app = express()\n",
    "styles.css": "body { margin: 0; }\n",
    "src/todo.js": (
        "export function addTodo(list, item) {\n"
        "  try {\n"
        "    return [...list, item]\n"
        "  } catch (err) {\n"
        "    return list\n"
        "  }\n"
        "}\n"
    ),
    "src/utils.js": "const id = (x) => x\n",
}

TODO_MANIFEST = {
    "name": "todo-app",
    "description": "Lab",
    "scripts": {"start": "node index.js"},
    "dependencies": {"express": "^4.18.0"},
}


def entry(path: str, type_: str = "file", size: int = 10) -> dict:
    return {"name": path.rsplit("/", 1)[-1], "path": path, "type": type_, "size": size}


class FakeGitHub:
    """Route table for a MockTransport. Unknown paths answer 404."""

    def __init__(self):
        self.routes: Dict[str, tuple] = {}
        self.calls = []
        self.raise_on: Dict[str, type] = {}

    def json(self, path: str, payload, status: int = 200):
        self.routes[path] = (status, "json", payload)

    def text(self, path: str, body: str, status: int = 200):
        self.routes[path] = (status, "text", body)

    def fail(self, path: str, exc_type=httpx.ConnectError):
        self.raise_on[path] = exc_type

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append((path, request.headers.get("accept")))
        if path in self.raise_on:
            raise self.raise_on[path]("simulated failure", request=request)
        if path not in self.routes:
            return httpx.Response(404, json={"message": "Not Found"})
        status, kind, payload = self.routes[path]
        if kind == "json":
            return httpx.Response(status, json=payload)
        return httpx.Response(status, text=payload)

    def service(self) -> GitHubService:
        client = httpx.Client(base_url=API_ROOT, transport=httpx.MockTransport(self.handler))
        return GitHubService(client=client)


@pytest.fixture(autouse=True)
def _no_retry_delay(monkeypatch):
    monkeypatch.setattr(config, "RETRY_INITIAL_DELAY", 0)


@pytest.fixture
def fake_github():
    return FakeGitHub()


@pytest.fixture
def todo_repo(fake_github):
    """A public repository that scores 85/100 against keywords ["todo", "express"]."""
    base = "/repos/octo/todo"
    fake_github.json(base, {"full_name": "octo/todo", "private": False})
    fake_github.json(f"{base}/contents", [
        entry("README.md"),
        entry("package.json"),
        entry("index.js"),
        entry(".gitignore"),
        entry("styles.css"),
        entry("src", "dir", 0),
        entry("docs", "dir", 0),
    ])
    fake_github.json(f"{base}/contents/src", [
        entry("src/todo.js"),
        entry("src/utils.js"),
        entry("src/data.json"),
    ])
    fake_github.text(f"{base}/contents/README.md", TODO_README)
    fake_github.text(f"{base}/contents/package.json", json.dumps(TODO_MANIFEST))
    for path, content in TODO_FILES.items():
        fake_github.text(f"{base}/contents/{path}", content)
    return fake_github


@pytest.fixture
def four_questions():
    """Four 10-point questions; option "a" is always the correct one."""
    return [
        Question(id=f"q{i}", options=(AnswerOption("a", True), AnswerOption("b"), AnswerOption("c")))
        for i in range(1, 5)
    ]


class FakeCertificateStore:
    def __init__(self):
        self.records: Dict[tuple, CertificateRecord] = {}
        self.create_calls = 0

    def find(self, student_id: str, course_id: str) -> Optional[CertificateRecord]:
        return self.records.get((student_id, course_id))

    def create(self, record: CertificateRecord) -> CertificateRecord:
        self.create_calls += 1
        self.records[(record.student_id, record.course_id)] = record
        return record

    def update(self, record: CertificateRecord) -> CertificateRecord:
        self.records[(record.student_id, record.course_id)] = record
        return record


@pytest.fixture
def certificate_store():
    return FakeCertificateStore()
