import itertools
import json
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mock_core.database import init_db
from mock_core.services.dropped_answer_service import DroppedAnswerStore
from mock_core.services.remote_api import MockApiClient
from mock_core.services.timer_service import TimerStore

BASE_URL = "https://mock.test/ielts-mock-main"


def ok(data: object = None) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "reason": None, "data": data})


class FakeMockService:
    """In-memory stand-in for the remote mock service, served via MockTransport."""

    def __init__(self) -> None:
        self.parts: dict[str, list[dict]] = {}
        self.contents: dict[str, object] = {}
        self.questions: dict[str, dict] = {}
        self.submitted: list[dict] = []
        self.requests: list[httpx.Request] = []
        self.saved_contents: list[str] = []
        self.sent: list[dict] = []
        self.started: list[tuple[str, str]] = []
        self.finished: list[tuple[str, str]] = []
        self.fail_sends = 0
        self.fail_all_sends = False
        self.fail_paths: set[str] = set()
        self._ids = itertools.count(1)

    def add_part(self, section_id: str, part_id: str, ord: int, content: object = None) -> None:
        self.parts.setdefault(section_id, []).append({"id": part_id, "ord": ord})
        if content is not None:
            self.contents[part_id] = content if isinstance(content, str) else json.dumps(content)

    def add_question(self, section_id: str, part_id: str, ord: int, answers: list[str]) -> str:
        question_id = f"q{next(self._ids)}"
        self.questions[question_id] = {
            "id": question_id,
            "sectionId": section_id,
            "partId": part_id,
            "ord": ord,
            "answers": answers,
        }
        return question_id

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client(self, token: str | None = None) -> MockApiClient:
        return MockApiClient(base_url=BASE_URL, token=token, transport=self.transport())

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/ielts-mock-main")
        params = request.url.params
        body = json.loads(request.content) if request.content else {}
        if path in self.fail_paths:
            return httpx.Response(500, json={"success": False, "reason": "boom"})

        if path in ("/test-management/get-all-part", "/mock-submission/get-all-part"):
            return ok(self.parts.get(params["sectionId"], []))
        if path in (
            "/test-management/get-part-question-content",
            "/mock-submission/get-part-question-content",
        ):
            return ok({"content": self.contents.get(params["partId"])})
        if path == "/test-management/save-part-question-content":
            self.contents[body["partId"]] = body["content"]
            self.saved_contents.append(body["partId"])
            return ok(None)
        if path == "/test-management/get-all-question":
            return ok(
                [q for q in self.questions.values() if q["sectionId"] == params["sectionId"]]
            )
        if path == "/test-management/save-question":
            self.add_question(body["sectionId"], body["partId"], body["ord"], body["answers"])
            return ok(None)
        if path == "/test-management/update-question":
            record = self.questions[body["id"]]
            record["partId"] = body["partId"]
            record["answers"] = body["answers"]
            return ok(None)
        if path.startswith("/test-management/delete-question/"):
            self.questions.pop(path.rsplit("/", 1)[1], None)
            return ok(None)
        if path == "/mock-submission/start-mock":
            return ok("mock-from-test")
        if path == "/mock-submission/start-section":
            self.started.append((body["mockId"], body["sectionId"]))
            return ok(None)
        if path == "/mock-submission/send-answer":
            if self.fail_all_sends or self.fail_sends > 0:
                self.fail_sends = max(self.fail_sends - 1, 0)
                return httpx.Response(503, json={"success": False, "reason": "unavailable"})
            self.sent.append(body)
            return ok(None)
        if path == "/mock-submission/finish-section":
            self.finished.append((body["mockId"], body["sectionId"]))
            return ok(None)
        if path == "/mock-submission/get-all-question-submitted-answers":
            return ok(self.submitted)
        return httpx.Response(404, json={"success": False, "reason": f"No route {path}"})


def scenario_a_part() -> dict:
    return {
        "title": "Part 1",
        "questionGroups": [
            {
                "type": "SHORT_ANSWER",
                "instruction": "NO MORE THAN TWO WORDS",
                "questions": [
                    {
                        "text": "a [1] b [2] c [3]",
                        "answers": {"1": ["river"], "2": "bridge", "3": []},
                    }
                ],
            },
            {
                "type": "MULTIPLE_CHOICE",
                "questions": [
                    {"text": "First?", "options": ["A", "B"], "correctAnswer": "A"},
                    {"text": "Second?", "options": ["A", "B"], "correctAnswer": "B"},
                ],
            },
        ],
    }


def mc_part(count: int, title: str = "Part") -> dict:
    return {
        "title": title,
        "questionGroups": [
            {
                "type": "MULTIPLE_CHOICE",
                "questions": [
                    {"text": f"Q{i}", "correctAnswer": "C"} for i in range(1, count + 1)
                ],
            }
        ],
    }


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def timer_store(session_factory) -> TimerStore:
    return TimerStore(session_factory)


@pytest.fixture
def dropped_store(session_factory) -> DroppedAnswerStore:
    return DroppedAnswerStore(session_factory)


@pytest.fixture
def remote() -> FakeMockService:
    return FakeMockService()
