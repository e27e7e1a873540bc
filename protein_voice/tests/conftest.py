from __future__ import annotations

import json
import os
from collections.abc import Generator
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import httpx
import pytest
from sqlalchemy.orm import Session, sessionmaker

os.environ.setdefault("OTEL_SDK_DISABLED", "true")

from protein_voice.clients import OpenAIClient
from protein_voice.config import Settings
from protein_voice.storage import Base
from protein_voice.storage.database import build_engine
from protein_voice.voice.extractor import Extractor
from protein_voice.voice.pipeline import VoiceLoggingPipeline
from protein_voice.voice.recorder import Recorder
from protein_voice.voice.transcriber import Transcriber

WAV_PAYLOAD = b"RIFF\x24\x00\x00\x00WAVEfmt fake-pcm-frames"


def openai_status_error(error_cls: type, status_code: int, message: str = "boom") -> Exception:
    request = httpx.Request("POST", "https://api.openai.com/v1/audio/transcriptions")
    response = httpx.Response(status_code, request=request)
    return error_cls(message, response=response, body=None)


def openai_connection_error(error_cls: type) -> Exception:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    return error_cls(request=request)


class FakeStream:
    def __init__(self, path: Path, payload: bytes, fail_on_start: bool = False) -> None:
        self.path = path
        self.payload = payload
        self.fail_on_start = fail_on_start
        self.started = False
        self.stopped = False
        self.aborted = False

    def start(self) -> None:
        if self.fail_on_start:
            raise RuntimeError("device busy")
        self.started = True

    def stop(self) -> None:
        self.path.write_bytes(self.payload)
        self.stopped = True

    def abort(self) -> None:
        self.aborted = True

    @property
    def active(self) -> bool:
        return self.started and not (self.stopped or self.aborted)


class FakeCaptureBackend:
    def __init__(
        self,
        *,
        granted: bool = True,
        open_error: Optional[Exception] = None,
        fail_on_start: bool = False,
        payload: bytes = WAV_PAYLOAD,
    ) -> None:
        self.granted = granted
        self.open_error = open_error
        self.fail_on_start = fail_on_start
        self.payload = payload
        self.permission_requests = 0
        self.streams: List[FakeStream] = []

    def request_permission(self) -> bool:
        self.permission_requests += 1
        return self.granted

    def open(self, path: Path, *, sample_rate: int, channels: int) -> FakeStream:
        if self.open_error is not None:
            raise self.open_error
        path.write_bytes(b"")
        stream = FakeStream(path, self.payload, fail_on_start=self.fail_on_start)
        self.streams.append(stream)
        return stream

    @property
    def active_streams(self) -> List[FakeStream]:
        return [stream for stream in self.streams if stream.active]


class DummyTranscriptions:
    def __init__(self) -> None:
        self.text = "two eggs"
        self.error: Optional[Exception] = None
        self.calls: List[Dict[str, Any]] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


class DummyChatCompletions:
    def __init__(self) -> None:
        self.content: Optional[str] = json.dumps(
            {"proteinAmount": 12, "foodItem": "2 eggs", "confidence": 0.95}
        )
        self.error: Optional[Exception] = None
        self.calls: List[Dict[str, Any]] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        choice = SimpleNamespace(message=SimpleNamespace(content=self.content), finish_reason="stop")
        return SimpleNamespace(choices=[choice], model=kwargs["model"], usage={"total_tokens": 42})


@pytest.fixture()
def dummy_sdk() -> SimpleNamespace:
    return SimpleNamespace(
        audio=SimpleNamespace(transcriptions=DummyTranscriptions()),
        chat=SimpleNamespace(completions=DummyChatCompletions()),
    )


@pytest.fixture()
def openai_client(dummy_sdk: SimpleNamespace) -> OpenAIClient:
    client = OpenAIClient("test-key", chat_model="gpt-4o-mini", asr_model="whisper-1")
    client._client = dummy_sdk  # type: ignore[assignment]
    return client


@pytest.fixture()
def capture_backend() -> FakeCaptureBackend:
    return FakeCaptureBackend()


@pytest.fixture()
def recorder(tmp_path: Path, capture_backend: FakeCaptureBackend) -> Recorder:
    return Recorder(tmp_path / "scratch", backend=capture_backend)


@pytest.fixture()
def pipeline(recorder: Recorder, openai_client: OpenAIClient) -> VoiceLoggingPipeline:
    return VoiceLoggingPipeline(
        recorder,
        Transcriber(openai_client),
        Extractor(openai_client),
    )


@pytest.fixture()
def db_session(tmp_path: Path) -> Generator[Session, None, None]:
    engine = build_engine(f"sqlite+pysqlite:///{tmp_path}/test.db")
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        openai_api_key="test-key",
        scratch_dir=tmp_path / "uploads",
        database_url=f"sqlite+pysqlite:///{tmp_path}/unused.db",
    )


@pytest.fixture()
def api_client(
    pipeline: VoiceLoggingPipeline,
    db_session: Session,
    test_settings: Settings,
):
    from fastapi.testclient import TestClient

    from protein_voice import main
    from protein_voice.config import get_settings
    from protein_voice.storage.database import get_db

    def override_get_db() -> Generator[Session, None, None]:
        try:
            yield db_session
        finally:
            db_session.rollback()

    main.app.dependency_overrides[get_db] = override_get_db
    main.app.dependency_overrides[main.get_pipeline] = lambda: pipeline
    main.app.dependency_overrides[get_settings] = lambda: test_settings
    with TestClient(main.app) as http_client:
        yield http_client
    main.app.dependency_overrides.clear()
