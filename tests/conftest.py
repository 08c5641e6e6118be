from __future__ import annotations

from concurrent.futures import Executor, Future
from dataclasses import dataclass

import fitz
import pytest

from core.document_manager import DocumentManager
from core.error_types import Success
from core.pdf_engine import PageSize
from core.session import GradingSession


@dataclass
class FakeRenderer:
    page_count: int = 3
    width: float = 612.0
    height: float = 792.0
    closed: bool = False

    def page_size(self, page_number, zoom):
        return Success(PageSize(self.width * zoom, self.height * zoom))

    def close(self):
        self.closed = True


def fake_loader(data, document_id=None):
    return Success(FakeRenderer())


class InlineExecutor(Executor):
    """Runs submitted work immediately so done-callbacks fire before submit returns."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        future.set_result(fn(*args, **kwargs))
        return future


def make_pdf_bytes(pages=1, width=200, height=300) -> bytes:
    document = fitz.open()
    for _ in range(pages):
        document.new_page(width=width, height=height)
    data = document.tobytes()
    document.close()
    return data


@pytest.fixture
def documents() -> DocumentManager:
    return DocumentManager(loader=fake_loader)


@pytest.fixture
def session(documents) -> GradingSession:
    session = GradingSession(documents=documents)
    documents.register("alice.pdf", b"%PDF-fake")
    documents.load_document("alice.pdf")
    return session


@pytest.fixture
def saves(session):
    captured = []
    session.save_requested.connect(captured.append)
    return captured
