"""
Shared fixtures for the report generator tests.

The LLM gateway is never contacted: every test that needs generated text
plugs an httpx.MockTransport into GenerationClient. Reference documents are
built in memory with python-docx, python-pptx and PyMuPDF.
"""
from __future__ import annotations

import base64
import io
import json
import os
from typing import AsyncGenerator, Callable, List, Optional, Union

import fitz
import httpx
import pytest
import pytest_asyncio
from docx import Document
from httpx import ASGITransport, AsyncClient
from pptx import Presentation

# Provide a credential *before* any app module is imported, so that the
# global settings instance sees it.
os.environ.setdefault("LLM_API_KEY", "test-key")

from app.dependencies.pipeline import get_pipeline_factory  # noqa: E402
from app.main import app  # noqa: E402
from app.models.schemas import StudentData  # noqa: E402
from app.services.generation_client import GenerationClient  # noqa: E402
from app.services.pipeline import ReportPipeline  # noqa: E402


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

STUDENT_DATA = {
    "name": "Asha Rao",
    "rollNumber": "CO21-45",
    "enrollmentNumber": "2021170045",
    "college": "Government Polytechnic, Pune",
    "topic": "IoT-based Smart Irrigation System",
}

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
PDF_MIME = "application/pdf"

SAMPLE_REPORT = """\
## ANNEXURE_I_AIMS
The project aims to design an irrigation system that waters crops only when soil moisture drops.

It reduces water wastage and manual effort for farmers.

## ANNEXURE_I_COURSE_OUTCOME
a) Apply sensor interfacing techniques to a microcontroller.
b) Develop embedded software for automated control.

## ANNEXURE_I_METHODOLOGY
Soil moisture sensors are connected to an ESP32 module which switches a pump through a relay.

## ANNEXURE_II_RATIONALE
Agriculture consumes most of the available fresh water, so efficient irrigation matters.

## ANNEXURE_II_AIMS
• Reduce water consumption through sensor-driven control.
• Provide remote monitoring over Wi-Fi.
• Lower the cost of automated irrigation for small farms.

## ANNEXURE_II_COURSE_OUTCOME
a) Interface analog sensors with a microcontroller.
b) Implement an MQTT based monitoring dashboard.

## ANNEXURE_II_LITERATURE
Several studies from 2023 and 2024 describe low-cost smart irrigation systems.
• Capacitive sensors: more durable than resistive types.
• MQTT protocol: lightweight messaging for IoT devices.
Drip irrigation: delivers water directly to the root zone.

## ANNEXURE_II_METHODOLOGY
The system design was finalised and the hardware assembled on a breadboard.

The firmware was developed and tested with different soil samples.

## ANNEXURE_II_SKILLS
• Circuit design and soldering.
• Embedded C programming.
• Team work and documentation.

## ANNEXURE_II_APPLICATIONS
• Home gardens and greenhouses.
• Large agricultural farms.
• Public parks maintenance.
"""

COMPLIANCE_REPLY = """\
COMPLIANCE_SCORE: 92
IS_COMPLIANT: true
ISSUES:
- Literature review could cite more sources
RECOMMENDATIONS:
- Add a block diagram to the methodology
QUALITY_SCORE: 90
"""


@pytest.fixture
def student() -> StudentData:
    return StudentData(**STUDENT_DATA)


# ---------------------------------------------------------------------------
# LLM stubs
# ---------------------------------------------------------------------------

Reply = Union[str, int, Exception]


def chat_response(content: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        json={"choices": [{"message": {"role": "assistant", "content": content}}]},
    )


class ScriptedLLM:
    """
    MockTransport handler that answers successive chat-completion calls from
    a script. A str is returned as the assistant message, an int as a bare
    error status, and an exception is raised as a transport failure.
    """

    def __init__(self, replies: List[Reply]) -> None:
        self.replies = list(replies)
        self.requests: List[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if not self.replies:
            raise AssertionError("unexpected LLM call")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, int):
            return httpx.Response(reply, json={"error": "stub"})
        return chat_response(reply)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def make_client(llm: ScriptedLLM) -> GenerationClient:
    return GenerationClient(api_key="test-key", transport=llm.transport)


def override_pipeline(llm: Optional[ScriptedLLM]) -> None:
    """Route the generation endpoint through *llm*; None fails on any call."""
    script = llm or ScriptedLLM([])

    def _factory() -> Callable[[], ReportPipeline]:
        return lambda: ReportPipeline(make_client(script))

    app.dependency_overrides[get_pipeline_factory] = _factory


# ---------------------------------------------------------------------------
# Reference documents
# ---------------------------------------------------------------------------

def build_docx(paragraphs: Optional[List[str]] = None) -> bytes:
    doc = Document()
    doc.add_heading("Smart Irrigation", level=1)
    doc.add_heading("Sensors", level=2)
    for text in paragraphs or ["Soil moisture sensors measure volumetric water content."]:
        doc.add_paragraph(text)
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def build_pptx() -> bytes:
    prs = Presentation()
    slide = prs.slides.add_slide(prs.slide_layouts[1])
    slide.shapes.title.text = "Irrigation Overview"
    slide.placeholders[1].text = "Drip irrigation saves water"
    buffer = io.BytesIO()
    prs.save(buffer)
    return buffer.getvalue()


def build_pdf() -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Smart Irrigation", fontsize=24)
    page.insert_text((72, 120), "Soil moisture sensors control the pump.", fontsize=11)
    page.insert_text((72, 140), "Water usage drops by forty percent.", fontsize=11)
    data = doc.tobytes()
    doc.close()
    return data


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """httpx AsyncClient wired to the FastAPI app; dependency overrides are cleared afterwards."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
