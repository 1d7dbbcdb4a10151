from __future__ import annotations

import pytest

from agents.hunter.profile import ContactInfo, Education, Experience, UserProfile
from utils.mock_llm import reset_mock_cache


@pytest.fixture(autouse=True)
def _no_mock_llm(monkeypatch):
    monkeypatch.delenv("MOCK_LLM_RESPONSES", raising=False)
    reset_mock_cache()
    yield
    reset_mock_cache()


@pytest.fixture
def profile() -> UserProfile:
    return UserProfile(
        id="profile-1",
        first_name="Ada",
        last_name="Lovelace",
        contact=ContactInfo(
            email="ada@example.com",
            phone="+44 20 1234 5678",
            linkedin="https://linkedin.com/in/ada",
            github="",
            website="https://ada.dev",
            location="London",
        ),
        skills=["Python", "Playwright", "PostgreSQL"],
        experience=[Experience(title="Backend Engineer", company="Analytical Engines Ltd")],
        education=[Education(degree="BSc", field="Mathematics", institution="University of London")],
        resume_path="/tmp/ada-resume.pdf",
    )
