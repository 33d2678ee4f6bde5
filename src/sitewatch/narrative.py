"""AI delay narrative for a project.

Calls a Gemini-style ``generateContent`` endpoint. Failures never reach the
caller as exceptions: every problem degrades to a fixed message.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

import httpx

from sitewatch.config import Settings, settings as default_settings
from sitewatch.models import DailyReport, EffectiveStatus, Project, Task

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "AI analysis unavailable: set SITEWATCH_AI_API_KEY to enable delay reports."
INVALID_KEY_MESSAGE = "Error: the AI API key is not valid. Please check SITEWATCH_AI_API_KEY."
UNAVAILABLE_MESSAGE = "The AI engine is currently busy. Please try again in a few minutes."
EMPTY_MESSAGE = "No insights found."

RECENT_REPORTS = 5


def build_prompt(
    project: Project,
    tasks: Sequence[Task],
    reports: Sequence[DailyReport],
    statuses: Mapping[str, EffectiveStatus] | None = None,
) -> str:
    task_lines = []
    for t in tasks:
        line = f"- {t.name} ({t.milestone.value}): Status={t.status.value}, Deadline={t.end_date.isoformat()}"
        if statuses and t.id in statuses and statuses[t.id].value != t.status.value:
            line += f", Effective={statuses[t.id].value}"
        task_lines.append(line)
    report_lines = [
        f"- Date: {r.date.isoformat()}, {'Present' if r.present else 'Absent'}, Notes: {r.notes}"
        for r in list(reports)[-RECENT_REPORTS:]
    ]
    return "\n".join([
        "As a construction project management expert, analyze the following project data.",
        "",
        f"Project: {project.name}",
        f"Location: {project.location}",
        f"Current Progress: {project.progress}%",
        f"Timeline: {project.start_date.isoformat()} to {project.target_end_date.isoformat()}",
        "",
        "Tasks Status:",
        *(task_lines or ["- (no tasks)"]),
        "",
        "Recent Site Updates:",
        *(report_lines or ["- (no reports)"]),
        "",
        "Provide a professional summary of:",
        "1. Critical risks or delays detected.",
        "2. Recommendations for the Site Engineer.",
        "3. Estimated impact on the final completion date.",
    ])


class NarrativeClient:
    """Text generation client with fallback messages instead of errors."""

    def __init__(
        self,
        config: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or default_settings
        self._transport = transport

    async def _generate(self, prompt: str) -> str:
        url = f"{self._config.AI_BASE_URL}/models/{self._config.AI_MODEL}:generateContent"
        async with httpx.AsyncClient(timeout=self._config.AI_TIMEOUT, transport=self._transport) as client:
            resp = await client.post(
                url,
                headers={"x-goog-api-key": self._config.AI_API_KEY},
                json={"contents": [{"parts": [{"text": prompt}]}]},
            )
            resp.raise_for_status()
            data = resp.json()
        parts = data["candidates"][0]["content"]["parts"]
        texts = []
        for p in parts:
            if not isinstance(p, dict) or not isinstance(p.get("text", ""), str):
                raise ValueError(f"Unexpected response part: {p!r}")
            texts.append(p.get("text", ""))
        return "".join(texts).strip()

    async def generate_delay_narrative(
        self,
        project: Project,
        tasks: Sequence[Task],
        reports: Sequence[DailyReport],
        statuses: Mapping[str, EffectiveStatus] | None = None,
    ) -> str:
        if not self._config.AI_API_KEY:
            logger.error("AI narrative requested but no API key is configured")
            return MISSING_KEY_MESSAGE

        prompt = build_prompt(project, tasks, reports, statuses)
        logger.info("Requesting delay narrative for %s (%d chars)", project.id, len(prompt))
        try:
            text = await self._generate(prompt)
        except httpx.HTTPStatusError as e:
            if "API key not valid" in e.response.text or e.response.status_code in (401, 403):
                logger.error("AI narrative rejected the API key: %s", e)
                return INVALID_KEY_MESSAGE
            logger.warning("AI narrative failed: %s", e)
            return UNAVAILABLE_MESSAGE
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning("AI narrative failed: %s", e)
            return UNAVAILABLE_MESSAGE
        return text or EMPTY_MESSAGE


class LatestNarrative:
    """Keeps only the answer to the most recent request.

    Requests may overlap and there is no way to cancel one, so each request
    takes a ticket and a response is dropped if a newer ticket was issued
    while it was in flight.
    """

    def __init__(self, client: NarrativeClient) -> None:
        self._client = client
        self._issued = 0
        self.text: str | None = None

    async def request(
        self,
        project: Project,
        tasks: Sequence[Task],
        reports: Sequence[DailyReport],
        statuses: Mapping[str, EffectiveStatus] | None = None,
    ) -> str | None:
        self._issued += 1
        ticket = self._issued
        text = await self._client.generate_delay_narrative(project, tasks, reports, statuses)
        if ticket != self._issued:
            logger.debug("Discarding stale narrative response #%d (latest #%d)", ticket, self._issued)
            return None
        self.text = text
        return text
