"""ResearchAgent — web-grounded child producer.

Two steps per query:
1. Brave web search over ``httpx`` → titles, URLs and snippets (sources).
2. A summarising agent call that condenses the snippets for the tutor.

:meth:`ResearchAgent.research` never raises: any failure degrades to a
fixed "research unavailable" text with no sources.
"""

from __future__ import annotations

import logging

import httpx
from pydantic_ai import Agent

from agents.provider import create_model, get_model_for_role
from config.llm_config import LLMConfig
from config.prompts.research import (
    RESEARCH_SYSTEM_PROMPT,
    RESEARCH_UNAVAILABLE,
    build_research_input,
)
from config.settings import get_settings
from errors.exceptions import ProducerError
from models.topic import Source
from models.turn import ResearchResult
from services.concurrency import rate_limited_llm_call

logger = logging.getLogger(__name__)

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"
NO_RESULTS_TEXT = "No results found."

RESEARCH_LLM_CONFIG = LLMConfig(temperature=0.3)


def format_findings(results: list[dict]) -> str:
    """Render search hits as a numbered markdown list."""
    lines: list[str] = []
    for i, r in enumerate(results, 1):
        lines.append(f"{i}. [{r.get('title', '')}]({r.get('url', '')})")
        if desc := r.get("description"):
            lines.append(f"   {desc}")
    return "\n".join(lines)


class ResearchAgent:
    """Research producer: web search plus summary."""

    def __init__(
        self,
        model=None,
        *,
        http_client: httpx.AsyncClient | None = None,
        api_key: str | None = None,
    ) -> None:
        settings = get_settings()
        self._model = model
        self._agent: Agent[None, str] | None = None
        self._http = http_client
        self._api_key = settings.brave_api_key if api_key is None else api_key
        self._count = settings.research_result_count
        self._timeout = settings.research_timeout

    @property
    def agent(self) -> Agent[None, str]:
        if self._agent is None:
            self._agent = Agent(
                model=self._model or create_model(get_model_for_role("research")),
                system_prompt=RESEARCH_SYSTEM_PROMPT,
                retries=1,
                defer_model_check=True,
            )
        return self._agent

    async def search(self, query: str) -> list[dict]:
        """Query Brave Search and return the raw web results.

        Raises:
            ProducerError: no API key configured, or the HTTP call failed.
        """
        if not self._api_key:
            raise ProducerError("research", "Brave Search API key not configured")

        headers = {
            "Accept": "application/json",
            "X-Subscription-Token": self._api_key,
        }
        params = {"q": query, "count": min(self._count, 20)}

        try:
            if self._http is not None:
                resp = await self._http.get(BRAVE_SEARCH_URL, headers=headers, params=params)
            else:
                async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout)) as client:
                    resp = await client.get(BRAVE_SEARCH_URL, headers=headers, params=params)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ProducerError("research", f"search failed: {exc}") from exc

        return data.get("web", {}).get("results", [])

    async def research(self, query: str) -> ResearchResult:
        """Search, summarise and return text plus citations.  Never raises."""
        try:
            results = await self.search(query)
            if not results:
                logger.info("Research: no results for %.60s", query)
                return ResearchResult(text=NO_RESULTS_TEXT, sources=[])

            sources = [
                Source(title=r["title"], uri=r["url"])
                for r in results
                if r.get("title") and r.get("url")
            ]
            result = await rate_limited_llm_call(
                self.agent.run,
                build_research_input(query, format_findings(results)),
                model_settings=get_settings().model_settings_for(RESEARCH_LLM_CONFIG),
            )
            text = str(result.output).strip() or NO_RESULTS_TEXT
        except Exception:
            logger.warning("Research agent failed for %.60s", query, exc_info=True)
            return ResearchResult(text=RESEARCH_UNAVAILABLE, sources=[])

        logger.info("Research: %d source(s), summary length=%d", len(sources), len(text))
        return ResearchResult(text=text, sources=sources)
