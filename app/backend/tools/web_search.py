from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

import httpx

from app.backend import config
from app.backend.tools.base import ChatTool


logger = logging.getLogger(__name__)

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"
_RESULT_LIMIT = 5
_TIMEOUT_S = 10.0


def format_results(query: str, results: List[Dict[str, Any]]) -> str:
	lines = []
	for index, result in enumerate(results[:_RESULT_LIMIT], start=1):
		published = f" ({result['published']})" if result.get("published") else ""
		lines.append(
			f"{index}. {result.get('title', '').strip()}{published}\n"
			f"   {result.get('description', '').strip()}\n"
			f"   Source: {result.get('url', '').strip()}"
		)
	return f"Found {len(results)} results for \"{query}\":\n\n" + "\n\n".join(lines)


class WebSearchTool(ChatTool):
	name = "web_search"
	description = (
		"Search the web for current information, news, facts, and real-time data. "
		"Use for current events, real-time information such as weather or prices, facts that "
		"might have changed recently, or anything you're not certain about. "
		"Input: a specific, concise search query."
	)
	argument_hint = "Search query"

	def __init__(
		self,
		*,
		api_key: str | None = None,
		client_factory: Callable[[], httpx.AsyncClient] | None = None,
	):
		self._api_key = config.brave_api_key() if api_key is None else api_key
		self._client_factory = client_factory or (lambda: httpx.AsyncClient(timeout=_TIMEOUT_S))
		if not self._api_key:
			logger.warning("BRAVE_API_KEY not set. Web search will be disabled.")

	async def invoke(self, argument: str) -> str:
		query = " ".join((argument or "").split())
		if not query:
			return "Please tell me what to search for."
		if not self._api_key:
			return "Web search is currently unavailable. Please check the configuration."

		params = {
			"q": query,
			"count": str(_RESULT_LIMIT),
			"search_lang": "en",
			"country": "US",
			"safesearch": "moderate",
		}
		headers = {
			"Accept": "application/json",
			"Accept-Encoding": "gzip",
			"X-Subscription-Token": self._api_key,
		}
		logger.info("Performing web search", extra={"query": query})
		try:
			async with self._client_factory() as client:
				response = await client.get(BRAVE_SEARCH_URL, params=params, headers=headers)
		except httpx.TimeoutException:
			logger.warning("Web search timed out", extra={"query": query})
			return "Search request timed out. Please try a more specific query."
		except httpx.HTTPError:
			logger.error("Web search failed", extra={"query": query}, exc_info=True)
			return "Search temporarily unavailable due to a technical issue. Please try again later."

		if response.status_code == 429:
			return "Search rate limit exceeded. Please try again later."
		if response.status_code == 401:
			return "Search API authentication failed. Please check the configuration."
		if response.status_code >= 400:
			logger.error("Brave Search API error", extra={"query": query, "status": response.status_code})
			return "Search service temporarily unavailable. Please try again later."

		try:
			payload = response.json()
		except ValueError:
			return "Search service returned an unreadable response. Please try again later."
		results = (payload.get("web") or {}).get("results") or []
		if not results:
			return f"No current information found for \"{query}\". The topic might be too specific or new."
		logger.info("Web search completed", extra={"query": query, "result_count": len(results)})
		return format_results(query, results)
