from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List

from app.backend.tools.base import ChatTool
from app.backend.tools.spotify import SpotifyTool
from app.backend.tools.web_open import WebOpenTool
from app.backend.tools.web_search import WebSearchTool


logger = logging.getLogger(__name__)

TOOL_FACTORIES: Dict[str, Callable[[], ChatTool]] = {
	SpotifyTool.name: SpotifyTool,
	WebSearchTool.name: WebSearchTool,
	WebOpenTool.name: WebOpenTool,
}


def build_tools(names: Iterable[str]) -> List[ChatTool]:
	tools: List[ChatTool] = []
	for name in names:
		factory = TOOL_FACTORIES.get(name)
		if factory is None:
			logger.warning("Ignoring unknown tool name", extra={"tool": name})
			continue
		tools.append(factory())
	return tools
