from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Tuple

import httpx

from app.backend import config, constants
from app.backend.tools.base import ChatTool


logger = logging.getLogger(__name__)

SPOTIFY_API_URL = "https://api.spotify.com/v1"
_SEARCH_LIMIT = 5
_TIMEOUT_S = 10.0

_NOT_CONNECTED = "Spotify isn't connected. Please log into Spotify first, then try again."
_NO_DEVICE = "No active Spotify device found. Open Spotify on one of your devices and try again."
_RATE_LIMITED = "Spotify is rate limiting requests right now. Please try again in a moment."
_UNAVAILABLE = "Spotify is temporarily unavailable. Please try again later."
_USAGE = (
	"Unknown Spotify command. Use play:<song>, search:<query>, pause, resume, skip, "
	"previous, current, or volume:<0-100>."
)


def parse_command(argument: str) -> Tuple[str, str]:
	text = (argument or "").strip()
	action, _, query = text.partition(":")
	return action.strip().lower(), query.strip()


def _track_label(track: Dict[str, Any]) -> str:
	artists = ", ".join(artist.get("name", "") for artist in track.get("artists") or [] if artist.get("name"))
	name = track.get("name", "Unknown track")
	return f"{name} by {artists}" if artists else name


class SpotifyTool(ChatTool):
	name = constants.MUSIC_TOOL_NAME
	description = (
		"Search, control, and manage Spotify music playback. Use ONLY for explicit Spotify "
		"actions: playing songs or artists, searching music, pause/resume/skip/previous, volume, "
		"or asking what's currently playing. Use EXACT format \"action:query\", for example "
		"play:Bohemian Rhapsody, search:jazz playlist, pause, resume, skip, previous, current, "
		"volume:75. Do not use XML-like syntax or function calls."
	)
	argument_hint = "Command such as play:<song> or pause"

	def __init__(
		self,
		*,
		token_provider: Callable[[], str] | None = None,
		client_factory: Callable[[], httpx.AsyncClient] | None = None,
	):
		self._token_provider = token_provider or config.spotify_access_token
		self._client_factory = client_factory or (
			lambda: httpx.AsyncClient(base_url=SPOTIFY_API_URL, timeout=_TIMEOUT_S)
		)

	async def invoke(self, argument: str) -> str:
		token = self._token_provider()
		if not token:
			logger.warning("No Spotify token available")
			return _NOT_CONNECTED
		action, query = parse_command(argument)
		logger.info("Spotify command", extra={"action": action, "query": query})
		headers = {"Authorization": f"Bearer {token}"}
		try:
			async with self._client_factory() as client:
				client.headers.update(headers)
				return await self._dispatch(client, action, query)
		except httpx.TimeoutException:
			logger.warning("Spotify request timed out", extra={"action": action})
			return _UNAVAILABLE
		except httpx.HTTPError:
			logger.error("Spotify request failed", extra={"action": action}, exc_info=True)
			return _UNAVAILABLE

	async def _dispatch(self, client: httpx.AsyncClient, action: str, query: str) -> str:
		if action == "play" and query:
			return await self._play(client, query)
		if action == "search" and query:
			return await self._search(client, query)
		if action in {"pause", "stop"}:
			return self._describe(await client.put("/me/player/pause"), "Paused the music.")
		if action in {"resume", "play", "unpause"}:
			return self._describe(await client.put("/me/player/play"), "Resumed playback.")
		if action in {"skip", "next"}:
			return self._describe(await client.post("/me/player/next"), "Skipped to the next track.")
		if action in {"previous", "back"}:
			return self._describe(await client.post("/me/player/previous"), "Went back to the previous track.")
		if action in {"current", "now", "playing"}:
			return await self._current(client)
		if action == "volume":
			return await self._volume(client, query)
		return _USAGE

	@staticmethod
	def _error_text(response: httpx.Response) -> str | None:
		if response.status_code == 401:
			return _NOT_CONNECTED
		if response.status_code == 404:
			return _NO_DEVICE
		if response.status_code == 429:
			return _RATE_LIMITED
		if response.status_code >= 400:
			logger.warning("Spotify API error", extra={"status": response.status_code})
			return _UNAVAILABLE
		return None

	def _describe(self, response: httpx.Response, success: str) -> str:
		return self._error_text(response) or success

	async def _find_tracks(self, client: httpx.AsyncClient, query: str, limit: int) -> Tuple[List[Dict[str, Any]], str | None]:
		response = await client.get("/search", params={"q": query, "type": "track", "limit": limit})
		error = self._error_text(response)
		if error:
			return [], error
		tracks = ((response.json().get("tracks") or {}).get("items")) or []
		return tracks, None

	async def _search(self, client: httpx.AsyncClient, query: str) -> str:
		tracks, error = await self._find_tracks(client, query, _SEARCH_LIMIT)
		if error:
			return error
		if not tracks:
			return f"No songs found for \"{query}\"."
		lines = [f"{index}. {_track_label(track)}" for index, track in enumerate(tracks, start=1)]
		return f"Found these songs for \"{query}\":\n" + "\n".join(lines)

	async def _play(self, client: httpx.AsyncClient, query: str) -> str:
		tracks, error = await self._find_tracks(client, query, 1)
		if error:
			return error
		if not tracks:
			return f"I couldn't find \"{query}\" on Spotify."
		track = tracks[0]
		body = {"uris": [track.get("uri")]}
		response = await client.put("/me/player/play", json=body)
		if response.status_code == 404:
			device_id = await self._activate_first_device(client)
			if device_id is None:
				return _NO_DEVICE
			response = await client.put("/me/player/play", params={"device_id": device_id}, json=body)
		return self._describe(response, f"Now playing {_track_label(track)}.")

	async def _activate_first_device(self, client: httpx.AsyncClient) -> str | None:
		response = await client.get("/me/player/devices")
		if response.status_code >= 400:
			return None
		devices = response.json().get("devices") or []
		if not devices:
			return None
		device_id = devices[0].get("id")
		if not device_id:
			return None
		transfer = await client.put("/me/player", json={"device_ids": [device_id], "play": False})
		if transfer.status_code >= 400:
			return None
		logger.info("Activated Spotify device", extra={"device": devices[0].get("name")})
		return device_id

	async def _current(self, client: httpx.AsyncClient) -> str:
		response = await client.get("/me/player/currently-playing")
		if response.status_code == 204:
			return "Nothing is playing on Spotify right now."
		error = self._error_text(response)
		if error:
			return error
		payload = response.json()
		track = payload.get("item")
		if not track:
			return "Nothing is playing on Spotify right now."
		state = "Currently playing" if payload.get("is_playing") else "Paused on"
		return f"{state} {_track_label(track)}."

	async def _volume(self, client: httpx.AsyncClient, query: str) -> str:
		try:
			level = int(query)
		except ValueError:
			return "Volume must be a number between 0 and 100."
		if not 0 <= level <= 100:
			return "Volume must be a number between 0 and 100."
		response = await client.put("/me/player/volume", params={"volume_percent": level})
		return self._describe(response, f"Volume set to {level} percent.")
