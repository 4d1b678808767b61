from unittest import IsolatedAsyncioTestCase, TestCase

from app.backend import constants
from app.backend.services.tool_call_recovery import ToolCallRecovery, extract_song_name, is_music_request
from app.backend.tools.base import ChatTool


_MALFORMED = '<function=spotify_control>{"input": "play:Bohemian Rhapsody"}</function>'


class _RecordingMusicTool(ChatTool):
	name = constants.MUSIC_TOOL_NAME
	description = "music"

	def __init__(self, error: Exception | None = None):
		self.arguments = []
		self._error = error

	async def invoke(self, argument: str) -> str:
		self.arguments.append(argument)
		if self._error is not None:
			raise self._error
		return "Now playing Bohemian Rhapsody by Queen."


class HeuristicTests(TestCase):
	def test_music_request_uses_whole_words(self) -> None:
		self.assertTrue(is_music_request("Play some Queen"))
		self.assertTrue(is_music_request("skip this song"))
		self.assertFalse(is_music_request("change the display brightness"))
		self.assertFalse(is_music_request(""))

	def test_song_name_from_malformed_response(self) -> None:
		self.assertEqual(extract_song_name(_MALFORMED, "play it"), "Bohemian Rhapsody")

	def test_song_name_from_quoted_value(self) -> None:
		response = '<function=spotify_control>{"query": "Yesterday"}</function>'
		self.assertEqual(extract_song_name(response, "music"), "Yesterday")

	def test_song_name_falls_back_to_user_message(self) -> None:
		self.assertEqual(
			extract_song_name("<function=spotify_control></function>", "please play Yesterday by The Beatles."),
			"Yesterday by The Beatles",
		)

	def test_no_song_name(self) -> None:
		self.assertEqual(extract_song_name("<function=spotify_control></function>", "music please"), "")


class ToolCallRecoveryTests(IsolatedAsyncioTestCase):
	def test_detect(self) -> None:
		recovery = ToolCallRecovery({})
		self.assertTrue(recovery.detect(_MALFORMED))
		self.assertTrue(recovery.detect("function = spotify_control"))
		self.assertFalse(recovery.detect("Sure, here is a fun fact about functions."))
		self.assertFalse(recovery.detect(""))

	async def test_music_request_reinvokes_tool(self) -> None:
		tool = _RecordingMusicTool()
		recovery = ToolCallRecovery({tool.name: tool})

		with self.assertLogs("app.backend.services.tool_call_recovery", level="WARNING"):
			result = await recovery.recover(_MALFORMED, "play Bohemian Rhapsody", "req_1")

		self.assertEqual(result, "Now playing Bohemian Rhapsody by Queen.")
		self.assertEqual(tool.arguments, ["play:Bohemian Rhapsody"])

	async def test_non_music_request_gets_generic_apology(self) -> None:
		tool = _RecordingMusicTool()
		recovery = ToolCallRecovery({tool.name: tool})

		result = await recovery.recover("<function=web_search>{}</function>", "what's the weather", "req_2")

		self.assertEqual(result, constants.GENERIC_ERROR_MESSAGE)
		self.assertEqual(tool.arguments, [])

	async def test_missing_song_name_asks_for_retry(self) -> None:
		recovery = ToolCallRecovery({})
		result = await recovery.recover("<function=spotify_control></function>", "music please")
		self.assertIn("trouble with that music request", result)

	async def test_missing_tool_explains_unavailability(self) -> None:
		recovery = ToolCallRecovery({})
		result = await recovery.recover(_MALFORMED, "play Bohemian Rhapsody")
		self.assertIn('I\'d like to play "Bohemian Rhapsody"', result)
		self.assertIn("logged into Spotify", result)

	async def test_failing_tool_explains_unavailability(self) -> None:
		tool = _RecordingMusicTool(error=RuntimeError("boom"))
		recovery = ToolCallRecovery({tool.name: tool})

		with self.assertLogs("app.backend.services.tool_call_recovery", level="ERROR"):
			result = await recovery.recover(_MALFORMED, "play Bohemian Rhapsody")

		self.assertIn("logged into Spotify", result)
