APP_NAME = "Persona Chat Backend"
APP_VERSION = "1.0.0"
DEFAULT_CORS_ALLOW_ORIGINS = [
	"http://localhost:3000",
	"http://localhost:5173",
	"http://localhost:8080",
	"http://localhost:4200",
]
DEFAULT_TRUSTED_HOSTS = [
	"127.0.0.1",
	"localhost",
	"testserver",
]

DEFAULT_CONFIDENCE = 0.85
CONFIDENCE_SPREAD = 0.15
ERROR_CONFIDENCE = 0.5

PROCESSING_FALLBACK_MESSAGE = "I'm having trouble processing that. Could you try again?"
GENERIC_ERROR_MESSAGE = "I encountered an issue processing your request. Please try rephrasing it."
STREAM_ERROR_MESSAGE = "Sorry, I encountered an error while processing your message."
MUSIC_ERROR_MESSAGE = (
	"I had trouble with that music request. Make sure you're logged into Spotify "
	"and try something like \"play Bohemian Rhapsody\" or \"pause music\"."
)

MUSIC_TOOL_NAME = "spotify_control"
