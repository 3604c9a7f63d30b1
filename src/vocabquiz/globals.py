import os

from fastapi.templating import Jinja2Templates

from .config import settings
from .session import SessionStore
from .timer import AsyncioClock
from .vocabulary import VocabularyManager, default_source

templates = Jinja2Templates(
    directory=os.path.join(os.path.dirname(__file__), "templates")
)
vocab_manager = VocabularyManager(default_source(settings))
session_store = SessionStore(
    lambda: vocab_manager.entries,
    clock_factory=lambda: AsyncioClock(settings.TICK_SECONDS),
    timeout_minutes=settings.SESSION_TIMEOUT_MINUTES,
)
