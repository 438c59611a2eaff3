"""
Move commentary from a text-generation service.

The board UI has an "ask for a hint" button. It sends the current FEN and the
side to move; this module turns that into a short grandmaster-style
suggestion using the OpenAI chat completions API. It has nothing to do with
piece tracking and never touches the session.

Configuration (environment):
    OPENAI_API_KEY         API key. Without it, advise() raises
                           CommentaryUnavailable.
    COMMENTARY_MODEL       Chat model name (default "gpt-4o-mini").
    COMMENTARY_MAX_TOKENS  Completion cap (default 300). Non-numeric or
                           non-positive values fall back to the default.
"""

import logging
import os

import chess
from openai import OpenAI, OpenAIError

_log = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_MAX_TOKENS = 300

NO_ADVICE = "No advice available."
SERVICE_FAILED = "I couldn't analyze the board right now. Please try again."


class CommentaryUnavailable(RuntimeError):
    """Raised when no text-generation client is configured."""


def build_prompt(fen: str, turn: chess.Color) -> str:
    side = "White" if turn == chess.WHITE else "Black"
    return (
        "You are a Chess Grandmaster.\n"
        f'Analyze the following chess position in FEN (Forsyth-Edwards Notation): "{fen}".\n'
        f"It is {side}'s turn.\n"
        "\n"
        f"1. Suggest the single best move for {side}.\n"
        "2. Briefly explain the strategic reasoning behind this move in 2-3 sentences.\n"
        "3. Keep it concise and helpful for a casual player.\n"
    )


def _max_tokens_from_env() -> int:
    """
    Read COMMENTARY_MAX_TOKENS.

    The commentator is built when the web app is imported, so a bad value
    falls back to DEFAULT_MAX_TOKENS with a warning instead of stopping the
    API from starting.
    """
    raw = os.getenv("COMMENTARY_MAX_TOKENS")
    if raw is None:
        return DEFAULT_MAX_TOKENS
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value <= 0:
        _log.warning(
            "Ignoring COMMENTARY_MAX_TOKENS=%r; using %d", raw, DEFAULT_MAX_TOKENS
        )
        return DEFAULT_MAX_TOKENS
    return value


class Commentator:
    """
    Thin wrapper around an OpenAI client.

    Attributes:
        client:     An openai.OpenAI instance (or anything exposing
                    chat.completions.create), or None when unconfigured.
        model:      Chat model name.
        max_tokens: Completion token cap.
    """

    def __init__(
        self,
        client: OpenAI | None,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    @classmethod
    def from_env(cls) -> "Commentator":
        api_key = os.getenv("OPENAI_API_KEY", "")
        client = OpenAI(api_key=api_key) if api_key else None
        return cls(
            client,
            model=os.getenv("COMMENTARY_MODEL", DEFAULT_MODEL),
            max_tokens=_max_tokens_from_env(),
        )

    @property
    def available(self) -> bool:
        return self.client is not None

    def advise(self, fen: str, turn: chess.Color) -> str:
        """
        Ask the model for the best move and a short explanation.

        Service failures are logged and answered with a fixed apology rather
        than raised: a missing hint is not worth an error page.

        Raises:
            CommentaryUnavailable: No client is configured.
        """
        if not self.available:
            raise CommentaryUnavailable("API key is missing.")

        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": build_prompt(fen, turn)}],
                max_tokens=self.max_tokens,
            )
        except OpenAIError:
            _log.exception("Commentary request failed for FEN=%s", fen)
            return SERVICE_FAILED

        content = resp.choices[0].message.content if resp.choices else None
        return content.strip() if content else NO_ADVICE
