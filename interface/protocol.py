"""
Line-based text protocol for driving the checkers engine.

Modelled on UCI: a front end (GUI, benchmark script, test harness) writes
commands to stdin and reads replies from stdout. Every reply line is flushed
immediately. Diagnostics go to stderr through `logging` so they never corrupt
the protocol stream.

Commands (front end -> engine):
    hello                              identify; replies id lines + "hellook"
    isready                            replies "readyok"
    newgame                            reset to the starting position
    position startpos [moves c3d4 ...] starting position plus replayed steps
    position rows <json> [turn white|black]
                                       load a serialized 8x8 board
    go [easy|medium|hard] [movetime <ms>]
                                       search for the side to move
    stop                               cancel a running search
    d                                  print the board to stderr
    quit                               exit

Replies (engine -> front end):
    info depth <d> score <s> nodes <n> time <ms>
    bestmove <from><to> | bestmove (none)

A step is written as two squares, e.g. "c3d4". A multi-capture turn is sent
as one step per jump; the side to move stays the same until the chain ends.

Threading model:
    The loop runs on the main thread and never blocks on the search. "go"
    starts a daemon thread; "stop" sets a threading.Event the search polls.
"""

import json
import logging
import os
import sys
import threading
import time

# Make 'engine' importable when this file is run directly.
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

from engine.board import Board, BoardFormatError, Color, Position
from engine.constants import DEFAULT_DIFFICULTY, DIFFICULTY_PROFILES
from engine.game import Game, GameError
from engine.search import get_best_move

_log = logging.getLogger(__name__)


def _send(line: str) -> None:
    """Write one protocol line to stdout and flush it."""
    print(line, flush=True)


def parse_step(text: str) -> tuple[Position, Position]:
    """Parse "c3d4" into (from, to)."""
    if len(text) != 4:
        raise BoardFormatError(f"Invalid step: {text!r}")
    return Position.from_notation(text[:2]), Position.from_notation(text[2:])


class ProtocolHandler:
    """
    Stateful handler for the text protocol.

    Attributes:
        game:          Current game session, updated by "position"/"newgame".
        search_thread: Active search thread, or None.
        stop_event:    Shared with the search thread to cancel it.
    """

    def __init__(self) -> None:
        self.game = Game()
        self.search_thread: threading.Thread | None = None
        self.stop_event = threading.Event()

    # -----------------------------------------------------------------------
    # Command handlers
    # -----------------------------------------------------------------------

    def handle_hello(self) -> None:
        """Identify the engine: id lines, then "hellook"."""
        _send("id name CheckersAI")
        _send("id author CheckersAI Project")
        _send("hellook")

    def handle_isready(self) -> None:
        """Reply "readyok"; commands are handled in order, so this is a sync point."""
        _send("readyok")

    def handle_newgame(self) -> None:
        """Stop any running search and reset to the starting position."""
        self._stop_search()
        self.game.reset()

    def handle_position(self, tokens: list[str]) -> None:
        """
        Parse and apply a "position" command.

        Formats:
            position startpos
            position startpos moves c3d4 f6e5 ...
            position rows <json> [turn white|black]

        An illegal step stops the replay; the position reached so far is
        kept.
        """
        if not tokens:
            return

        if tokens[0] == "startpos":
            self.game.reset()
            move_tokens = tokens[2:] if len(tokens) > 1 and tokens[1] == "moves" else []
            for token in move_tokens:
                try:
                    from_pos, to_pos = parse_step(token)
                    self.game.play(from_pos, to_pos)
                except (BoardFormatError, GameError) as exc:
                    _log.warning("illegal step in position command: %s (%s)", token, exc)
                    break
        elif tokens[0] == "rows":
            turn = Color.WHITE
            payload = tokens[1:]
            if len(payload) >= 2 and payload[-2] == "turn":
                turn = Color(payload[-1])
                payload = payload[:-2]
            board = Board.from_rows(json.loads(" ".join(payload)))
            self.game.load(board, turn)
        else:
            _log.warning("unknown position type: %s", tokens[0])

    def handle_go(self, tokens: list[str]) -> None:
        """
        Start a search for the side to move in a background thread.

        Tokens may name a difficulty and/or "movetime <ms>" overriding the
        tier's time budget.
        """
        self._stop_search()

        difficulty = DEFAULT_DIFFICULTY
        time_budget_ms: int | None = None
        i = 0
        while i < len(tokens):
            token = tokens[i]
            if token in DIFFICULTY_PROFILES:
                difficulty = token
            elif token == "movetime" and i + 1 < len(tokens):
                try:
                    time_budget_ms = max(1, int(tokens[i + 1]))
                except ValueError:
                    _log.warning("bad movetime: %s", tokens[i + 1])
                i += 1
            i += 1

        self.stop_event = threading.Event()
        stop_event = self.stop_event
        state = self.game.state

        def search_and_reply() -> None:
            try:
                start = time.monotonic()
                if state.status.is_terminal:
                    _send("bestmove (none)")
                    return
                move = get_best_move(
                    state.board,
                    difficulty,
                    color=state.current_player,
                    continuing=state.selected_piece,
                    time_budget_ms=time_budget_ms,
                    stop_event=stop_event,
                )
                elapsed_ms = max(1, int((time.monotonic() - start) * 1000))
                if move is None:
                    _send("bestmove (none)")
                    return
                _send(
                    f"info depth {move.depth} score {int(move.score)} "
                    f"nodes {move.nodes} time {elapsed_ms}"
                )
                _send(f"bestmove {move.from_pos.to_notation()}{move.to_pos.to_notation()}")
            except Exception:
                _log.exception("search error")
                _send("bestmove (none)")

        self.search_thread = threading.Thread(target=search_and_reply, daemon=True)
        self.search_thread.start()

    def handle_stop(self) -> None:
        """Cancel the running search; it still replies with its best move so far."""
        self._stop_search()

    def handle_display(self) -> None:
        """Print the board to stderr for debugging ("d")."""
        print(self.game.board, file=sys.stderr, flush=True)
        _log.info("to move: %s, status: %s", self.game.current_player.value, self.game.state.status.value)

    def handle_quit(self) -> None:
        """Stop any search and exit the process."""
        self._stop_search()
        sys.exit(0)

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _stop_search(self) -> None:
        """Signal the running search to stop and wait briefly for it to reply."""
        self.stop_event.set()
        if self.search_thread is not None and self.search_thread.is_alive():
            self.search_thread.join(timeout=2.0)
        self.search_thread = None

    def wait(self, timeout: float | None = None) -> None:
        """Block until the current search thread has replied."""
        if self.search_thread is not None:
            self.search_thread.join(timeout=timeout)

    def dispatch(self, line: str) -> None:
        """Handle one input line. Errors are logged and swallowed so the loop survives."""
        tokens = line.strip().split()
        if not tokens:
            return
        command, args = tokens[0], tokens[1:]
        try:
            if command == "hello":
                self.handle_hello()
            elif command == "isready":
                self.handle_isready()
            elif command == "newgame":
                self.handle_newgame()
            elif command == "position":
                self.handle_position(args)
            elif command == "go":
                self.handle_go(args)
            elif command == "stop":
                self.handle_stop()
            elif command == "d":
                self.handle_display()
            elif command == "quit":
                self.handle_quit()
            else:
                _log.info("ignoring unknown command: %r", command)
        except (BoardFormatError, GameError, ValueError) as exc:
            _log.error("error in command %r: %s", command, exc)


def run_loop() -> None:
    """Read commands from stdin until "quit" or end of input."""
    logging.basicConfig(stream=sys.stderr, level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    handler = ProtocolHandler()
    for raw_line in sys.stdin:
        handler.dispatch(raw_line)
    handler.wait()


if __name__ == "__main__":
    run_loop()
