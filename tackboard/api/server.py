"""
FILE: tackboard/api/server.py
PURPOSE: Flask HTTP command surface for external automation
EXPORTS:
  - create_app(repository, auth_gate, events, rng) -> Flask
DEPENDENCIES:
  - flask
  - tackboard.core.service (commands, apply)
  - tackboard.core.identity (hash/slug resolution)
  - tackboard.formatting (card_view, column_view)
NOTES:
  - Routes:
      GET    /health                                  (no auth)
      GET    /boards/<board_id>/cards
      POST   /boards/<board_id>/cards
      GET    /boards/<board_id>/cards/<card_hash>
      PUT    /boards/<board_id>/cards/<card_hash>
      DELETE /boards/<board_id>/cards/<card_hash>
      GET    /boards/<board_id>/columns
      POST   /boards/<board_id>/columns
      DELETE /boards/<board_id>/columns/<column_hash>
  - Every request authenticates before the repository is touched
  - Each request saves at most once, before responding; there is no
    rollback if the save fails
  - Events are published after the save, never for an unsaved change
  - Errors are JSON: {"error": message}
"""

import logging
import random
from functools import wraps
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

from ..core import service
from ..core.events import EventSink, RecordingEventSink
from ..core.exceptions import (
    AuthError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from ..core.identity import Namespace, resolve_column_slug, resolve_hash
from ..core.models import Board
from ..core.repository import BoardRepository
from ..formatting import card_view, column_view
from .auth import AuthGate

logger = logging.getLogger(__name__)


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _body_column(board: Board, body: Dict[str, Any]) -> Optional[str]:
    """
    Resolve the columnHash / columnName of a request body.

    Returns:
        Internal column id, or None when the body names no column

    Raises:
        ValidationError: A column was named but does not exist
    """
    if "columnHash" in body:
        column_hash = body["columnHash"]
        column_id = resolve_hash(board, Namespace.COLUMN, str(column_hash))
        if column_id is None:
            raise ValidationError(f"Column '{column_hash}' not found")
        return column_id
    if "columnName" in body:
        column_name = body["columnName"]
        column_id = resolve_column_slug(board, str(column_name))
        if column_id is None:
            raise ValidationError(f"Column '{column_name}' not found")
        return column_id
    return None


def create_app(
    repository: BoardRepository,
    auth_gate: AuthGate,
    events: Optional[EventSink] = None,
    rng: Optional[random.Random] = None,
) -> Flask:
    """
    Build the HTTP app around injected collaborators.

    Args:
        repository: Board persistence backend
        auth_gate: Decides whether a request may touch a board
        events: Optional sink for mutation events
        rng: Random source for ids and hashes
    """
    app = Flask(__name__)

    def require_board_access(view):
        """Decorator: reject requests the auth gate does not approve."""
        @wraps(view)
        def decorated(board_id, *args, **kwargs):
            auth_gate.require(request.headers, board_id)
            return view(board_id, *args, **kwargs)
        return decorated

    def run(board: Board, *commands) -> service.Result:
        """
        Apply commands in order and save the final board once.

        Events are published only after the save succeeds, one per
        command, so a PUT that renames and moves a card reports both.
        """
        pending = RecordingEventSink()
        result = service.Result(board=board)
        for command in commands:
            result = service.apply(result.board, command, rng=rng, events=pending)
            if not result.ok:
                return result
        if result.board is not board:
            repository.save_board(result.board)
        if events is not None:
            for event in pending.events:
                events.emit(event)
        return result

    @app.errorhandler(AuthError)
    def handle_auth_error(e):
        return _error(str(e), 401)

    @app.errorhandler(PersistenceError)
    def handle_persistence_error(e):
        logger.exception("Storage failure: %s", e)
        return _error(str(e), 500)

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        logger.warning("Rejected request: %s", e)
        return _error(str(e), 400)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "dataSource": repository.data_source})

    # ── Cards ────────────────────────────────────────────────────────────

    @app.route("/boards/<board_id>/cards", methods=["GET"])
    @require_board_access
    def list_cards(board_id):
        board = repository.load_board(board_id)
        cards = [
            card_view(board, card)
            for column in service.columns_in_order(board)
            for card in service.column_cards(board, column.id)
        ]
        return jsonify({"cards": cards})

    @app.route("/boards/<board_id>/cards", methods=["POST"])
    @require_board_access
    def create_card(board_id):
        body = _json_body()
        title = body.get("title")
        if not isinstance(title, str) or not title.strip():
            return _error("Title is required", 400)

        board = repository.load_board(board_id)
        column_id = _body_column(board, body)
        if column_id is None:
            if not board.column_order:
                return _error("Board has no columns", 400)
            column_id = board.column_order[0]

        result = run(board, service.AddCard(column_id, title, body.get("description")))
        if not result.ok:
            return _error(str(result.error), 400)
        card = result.board.cards[result.entity_id]
        logger.info("Created card %s on board %s", card.external_hash, board_id)
        return jsonify(card_view(result.board, card)), 201

    @app.route("/boards/<board_id>/cards/<card_hash>", methods=["GET"])
    @require_board_access
    def get_card(board_id, card_hash):
        board = repository.load_board(board_id)
        card_id = resolve_hash(board, Namespace.CARD, card_hash)
        if card_id is None:
            return _error(f"Card '{card_hash}' not found", 404)
        return jsonify(card_view(board, board.cards[card_id]))

    @app.route("/boards/<board_id>/cards/<card_hash>", methods=["PUT"])
    @require_board_access
    def update_card(board_id, card_hash):
        body = _json_body()
        board = repository.load_board(board_id)
        card_id = resolve_hash(board, Namespace.CARD, card_hash)
        if card_id is None:
            return _error(f"Card '{card_hash}' not found", 404)

        column_id = _body_column(board, body)
        commands = []
        changes = {k: body[k] for k in ("title", "description") if k in body}
        if changes:
            commands.append(service.UpdateCard(card_id, **changes))
        if column_id is not None and column_id != board.cards[card_id].column_id:
            end = service.card_count(board, column_id)
            commands.append(service.MoveCard(card_id, column_id, end))

        result = run(board, *commands)
        if not result.ok:
            return _error(str(result.error), 400)
        return jsonify(card_view(result.board, result.board.cards[card_id]))

    @app.route("/boards/<board_id>/cards/<card_hash>", methods=["DELETE"])
    @require_board_access
    def delete_card(board_id, card_hash):
        board = repository.load_board(board_id)
        card_id = resolve_hash(board, Namespace.CARD, card_hash)
        if card_id is None:
            return _error(f"Card '{card_hash}' not found", 404)
        result = run(board, service.DeleteCard(card_id))
        if not result.ok:
            return _error(str(result.error), 404)
        logger.info("Deleted card %s on board %s", card_hash, board_id)
        return "", 204

    # ── Columns ──────────────────────────────────────────────────────────

    @app.route("/boards/<board_id>/columns", methods=["GET"])
    @require_board_access
    def list_columns(board_id):
        board = repository.load_board(board_id)
        return jsonify({"columns": [column_view(c) for c in service.columns_in_order(board)]})

    @app.route("/boards/<board_id>/columns", methods=["POST"])
    @require_board_access
    def create_column(board_id):
        body = _json_body()
        board = repository.load_board(board_id)

        after_id = None
        insert_after = body.get("insertAfter")
        if insert_after:
            after_id = resolve_hash(board, Namespace.COLUMN, str(insert_after))
            if after_id is None:
                after_id = resolve_column_slug(board, str(insert_after))
            if after_id is None:
                return _error(f"Column '{insert_after}' not found", 400)

        result = run(board, service.AddColumn(body.get("title"), after_id))
        if not result.ok:
            return _error(str(result.error), 400)
        column = result.board.columns[result.entity_id]
        logger.info("Created column %s on board %s", column.external_hash, board_id)
        return jsonify(column_view(column)), 201

    @app.route("/boards/<board_id>/columns/<column_hash>", methods=["DELETE"])
    @require_board_access
    def delete_column(board_id, column_hash):
        board = repository.load_board(board_id)
        column_id = resolve_hash(board, Namespace.COLUMN, column_hash)
        if column_id is None:
            return _error(f"Column '{column_hash}' not found", 404)
        result = run(board, service.DeleteColumn(column_id))
        if not result.ok:
            # Non-empty column is a ColumnNotEmptyError carrying the card count
            status = 404 if isinstance(result.error, NotFoundError) else 400
            return _error(str(result.error), status)
        logger.info("Deleted column %s on board %s", column_hash, board_id)
        return "", 204

    return app
