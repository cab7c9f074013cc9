"""
Tests for the board mutation engine.

Covers card/column/note operations, ordering density, no-op moves,
delete strategies and the apply() command pipeline.
"""

import pytest

from tackboard.core import service
from tackboard.core.events import RecordingEventSink
from tackboard.core.exceptions import (
    CardNotFoundError,
    ColumnNotEmptyError,
    ColumnNotFoundError,
    NoteNotFoundError,
    ValidationError,
)
from tackboard.core.invariants import check_invariants

from conftest import add_cards


def titles(board, column_id):
    return [c.title for c in service.column_cards(board, column_id)]


def orders(board, column_id):
    return [c.order for c in service.column_cards(board, column_id)]


# --- Scenarios ---


def test_add_card_to_empty_column(two_columns, rng):
    """Card lands at order 0 with a 4-character base36 hash."""
    board, col_a, _ = two_columns
    new_board, card = service.add_card(board, col_a, "Write docs", rng=rng)

    assert card.order == 0
    assert card.column_id == col_a
    assert len(card.external_hash) == 4
    assert all(ch in "0123456789abcdefghijklmnopqrstuvwxyz" for ch in card.external_hash)
    assert new_board.cards[card.id] == card
    assert not board.cards  # input untouched
    print(f"✓ Created card {card.external_hash}")


def test_move_within_column_to_front(two_columns, rng):
    board, col_a, _ = two_columns
    board, (x, y, z) = add_cards(board, col_a, ["X", "Y", "Z"], rng)

    moved = service.move_card(board, y, col_a, 0)

    assert titles(moved, col_a) == ["Y", "X", "Z"]
    assert orders(moved, col_a) == [0, 1, 2]


def test_move_across_columns(two_columns, rng):
    board, col_a, col_b = two_columns
    board, (p, q) = add_cards(board, col_a, ["P", "Q"], rng)

    moved = service.move_card(board, p, col_b, 0)

    assert titles(moved, col_a) == ["Q"]
    assert orders(moved, col_a) == [0]
    assert titles(moved, col_b) == ["P"]
    assert moved.cards[p].column_id == col_b
    assert moved.cards[p].order == 0


def test_delete_non_empty_column_rejected(two_columns, rng):
    board, col_a, _ = two_columns
    board, (card_id,) = add_cards(board, col_a, ["Only"], rng)

    with pytest.raises(ColumnNotEmptyError) as exc:
        service.delete_column(board, col_a)

    assert exc.value.card_count == 1
    assert "1 card(s)" in str(exc.value)
    assert col_a in board.columns
    assert card_id in board.cards


# --- Card operations ---


def test_add_card_appends_after_existing(board, rng):
    todo = board.column_order[0]
    board, ids = add_cards(board, todo, ["one", "two", "three"], rng)
    assert orders(board, todo) == [0, 1, 2]
    assert titles(board, todo) == ["one", "two", "three"]


def test_add_card_trims_title(board, rng):
    todo = board.column_order[0]
    _, card = service.add_card(board, todo, "  padded  ", rng=rng)
    assert card.title == "padded"


@pytest.mark.parametrize("title", ["", "   ", None, "x" * 501])
def test_add_card_rejects_bad_title(board, rng, title):
    with pytest.raises(ValidationError):
        service.add_card(board, board.column_order[0], title, rng=rng)


def test_add_card_title_at_limit(board, rng):
    _, card = service.add_card(board, board.column_order[0], "x" * 500, rng=rng)
    assert len(card.title) == 500


def test_add_card_rejects_long_description(board, rng):
    with pytest.raises(ValidationError):
        service.add_card(board, board.column_order[0], "ok", "d" * 5001, rng=rng)


def test_add_card_unknown_column(board, rng):
    with pytest.raises(ColumnNotFoundError):
        service.add_card(board, "column-missing", "Title", rng=rng)


def test_add_card_bumps_board_timestamp(empty_board, rng, now):
    board, column = service.add_column(empty_board, "A", rng=rng, now=now)
    later = now.replace(hour=10)
    new_board, _ = service.add_card(board, column.id, "t", rng=rng, now=later)
    assert new_board.updated_at == later
    assert board.updated_at == now


def test_move_same_position_returns_same_object(two_columns, rng):
    board, col_a, _ = two_columns
    board, (x, y, z) = add_cards(board, col_a, ["X", "Y", "Z"], rng)

    assert service.move_card(board, y, col_a, 1) is board


def test_move_clamps_index(two_columns, rng):
    board, col_a, col_b = two_columns
    board, (x, y) = add_cards(board, col_a, ["X", "Y"], rng)
    board, (z,) = add_cards(board, col_b, ["Z"], rng)

    moved = service.move_card(board, x, col_b, 99)
    assert titles(moved, col_b) == ["Z", "X"]

    moved = service.move_card(board, y, col_b, -5)
    assert titles(moved, col_b) == ["Y", "Z"]


def test_move_clamped_to_current_position_is_noop(two_columns, rng):
    board, col_a, _ = two_columns
    board, (x, y) = add_cards(board, col_a, ["X", "Y"], rng)
    # Y is last; any index past the end clamps back to its own slot
    assert service.move_card(board, y, col_a, 10) is board


def test_move_is_reversible(two_columns, rng):
    board, col_a, col_b = two_columns
    board, (p, q, r) = add_cards(board, col_a, ["P", "Q", "R"], rng)

    there = service.move_card(board, q, col_b, 0)
    back = service.move_card(there, q, col_a, 1)

    assert titles(back, col_a) == ["P", "Q", "R"]
    assert orders(back, col_a) == [0, 1, 2]
    assert titles(back, col_b) == []


def test_move_updates_card_timestamp(two_columns, rng, now):
    board, col_a, col_b = two_columns
    board, (p,) = add_cards(board, col_a, ["P"], rng)
    moved = service.move_card(board, p, col_b, 0, now=now)
    assert moved.cards[p].updated_at == now


def test_move_unknown_card_or_column(two_columns, rng):
    board, col_a, _ = two_columns
    board, (p,) = add_cards(board, col_a, ["P"], rng)
    with pytest.raises(CardNotFoundError):
        service.move_card(board, "card-nope", col_a, 0)
    with pytest.raises(ColumnNotFoundError):
        service.move_card(board, p, "column-nope", 0)


def test_orders_stay_dense_after_many_moves(board, rng):
    cols = list(board.column_order)
    board, ids = add_cards(board, cols[0], [f"c{i}" for i in range(8)], rng)

    for step, card_id in enumerate(ids * 3):
        board = service.move_card(board, card_id, cols[step % 3], (step * 7) % 5)
        assert check_invariants(board) == []

    assert sum(len(orders(board, c)) for c in cols) == 8


def test_update_card_merges_fields(board, rng):
    board, card = service.add_card(board, board.column_order[0], "Old", "keep me", rng=rng)

    updated = service.update_card(board, card.id, title="New")
    assert updated.cards[card.id].title == "New"
    assert updated.cards[card.id].description == "keep me"
    assert updated.cards[card.id].order == card.order
    assert updated.cards[card.id].column_id == card.column_id


def test_update_card_empty_description_clears(board, rng):
    board, card = service.add_card(board, board.column_order[0], "T", "desc", rng=rng)
    updated = service.update_card(board, card.id, description="")
    assert updated.cards[card.id].description is None


def test_update_card_without_changes_is_noop(board, rng):
    board, card = service.add_card(board, board.column_order[0], "T", rng=rng)
    assert service.update_card(board, card.id) is board


def test_update_card_validation(board, rng):
    board, card = service.add_card(board, board.column_order[0], "T", rng=rng)
    with pytest.raises(ValidationError):
        service.update_card(board, card.id, title="  ")
    with pytest.raises(CardNotFoundError):
        service.update_card(board, "card-nope", title="x")


def test_delete_card_renumbers_and_retires_hash(two_columns, rng):
    board, col_a, _ = two_columns
    board, (x, y, z) = add_cards(board, col_a, ["X", "Y", "Z"], rng)
    token = board.cards[y].external_hash

    after = service.delete_card(board, y)

    assert titles(after, col_a) == ["X", "Z"]
    assert orders(after, col_a) == [0, 1]
    assert token in after.retired_card_hashes


def test_delete_card_twice_fails(two_columns, rng):
    board, col_a, _ = two_columns
    board, (x,) = add_cards(board, col_a, ["X"], rng)
    board = service.delete_card(board, x)
    with pytest.raises(CardNotFoundError):
        service.delete_card(board, x)


# --- Column operations ---


def test_add_column_appends(board, rng):
    new_board, column = service.add_column(board, "Review", rng=rng)
    assert new_board.column_order[-1] == column.id
    assert column.order == 3
    assert len(column.external_hash) == 4


def test_add_column_after_reference_shifts_later_columns(board, rng):
    todo, doing, done = board.column_order
    new_board, column = service.add_column(board, "Review", insert_after_column_id=doing, rng=rng)

    assert new_board.column_order == (todo, doing, column.id, done)
    assert column.order == 2
    assert new_board.columns[done].order == 3
    assert check_invariants(new_board) == []


def test_add_column_validation(board, rng):
    with pytest.raises(ValidationError):
        service.add_column(board, "", rng=rng)
    with pytest.raises(ValidationError):
        service.add_column(board, "c" * 101, rng=rng)
    with pytest.raises(ColumnNotFoundError):
        service.add_column(board, "X", insert_after_column_id="column-nope", rng=rng)


def test_update_column_keeps_hash_and_order(board):
    doing = board.column_order[1]
    renamed = service.update_column(board, doing, "Doing")
    assert renamed.columns[doing].title == "Doing"
    assert renamed.columns[doing].external_hash == board.columns[doing].external_hash
    assert renamed.columns[doing].order == 1


def test_delete_empty_column_renumbers(board):
    todo, doing, done = board.column_order
    after = service.delete_column(board, doing)

    assert after.column_order == (todo, done)
    assert after.columns[done].order == 1
    assert board.columns[doing].external_hash in after.retired_column_hashes


def test_delete_column_move_cards_to(two_columns, rng):
    board, col_a, col_b = two_columns
    board, _ = add_cards(board, col_a, ["A1", "A2"], rng)
    board, _ = add_cards(board, col_b, ["B1"], rng)

    after = service.delete_column(board, col_a, service.MoveCardsTo(col_b))

    assert col_a not in after.columns
    assert titles(after, col_b) == ["B1", "A1", "A2"]
    assert orders(after, col_b) == [0, 1, 2]
    assert check_invariants(after) == []


def test_delete_column_move_cards_to_invalid_target(two_columns, rng):
    board, col_a, _ = two_columns
    board, _ = add_cards(board, col_a, ["A1"], rng)
    with pytest.raises(ValidationError):
        service.delete_column(board, col_a, service.MoveCardsTo(col_a))
    with pytest.raises(ValidationError):
        service.delete_column(board, col_a, service.MoveCardsTo("column-nope"))


def test_delete_column_delete_cards_too(two_columns, rng):
    board, col_a, col_b = two_columns
    board, ids = add_cards(board, col_a, ["A1", "A2"], rng)
    hashes = {board.cards[i].external_hash for i in ids}

    after = service.delete_column(board, col_a, service.DeleteCardsToo())

    assert not any(i in after.cards for i in ids)
    assert hashes <= after.retired_card_hashes
    assert after.column_order == (col_b,)


# --- Notes ---


def test_add_and_delete_note(board, rng):
    board, card = service.add_card(board, board.column_order[0], "T", rng=rng)
    board, note = service.add_note(board, card.id, "  first note ")
    assert board.cards[card.id].notes == (note,)
    assert note.text == "first note"

    board = service.delete_note(board, card.id, note.id)
    assert board.cards[card.id].notes == ()
    with pytest.raises(NoteNotFoundError):
        service.delete_note(board, card.id, note.id)


def test_note_validation(board, rng):
    board, card = service.add_card(board, board.column_order[0], "T", rng=rng)
    with pytest.raises(ValidationError):
        service.add_note(board, card.id, "")
    with pytest.raises(ValidationError):
        service.add_note(board, card.id, "n" * 2001)


# --- apply() ---


def test_apply_returns_result_with_entity(board, rng):
    result = service.apply(board, service.AddCard(board.column_order[0], "Via apply"), rng=rng)
    assert result.ok
    assert result.board.cards[result.entity_id].title == "Via apply"


def test_apply_returns_error_instead_of_raising(board):
    doing = board.column_order[1]
    result = service.apply(board, service.AddCard(doing, ""))
    assert not result.ok
    assert isinstance(result.error, ValidationError)
    assert result.board is board
    with pytest.raises(ValidationError):
        result.unwrap()


def test_apply_rejected_delete_leaves_board_equal(two_columns, rng):
    board, col_a, _ = two_columns
    board, _ = add_cards(board, col_a, ["X"], rng)
    result = service.apply(board, service.DeleteColumn(col_a))
    assert isinstance(result.error, ColumnNotEmptyError)
    assert result.board == board


def test_apply_emits_events_only_on_change(two_columns, rng):
    board, col_a, col_b = two_columns
    sink = RecordingEventSink()

    result = service.apply(board, service.AddCard(col_a, "E"), rng=rng, events=sink)
    card_id = result.entity_id
    service.apply(result.board, service.MoveCard(card_id, col_a, 0), events=sink)  # no-op
    service.apply(result.board, service.MoveCard(card_id, col_b, 0), events=sink)
    service.apply(result.board, service.DeleteCard("card-nope"), events=sink)  # rejected

    assert sink.types() == ["card_added", "card_moved"]
    assert sink.events[0].external_hash == result.board.cards[card_id].external_hash
    assert sink.events[0].board_id == board.id


def test_apply_unknown_command_type(board):
    with pytest.raises(TypeError):
        service.apply(board, object())
