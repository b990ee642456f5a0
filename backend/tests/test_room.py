import pytest

from quizroom.errors import (
    DuplicateSubmission,
    InvalidOption,
    InvalidTransition,
    LateSubmission,
    NameConflict,
    NoActiveQuestion,
    Unauthorized,
)
from quizroom.services.games.room import Question, Room, RoomStatus


@pytest.fixture()
def room(clock, make_script):
    script = make_script()
    return Room(
        code='ABC123',
        quiz_id=script.id,
        quiz_title=script.title,
        host_connection_id='host',
        questions=script.questions,
        clock=clock,
    )


def _started(room, *names):
    for name in names:
        room.add_player(name.lower(), name)
    room.start()
    room.mark_question_started()
    return room


def test_new_room_is_waiting(room):
    assert room.status is RoomStatus.WAITING
    assert room.current_index == -1
    assert room.current_question() is None
    assert room.submissions == {}


def test_add_player_rejects_case_insensitive_duplicates(room):
    room.add_player('s1', 'Ana')
    with pytest.raises(NameConflict):
        room.add_player('s2', 'ANA')
    with pytest.raises(NameConflict):
        room.add_player('s3', 'ana')
    assert room.player_names() == ['Ana']


def test_remove_player_is_idempotent(room):
    room.add_player('s1', 'Ana')
    room.add_player('s2', 'Budi')
    room.remove_player('s1')
    room.remove_player('s1')
    room.remove_player('missing')
    assert room.player_names() == ['Budi']


def test_start_only_from_waiting(room):
    room.start()
    assert room.status is RoomStatus.ACTIVE
    assert room.current_index == 0
    with pytest.raises(InvalidTransition):
        room.start()


def test_start_without_questions_is_rejected(clock):
    empty = Room(code='EMPTY1', quiz_id='q', quiz_title='t', host_connection_id='h', questions=(), clock=clock)
    with pytest.raises(InvalidTransition):
        empty.start()
    assert empty.status is RoomStatus.WAITING


def test_advance_walks_the_script_then_ends(room):
    _started(room, 'Ana')
    room.submit_answer('ana', 0, 1)
    assert room.advance() is True
    assert room.current_index == 1
    assert room.submissions == {}

    assert room.advance() is False
    assert room.status is RoomStatus.ENDED
    assert room.advance() is False
    assert room.status is RoomStatus.ENDED


def test_advance_before_start_is_rejected(room):
    with pytest.raises(InvalidTransition):
        room.advance()


def test_submit_answer_scores_on_server_clock(room, clock):
    _started(room, 'Ana')
    clock.advance(3)
    # A client-claimed elapsed time never decides points
    result = room.submit_answer('ana', 0, 0.1)
    assert result.is_correct is True
    assert result.points_awarded == 20
    assert result.new_total == 20

    room.advance()
    room.mark_question_started()
    clock.advance(8)
    result = room.submit_answer('ana', 0, 0.1)
    assert result.points_awarded == 7  # floor(10 * 0.75)
    assert room.get_player('ana').score == 27


def test_wrong_answer_scores_nothing(room, clock):
    _started(room, 'Budi')
    clock.advance(4)
    result = room.submit_answer('budi', 2, 4)
    assert result.is_correct is False
    assert result.points_awarded == 0
    assert result.new_total == 0


def test_second_submission_is_rejected_and_score_unchanged(room):
    _started(room, 'Ana')
    room.submit_answer('ana', 0, 1)
    with pytest.raises(DuplicateSubmission):
        room.submit_answer('ana', 1, 1)
    with pytest.raises(DuplicateSubmission):
        room.submit_answer('ana', 0, 1)
    assert room.get_player('ana').score == 20
    assert room.submissions['ana'].chosen_option_index == 0


def test_late_submission_boundary(room):
    _started(room, 'Ana', 'Budi')
    with pytest.raises(LateSubmission):
        room.submit_answer('ana', 0, 15 + 2.01)
    result = room.submit_answer('budi', 0, 15 + 2.0)
    assert result.is_correct is True
    assert 'ana' not in room.submissions


def test_invalid_option_is_rejected(clock):
    two_options = (Question(text='?', options=('yes', 'no'), correct_option_index=1),)
    room = Room(code='TWO222', quiz_id='q', quiz_title='t', host_connection_id='h', questions=two_options, clock=clock)
    room.add_player('s1', 'Ana')
    room.start()
    room.mark_question_started()
    with pytest.raises(InvalidOption):
        room.submit_answer('s1', 2, 1)
    with pytest.raises(InvalidOption):
        room.submit_answer('s1', -1, 1)
    assert room.submissions == {}


def test_no_active_question(room):
    room.add_player('ana', 'Ana')
    with pytest.raises(NoActiveQuestion):
        room.submit_answer('ana', 0, 1)


def test_only_players_can_answer(room):
    _started(room, 'Ana')
    with pytest.raises(Unauthorized):
        room.submit_answer('host', 0, 1)


def test_leaderboard_orders_by_score_and_keeps_join_order_on_ties(room, clock):
    _started(room, 'Ana', 'Budi', 'Citra', 'Dewi')
    room.submit_answer('citra', 0, 1)
    board = room.leaderboard()
    assert [row['name'] for row in board] == ['Citra', 'Ana', 'Budi', 'Dewi']
    assert [row['rank'] for row in board] == [1, 2, 3, 4]


def test_tied_players_rank_in_join_order(room):
    _started(room, 'Ana', 'Budi', 'Citra')
    assert room.leaderboard() == [
        {'name': 'Ana', 'score': 0, 'rank': 1},
        {'name': 'Budi', 'score': 0, 'rank': 2},
        {'name': 'Citra', 'score': 0, 'rank': 3},
    ]


def test_live_stats_tallies_current_question(room):
    assert room.live_stats() is None
    _started(room, 'Ana', 'Budi', 'Citra')
    room.submit_answer('ana', 0, 1)
    room.submit_answer('budi', 3, 1)
    room.submit_answer('citra', 3, 1)
    assert room.live_stats() == {'a': 1, 'b': 0, 'c': 0, 'd': 2}
    room.advance()
    assert room.live_stats() == {'a': 0, 'b': 0, 'c': 0, 'd': 0}


def test_end_game_is_terminal(room):
    _started(room, 'Ana')
    room.end_game()
    room.end_game()
    assert room.status is RoomStatus.ENDED
    with pytest.raises(NoActiveQuestion):
        room.submit_answer('ana', 0, 1)
    with pytest.raises(InvalidTransition):
        room.add_player('s9', 'Late')
    room.remove_player('ana')
    assert room.player_names() == ['Ana']


def test_removing_player_drops_their_submission(room):
    _started(room, 'Ana', 'Budi')
    room.submit_answer('ana', 0, 1)
    room.remove_player('ana')
    assert set(room.submissions) == set()
    assert room.live_stats() == {'a': 0, 'b': 0, 'c': 0, 'd': 0}


@pytest.mark.parametrize('kwargs', [
    {'options': ('only',), 'correct_option_index': 0},
    {'options': ('a', 'b', 'c', 'd', 'e'), 'correct_option_index': 0},
    {'options': ('a', 'b'), 'correct_option_index': 2},
    {'options': ('a', 'b'), 'correct_option_index': 0, 'time_limit_seconds': 4},
    {'options': ('a', 'b'), 'correct_option_index': 0, 'base_points': 101},
])
def test_question_shape_is_enforced(kwargs):
    with pytest.raises(ValueError):
        Question(text='?', **kwargs)
