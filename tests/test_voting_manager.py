import pytest

from models import RoomStatus, User
from core.room_manager import RoomManager
from core.story_manager import StoryManager
from core.voting_manager import VotingManager
from core.exceptions import (
    InvalidStateTransition,
    UserNotFound,
    ValidationError,
    VotingClosed,
)


@pytest.fixture
def voting_room(db, room):
    story_id = StoryManager.add_story(db, room["code"], "Checkout").id
    StoryManager.set_active_story(db, room["code"], story_id)
    return dict(room, story_id=story_id)


def _assert_vote_flags_consistent(db):
    db.expire_all()
    for user in db.query(User).all():
        assert user.has_voted == (user.vote is not None)


def test_cast_vote(db, voting_room):
    user = VotingManager.cast_vote(db, voting_room["alex_id"], "5")

    assert user.vote == "5"
    assert user.has_voted is True
    _assert_vote_flags_consistent(db)


def test_revoting_overwrites(db, voting_room):
    VotingManager.cast_vote(db, voting_room["alex_id"], "5")
    user = VotingManager.cast_vote(db, voting_room["alex_id"], "13")
    assert user.vote == "13"


def test_empty_vote_is_rejected(db, voting_room):
    with pytest.raises(ValidationError) as exc_info:
        VotingManager.cast_vote(db, voting_room["alex_id"], "  ")
    assert exc_info.value.field == "vote"


def test_vote_outside_the_deck_is_rejected(db, voting_room):
    with pytest.raises(ValidationError):
        VotingManager.cast_vote(db, voting_room["alex_id"], "XL")


def test_vote_for_unknown_user(db):
    with pytest.raises(UserNotFound):
        VotingManager.cast_vote(db, 12345, "5")


def test_clear_vote(db, voting_room):
    VotingManager.cast_vote(db, voting_room["alex_id"], "5")
    user = VotingManager.clear_vote(db, voting_room["alex_id"])

    assert user.vote is None
    assert user.has_voted is False


def test_no_voting_after_reveal(db, voting_room):
    VotingManager.cast_vote(db, voting_room["alex_id"], "5")
    VotingManager.reveal_votes(db, voting_room["code"])

    with pytest.raises(VotingClosed):
        VotingManager.cast_vote(db, voting_room["bea_id"], "8")
    with pytest.raises(VotingClosed):
        VotingManager.clear_vote(db, voting_room["alex_id"])

    db.expire_all()
    assert db.get(User, voting_room["alex_id"]).vote == "5"
    assert db.get(User, voting_room["bea_id"]).vote is None


def test_reveal_before_everyone_voted(db, voting_room):
    VotingManager.cast_vote(db, voting_room["alex_id"], "5")
    VotingManager.cast_vote(db, voting_room["bea_id"], "5")

    room, result = VotingManager.reveal_votes(db, voting_room["code"])

    assert room.votes_revealed is True
    assert room.status == RoomStatus.REVEALED
    assert result.vote_counts == {"5": 2}
    assert result.consensus == "5"
    assert result.has_consensus is True


def test_reveal_is_idempotent(db, voting_room):
    VotingManager.reveal_votes(db, voting_room["code"])
    room, result = VotingManager.reveal_votes(db, voting_room["code"])

    assert room.status == RoomStatus.REVEALED
    assert result.vote_counts == {}
    assert result.has_consensus is False


def test_clear_votes_starts_a_new_round_on_the_same_story(db, voting_room):
    VotingManager.cast_vote(db, voting_room["alex_id"], "5")
    VotingManager.cast_vote(db, voting_room["bea_id"], "8")
    VotingManager.reveal_votes(db, voting_room["code"])

    room = VotingManager.clear_votes(db, voting_room["code"])

    assert room.votes_revealed is False
    assert room.status == RoomStatus.VOTING
    assert room.active_story_id == voting_room["story_id"]
    assert all(u.vote is None and not u.has_voted for u in room.users)
    _assert_vote_flags_consistent(db)

    assert VotingManager.cast_vote(db, voting_room["bea_id"], "3").vote == "3"


def test_discussion_only_after_reveal(db, voting_room):
    with pytest.raises(InvalidStateTransition):
        VotingManager.begin_discussion(db, voting_room["code"])

    VotingManager.reveal_votes(db, voting_room["code"])
    room = VotingManager.begin_discussion(db, voting_room["code"])
    assert room.status == RoomStatus.DISCUSSION

    assert VotingManager.clear_votes(db, voting_room["code"]).status == RoomStatus.VOTING


def test_current_consensus_is_empty_while_hidden(db, voting_room):
    VotingManager.cast_vote(db, voting_room["alex_id"], "5")
    room = RoomManager.get_room_by_code(db, voting_room["code"])
    assert VotingManager.current_consensus(room).vote_counts == {}

    room, _ = VotingManager.reveal_votes(db, voting_room["code"])
    assert VotingManager.current_consensus(room).vote_counts == {"5": 1}


def test_deck_follows_the_rooms_voting_system(db):
    RoomManager.create_room(db, "Sizes", "Hanna", "T-Shirt Sizes", code_generator=lambda: "SIZES1")
    _, user = RoomManager.join_room(db, "SIZES1", "Alex")

    assert VotingManager.cast_vote(db, user.id, "XL").vote == "XL"
    with pytest.raises(ValidationError):
        VotingManager.cast_vote(db, user.id, "5")
