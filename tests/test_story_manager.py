import pytest

from models import RoomStatus, Story
from core.room_manager import RoomManager
from core.story_manager import StoryManager
from core.voting_manager import VotingManager
from core.exceptions import RoomNotFound, StoryNotFound, ValidationError


def _stories(db, code, *titles):
    return [StoryManager.add_story(db, code, title).id for title in titles]


def test_add_story_is_trimmed_and_inactive(db, room):
    story = StoryManager.add_story(db, room["code"], "  Login page ", "  ")

    assert story.title == "Login page"
    assert story.description is None
    assert story.estimate is None
    assert story.is_active is False


def test_add_story_requires_a_title(db, room):
    with pytest.raises(ValidationError) as exc_info:
        StoryManager.add_story(db, room["code"], "   ")
    assert exc_info.value.field == "title"
    assert db.query(Story).count() == 0


def test_add_story_to_unknown_room(db):
    with pytest.raises(RoomNotFound):
        StoryManager.add_story(db, "NOROOM", "Login page")


def test_stories_keep_their_order(db, room):
    _stories(db, room["code"], "A", "B", "C")
    assert [s.title for s in StoryManager.list_stories(db, room["code"])] == ["A", "B", "C"]


def test_set_active_story_leaves_exactly_one_active(db, room):
    first, second, third = _stories(db, room["code"], "A", "B", "C")
    # corrupt the prior state on purpose
    for story in db.query(Story).filter(Story.id.in_([first, second])):
        story.is_active = True
    db.commit()

    updated = StoryManager.set_active_story(db, room["code"], third)

    assert [s.is_active for s in updated.stories] == [False, False, True]
    assert updated.active_story_id == third
    assert updated.status == RoomStatus.VOTING


def test_set_active_story_starts_a_fresh_round(db, room):
    first, second = _stories(db, room["code"], "A", "B")
    StoryManager.set_active_story(db, room["code"], first)
    VotingManager.cast_vote(db, room["alex_id"], "5")
    VotingManager.reveal_votes(db, room["code"])

    updated = StoryManager.set_active_story(db, room["code"], second)

    assert updated.votes_revealed is False
    assert updated.status == RoomStatus.VOTING
    assert all(u.vote is None and u.has_voted is False for u in updated.users)


def test_set_active_story_from_another_room(db, room):
    RoomManager.create_room(db, "Other", "Olga", code_generator=lambda: "OTHER1")
    foreign = StoryManager.add_story(db, "OTHER1", "Foreign").id

    with pytest.raises(StoryNotFound):
        StoryManager.set_active_story(db, room["code"], foreign)


def test_update_story_sets_estimate_and_keeps_other_fields(db, room):
    story_id = StoryManager.add_story(db, room["code"], "Login", "OAuth only").id

    story = StoryManager.update_story(db, story_id, estimate="8")

    assert story.estimate == "8"
    assert story.title == "Login"
    assert story.description == "OAuth only"


def test_update_story_estimate_is_not_checked_against_the_deck(db, room):
    story_id = StoryManager.add_story(db, room["code"], "Login").id
    assert StoryManager.update_story(db, story_id, estimate="about a week").estimate == "about a week"


def test_update_story_rejects_blank_title(db, room):
    story_id = StoryManager.add_story(db, room["code"], "Login").id
    with pytest.raises(ValidationError):
        StoryManager.update_story(db, story_id, title=" ")


def test_update_story_can_clear_description(db, room):
    story_id = StoryManager.add_story(db, room["code"], "Login", "notes").id
    assert StoryManager.update_story(db, story_id, description=None).description is None


def test_delete_inactive_story(db, room):
    first, second = _stories(db, room["code"], "A", "B")
    StoryManager.set_active_story(db, room["code"], first)

    updated = StoryManager.delete_story(db, second)

    assert [s.id for s in updated.stories] == [first]
    assert updated.active_story_id == first
    assert updated.status == RoomStatus.VOTING


def test_delete_active_story_returns_room_to_waiting(db, room):
    (story_id,) = _stories(db, room["code"], "A")
    StoryManager.set_active_story(db, room["code"], story_id)
    VotingManager.cast_vote(db, room["bea_id"], "3")

    updated = StoryManager.delete_story(db, story_id)

    assert updated.active_story_id is None
    assert updated.status == RoomStatus.WAITING
    assert updated.stories == []
    assert all(not u.has_voted for u in updated.users)


def test_delete_unknown_story(db):
    with pytest.raises(StoryNotFound):
        StoryManager.delete_story(db, 404)
