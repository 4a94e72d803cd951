"""
Custom exceptions

All business rule failures live here so the API layer can map them in one place.
"""


class PlanningPokerException(Exception):
    """Base class of every planning poker error"""
    pass


class ValidationError(PlanningPokerException):
    """A required field is empty or malformed (never retried)"""
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


# ============ Not found ============

class NotFound(PlanningPokerException):
    """The referenced entity does not exist"""
    pass


class RoomNotFound(NotFound):
    def __init__(self, room_code):
        self.room_code = room_code
        super().__init__(f"Room {room_code} not found")


class UserNotFound(NotFound):
    def __init__(self, user_id):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class StoryNotFound(NotFound):
    def __init__(self, story_id):
        self.story_id = story_id
        super().__init__(f"Story {story_id} not found")


# ============ Voting ============

class VotingClosed(PlanningPokerException):
    """Votes are revealed; clear them to start a new round first"""
    def __init__(self, room_code):
        self.room_code = room_code
        super().__init__(f"Votes are already revealed in room {room_code}")


# ============ Room code ============

class CodeGenerationExhausted(PlanningPokerException):
    """No unique room code after the maximum number of attempts; the caller may retry"""
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Failed to generate a unique room code after {attempts} attempts")


# ============ State transitions ============

class InvalidStateTransition(PlanningPokerException):
    """Illegal room status transition"""
    pass
