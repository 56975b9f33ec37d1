from .flashcards import FlashcardModule, FlashcardRepository, NewFlashcard, StudySession, flashcards
from .user_profiles import ActivityDay, ProfileNotFoundError, UserProfileRepository, user_profiles

__all__ = [
    "ActivityDay",
    "FlashcardModule",
    "FlashcardRepository",
    "NewFlashcard",
    "ProfileNotFoundError",
    "StudySession",
    "UserProfileRepository",
    "flashcards",
    "user_profiles",
]
