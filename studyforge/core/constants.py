"""Application-wide constants."""

# Default principal for development when no credentials are supplied
DEFAULT_USER_ID = "studyforge-dev-user"
DEFAULT_USER_NAME = "StudyForge Dev User"
DEFAULT_USER_EMAIL = "studyforge-dev-user@example.com"
DEFAULT_USER = {
    "id": DEFAULT_USER_ID,
    "name": DEFAULT_USER_NAME,
    "email": DEFAULT_USER_EMAIL
}

# Source processing states
PROCESSING_STATUS_PROCESSING = "processing"
PROCESSING_STATUS_COMPLETED = "completed"

# Generation states
GENERATION_STATUS_PROCESSING = "processing"
GENERATION_STATUS_COMPLETED = "completed"
GENERATION_STATUS_FAILED = "failed"
TERMINAL_GENERATION_STATUSES = {GENERATION_STATUS_COMPLETED, GENERATION_STATUS_FAILED}

# Generation types
GENERATION_TYPE_BULK = "bulk"
GENERATION_TYPE_SELECTIVE = "selective"
GENERATION_TYPE_DIRECT_TEXT = "direct-text"

# Generated item types
ITEM_TYPE_FLASHCARD = "flashcard"
ITEM_TYPE_MULTIPLE_CHOICE = "multiple-choice"
ITEM_TYPE_OPEN_ENDED = "open-ended"
ITEM_TYPE_SUMMARY = "summary"

# Breakdown keys reported per generation
BREAKDOWN_KEYS = {
    ITEM_TYPE_FLASHCARD: "flashcards",
    ITEM_TYPE_MULTIPLE_CHOICE: "multiple_choice",
    ITEM_TYPE_OPEN_ENDED: "open_ended",
    ITEM_TYPE_SUMMARY: "summaries",
}

ITEM_TITLE_MAX_LENGTH = 100
