"""Configuration for the session synthesis pipeline."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root (parent of impact_synth/)
load_dotenv(Path(__file__).parent.parent / ".env")

# OpenAI-compatible text generation
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL")
GENERATION_MODEL = os.getenv("GENERATION_MODEL", "gpt-4o-mini")
GENERATION_TEMPERATURE = float(os.getenv("GENERATION_TEMPERATURE", "0.7"))
GENERATION_TIMEOUT = float(os.getenv("GENERATION_TIMEOUT", "120"))

# Database configuration
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/impact_dashboard.db")

# Handle Railway/Heroku style postgres:// URLs (needs postgresql://)
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# Data directories
DATA_DIR = "data"
SESSION_OUTPUT_DIR = os.getenv("SESSION_OUTPUT_DIR", os.path.join(DATA_DIR, "sessions"))

# "empty" returns no content when a generator fails, "fixed" substitutes canned text
FALLBACK_POLICY = os.getenv("FALLBACK_POLICY", "empty")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Outcome sampling: a draw in 1..100 maps onto the first threshold it does not exceed
OUTCOME_THRESHOLDS = [
    (70, "positive"),
    (90, "neutral"),
    (100, "negative"),
]

# Review / rating-question bands per outcome (inclusive)
RATING_BANDS = {
    "positive": (4, 5),
    "neutral": (3, 3),
    "negative": (1, 2),
}

# Tone instructions handed to the text-generation service.
# Application and pre-survey answers describe the starting point, so their
# tone only hints at how the participant will later experience the program.
APPLICATION_TONES = {
    "positive": "motivated and open to change, clear about what they want help with",
    "neutral": "hopeful but hesitant, unsure what the program can change",
    "negative": "guarded and worn down, skeptical that anything will help",
}

PRE_SURVEY_TONES = {
    "positive": "struggling but resilient, with some strengths to build on",
    "neutral": "moderately strained, with mixed strengths and weaknesses",
    "negative": "heavily strained, with low scores across most areas",
}

REFLECTION_TONES = {
    "positive": "positive, showing growth and improvement",
    "neutral": "mixed, showing some improvement but also ongoing challenges",
    "negative": "negative, showing minimal improvement and continued struggles",
}

POST_SURVEY_TONES = {
    "positive": "very positive, showing significant improvement",
    "neutral": "neutral, showing some improvement but also ongoing challenges",
    "negative": "negative, showing minimal improvement and continued struggles",
}

# Completion timestamps are backdated relative to generation time
PRE_SURVEY_OFFSET_DAYS = 30
REFLECTION_OFFSET_DAYS = 15
POST_SURVEY_OFFSET_DAYS = 1
SESSION_COMPLETED_OFFSET_DAYS = 1

# Used when the profile call fails or returns something unparseable
FALLBACK_PROFILE = {
    "name": "John Smith",
    "age": 45,
    "jobTitle": "Marketing Manager",
    "yearsInJob": 5,
    "income": 85000,
    "maritalStatus": "Married",
    "numberOfChildren": 2,
    "currentChallenges": [
        "Experiencing burnout from high work demands",
        "Struggling to balance career and family responsibilities",
        "Difficulty delegating tasks to team members",
    ],
    "hopefulOutcomes": [
        "Achieve better work-life balance",
        "Develop effective delegation techniques",
        "Improve communication with colleagues and family",
    ],
}

MARITAL_STATUSES = ["Single", "Married", "Divorced", "Widowed"]
