"""Application constants and defaults."""
from pathlib import Path

# API Configuration
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "google/gemini-2.5-flash"

# User configuration
USER_CONFIG_DIR = Path.home() / ".storyloom"
USER_CONFIG_FILE = USER_CONFIG_DIR / "config.yaml"
DEFAULT_LOG_DIR = USER_CONFIG_DIR / "logs"

# Project layout
PROJECT_FILE = "project.json"
OUTLINES_DIR = "outlines"
CONTENT_DIR = "content"
SETTINGS_DIR = "settings"
CONTENT_FILE_SUFFIX = ".md"
DEFAULT_PROJECT_TITLE = "Untitled Project"

# Story Bible
STORY_BIBLE_HEADER = "--- STORY BIBLE ---"
STORY_BIBLE_FOOTER = "-------------------"
EMPTY_DOCUMENT_MARKER = "(empty)"
READ_ERROR_MARKER = "(read error)"

# Sliding window of chapter summaries injected into context
DEFAULT_MAX_HISTORY_CHAPTERS = 20

# Export
EXPORT_SEPARATOR = "\n\n---\n\n"

# Generation Parameters
DEFAULT_TEMPERATURES = {
    'chat': 0.8,         # Conversational
    'expand': 0.9,       # Creative prose
    'summarize': 0.3     # Low for faithfulness
}

DEFAULT_MAX_TOKENS = {
    'chat': 4000,
    'expand': 4000,
    'summarize': 800
}
