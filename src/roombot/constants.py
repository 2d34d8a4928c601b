"""Shared constants for the roombot package.

This module contains constants that are used across multiple modules
to avoid circular imports. It does not import anything from the internal
codebase.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Use storage path if available, otherwise current directory
STORAGE_PATH = os.getenv("STORAGE_PATH", ".")

# Default path to the bot configuration file
CONFIG_PATH = Path(os.getenv("ROOMBOT_CONFIG", "config.yaml"))

# Matrix
MATRIX_HOMESERVER = os.getenv("MATRIX_HOMESERVER", "http://localhost:8008")
MATRIX_USER_ID = os.getenv("MATRIX_USER_ID")
MATRIX_ACCESS_TOKEN = os.getenv("MATRIX_ACCESS_TOKEN")
MATRIX_PASSWORD = os.getenv("MATRIX_PASSWORD")
MATRIX_SSL_VERIFY = os.getenv("MATRIX_SSL_VERIFY", "true").lower() != "false"

# OpenAI
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")

# Pseudo-state type key holding a room's role ledger
ROLE_LEDGER_EVENT_TYPE = "org.roombot.assigned_roles"

# Key of the application payload embedded in outbound message content
MESSAGE_CONTEXT_KEY = "context"

# Expectation tags carried in the message context
EXPECTING_ROLE_NAME = "role_name"

# Tool exposed to the assistant
ASSIGN_ROLE_TOOL = "assignRole"

MS_PER_DAY = 86_400_000
