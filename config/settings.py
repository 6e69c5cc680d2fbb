"""
Application settings and configuration values.

This module centralizes all configuration values including:
- File paths
- API keys and credentials
- Model parameters
- Agent loop limits
- Storage and portal backend locations

Environment variables are loaded via python-dotenv.
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# ============================================================================
# PATHS
# ============================================================================

BASE_DIR = Path(__file__).parent.parent
DATA_DIR = BASE_DIR / "data"

# ============================================================================
# LLM CONFIGURATION
# ============================================================================

# Gemini API Settings
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")

if not GOOGLE_API_KEY:
    logger.warning(
        "⚠️  GOOGLE_API_KEY not found in environment variables. "
        "Model calls will fail until it is set in your .env file."
    )

# Model Parameters
TEMPERATURE = float(os.getenv("TEMPERATURE", "0.7"))
MAX_TOKENS = int(os.getenv("MAX_TOKENS", "8192"))
TOP_P = float(os.getenv("TOP_P", "0.95"))
TOP_K = int(os.getenv("TOP_K", "40"))

# Title generation runs with its own, cooler temperature
TITLE_TEMPERATURE = float(os.getenv("TITLE_TEMPERATURE", "0.3"))
TITLE_MAX_LENGTH = int(os.getenv("TITLE_MAX_LENGTH", "80"))

# ============================================================================
# AGENT LOOP
# ============================================================================

MAX_LOOP_ITERATIONS = int(os.getenv("MAX_LOOP_ITERATIONS", "7"))

# Synthetic user turn appended after a sentinel-free text reply
CONTINUATION_PROMPT = os.getenv("CONTINUATION_PROMPT", "ok continue")

# Tool calls requested together in one turn can fan out to a thread pool
PARALLEL_TOOL_CALLS = os.getenv("PARALLEL_TOOL_CALLS", "false").lower() == "true"
TOOL_WORKERS = int(os.getenv("TOOL_WORKERS", "4"))

# ============================================================================
# STORAGE
# ============================================================================

DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR / 'portal_agent.db'}")

# ============================================================================
# PORTAL BACKEND
# ============================================================================

# The academic and reporting operations live behind the portal's action API
PORTAL_API_URL = os.getenv("PORTAL_API_URL", "http://localhost:3000/api/actions")
PORTAL_API_TOKEN = os.getenv("PORTAL_API_TOKEN")
PORTAL_TIMEOUT = float(os.getenv("PORTAL_TIMEOUT", "30"))  # seconds

# ============================================================================
# LANGFUSE OBSERVABILITY
# ============================================================================

LANGFUSE_PUBLIC_KEY = os.getenv("LANGFUSE_PUBLIC_KEY")
LANGFUSE_SECRET_KEY = os.getenv("LANGFUSE_SECRET_KEY")
LANGFUSE_HOST = os.getenv("LANGFUSE_HOST", "https://cloud.langfuse.com")

# Enable/disable Langfuse tracing
LANGFUSE_ENABLED = os.getenv("LANGFUSE_ENABLED", "true").lower() == "true"

if LANGFUSE_ENABLED and (not LANGFUSE_PUBLIC_KEY or not LANGFUSE_SECRET_KEY):
    logger.info("ℹ️  Langfuse is enabled but keys are missing. Tracing will be disabled.")
    LANGFUSE_ENABLED = False

# ============================================================================
# DEVELOPMENT / DEBUG SETTINGS
# ============================================================================

DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Print configuration summary on import (only in debug mode)
if DEBUG:
    print("\n" + "="*60)
    print("🔧 Portal Agent Configuration Loaded")
    print("="*60)
    print(f"Model: {GEMINI_MODEL}")
    print(f"Temperature: {TEMPERATURE}")
    print(f"Max Loop Iterations: {MAX_LOOP_ITERATIONS}")
    print(f"Parallel Tool Calls: {PARALLEL_TOOL_CALLS}")
    print(f"Database: {DATABASE_URL}")
    print(f"Portal API: {PORTAL_API_URL}")
    print(f"Langfuse: {'✅ Enabled' if LANGFUSE_ENABLED else '❌ Disabled'}")
    print("="*60 + "\n")
