"""Centralized defaults for the dispatch layer.

Constants only; no imports from other package modules so every layer can
depend on this file without cycles.
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Tuple

# ---- Retry policy ----
DEFAULT_RETRY_COUNT = 3
DEFAULT_RETRY_DELAY_SECONDS = 1.0
MIN_RETRY_DELAY_SECONDS = 0.1

# ---- Per-attempt timeouts ----
DEFAULT_TIMEOUT_MS = 30000

# ---- Vendor wire constants ----
ANTHROPIC_API_VERSION = "2023-06-01"
ANTHROPIC_DEFAULT_MAX_TOKENS = 2000
ANTHROPIC_PROBE_MAX_TOKENS = 10
ANTHROPIC_MODELS: Tuple[str, ...] = (
    "claude-3-opus-20240229",
    "claude-3-sonnet-20240229",
    "claude-3-haiku-20240307",
)
AZURE_DEFAULT_API_VERSION = "2024-02-15-preview"
OPENAI_OFFICIAL_HOST = "api.openai.com"

# ---- Streaming ----
SSE_DATA_PREFIX = "data:"
SSE_DONE_SENTINEL = "[DONE]"

# ---- Vendor presets (base URL and suggested models) ----
VENDOR_PRESETS: Dict[str, Dict[str, object]] = {
    "openai": {
        "name": "OpenAI",
        "base_url": "https://api.openai.com/v1",
        "models": ["gpt-4o", "gpt-4o-mini", "gpt-3.5-turbo"],
    },
    "glm": {
        "name": "智谱 GLM",
        "base_url": "https://open.bigmodel.cn/api/paas/v4",
        "models": ["glm-4-flash", "glm-4-plus", "glm-4-air"],
    },
    "ollama": {
        "name": "Ollama",
        "base_url": "http://localhost:11434/v1",
        "models": ["llama3", "qwen2"],
    },
    "anthropic": {
        "name": "Anthropic",
        "base_url": "https://api.anthropic.com/v1",
        "models": list(ANTHROPIC_MODELS),
    },
    "azure": {
        "name": "Azure OpenAI",
        "base_url": "",
        "models": [],
    },
    "custom": {
        "name": "Custom",
        "base_url": "",
        "models": [],
    },
}

# ---- Task names known to the surrounding application ----
TASK_RESUME_ANALYSIS = "resume_analysis"
TASK_RESUME_OPTIMIZATION = "resume_optimization"
TASK_QUESTION_GENERATION = "question_generation"
KNOWN_TASKS: Tuple[str, ...] = (
    TASK_RESUME_ANALYSIS,
    TASK_RESUME_OPTIMIZATION,
    TASK_QUESTION_GENERATION,
)

# ---- Outcome log ----
OUTCOME_RETENTION_DAYS = 30

# ---- SQLite ----
SQLITE_BUSY_TIMEOUT_MS = 5000
SQLITE_JOURNAL_MODE = "WAL"
SQLITE_SYNCHRONOUS = "NORMAL"
DEFAULT_DB_PATH = Path.home() / ".llm_dispatch" / "dispatch.db"
