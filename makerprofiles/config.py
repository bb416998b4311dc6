"""Configuration and simple helper utilities for Maker Profiles."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

APP_NAME = "SMM2 Profile Maker"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000
RENDER_DATA_DIR = "/var/data"
DATA_FILE_NAME = "profiles.json"
SAVE_DELAY_SECONDS = 0.15

MAX_HANDLE_LENGTH = 32
MAX_NAME_LENGTH = 40
MAX_BIO_LENGTH = 300
MAX_TAGS = 2
MAX_TOP_COURSES = 10
MAX_COURSE_TITLE_LENGTH = 60
MAX_COURSE_ID_LENGTH = 20
MAX_COURSE_NOTE_LENGTH = 80
MAX_TAG_SUMMARY = 24
MAX_QUERY_LENGTH = 80
MAX_HANDLE_ATTEMPTS = 9999
DEFAULT_HANDLE = "user"

EDIT_SECRET_BYTES = 18
MIN_SECRET_LENGTH = 16
MAX_SECRET_LENGTH = 64
HANDLE_COOKIE_NAME = "mm_handle"
SECRET_COOKIE_NAME = "mm_secret"
IDENTITY_COOKIE_MAX_AGE_SECONDS = 60 * 60 * 24 * 365

TAG_OPTIONS = (
    "演奏",
    "レール演奏",
    "TROLL",
    "研究家",
    "ギミック",
    "一画面",
    "スタンダード",
    "みんバト",
    "みんクリ",
    "スピードラン",
    "高難易度",
    "ドット絵",
    "謎解き",
    "テクニック",
    "全自動",
    "タイムアタッカー",
    "ワールド",
    "雰囲気",
)


def get_port() -> int:
    """Return the listen port from env, falling back to the default."""
    raw = (os.environ.get("PORT") or "").strip()
    try:
        port = int(raw)
    except ValueError:
        return DEFAULT_PORT
    return port if 0 < port < 65536 else DEFAULT_PORT


def get_host() -> str:
    """Return the bind address from env."""
    return (os.environ.get("HOST") or "").strip() or DEFAULT_HOST


def preferred_data_dir() -> Path:
    """Return the configured data directory before writability checks.

    ``DATA_DIR`` wins; a Render deployment uses its persistent disk mount;
    anything else keeps data next to the working directory.
    """
    configured = (os.environ.get("DATA_DIR") or "").strip()
    if configured:
        return Path(configured)
    if os.environ.get("RENDER"):
        return Path(RENDER_DATA_DIR)
    return Path.cwd() / "data"


def get_log_level() -> str:
    """Return the configured logging level name."""
    return (os.environ.get("LOG_LEVEL") or "INFO").strip().upper() or "INFO"
