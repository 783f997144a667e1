"""
Configuration for the Avatar Build Pipeline Backend
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Paths
BASE_DIR = Path(__file__).parent
PROJECT_ROOT = Path(os.getenv("AVATAR_PROJECT_ROOT", str(Path.cwd()))).resolve()
BUILDS_DIR_NAME = os.getenv("AVATAR_BUILDS_DIR", "Builds")
TEMP_DIR_NAME = os.getenv("AVATAR_TEMP_DIR", "Temp")
BUILDS_DIR = PROJECT_ROOT / BUILDS_DIR_NAME

# Bundle Configuration
BUNDLE_EXTENSION = os.getenv("AVATAR_BUNDLE_EXTENSION", "noxw").lstrip(".")
FILENAME_DATE_FORMAT = "%Y-%m-%d-%H%M"
MAIN_ADDRESSABLE_NAME = "Avatar"  # Stable name external consumers load the avatar by
PREFAB_EXTENSION = ".prefab"
COMPRESSION_LEVEL = 9

# Platforms the packager accepts (override with a comma separated list)
DEFAULT_SUPPORTED_PLATFORMS = "windows,linux,macos,android"
SUPPORTED_PLATFORMS = [
    name.strip().lower()
    for name in os.getenv("AVATAR_SUPPORTED_PLATFORMS", DEFAULT_SUPPORTED_PLATFORMS).split(",")
    if name.strip()
]

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Server Configuration
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
CORS_ORIGINS = [
    "http://localhost:8000",
    "http://127.0.0.1:8000",
    "http://localhost:8080",
    "http://127.0.0.1:8080",
]
