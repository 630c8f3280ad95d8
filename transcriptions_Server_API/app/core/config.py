# config.py
# Description: Configuration settings for the transcriptions sync server.
#
# Imports
import configparser
import os
from pathlib import Path
from typing import Any, Dict, Optional
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
#
########################################################################################################################
#
# Functions:

# --- Constants ---
# Client ID recorded on rows written by the server itself
SERVER_CLIENT_ID = "TRANSCRIPTIONS_SERVER_V1"

# Attribute keys on content entities are stored under this prefix
META_PREFIX = "_transcriptions_"
MAQAM_TAXONOMY = "maqam"
EDIT_CAPABILITY = "edit_pages"

DEFAULT_DEV_API_KEY = "default-sync-key-for-development"

CONFIG_FILE_PATH = Path(__file__).resolve().parent.parent.parent / "Config_Files" / "config.txt"


def load_comprehensive_config(config_path: Optional[Path] = None) -> configparser.ConfigParser:
    """
    Reads Config_Files/config.txt. A missing file yields an empty parser,
    so the server can run on environment variables alone.
    """
    config_path_obj = Path(config_path) if config_path else CONFIG_FILE_PATH
    config_parser = configparser.ConfigParser()
    if not config_path_obj.exists():
        logger.debug(f"No config file at {config_path_obj}; using environment and defaults only.")
        return config_parser
    try:
        config_parser.read(config_path_obj)
    except configparser.Error as e:
        logger.error(f"Error parsing config file {config_path_obj}: {e}")
        raise
    logger.debug(f"load_comprehensive_config(): Sections found in config: {config_parser.sections()}")
    return config_parser


def _lookup(parser: configparser.ConfigParser, env_name: str, section: str, option: str, default: str) -> str:
    # Environment wins over the config file, which wins over the default
    env_value = os.getenv(env_name)
    if env_value is not None and env_value != "":
        return env_value
    return parser.get(section, option, fallback=default)


def load_settings(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Loads all settings from environment variables, the config file, or defaults into a dictionary."""
    parser = load_comprehensive_config(config_path)

    # --- Server ---
    site_base_url = _lookup(parser, "SITE_BASE_URL", "Server", "site_base_url", "http://localhost:8000").rstrip("/")
    db_path = Path(_lookup(parser, "TRANSCRIPTIONS_DB_PATH", "Server", "database_path",
                           "./transcriptions_data/transcriptions.sqlite"))
    log_level = _lookup(parser, "LOG_LEVEL", "Server", "log_level", "INFO").upper()
    allowed_origins_raw = _lookup(parser, "ALLOWED_ORIGINS", "Server", "allowed_origins", "*")
    allowed_origins = [origin.strip() for origin in allowed_origins_raw.split(",") if origin.strip()]
    listing_cache_ttl = float(_lookup(parser, "LISTING_CACHE_TTL", "Server", "listing_cache_ttl", "300"))
    listing_cache_maxsize = int(_lookup(parser, "LISTING_CACHE_MAXSIZE", "Server", "listing_cache_maxsize", "8"))

    # --- Auth ---
    sync_api_key = _lookup(parser, "SYNC_API_KEY", "Auth", "sync_api_key", DEFAULT_DEV_API_KEY)
    readonly_api_key = _lookup(parser, "READONLY_API_KEY", "Auth", "readonly_api_key", "") or None

    # --- Document viewer ---
    render_quality = float(_lookup(parser, "PDF_RENDER_QUALITY", "Viewer", "render_quality", "1.5"))
    resize_debounce = float(_lookup(parser, "PDF_RESIZE_DEBOUNCE_SECONDS", "Viewer", "resize_debounce_seconds", "0.3"))
    load_timeout = float(_lookup(parser, "PDF_LOAD_TIMEOUT_SECONDS", "Viewer", "load_timeout_seconds", "30"))
    default_width = int(_lookup(parser, "PDF_DEFAULT_CONTAINER_WIDTH", "Viewer", "default_container_width", "800"))

    config_dict = {
        "SITE_BASE_URL": site_base_url,
        "TRANSCRIPTIONS_DB_PATH": db_path,
        "LOG_LEVEL": log_level,
        "ALLOWED_ORIGINS": allowed_origins or ["*"],
        "LISTING_CACHE_TTL": listing_cache_ttl,
        "LISTING_CACHE_MAXSIZE": listing_cache_maxsize,

        "SYNC_API_KEY": sync_api_key,
        "READONLY_API_KEY": readonly_api_key,

        "PDF_RENDER_QUALITY": render_quality,
        "PDF_RESIZE_DEBOUNCE_SECONDS": resize_debounce,
        "PDF_LOAD_TIMEOUT_SECONDS": load_timeout,
        "PDF_DEFAULT_CONTAINER_WIDTH": default_width,

        "SERVER_CLIENT_ID": SERVER_CLIENT_ID,
    }

    if config_dict["SYNC_API_KEY"] == DEFAULT_DEV_API_KEY:
        print("!!! WARNING: Using default SYNC_API_KEY. Set the SYNC_API_KEY environment variable for security. !!!")

    return config_dict


settings = load_settings()

ALLOWED_ORIGINS = settings["ALLOWED_ORIGINS"]

#
# End of config.py
########################################################################################################################
