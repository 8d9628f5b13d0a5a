"""Configuration module for the cookbook servers.

This module handles loading configuration values from environment variables
(optionally via a .env file) for the example MCP servers.
"""

import os

from dotenv import load_dotenv

# Load environment variables from .env file for configuration
load_dotenv()

# Application settings exposed through the workbench config://app resource
APP_NAME = os.getenv("APP_NAME", "mcp-cookbook")
APP_ENVIRONMENT = os.getenv("APP_ENVIRONMENT", "development")

# SQLite explorer
SQLITE_DB_PATH = os.getenv("SQLITE_DB_PATH", "database.db")

# Weather server
WEATHER_API_URL = os.getenv("WEATHER_API_URL", "https://wttr.in")
WEATHER_TIMEOUT = float(os.getenv("WEATHER_TIMEOUT", "10"))  # seconds

# Workbench server
DOCS_DIR = os.getenv("DOCS_DIR", "docs")
USER_PROFILES_PATH = os.getenv("USER_PROFILES_PATH", "users.json")
