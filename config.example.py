# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Use:
- .env (local, gitignored)
- config_local.py (local safe overrides, gitignored)

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "OLHO_APP_NAME": "App display name (default: O Terceiro Olho).",
    "OLHO_LOG_LEVEL": "Console logging level (default: INFO).",
    # Server API
    "OLHO_API_BASE_URL": "Site API base URL (default: http://localhost:3001/api).",
    "OLHO_CONNECT_TIMEOUT_SECONDS": "HTTP connect timeout (default: 5).",
    "OLHO_READ_TIMEOUT_SECONDS": "HTTP read timeout, never below the connect timeout (default: 10).",
    # Paths (gitignored)
    "OLHO_DATA_DIR": "Local data directory (default: .local/terceiro_olho).",
    "OLHO_STORE_PATH": "Local store SQLite path (default: <data_dir>/local_store.sqlite3).",
    # Switches
    "OLHO_OFFLINE_ENABLED": "Queue comments locally when the server is unreachable (true/false).",
    "OLHO_CONSOLE_ENABLED": "Enable the console REPL (true/false).",
    "OLHO_SYNC_ENABLED": "Run the pending comment sync loop in the background (true/false).",
    # Pending comments / timers
    "OLHO_MAX_RETRIES": "Send attempts per pending comment (default: 3).",
    "OLHO_RETRY_DELAY_SECONDS": "Fixed delay between retry rounds (default: 300).",
    "OLHO_RECONNECT_DELAY_SECONDS": "Delay before retrying after coming back online (default: 3).",
    "OLHO_REFRESH_INTERVAL_SECONDS": "Comment refresh interval while online, 0 disables (default: 60).",
    "OLHO_SYNC_POLL_SECONDS": "How often the sync loop wakes up (default: 1).",
    # Views
    "OLHO_CACHE_TTL_MINUTES": "News cache lifetime (default: 60).",
    "OLHO_PAGE_SIZE": "Comments per page (default: 10).",
    "OLHO_SEARCH_DEBOUNCE_MS": "Comment search debounce (default: 300).",
    "OLHO_DEFAULT_PAGE": "Page new comments are posted to (default: geral).",
}
