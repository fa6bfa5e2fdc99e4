# config_local.example.py

"""
Example local overrides.

Usage:
  1) Copy this file to `config_local.py`
  2) Adjust values for your machine
  3) Never commit `config_local.py` (it is gitignored)

Prefer `.env`. This file should contain only the switches below.
"""

# Example: point the client at a staging server
# API_BASE_URL = "http://192.168.0.10:3001/api"

# Example: fail comments immediately instead of queueing them
# OFFLINE_ENABLED = False

# Example: no background retry loop (use /retry by hand)
# SYNC_ENABLED = False
