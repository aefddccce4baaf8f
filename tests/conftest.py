"""
Shared test setup: a throwaway SQLite database for the app engine
"""

import os

os.environ["DATABASE_URL"] = "sqlite:///./test_gamesync.db"
os.environ["USE_FIREBASE"] = "false"
