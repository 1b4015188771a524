"""
Root entry point for the Mood Diary application.
Bootstraps the mood_diary package and runs the main orchestrator.
"""

import sys
import os

# Ensure the project root is in python path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from mood_diary.main import main

if __name__ == "__main__":
    sys.exit(main())
