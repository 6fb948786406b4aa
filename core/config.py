"""
config.py -- Names and formats for the code checker (centralized for easy updates)

Folder layout, unit naming and report markup live HERE only.
Everything else imports from this module.
"""

# --- Session folders ---
CONTENTS_DIRNAME = "contents"
GENERATED_DIRNAME = "GeneratedCode"
SESSION_PREFIX = "Test-"

# Microseconds keep back-to-back sessions apart; collisions get a "-2", "-3" suffix
TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S-%f"
MAX_SESSION_ATTEMPTS = 100

# --- Code units ---
UNIT_PREFIX = "Test"
UNIT_EXTENSION = ".py"
FIGURE_SUFFIX = "_Figure"
FIGURE_EXTENSION = ".png"

# --- Report ---
DIVIDER = "-" * 15
IMAGE_CLASS = "ml-figure"
# The display root sits this many levels above the session folder
IMAGE_ROOT_DEPTH = 2

RUN_LOG_NAME = "run_log.md"
