"""Project constants."""

PROJECT_NAME = "payload-projector"
PROJECT_DESCRIPTION = "Atomic projection of in-memory file payloads into a directory"

# Reserved entries in the target directory
DATA_DIR_NAME = "..data"
NEW_DATA_DIR_NAME = "..data_tmp"

# Path validation limits
MAX_FILE_NAME_LENGTH = 255
MAX_PATH_LENGTH = 4096

# Snapshot directories must be traversable by group and other
SNAPSHOT_DIR_MODE = 0o755
SNAPSHOT_DIR_TIMESTAMP_FORMAT = "..%Y_%m_%d_%H_%M_%S."
