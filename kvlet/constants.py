"""Repository-wide constants."""

REPO_DIR = ".kvlet"
DEFAULT_BRANCH = "master"

INITIAL_MESSAGE = "initial commit"
INITIAL_TIMESTAMP = 0.0

BLOB = "blob"
COMMIT = "commit"
OBJECT_KINDS = (BLOB, COMMIT)

OBJECTS_AREA = "objects"
REFS_AREA = "refs"
STAGE_AREA = "stage"

SHORT_ID_LENGTH = 7
