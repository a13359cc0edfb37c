"""RDR - version constants.

Keep this module tiny and dependency-free. It is imported by core models,
persistence and the CLI, and must not have side effects.
"""

APP_NAME = "RelativeDraw"
APP_SHORT = "RDR"

APP_VERSION = "0.2.0"
# Document schema version used for .rdr.json files.
# NOTE: must be int because `rdraw.core.serialization` compares it as integer.
SCHEMA_VERSION = 1

# Default bounding box corners for a composite node (persisted strings).
DEFAULT_TOP_LEFT = "0, 0"
DEFAULT_TOP_RIGHT = "100, 0"
DEFAULT_BOTTOM_LEFT = "0, 100"

# Default for any path control point that cannot be read back.
DEFAULT_POINT = "0, 0"
