"""Default configuration values and model placeholders for struct-canvas."""

# Watcher endpoint
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 5874
DEFAULT_PATH = "/ws"

# Cache-busting token appended as ?lastMod=... on connect
DEFAULT_LAST_MOD = "143918dd9ce16851"

# Seconds the diagram stays in "transitioning" state after a model change
DEFAULT_TRANSITION_WINDOW = 0.3

# Outbound commands waiting to be written before send() starts refusing
DEFAULT_SEND_QUEUE_SIZE = 256

# Name shown for the placeholder package/file before the first snapshot
LOADING_NAME = "loading..."

# Placeholders for entities created in the editor
PLACEHOLDER_NAME = "[name]"
PLACEHOLDER_TYPE = "[type]"

# Type literals that get their own presentation class; everything else is "other"
PRIMITIVE_KINDS = frozenset({"string", "int", "bool"})

# Mini-map zoom factor
MINI_MAP_SCALE = 0.3

# Id of the SVG marker drawn at the destination of each edge
ARROW_MARKER_ID = "arrowhead"
