"""Constants and presets for infradraw diagrams."""

from typing import Any, Dict

from .types import BlockCategory


PROVIDER_SOURCE = "registry.terraform.io/hashicorp/aws"
CONFIG_FILE_EXTENSION = ".tf"
DEFAULT_BRANCH = "master"
NO_RESOURCE_DESCRIPTION = "No Resource Description Available."

GITHUB_API_URL = "https://api.github.com"
GITHUB_RAW_URL = "https://raw.githubusercontent.com"

DEFAULT_BLOCK_WIDTH = 120.0
DEFAULT_BLOCK_HEIGHT = 40.0
MIN_BLOCK_WIDTH = 60.0
MIN_BLOCK_HEIGHT = 30.0

# Maximum distance (canvas units) between a drop position and a connection
# point for the drop to count as a hit.
CONNECTION_PROXIMITY_THRESHOLD = 30.0

IMPORT_GRID_COLUMNS = 3
IMPORT_GRID_ORIGIN_X = 50.0
IMPORT_GRID_ORIGIN_Y = 50.0
IMPORT_GRID_SPACING_X = 200.0
IMPORT_GRID_SPACING_Y = 100.0


CATEGORY_PRESETS: Dict[BlockCategory, Dict[str, Any]] = {
    BlockCategory.COMPUTE: {
        "color": "#f29c38",
        "text_color": "#1b2028",
        "title": "Compute",
    },
    BlockCategory.DATABASE: {
        "color": "#3b6fd4",
        "text_color": "#f5f6f8",
        "title": "Database",
    },
    BlockCategory.STORAGE: {
        "color": "#5aa65a",
        "text_color": "#1b2028",
        "title": "Storage",
    },
    BlockCategory.NETWORKING: {
        "color": "#8c5fc7",
        "text_color": "#f5f6f8",
        "title": "Networking",
    },
    BlockCategory.SECURITY: {
        "color": "#d4483b",
        "text_color": "#f5f6f8",
        "title": "Security",
    },
    BlockCategory.INTEGRATION: {
        "color": "#d6407f",
        "text_color": "#f5f6f8",
        "title": "Integration",
    },
    BlockCategory.MONITORING: {
        "color": "#3d495c",
        "text_color": "#f5f6f8",
        "title": "Monitoring",
    },
}
