"""Defaults for map instances, source loading and extent fitting."""

# Canvas settings (viewBox units, the renderer scales to the real element)
DEFAULT_CANVAS_WIDTH = 800
DEFAULT_CANVAS_HEIGHT = 400

# Extent fitting
DEFAULT_EXTENT_FILL = 0.95  # fraction of the canvas covered by the fitted geometry
DEFAULT_FOCAL_CENTER = (0.5, 0.5)  # canvas fractions

# Feature identification
DEFAULT_KEY_FIELD = "id"
CANONICAL_KEY = "canonical_key"  # synthetic property name for Feature.canonical_key
LAYER_NAME_PREFIX = "layer-"

# Fetch settings
FETCH_TIMEOUT = 30  # seconds
MAX_RETRIES = 3
RETRY_DELAY = 1  # seconds

# Source decoding, by file extension
FORMAT_MAP: dict[str, str] = {
    ".json": "json",
    ".geojson": "json",
    ".topojson": "json",
    ".csv": "csv",
    ".tsv": "tsv",
    ".txt": "tsv",
}

# Metadata applied to every attribute before pattern-matched specs
DEFAULT_METADATA: dict = {
    "scale": "quantize",
    "colors": ["#ffffcc", "#c7e9b4", "#7fcdbb", "#41b6c4", "#2c7fb8", "#253494"],
    "undefined_value": "undefined",
}
