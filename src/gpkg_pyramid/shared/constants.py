from enum import Enum

# Tile edge length (px) for every produced tile
TILE_SIZE = 256

# Supported zoom range of the pyramid engine
MIN_ZOOM = 0
MAX_ZOOM = 20

# Latitude band where Web Mercator meters are symmetric with longitude.
# The two literals differ by one ULP; keep them as-is for tile parity with
# existing GeoPackage producers.
WEB_MERCATOR_MIN_LAT = -85.05112877980659
WEB_MERCATOR_MAX_LAT = 85.0511287798066

# Longitude extents in degrees
WORLD_LNG_HALF_SPAN_DEG = 180.0
WORLD_LNG_SPAN_DEG = 360.0

# Half of the Web Mercator world width (meters)
WEB_MERCATOR_HALF_WORLD_WIDTH = 20037508.342789244

# EPSG codes
WGS84_CODE = 4326
WEB_MERCATOR_CODE = 3857

WGS84_CRS = f'EPSG:{WGS84_CODE}'
WEB_MERCATOR_CRS = f'EPSG:{WEB_MERCATOR_CODE}'

# Fully transparent RGBA
TRANSPARENT = (0, 0, 0, 0)

# GeoPackage header values ('GPKG' and version 1.2.0)
GPKG_APPLICATION_ID = 0x47504B47
GPKG_USER_VERSION = 10200

# Data type written to gpkg_contents for raster pyramids
GPKG_TILES_DATA_TYPE = 'tiles'

# NGA tile scaling extension: readers fill missing levels from nearby ones
TILE_SCALING_EXTENSION = 'nga_tile_scaling'
TILE_SCALING_DEFINITION = (
    'http://ngageoint.github.io/GeoPackage/docs/extensions/tile-scaling.html'
)
TILE_SCALING_TYPE = 'in_out'
GPKG_EXTENSION_SCOPE = 'read-write'

# Default percentage buffer for square_expand
DEFAULT_BUFFER_PERCENTAGE = 0.0

# Upper bound (exclusive) for square_expand buffer percentage
MAX_BUFFER_PERCENTAGE = 0.5


class TileFormat(str, Enum):
    PNG = 'PNG'
    WEBP = 'WEBP'


def default_tile_format() -> TileFormat:
    return TileFormat.PNG
