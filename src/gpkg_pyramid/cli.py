"""Command line entry point: ``gpkg-pyramid``."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from gpkg_pyramid.geo.bounding_box import BoundingBox, InvalidBoundingBoxError
from gpkg_pyramid.imaging.raster import InvalidRasterError
from gpkg_pyramid.service import build_pyramid
from gpkg_pyramid.settings import PyramidSettings, load_settings
from gpkg_pyramid.shared.constants import TileFormat
from gpkg_pyramid.tiles.store import GeoPackageTileStore

logger = logging.getLogger(__name__)


def setup_logging(log_file: str | Path | None = None, verbose: bool = False) -> None:
    """Log to stdout, and to ``log_file`` as well when given."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(str(log_path), encoding='utf-8'))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='gpkg-pyramid',
        description='Cut a geo-referenced image into a GeoPackage XYZ tile pyramid',
    )
    parser.add_argument('image', help='Overlay image (any format Pillow reads)')
    parser.add_argument(
        '--bbox',
        nargs=4,
        type=float,
        required=True,
        metavar=('WEST', 'SOUTH', 'EAST', 'NORTH'),
        help='WGS84 box covered by the image; WEST > EAST crosses the antimeridian',
    )
    parser.add_argument('-o', '--output', required=True, help='GeoPackage file to write')
    parser.add_argument('-t', '--table', help='Tile table name (default: image stem)')
    parser.add_argument(
        '-r', '--rotation', type=float, default=None,
        help='Counter-clockwise rotation in degrees',
    )
    parser.add_argument('-s', '--settings', help='TOML settings profile')
    parser.add_argument('--min-zoom', type=int, default=None)
    parser.add_argument('--max-zoom', type=int, default=None)
    parser.add_argument(
        '--format', choices=[f.value for f in TileFormat], default=None,
        help='Tile image format',
    )
    parser.add_argument(
        '--keep-empty', action='store_true', help='Store fully transparent tiles too'
    )
    parser.add_argument('--no-progress', action='store_true', help='Hide the progress bar')
    parser.add_argument('--log-file', help='Also write the log to this file')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser


def resolve_settings(args: argparse.Namespace) -> PyramidSettings:
    """Profile (or defaults) overridden by explicit command line flags."""
    settings = load_settings(args.settings) if args.settings else PyramidSettings()
    overrides: dict[str, object] = {}
    if args.min_zoom is not None:
        overrides['min_zoom'] = args.min_zoom
    if args.max_zoom is not None:
        overrides['max_zoom'] = args.max_zoom
    if args.format is not None:
        overrides['tile_format'] = args.format
    if args.keep_empty:
        overrides['skip_empty_tiles'] = False
    if not overrides:
        return settings
    return PyramidSettings.model_validate({**settings.model_dump(), **overrides})


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_file, args.verbose)

    try:
        settings = resolve_settings(args)
        bbox = BoundingBox(*args.bbox)
    except (ValidationError, InvalidBoundingBoxError, FileNotFoundError) as e:
        logger.error('Invalid arguments: %s', e)
        return 2

    table = args.table or Path(args.image).stem
    try:
        with GeoPackageTileStore(
            args.output, tile_format=settings.tile_format, tile_size=settings.tile_size
        ) as store:
            result = build_pyramid(
                args.image,
                bbox,
                store,
                table,
                rotation=args.rotation,
                settings=settings,
                progress=not args.no_progress,
            )
    except (InvalidRasterError, InvalidBoundingBoxError, OSError) as e:
        logger.error('Pyramid build failed: %s', e)
        return 1

    logger.info(
        'Wrote %d tiles to %s:%s (zoom %s)',
        result.tiles_written,
        args.output,
        table,
        result.zoom_levels,
    )
    return 0


if __name__ == '__main__':
    sys.exit(main())
