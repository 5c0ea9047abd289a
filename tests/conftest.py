"""Pytest configuration and fixtures."""

import http.server
import socketserver
import sqlite3
import threading
from pathlib import Path

import pytest

from tilelayers.core.front_context import QueueFrontContext
from tilelayers.core.task_service import TaskService
from tilelayers.utils.capabilities_parser import parse_capabilities_file

FIXTURES_DIR = Path(__file__).parent / "fixtures"

EPSG_4326_DEFINITION = (
    'GEOGCS["WGS 84",DATUM["WGS_1984",SPHEROID["WGS 84",6378137,298.257223563]],'
    'PRIMEM["Greenwich",0],UNIT["degree",0.0174532925199433],AUTHORITY["EPSG","4326"]]'
)


@pytest.fixture
def fixtures_dir():
    """Directory holding capability document fixtures."""
    return FIXTURES_DIR


@pytest.fixture
def capabilities_130():
    """Parsed WMS 1.3.0 capabilities fixture."""
    return parse_capabilities_file(FIXTURES_DIR / "wms_130_capabilities.xml")


@pytest.fixture
def capabilities_111():
    """Parsed WMS 1.1.1 capabilities fixture."""
    return parse_capabilities_file(FIXTURES_DIR / "wms_111_capabilities.xml")


@pytest.fixture
def front():
    """Queue-backed front context drained by the test thread."""
    return QueueFrontContext()


@pytest.fixture
def task_service():
    """Small task service, shut down after the test."""
    service = TaskService(max_workers=2, max_pending=8, thread_name_prefix="TestLayerTask")
    yield service
    service.shutdown(wait=True)


@pytest.fixture
def wms_server():
    """
    Fixture for creating a local WMS for testing.

    Serves whatever document is installed with ``set_capabilities`` for any
    request path, ignoring query parameters, and records the request paths.

    Usage:
        def test_service(wms_server):
            wms_server.set_capabilities("wms_130_capabilities.xml")
            client.retrieve_capabilities(wms_server.address)

    Attributes:
        port (int): The port the server is listening on
        address (str): Service address to hand to the client
        requests (list[str]): Request paths received, including query strings
    """

    class WmsServer:
        def __init__(self, port, server, thread):
            self.port = port
            self.requests = []
            self.body = b""
            self.status = 200
            self.content_type = "text/xml"
            self._server = server
            self._thread = thread

        @property
        def address(self):
            return f"http://127.0.0.1:{self.port}/wms"

        def set_capabilities(self, fixture_name: str):
            self.body = (FIXTURES_DIR / fixture_name).read_bytes()
            self.status = 200
            self.content_type = "text/xml"

        def set_response(self, body: bytes, status: int = 200, content_type: str = "text/xml"):
            self.body = body
            self.status = status
            self.content_type = content_type

    class WmsHTTPRequestHandler(http.server.BaseHTTPRequestHandler):
        def do_GET(self):
            wms = self.server.wms
            wms.requests.append(self.path)
            self.send_response(wms.status)
            self.send_header("Content-Type", wms.content_type)
            self.send_header("Content-Length", str(len(wms.body)))
            self.end_headers()
            self.wfile.write(wms.body)

        def log_message(self, format, *args):
            pass  # Suppress logging during tests

    # Start server on auto-assigned port
    server = socketserver.TCPServer(("127.0.0.1", 0), WmsHTTPRequestHandler)
    port = server.server_address[1]

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    wms_server_instance = WmsServer(port, server, thread)
    server.wms = wms_server_instance
    yield wms_server_instance

    server.shutdown()
    server.server_close()
    thread.join(timeout=1.0)


def _create_metadata_tables(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE gpkg_spatial_ref_sys (
            srs_name TEXT NOT NULL,
            srs_id INTEGER PRIMARY KEY,
            organization TEXT NOT NULL,
            organization_coordsys_id INTEGER NOT NULL,
            definition TEXT NOT NULL,
            description TEXT
        );
        CREATE TABLE gpkg_contents (
            table_name TEXT NOT NULL PRIMARY KEY,
            data_type TEXT NOT NULL,
            identifier TEXT UNIQUE,
            description TEXT DEFAULT '',
            last_change DATETIME NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ','now')),
            min_x DOUBLE,
            min_y DOUBLE,
            max_x DOUBLE,
            max_y DOUBLE,
            srs_id INTEGER
        );
        CREATE TABLE gpkg_tile_matrix_set (
            table_name TEXT NOT NULL PRIMARY KEY,
            srs_id INTEGER NOT NULL,
            min_x DOUBLE NOT NULL,
            min_y DOUBLE NOT NULL,
            max_x DOUBLE NOT NULL,
            max_y DOUBLE NOT NULL
        );
        CREATE TABLE gpkg_tile_matrix (
            table_name TEXT NOT NULL,
            zoom_level INTEGER NOT NULL,
            matrix_width INTEGER NOT NULL,
            matrix_height INTEGER NOT NULL,
            tile_width INTEGER NOT NULL,
            tile_height INTEGER NOT NULL,
            pixel_x_size DOUBLE NOT NULL,
            pixel_y_size DOUBLE NOT NULL,
            CONSTRAINT pk_ttm PRIMARY KEY (table_name, zoom_level)
        );
        """
    )
    conn.executemany(
        "INSERT INTO gpkg_spatial_ref_sys VALUES (?, ?, ?, ?, ?, ?)",
        [
            ("WGS 84 geodetic", 4326, "EPSG", 4326, EPSG_4326_DEFINITION, "longitude/latitude coordinates"),
            ("WGS 84 / Pseudo-Mercator", 3857, "EPSG", 3857, "undefined", None),
        ],
    )


@pytest.fixture
def make_geopackage(tmp_path):
    """
    Factory fixture writing GeoPackage files into tmp_path.

    Each table spec is a dict with ``name`` and optional ``data_type`` (default
    "tiles"), ``srs_id`` (4326), ``matrix_srs_id`` (same as srs_id, None for no
    tile matrix set row), ``zoom_levels`` (0..2), ``bounds`` (west, south, east,
    north; None for no contents bounds), ``identifier`` and ``create_table``
    (default True). Zoom level ``z`` has a matrix of 2**(z+1) by 2**z tiles.
    Levels up to 2 store every tile and finer levels store only column 0,
    row 0. Tile data is ``f"{zoom}/{column}/{row}"``.

    Usage:
        def test_archive(make_geopackage):
            path = make_geopackage([{"name": "oceana", "zoom_levels": range(10)}])

    Returns:
        Callable taking table specs and an optional file name, returning the path
    """

    def _make(tables, filename: str = "test.gpkg") -> Path:
        path = tmp_path / filename
        conn = sqlite3.connect(path)
        try:
            _create_metadata_tables(conn)
            for spec in tables:
                name = spec["name"]
                srs_id = spec.get("srs_id", 4326)
                matrix_srs_id = spec.get("matrix_srs_id", srs_id)
                zoom_levels = list(spec.get("zoom_levels", range(3)))
                bounds = spec.get("bounds", (-180.0, -90.0, 180.0, 90.0))
                min_x, min_y, max_x, max_y = bounds if bounds is not None else (None, None, None, None)

                conn.execute(
                    "INSERT INTO gpkg_contents (table_name, data_type, identifier, description, "
                    "min_x, min_y, max_x, max_y, srs_id) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        name,
                        spec.get("data_type", "tiles"),
                        spec.get("identifier", name),
                        spec.get("description", ""),
                        min_x,
                        min_y,
                        max_x,
                        max_y,
                        srs_id,
                    ),
                )

                if matrix_srs_id is not None:
                    conn.execute(
                        "INSERT INTO gpkg_tile_matrix_set VALUES (?, ?, ?, ?, ?, ?)",
                        (name, matrix_srs_id, -180.0, -90.0, 180.0, 90.0),
                    )

                if not spec.get("create_table", True):
                    continue

                conn.execute(
                    f'CREATE TABLE "{name}" ('
                    "id INTEGER PRIMARY KEY AUTOINCREMENT, zoom_level INTEGER NOT NULL, "
                    "tile_column INTEGER NOT NULL, tile_row INTEGER NOT NULL, tile_data BLOB NOT NULL, "
                    "UNIQUE (zoom_level, tile_column, tile_row))"
                )
                for zoom in zoom_levels:
                    width, height = 2 ** (zoom + 1), 2**zoom
                    conn.execute(
                        "INSERT INTO gpkg_tile_matrix VALUES (?, ?, ?, ?, 256, 256, ?, ?)",
                        (name, zoom, width, height, 180.0 / 256 / height, 180.0 / 256 / height),
                    )
                    # Only the coarse levels are fully populated
                    if zoom <= 2:
                        conn.executemany(
                            f'INSERT INTO "{name}" (zoom_level, tile_column, tile_row, tile_data) VALUES (?, ?, ?, ?)',
                            [
                                (zoom, column, row, f"{zoom}/{column}/{row}".encode())
                                for column in range(width)
                                for row in range(height)
                            ],
                        )
                    else:
                        conn.execute(
                            f'INSERT INTO "{name}" (zoom_level, tile_column, tile_row, tile_data) VALUES (?, 0, 0, ?)',
                            (zoom, f"{zoom}/0/0".encode()),
                        )
            conn.commit()
        finally:
            conn.close()
        return path

    return _make
