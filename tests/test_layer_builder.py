"""Tests for the layer builder."""

import threading
from unittest.mock import MagicMock

import pytest

from tilelayers.core.errors import (
    CapacityExceeded,
    ConfigurationError,
    NegotiationFailed,
    SourceUnreachable,
    UnsupportedSource,
)
from tilelayers.core.layer_builder import LayerBuilder
from tilelayers.core.task_service import TaskService
from tilelayers.core.tile_factories import GpkgTileFactory, WmsTileFactory
from tilelayers.models.build_request import LayerCallback, SourceKind


class RecordingCallback:
    """Result callback recording results and the thread they arrive on."""

    def __init__(self):
        self.results = []
        self.threads = []

    def __call__(self, result):
        self.results.append(result)
        self.threads.append(threading.current_thread())


@pytest.fixture
def callback():
    return RecordingCallback()


@pytest.fixture
def builder(front, task_service):
    return LayerBuilder(front_context=front, task_service=task_service)


def _wait(front, callback, count=1):
    assert front.process_events_until(lambda: len(callback.results) >= count, timeout=10)


def _close_archives(layer):
    for image in layer.renderables:
        if isinstance(image.tile_factory, GpkgTileFactory):
            image.tile_factory.close()


@pytest.mark.parametrize(
    "configure, message",
    [
        (lambda b: b.set_source("GeoPackage").set_location("a.gpkg"), "Missing callback"),
        (lambda b: b.set_callback(print).set_location("a.gpkg"), "Missing layer source"),
        (lambda b: b.set_callback(print).set_source("Shapefile"), "Unsupported layer source: SHAPEFILE"),
        (lambda b: b.set_callback(print).set_source("GeoPackage"), "Missing GeoPackage path"),
        (
            lambda b: b.set_callback(print).set_source("WMS").set_location("http://example.test/wms"),
            "Missing WMS layer names",
        ),
        (lambda b: b.set_callback(print).set_source("WMS").set_sub_layer_names("a"), "Missing WMS service address"),
        (lambda b: b.set_callback(print).set_source("WmsLayerCapabilities"), "Missing WMS layer capabilities"),
    ],
)
def test_build_configuration_errors(configure, message):
    """Test invalid settings raise synchronously without scheduling work."""
    task_service = MagicMock()
    front = MagicMock()
    builder = LayerBuilder(front_context=front, task_service=task_service)

    configure(builder)
    with pytest.raises(ConfigurationError, match=message):
        builder.build()

    task_service.submit.assert_not_called()
    front.post.assert_not_called()


def test_configuration_error_is_value_error():
    """Test configuration errors can be handled as ValueError."""
    with pytest.raises(ValueError):
        LayerBuilder(front_context=MagicMock(), task_service=MagicMock()).build()


def test_source_names_are_case_insensitive(builder, callback, make_geopackage, front):
    """Test source names match regardless of case."""
    path = make_geopackage([{"name": "oceana"}])

    builder.set_source("geopackage").set_location(path).set_callback(callback)
    assert builder.source == SourceKind.GEOPACKAGE.value

    builder.build()
    _wait(front, callback)

    assert callback.results[0].succeeded
    _close_archives(callback.results[0].layer)


def test_build_geopackage(builder, callback, make_geopackage, front):
    """Test a GeoPackage layer is filled in on the front context."""
    path = make_geopackage([{"name": "oceana", "zoom_levels": range(10)}, {"name": "overview"}])

    layer = builder.set_source("GeoPackage").set_location(str(path)).set_callback(callback).build()

    assert layer.is_empty()
    assert layer.pick_enabled is False

    _wait(front, callback)

    result = callback.results[0]
    assert result.succeeded
    assert result.layer is layer
    assert result.builder is builder
    assert callback.threads == [threading.current_thread()]
    assert [image.display_name for image in layer.renderables] == ["oceana", "overview"]
    assert layer.renderables[0].level_set.num_levels == 10
    assert front.redraw_count == 1

    _close_archives(layer)


def test_build_geopackage_unsupported(builder, callback, make_geopackage, front):
    """Test archives without displayable tables fail through the callback."""
    path = make_geopackage([{"name": "mercator", "srs_id": 3857}])

    layer = builder.set_source("GeoPackage").set_location(path).set_callback(callback).build()
    _wait(front, callback)

    result = callback.results[0]
    assert not result.succeeded
    assert isinstance(result.error, UnsupportedSource)
    assert layer.is_empty()
    assert front.redraw_count == 0


def test_build_wms(builder, callback, wms_server, front):
    """Test a WMS layer is built from live capabilities."""
    wms_server.set_capabilities("wms_130_capabilities.xml")

    layer = (
        builder.set_source("WMS")
        .set_location(wms_server.address)
        .set_sub_layer_names(["MOD_LSTD_CLIM_M", "not_a_layer", "BlueMarbleNG-TB"])
        .set_callback(callback)
        .build()
    )
    _wait(front, callback)

    assert callback.results[0].succeeded
    assert layer.display_name == "Average Land Surface Temperature [Day],Blue Marble: Next Generation"
    assert layer.count() == 1

    image = layer.renderables[0]
    assert isinstance(image.tile_factory, WmsTileFactory)
    assert image.tile_factory.layer.layer_names == "MOD_LSTD_CLIM_M,BlueMarbleNG-TB"
    assert image.level_set.num_levels == 9
    assert front.redraw_count == 1


def test_build_wms_no_matching_layers(builder, callback, wms_server, front):
    """Test unknown layer names fail the build."""
    wms_server.set_capabilities("wms_130_capabilities.xml")

    builder.set_source("WMS").set_location(wms_server.address).set_sub_layer_names("missing")
    builder.set_callback(callback).build()
    _wait(front, callback)

    assert isinstance(callback.results[0].error, UnsupportedSource)


def test_build_wms_incompatible_version(builder, callback, wms_server, front):
    """Test an incompatible service version fails through the callback."""
    wms_server.set_capabilities("wms_200_capabilities.xml")

    layer = (
        builder.set_source("WMS")
        .set_location(wms_server.address)
        .set_sub_layer_names("future")
        .set_callback(callback)
        .build()
    )
    _wait(front, callback)

    result = callback.results[0]
    assert isinstance(result.error, NegotiationFailed)
    assert "2.0.0" in str(result.error)
    assert layer.is_empty()


def test_build_wms_unreachable(builder, callback, wms_server, front):
    """Test a failing service is reported through the callback."""
    wms_server.set_response(b"unavailable", status=503)

    builder.set_source("WMS").set_location(wms_server.address).set_sub_layer_names("a")
    builder.set_callback(callback).build()
    _wait(front, callback)

    assert isinstance(callback.results[0].error, SourceUnreachable)
    assert len(wms_server.requests) == 1


def test_build_precomputed_capabilities(builder, callback, capabilities_130, front):
    """Test precomputed capabilities build without network access or background work."""
    task_service = MagicMock()
    builder.task_service = task_service
    builder.wms_client = MagicMock()
    layer_capabilities = capabilities_130.get_layer_by_name("MOD_LSTD_CLIM_M")

    builder.set_source("WmsLayerCapabilities").set_precomputed_capabilities(layer_capabilities)
    layer = builder.set_callback(callback).build()

    task_service.submit.assert_not_called()
    builder.wms_client.retrieve_capabilities.assert_not_called()

    # Delivery still goes through the front context
    assert callback.results == []
    assert layer.is_empty()
    assert front.process_pending() == 1

    assert callback.results[0].succeeded
    assert layer.display_name == "Average Land Surface Temperature [Day]"
    assert layer.renderables[0].level_set.num_levels == 13


def test_build_precomputed_capabilities_failure(builder, callback, capabilities_130, front):
    """Test negotiation failures on the precomputed path reach the callback."""
    layers = capabilities_130.named_layers()

    builder.set_source("WmsLayerCapabilities").set_precomputed_capabilities(layers).set_callback(callback).build()
    front.process_pending()

    assert isinstance(callback.results[0].error, NegotiationFailed)


def test_build_capacity_exceeded(front, callback):
    """Test a saturated task service fails the build synchronously."""
    task_service = MagicMock()
    task_service.submit.side_effect = CapacityExceeded("full")
    builder = LayerBuilder(front_context=front, task_service=task_service)

    layer = builder.set_source("GeoPackage").set_location("unused.gpkg").set_callback(callback).build()

    assert len(callback.results) == 1
    assert isinstance(callback.results[0].error, CapacityExceeded)
    assert callback.results[0].layer is layer
    assert front.pending_count() == 0


def test_build_saturated_task_service(front, callback):
    """Test a build fails synchronously while a real worker pool is held busy."""
    task_service = TaskService(max_workers=1, max_pending=1)
    release = threading.Event()
    try:
        busy = task_service.submit(release.wait, 5)
        builder = LayerBuilder(front_context=front, task_service=task_service)

        layer = builder.set_source("GeoPackage").set_location("unused.gpkg").set_callback(callback).build()

        assert len(callback.results) == 1
        assert isinstance(callback.results[0].error, CapacityExceeded)
        assert callback.results[0].layer is layer
        assert callback.threads == [threading.current_thread()]
        assert layer.is_empty()
        assert front.pending_count() == 0

        release.set()
        busy.result(timeout=5)
    finally:
        release.set()
        task_service.shutdown(wait=True)


def test_builds_are_independent(builder, make_geopackage, front):
    """Test each build snapshots the settings at call time."""
    first_path = make_geopackage([{"name": "first"}], filename="first.gpkg")
    second_path = make_geopackage([{"name": "second"}], filename="second.gpkg")
    first_callback, second_callback = RecordingCallback(), RecordingCallback()

    builder.set_source("GeoPackage").set_location(first_path).set_callback(first_callback)
    first = builder.build()
    builder.set_location(second_path).set_callback(second_callback)
    second = builder.build()

    _wait(front, first_callback)
    _wait(front, second_callback)

    assert len(first_callback.results) == 1
    assert len(second_callback.results) == 1
    assert first.renderables[0].display_name == "first"
    assert second.renderables[0].display_name == "second"

    _close_archives(first)
    _close_archives(second)


def test_layer_callback_interface(builder, make_geopackage, front):
    """Test the two-method callback interface dispatches on the outcome."""

    class Callback(LayerCallback):
        def __init__(self):
            self.succeeded = []
            self.failed = []

        def creation_succeeded(self, builder, layer):
            self.succeeded.append(layer)

        def creation_failed(self, builder, layer, error):
            self.failed.append(error)

    good, bad = Callback(), Callback()
    path = make_geopackage([{"name": "oceana"}])

    builder.set_source("GeoPackage").set_location(path).set_callback(good).build()
    builder.set_location(path.parent / "missing.gpkg").set_callback(bad).build()

    assert front.process_events_until(lambda: good.succeeded and bad.failed, timeout=10)
    assert good.failed == []
    assert bad.succeeded == []
    assert isinstance(bad.failed[0], UnsupportedSource)

    _close_archives(good.succeeded[0])
