"""Integration tests for wmsget against a local WMS served by pytest-httpserver."""

from pathlib import Path

import pytest
from PIL import Image
from pytest_httpserver import HTTPServer
from werkzeug.wrappers import Request, Response

from wmsget.batch import fetch_batch, fetch_configured
from wmsget.dimensions import ExplicitDimensions
from wmsget.errors import BoundingBoxOutOfRangeError, ImageDecodeError, UnexpectedStatusError, WMSGetError
from wmsget.service.config import ServiceConfig
from wmsget.service.wms import WMSService


def _getmap_args(server: HTTPServer):
    return [request.args for request, _ in server.log if request.args.get("REQUEST") == "GetMap"]


@pytest.mark.integration
class TestLocalServer:
    """Negotiate and fetch against a local server."""

    def test_capabilities_request(self, wms_server: HTTPServer):
        service = WMSService(wms_server.url_for("/wms"), version="1.1.1")

        args = wms_server.log[0][0].args
        assert args["SERVICE"] == "WMS"
        assert args["REQUEST"] == "GetCapabilities"
        assert args["VERSION"] == "1.1.1"
        assert service.capabilities.title == "Scenario WMS"

    def test_expand_and_cut(self, wms_server: HTTPServer, tmp_path: Path):
        service = WMSService(wms_server.url_for("/wms"))
        service.set_epsg(3857)

        paths = fetch_batch(
            service,
            ["0,0,100,100"],
            width=100,
            height=100,
            expand=10,
            cut=True,
            file_name="tile",
            output_dir=tmp_path,
        )

        assert paths == [tmp_path / "tile.png"]
        with Image.open(paths[0]) as image:
            assert image.size == (100, 100)

        (args,) = _getmap_args(wms_server)
        assert args["WIDTH"] == "110"
        assert args["HEIGHT"] == "110"
        assert args["BBOX"] == "-5.0000000,-5.0000000,105.0000000,105.0000000"
        assert args["SRS"] == "EPSG:3857"

    def test_batch_writes_numbered_files(self, wms_server: HTTPServer, tmp_path: Path):
        service = WMSService(wms_server.url_for("/wms"))
        bboxes = ["0,0,1,1", "1,1,2,2", "2,2,3,3"]

        paths = fetch_batch(service, bboxes, width=32, height=16, file_name="tile", output_dir=tmp_path, max_workers=2)

        assert [path.name for path in paths] == ["01_tile.png", "02_tile.png", "03_tile.png"]
        for path in paths:
            with Image.open(path) as image:
                assert image.size == (32, 16)
        assert sorted(args["BBOX"] for args in _getmap_args(wms_server)) == [
            "0.0000000,0.0000000,1.0000000,1.0000000",
            "1.0000000,1.0000000,2.0000000,2.0000000",
            "2.0000000,2.0000000,3.0000000,3.0000000",
        ]

    def test_batch_raises_after_all_units_finish(self, wms_server: HTTPServer, tmp_path: Path):
        service = WMSService(wms_server.url_for("/wms"))
        bboxes = ["0,0,1,1", "170,0,190,10", "2,2,3,3"]

        with pytest.raises(BoundingBoxOutOfRangeError):
            fetch_batch(service, bboxes, width=8, height=8, output_dir=tmp_path)

    def test_scale_dpi_batch(self, wms_server: HTTPServer, tmp_path: Path):
        service = WMSService(wms_server.url_for("/wms"))

        (path,) = fetch_batch(service, ["0,0,1,1"], scale=100000, dpi=10, output_dir=tmp_path)

        (args,) = _getmap_args(wms_server)
        with Image.open(path) as image:
            assert image.size == (int(args["WIDTH"]), int(args["HEIGHT"]))
        assert 270 < int(args["WIDTH"]) < 295

    def test_configured_batch(self, wms_server: HTTPServer, tmp_path: Path):
        config = ServiceConfig.from_url(
            wms_server.url_for("/wms"),
            format="image/jpeg",
            layers=["base/default", "overlay"],
            epsg=3857,
            username="user",
            password="secret",
            output_dir=tmp_path,
            file_name="map",
        )

        paths = fetch_configured(config, ["0,0,1000,1000"], width=20, height=20)

        assert paths == [tmp_path / "map.jpeg"]
        with Image.open(paths[0]) as image:
            assert image.format == "JPEG"
        (args,) = _getmap_args(wms_server)
        assert args["LAYERS"] == "base,overlay"
        assert args["STYLES"] == "default,"
        assert args["FORMAT"] == "image/jpeg"
        for request, _ in wms_server.log:
            assert request.headers["Authorization"].startswith("Basic ")

    def test_reprojected_fetch_130(self, wms_130_server: HTTPServer):
        service = WMSService(wms_130_server.url_for("/wms"))
        service.set_epsg(4326)

        result = service.get_map(8.0, 50.0, 9.0, 51.0, ExplicitDimensions(64, 64))

        (args,) = _getmap_args(wms_130_server)
        assert args["VERSION"] == "1.3.0"
        assert args["CRS"] == "EPSG:25832"
        assert result.epsg == 25832
        assert service.epsg == 4326

    def test_unexpected_status(self, httpserver: HTTPServer):
        httpserver.expect_request("/broken").respond_with_data("boom", status=503)

        with pytest.raises(UnexpectedStatusError) as excinfo:
            WMSService(httpserver.url_for("/broken"))

        assert excinfo.value.code == 503

    def test_service_exception_with_status_200(
        self, httpserver: HTTPServer, capabilities_111_xml: str, tmp_path: Path
    ):
        def handler(request: Request) -> Response:
            if request.args.get("REQUEST") == "GetCapabilities":
                return Response(capabilities_111_xml, content_type="application/xml")
            return Response(
                "<ServiceExceptionReport><ServiceException>Layer not queryable</ServiceException></ServiceExceptionReport>",
                content_type="application/vnd.ogc.se_xml",
            )

        httpserver.expect_request("/wms").respond_with_handler(handler)
        service = WMSService(httpserver.url_for("/wms"))

        with pytest.raises(ImageDecodeError, match="ServiceExceptionReport") as excinfo:
            fetch_batch(service, ["0,0,1,1", "1,1,2,2"], width=8, height=8, output_dir=tmp_path)

        assert isinstance(excinfo.value, WMSGetError)
        assert len(_getmap_args(httpserver)) == 2
