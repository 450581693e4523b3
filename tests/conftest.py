"""
Shared test configuration, fixtures, and markers for wmsget tests.
"""

from io import BytesIO
from typing import Callable

import pytest
from PIL import Image
from pytest_httpserver import HTTPServer
from werkzeug.wrappers import Request, Response

from wmsget.ogc.capabilities import CapabilitiesParser
from wmsget.service.wms import WMSService
from wmsget.types import Capabilities


def pytest_configure(config):
    """Configure test markers."""
    config.addinivalue_line("markers", "property: marks property-based tests")
    config.addinivalue_line("markers", "unit: marks unit tests (fast, pure logic)")
    config.addinivalue_line("markers", "integration: marks tests against a local HTTP server")


CAPABILITIES_111 = """<?xml version="1.0" encoding="UTF-8"?>
<WMT_MS_Capabilities version="1.1.1">
  <Service>
    <Name>OGC:WMS</Name>
    <Title>Scenario WMS</Title>
    <Abstract>Base map for tests</Abstract>
  </Service>
  <Capability>
    <Request>
      <GetCapabilities>
        <Format>application/vnd.ogc.wms_xml</Format>
      </GetCapabilities>
      <GetMap>
        <Format>image/png</Format>
        <Format>image/jpeg</Format>
      </GetMap>
    </Request>
    <Layer>
      <Title>Root</Title>
      <SRS>EPSG:4326</SRS>
      <BoundingBox SRS="EPSG:4326" minx="-180" miny="-90" maxx="180" maxy="90"/>
      <BoundingBox SRS="EPSG:3857" minx="-20037508.34" miny="-20037508.34" maxx="20037508.34" maxy="20037508.34"/>
      <Layer>
        <Name>base</Name>
        <Title>Base map</Title>
        <Style><Name>default</Name><Title>Default</Title></Style>
        <BoundingBox SRS="EPSG:4326" minx="-180" miny="-90" maxx="180" maxy="90"/>
      </Layer>
      <Layer>
        <Name>overlay</Name>
        <Style><Name>dark</Name></Style>
        <Style><Name>light</Name></Style>
        <Layer>
          <Name>overlay:roads</Name>
        </Layer>
      </Layer>
    </Layer>
  </Capability>
</WMT_MS_Capabilities>
"""

CAPABILITIES_130 = """<?xml version="1.0" encoding="UTF-8"?>
<WMS_Capabilities version="1.3.0"
                  xmlns="http://www.opengis.net/wms"
                  xmlns:xlink="http://www.w3.org/1999/xlink">
  <Service>
    <Name>WMS</Name>
    <Title>Regional WMS</Title>
    <Abstract>Projected data only</Abstract>
  </Service>
  <Capability>
    <Request>
      <GetMap>
        <Format>image/png</Format>
        <Format>image/png</Format>
        <Format>image/gif</Format>
      </GetMap>
    </Request>
    <Layer>
      <Title>Root</Title>
      <CRS>EPSG:3857</CRS>
      <BoundingBox CRS="EPSG:3857" minx="-1000000" miny="-1000000" maxx="1000000" maxy="1000000"/>
      <BoundingBox CRS="CRS:84" minx="-10" miny="-10" maxx="10" maxy="10"/>
      <Layer queryable="1">
        <Name>regional</Name>
        <Title>Regional data</Title>
        <BoundingBox CRS="EPSG:25832" minx="200000" miny="5000000" maxx="900000" maxy="6500000"/>
      </Layer>
    </Layer>
  </Capability>
</WMS_Capabilities>
"""


@pytest.fixture
def capabilities_111_xml() -> str:
    return CAPABILITIES_111


@pytest.fixture
def capabilities_130_xml() -> str:
    return CAPABILITIES_130


@pytest.fixture
def capabilities_111() -> Capabilities:
    return CapabilitiesParser().decode(CAPABILITIES_111)


@pytest.fixture
def capabilities_130() -> Capabilities:
    return CapabilitiesParser().decode(CAPABILITIES_130)


@pytest.fixture
def offline_service(monkeypatch) -> Callable[[str], WMSService]:
    """Build sessions whose capabilities come from an in-memory document."""

    def build(document: str) -> WMSService:
        def fake_get_capabilities(self, url=None, version=None):
            return self.parser.decode(document)

        monkeypatch.setattr(WMSService, "get_capabilities", fake_get_capabilities)
        return WMSService("http://example.com/wms")

    return build


def png_bytes(width: int, height: int) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), "white").save(buffer, format="PNG")
    return buffer.getvalue()


def wms_handler(document: str) -> Callable[[Request], Response]:
    """Answer GetCapabilities with ``document`` and GetMap with a blank PNG of the requested size."""

    def handler(request: Request) -> Response:
        kind = request.args.get("REQUEST", "")
        if kind == "GetCapabilities":
            return Response(document, content_type="application/xml")
        if kind == "GetMap":
            width = int(request.args["WIDTH"])
            height = int(request.args["HEIGHT"])
            return Response(png_bytes(width, height), content_type="image/png")
        return Response("unsupported request", status=400)

    return handler


@pytest.fixture
def wms_server(httpserver: HTTPServer) -> HTTPServer:
    """Local WMS answering with the 1.1.1 scenario document."""
    httpserver.expect_request("/wms").respond_with_handler(wms_handler(CAPABILITIES_111))
    return httpserver


@pytest.fixture
def wms_130_server(httpserver: HTTPServer) -> HTTPServer:
    """Local WMS answering with the 1.3.0 document."""
    httpserver.expect_request("/wms").respond_with_handler(wms_handler(CAPABILITIES_130))
    return httpserver


@pytest.fixture
def make_png() -> Callable[[int, int], bytes]:
    return png_bytes
