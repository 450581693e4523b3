"""Configuration helpers for constructing negotiated WMS sessions."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import requests
from pydantic import BaseModel, Field

from ..typing import Credentials
from .wms import DEFAULT_MAX_PIXELS, DEFAULT_TIMEOUT, WMSService

LAYER_STYLE_SEPARATOR = "/"


class ServiceConfig(BaseModel):
    """Serializable configuration describing a GetMap session and its output."""

    url: str = Field(..., description="Base endpoint URL for the service")
    version: str = Field(default="", description="Requested WMS version, server default when empty")
    format: Optional[str] = Field(None, description="Image format, first advertised when unset")
    layers: List[str] = Field(
        default_factory=list,
        description="Layers as 'name' or 'name/style', first advertised layer when empty",
    )
    epsg: Optional[int] = Field(None, description="EPSG code of the requested bounding boxes")
    username: Optional[str] = Field(None, description="User for HTTP basic authentication")
    password: Optional[str] = Field(None, description="Password for HTTP basic authentication")
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, description="HTTP timeout in seconds")
    max_pixels: int = Field(default=DEFAULT_MAX_PIXELS, gt=0, description="Largest image (width * height) allowed")
    max_workers: int = Field(default=8, gt=0, description="Concurrent GetMap requests per batch")
    output_dir: Path = Field(default=Path("output"), description="Directory for fetched images")
    file_name: str = Field(default="example", description="Base name of fetched images")

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "ServiceConfig":
        """Convenience constructor mirroring high-level usage patterns."""

        return cls(url=url, **kwargs)

    # ------------------------------------------------------------------
    # Helper accessors
    # ------------------------------------------------------------------
    def credentials(self) -> Optional[Credentials]:
        if self.username is None:
            return None
        return (self.username, self.password or "")

    def layer_styles(self) -> Tuple[List[str], Dict[str, str]]:
        """Split ``layers`` into layer names and the styles requested per layer."""

        names: List[str] = []
        styles: Dict[str, str] = {}
        for entry in self.layers:
            parts = entry.split(LAYER_STYLE_SEPARATOR)
            names.append(parts[0])
            if len(parts) == 2 and parts[1]:
                styles[parts[0]] = parts[1]
        return names, styles

    def build_service(self, session: Optional[requests.Session] = None) -> WMSService:
        """
        Create a ``WMSService`` and apply every configured selection.

        Selections are applied in the order URL and version, format, layers,
        styles, EPSG. Unset values keep the server defaults.
        """

        service = WMSService(
            self.url,
            version=self.version,
            session=session,
            auth=self.credentials(),
            timeout=self.timeout,
            max_pixels=self.max_pixels,
        )
        if self.format:
            service.set_format(self.format)

        names, styles = self.layer_styles()
        if names:
            service.set_layers(*names)
        for layer, style in styles.items():
            service.set_style(layer, style)

        if self.epsg:
            service.set_epsg(self.epsg)
        return service
