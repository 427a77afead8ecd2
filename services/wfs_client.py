# ============================================================================
# CLAUDE CONTEXT - WFS HTTP CLIENT
# ============================================================================
# STATUS: Service Layer - WFS 2.0.0 GetFeature client
# PURPOSE: Build and issue one GetFeature request per tile extent
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: WFSClient, WFSResponse, build_get_feature_params
# DEPENDENCIES: httpx (sync)
# PORTABLE: Yes - no config imports
# ============================================================================
"""
WFS HTTP Client Service (SYNC VERSION).

Issues WFS 2.0.0 GetFeature requests with JSON output for a bounding box.

Request behaviour:
- One HTTP GET per call, no automatic retry.
- A fresh httpx.Client per call with keep-alive disabled
  ("Connection: close"), so concurrent workers never share a connection.
- Non-2xx responses and network errors are returned as
  WFSResponse(success=False), never raised.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional

import httpx

if TYPE_CHECKING:
    from wfs_dump.models import BoundingBox

logger = logging.getLogger(__name__)

WFS_VERSION = "2.0.0"
JSON_OUTPUT_FORMAT = "application/json"


@dataclass
class WFSResponse:
    """Response wrapper for WFS GetFeature calls."""
    success: bool
    status_code: Optional[int] = None   # None for network-level failures
    content: Optional[bytes] = None
    content_type: Optional[str] = None
    error: Optional[str] = None
    url: Optional[str] = None

    @property
    def is_network_error(self) -> bool:
        return not self.success and self.status_code is None


def _format_coordinate(value: float) -> str:
    # Fixed-point, never exponent form; 12 decimals is finer than any tile edge
    text = f"{float(value):.12f}".rstrip("0")
    return text + "0" if text.endswith(".") else text


def build_get_feature_params(
    layer: str,
    extent: "BoundingBox",
    include_srsname: bool = True
) -> Dict[str, str]:
    """
    Query parameters for a GetFeature request.

    Args:
        layer: Feature type name (TYPENAME)
        extent: Tile extent, already in the requested CRS
        include_srsname: Also ask the server to return geometries in extent.epsg

    Returns:
        Ordered parameter mapping
    """
    bbox = ",".join(_format_coordinate(v) for v in extent.as_tuple())
    params = {
        "SERVICE": "WFS",
        "VERSION": WFS_VERSION,
        "REQUEST": "GetFeature",
        "TYPENAME": layer,
        "OUTPUTFORMAT": JSON_OUTPUT_FORMAT,
        "BBOX": f"{bbox},EPSG:{extent.epsg}",
    }
    if include_srsname:
        params["SRSNAME"] = f"EPSG:{extent.epsg}"
    return params


class WFSClient:
    """
    Sync HTTP client for a WFS endpoint (SYNC VERSION).

    Usage:
        client = WFSClient(base_url="https://example.com/geoserver/wfs")
        response = client.get_feature("topp:states", tile_extent)
        if response.success:
            payload = response.content
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 120.0,
        include_srsname: bool = True,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Initialize WFS client.

        Args:
            base_url: WFS endpoint URL (may already carry query parameters)
            timeout: Request timeout in seconds
            include_srsname: Send SRSNAME with every request
            transport: Optional httpx transport (tests use httpx.MockTransport)

        Raises:
            ValueError: If base_url is empty.
        """
        self.base_url = (base_url or "").strip()
        if not self.base_url:
            raise ValueError("WFSClient requires a base_url")
        self.timeout = timeout
        self.include_srsname = include_srsname
        self._transport = transport

    def _new_client(self) -> httpx.Client:
        """A dedicated client for one request; never reused."""
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
            headers={"Connection": "close"},
            limits=httpx.Limits(max_keepalive_connections=0),
            transport=self._transport
        )

    def build_url(self, layer: str, extent: "BoundingBox") -> str:
        """Full request URL, for logging and failure reports."""
        params = build_get_feature_params(layer, extent, self.include_srsname)
        return str(httpx.URL(self.base_url).copy_merge_params(params))

    def get_feature(self, layer: str, extent: "BoundingBox") -> WFSResponse:
        """
        Fetch all features of layer intersecting extent.

        Args:
            layer: Feature type name
            extent: Tile extent in the CRS to query

        Returns:
            WFSResponse with the raw body on success, or the failure reason
        """
        params = build_get_feature_params(layer, extent, self.include_srsname)

        try:
            with self._new_client() as client:
                response = client.get(self.base_url, params=params)
                url = str(response.request.url)

                if not response.is_success:
                    error_text = response.text[:500] if response.text else "Unknown error"
                    logger.debug(f"WFS returned {response.status_code} for {url}")
                    return WFSResponse(
                        success=False,
                        status_code=response.status_code,
                        error=f"WFS error: {error_text}",
                        url=url
                    )

                return WFSResponse(
                    success=True,
                    status_code=response.status_code,
                    content=response.content,
                    content_type=response.headers.get("content-type", ""),
                    url=url
                )

        except httpx.TimeoutException:
            return WFSResponse(
                success=False,
                error=f"WFS request timeout after {self.timeout}s",
                url=self.build_url(layer, extent)
            )
        except httpx.RequestError as e:
            return WFSResponse(
                success=False,
                error=f"WFS request error: {type(e).__name__}: {e}",
                url=self.build_url(layer, extent)
            )
