"""WMS capabilities retrieval client."""

import logging

import requests

from tilelayers.core.config import CONNECT_TIMEOUT, READ_TIMEOUT, WMS_CAPABILITIES_VERSION
from tilelayers.core.errors import SourceUnreachable
from tilelayers.models.wms_capabilities import WmsCapabilities
from tilelayers.utils.capabilities_parser import CapabilitiesParseError, parse_capabilities

logger = logging.getLogger(__name__)


class WmsClient:
    """Client for reading WMS capability documents.

    A single attempt is made per retrieval; retry policy belongs to the caller.
    """

    def __init__(self, connect_timeout: float = CONNECT_TIMEOUT, read_timeout: float = READ_TIMEOUT):
        """
        Initialize WMS client.

        Args:
            connect_timeout: Seconds to wait for the connection
            read_timeout: Seconds to wait between bytes of the response
        """
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout

    @staticmethod
    def capabilities_url(service_address: str) -> str:
        """
        Build the GetCapabilities request URL for a service address.

        Query parameters already present in the address are kept.

        Args:
            service_address: Base service URL

        Returns:
            Request URL
        """
        params = {
            "VERSION": WMS_CAPABILITIES_VERSION,
            "SERVICE": "WMS",
            "REQUEST": "GetCapabilities",
        }
        return requests.Request("GET", service_address, params=params).prepare().url

    def retrieve_capabilities(self, service_address: str) -> WmsCapabilities:
        """
        Fetch and parse the capabilities document of a service.

        Args:
            service_address: Base service URL

        Returns:
            Parsed capabilities

        Raises:
            SourceUnreachable: On any transport, HTTP status or parse failure
        """
        try:
            url = self.capabilities_url(service_address)
            logger.info(f"Requesting WMS capabilities: {url}")

            with requests.get(url, timeout=(self.connect_timeout, self.read_timeout)) as response:
                response.raise_for_status()
                capabilities = parse_capabilities(response.content)

        except (requests.RequestException, CapabilitiesParseError) as e:
            logger.warning(f"Error reading capabilities from {service_address}: {e}")
            raise SourceUnreachable(
                f"Unable to open connection and read from service address {service_address}: {e}"
            ) from e

        logger.debug(f"Retrieved WMS {capabilities.version} capabilities from {service_address}")
        return capabilities
