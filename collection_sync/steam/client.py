"""
Steam Workshop collection API client.

Handles form encoding, transport errors and response validation for the
collection endpoints. Session IDs and cookies are never logged.
"""

import json
import logging
from typing import Iterable, Optional, Union
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter

from .models import CollectionDetailsResponse, RemoveChildResult

logger = logging.getLogger(__name__)

FormValue = Union[str, int, list]


class SteamAPIError(Exception):
    """Base class for errors raised by the collection client."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransportError(SteamAPIError):
    """
    Raised when a call fails at the transport layer.

    Either the remote answered with a status other than 2xx or a redirect,
    or the request never completed (connection error, timeout).
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        aborted: bool = False,
    ):
        super().__init__(message, status_code=status_code)
        self.body = body
        self.aborted = aborted


class RemoteProtocolError(SteamAPIError):
    """Raised when the remote responded but reported a non-success status."""

    def __init__(self, message: str, identifier: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.identifier = identifier
        self.status = status


class MalformedResponseError(SteamAPIError):
    """Raised when a response body does not have the expected shape."""
    pass


class SteamCollectionClient:
    """
    Client for the Steam Workshop collection endpoints.

    Handles:
    - Batched collection detail lookups
    - Adding and removing collection children
    - Redirect responses (expired session) as soft no-ops

    One client is shared by the sync engine's worker threads. The session
    is not mutated after construction except by its cookie jar, which
    guards updates with its own lock. Keep ``pool_size`` at least as large
    as the number of worker threads.

    Usage:
        with SteamCollectionClient(cookies={"sessionid": "..."}) as client:
            details = client.fetch_collection_details(["123", "456"])
            client.add_child("123", "789", session_id="...")
    """

    # API endpoints
    COLLECTION_DETAILS_ENDPOINT = "/ISteamRemoteStorage/GetCollectionDetails/v1/"
    ADD_CHILD_ENDPOINT = "/sharedfiles/addchild"
    REMOVE_CHILD_ENDPOINT = "/sharedfiles/removechild"

    def __init__(
        self,
        api_base_url: str = "https://api.steampowered.com",
        community_base_url: str = "https://steamcommunity.com",
        timeout: float = 30.0,
        pool_size: int = 10,
        cookies: Optional[dict] = None,
    ):
        """
        Initialize collection client.

        Args:
            api_base_url: Base URL of the Web API host
            community_base_url: Base URL of the community host (mutations)
            timeout: Request timeout in seconds
            pool_size: Connection pool size, at least the number of worker threads
            cookies: Browser cookies for the community host (never logged)
        """
        self.api_base_url = api_base_url.rstrip("/")
        self.community_base_url = community_base_url.rstrip("/")
        self.timeout = timeout

        self._session = requests.Session()

        adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

        self._session.headers.update({
            "Accept": "application/json, text/plain, */*",
        })

        if cookies:
            self._session.cookies.update(cookies)

        logger.info(f"Collection client initialized for {self.api_base_url}")

    def __repr__(self) -> str:
        """Never expose cookies in repr."""
        return (
            f"SteamCollectionClient(api_base_url='{self.api_base_url}', "
            f"community_base_url='{self.community_base_url}')"
        )

    @staticmethod
    def encode_form(parameters: dict[str, FormValue]) -> list[tuple[str, str]]:
        """
        Convert parameters into form fields.

        List values are expanded into indexed keys (``key[0]``, ``key[1]``, ...),
        scalars are sent as-is.
        """
        fields: list[tuple[str, str]] = []

        for key, value in parameters.items():
            if isinstance(value, (list, tuple)):
                for index, element in enumerate(value):
                    fields.append((f"{key}[{index}]", str(element)))
            else:
                fields.append((key, str(value)))

        return fields

    def _post(self, base_url: str, endpoint: str, parameters: dict[str, FormValue]) -> str:
        """
        POST form-encoded parameters and return the response body.

        Returns:
            The body text for 2xx responses, an empty string for any 3xx

        Raises:
            TransportError: For any other status, or if the request did not complete
        """
        url = urljoin(base_url + "/", endpoint.lstrip("/"))

        try:
            response = self._session.post(
                url,
                data=self.encode_form(parameters),
                timeout=self.timeout,
                allow_redirects=False,
            )
        except requests.exceptions.RequestException as e:
            error_msg = f"Request to {endpoint} failed: {e}"
            logger.error(error_msg)
            raise TransportError(error_msg, aborted=True) from e

        if 300 <= response.status_code < 400:
            logger.warning(
                f"{endpoint} returned HTTP {response.status_code} "
                f"(Location: {response.headers.get('Location', '?')}); "
                f"the session has probably expired"
            )
            return ""

        if not 200 <= response.status_code < 300:
            error_msg = f"{endpoint} returned HTTP {response.status_code}"
            logger.error(error_msg)
            raise TransportError(
                error_msg,
                status_code=response.status_code,
                body=response.text,
            )

        return response.text

    @staticmethod
    def _parse_json(body: str, endpoint: str) -> dict:
        if not body:
            raise MalformedResponseError(f"{endpoint} returned an empty body")
        try:
            data = json.loads(body)
        except ValueError as e:
            raise MalformedResponseError(f"{endpoint} returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"{endpoint} returned {type(data).__name__}, expected an object"
            )
        return data

    def fetch_collection_details(self, collection_ids: Iterable[str]) -> CollectionDetailsResponse:
        """
        Fetch details of several collections in one call.

        Statuses are not interpreted here; callers decide what a
        non-success result means.

        Args:
            collection_ids: Published file IDs of the collections

        Returns:
            Parsed batch response

        Raises:
            TransportError: If the call failed
            MalformedResponseError: If the body does not match the schema
        """
        ids = [str(collection_id) for collection_id in collection_ids]
        logger.debug(f"Fetching details for {len(ids)} collection(s): {ids}")

        body = self._post(
            self.api_base_url,
            self.COLLECTION_DETAILS_ENDPOINT,
            {
                "collectioncount": len(ids),
                "publishedfileids": ids,
            },
        )
        data = self._parse_json(body, self.COLLECTION_DETAILS_ENDPOINT)

        try:
            return CollectionDetailsResponse.from_api_response(data)
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise MalformedResponseError(
                f"Unexpected GetCollectionDetails response: {e!r}"
            ) from e

    def add_child(self, collection_id: str, item_id: str, session_id: str) -> None:
        """
        Add an item to a collection.

        The response body carries no success flag that is inspected;
        only transport-level success matters.
        """
        logger.debug(f"Adding {item_id} to collection {collection_id}")

        self._post(
            self.community_base_url,
            self.ADD_CHILD_ENDPOINT,
            {
                "id": collection_id,
                "childid": item_id,
                "sessionid": session_id,
            },
        )

    def remove_child(
        self,
        collection_id: str,
        item_id: str,
        session_id: str,
    ) -> Optional[RemoveChildResult]:
        """
        Remove an item from a collection.

        Returns:
            Parsed result, or None when the call was redirected

        Raises:
            RemoteProtocolError: If the remote reported success != 1
            TransportError: If the call failed
            MalformedResponseError: If the body does not match the schema
        """
        logger.debug(f"Removing {item_id} from collection {collection_id}")

        body = self._post(
            self.community_base_url,
            self.REMOVE_CHILD_ENDPOINT,
            {
                "id": collection_id,
                "childid": item_id,
                "sessionid": session_id,
            },
        )
        if not body:
            return None

        data = self._parse_json(body, self.REMOVE_CHILD_ENDPOINT)
        try:
            result = RemoveChildResult.from_api_response(data)
        except (KeyError, ValueError, TypeError) as e:
            raise MalformedResponseError(f"Unexpected removechild response: {e!r}") from e

        if not result.ok:
            raise RemoteProtocolError(
                f"removechild returned success {result.success} for item {item_id}",
                identifier=item_id,
                status=result.success,
            )

        return result

    def close(self) -> None:
        """Close the HTTP session."""
        self._session.close()
        logger.debug("Collection client session closed")

    def __enter__(self) -> "SteamCollectionClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
