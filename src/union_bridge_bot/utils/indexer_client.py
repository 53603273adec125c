import json
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

PACKET_HASH_QUERY = """
query ($submission_tx_hash: String!) {
  v2_transfers(args: {p_transaction_hash: $submission_tx_hash}) {
    packet_hash
  }
}
"""


class IndexerClient:
    """Client for the Union GraphQL indexer.

    Looks up the packet hash the indexer correlated with a source chain
    transaction.
    """

    HEADERS: dict[str, str] = {
        'Content-Type': 'application/json',
        'User-Agent': 'Union-Auto-Bot',
    }

    def __init__(self, endpoint: str, timeout: float = 30.0) -> None:
        """Initialize the indexer client.

        Args:
            endpoint: GraphQL endpoint URL
            timeout: Timeout in seconds for each request
        """
        self.endpoint: str = endpoint
        self.timeout: float = timeout

    async def _graphql_post(self, query: str, variables: dict[str, Any]) -> Any:
        """Post a GraphQL query.

        Args:
            query: GraphQL query text
            variables: Query variables

        Returns:
            Decoded JSON response

        Raises:
            httpx.HTTPError: If the request fails
        """
        payload: dict[str, Any] = {"query": query, "variables": variables}

        async with httpx.AsyncClient(headers=self.HEADERS) as client:
            logger.debug(f"Posting to {self.endpoint}: {json.dumps(variables)}")
            response: httpx.Response = await client.post(self.endpoint, json=payload, timeout=self.timeout)
            response.raise_for_status()
            return response.json()

    async def query_packet_hash(self, transaction_id: str) -> str | None:
        """Fetch the packet hash for a submitted transaction.

        Args:
            transaction_id: Canonical ``0x``-prefixed transaction hash

        Returns:
            The packet hash, or None if the indexer has no record yet

        Raises:
            httpx.HTTPError: If the indexer cannot be reached
        """
        response = await self._graphql_post(
            PACKET_HASH_QUERY,
            {"submission_tx_hash": transaction_id}
        )

        match response:
            case {"data": {"v2_transfers": [{"packet_hash": str(packet_hash)}, *_]}} if packet_hash:
                return packet_hash
            case {"errors": errors}:
                logger.debug(f"Indexer returned errors: {errors}")
                return None
            case _:
                return None
