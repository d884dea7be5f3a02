"""WhatsOnChain REST client — chain tip and address UTXOs.

- GET /<network>/chain/info
- GET /<network>/address/<addr>/unspent
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from bulletin_wallet.errors.chain_errors import WoCError

if TYPE_CHECKING:
    from bulletin_wallet.btc.network import NetworkParams
    from bulletin_wallet.config.settings import WoCConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WoCChainInfo:
    """Chain tip from WhatsOnChain."""

    blocks: int
    best_block_hash: str


@dataclass(frozen=True)
class WoCUtxo:
    """A single UTXO from WhatsOnChain."""

    tx_hash: str
    tx_pos: int  # vout index
    value: int  # satoshis
    height: int  # 0 = unconfirmed


class WoCClient:
    """Async HTTP client for the WhatsOnChain API.

    Usage::

        woc = WoCClient(config, params)
        await woc.connect()
        try:
            info = await woc.chain_info()
            utxos = await woc.get_utxos("mxyz...")
        finally:
            await woc.close()
    """

    def __init__(self, config: WoCConfig, params: NetworkParams) -> None:
        self._config = config
        self._network = params.woc_name
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        headers = {"Accept": "application/json"}
        if self._config.api_key:
            headers["Authorization"] = self._config.api_key
        self._client = httpx.AsyncClient(
            base_url=f"{self._config.url.rstrip('/')}/{self._network}",
            headers=headers,
            timeout=self._config.timeout,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def chain_info(self) -> WoCChainInfo:
        """Current chain tip.

        Raises:
            WoCError: On HTTP errors or a malformed response.
        """
        data = await self._get_json("/chain/info")
        try:
            return WoCChainInfo(blocks=int(data["blocks"]), best_block_hash=data["bestblockhash"])
        except (KeyError, TypeError, ValueError) as exc:
            raise WoCError(f"Malformed chain info response: {exc}") from exc

    async def get_utxos(self, address: str) -> list[WoCUtxo]:
        """Unspent outputs of *address*.

        Raises:
            WoCError: On HTTP errors or a malformed response.
        """
        items = await self._get_json(f"/address/{address}/unspent")
        try:
            return [
                WoCUtxo(
                    tx_hash=item["tx_hash"],
                    tx_pos=item["tx_pos"],
                    value=item["value"],
                    height=item.get("height", 0),
                )
                for item in items
            ]
        except (KeyError, TypeError) as exc:
            raise WoCError(f"Malformed unspent response for {address}: {exc}") from exc

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _ensure_connected(self) -> httpx.AsyncClient:
        if self._client is None:
            msg = "WoCClient is not connected. Call connect() first."
            raise WoCError(msg, status_code=500)
        return self._client

    async def _get_json(self, path: str) -> Any:
        client = self._ensure_connected()
        try:
            resp = await client.get(path)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as exc:
            raise WoCError(
                f"WhatsOnChain GET {path} failed ({exc.response.status_code})"
            ) from exc
        except httpx.HTTPError as exc:
            raise WoCError(f"WhatsOnChain GET {path} failed: {exc}") from exc
        except ValueError as exc:
            raise WoCError(f"WhatsOnChain GET {path} returned invalid JSON") from exc
