"""
ORACLE - Recorder Contract Source

Reads price history from the PriceRecorder contract over JSON-RPC.
"""

import asyncio
from typing import Any

import aiohttp
from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from web3 import AsyncWeb3, Web3
from web3.exceptions import (
    BadFunctionCallOutput,
    ContractCustomError,
    ContractLogicError,
    Web3Exception,
)

from shared import (
    ComponentLogger,
    IndexOutOfRangeError,
    InsufficientDataError,
    RawRecord,
    SourceCallError,
    SourceConfigError,
)
from shared.config import ChainConfig


_PRICE_DATA_COMPONENTS = [
    {"internalType": "uint256", "name": "price", "type": "uint256"},
    {"internalType": "int8", "name": "decimals", "type": "int8"},
    {"internalType": "uint64", "name": "timestamp", "type": "uint64"},
]

# Read-only subset of the PriceRecorder ABI
PRICE_RECORDER_ABI: list[dict[str, Any]] = [
    {
        "inputs": [
            {"internalType": "uint256", "name": "requested", "type": "uint256"},
            {"internalType": "uint256", "name": "available", "type": "uint256"},
        ],
        "name": "InsufficientData",
        "type": "error",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "n", "type": "uint256"}],
        "name": "getLastNPrices",
        "outputs": [
            {
                "components": _PRICE_DATA_COMPONENTS,
                "internalType": "struct PriceRecorder.PriceData[]",
                "name": "",
                "type": "tuple[]",
            }
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "name": "priceHistory",
        "outputs": _PRICE_DATA_COMPONENTS,
        "stateMutability": "view",
        "type": "function",
    },
]

# Transport failures worth retrying
_CALL_ERRORS = (Web3Exception, aiohttp.ClientError, OSError, asyncio.TimeoutError)

_INSUFFICIENT_DATA_SELECTOR = bytes(Web3.keccak(text="InsufficientData(uint256,uint256)")[:4])


def decode_insufficient_data(error: ContractCustomError) -> tuple[int, int] | None:
    """Return ``(requested, available)`` from an ``InsufficientData`` revert."""
    data = getattr(error, "data", None)
    if not isinstance(data, str):
        return None
    try:
        raw = bytes.fromhex(data.removeprefix("0x"))
    except ValueError:
        return None
    if raw[:4] != _INSUFFICIENT_DATA_SELECTOR:
        return None
    try:
        requested, available = abi_decode(["uint256", "uint256"], raw[4:])
    except DecodingError:
        return None
    return requested, available


class ContractPriceSource:
    """
    Price source backed by the PriceRecorder contract.

    Contract failures are translated into the source error taxonomy:
    the ``InsufficientData`` revert becomes ``InsufficientDataError``,
    an out-of-bounds ``priceHistory`` read becomes ``IndexOutOfRangeError``,
    a bad address or undecodable output becomes ``SourceConfigError``, and
    transport failures become ``SourceCallError``.
    """

    def __init__(self, contract: Any, address: str = "", timeout_s: float = 30.0):
        self.logger = ComponentLogger("ORACLE-CONTRACT")
        self.contract = contract
        self.address = address
        self.timeout_s = timeout_s

    @classmethod
    def connect(
        cls,
        rpc_url: str,
        address: str | None,
        timeout_s: float = 30.0,
    ) -> "ContractPriceSource":
        """Build a source for the contract at ``address``."""
        if not address:
            raise SourceConfigError("Contract address is not configured")
        try:
            checksum = AsyncWeb3.to_checksum_address(address)
        except ValueError as e:
            raise SourceConfigError(
                f"Invalid contract address: {address}", {"address": address}
            ) from e

        w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        contract = w3.eth.contract(address=checksum, abi=PRICE_RECORDER_ABI)
        return cls(contract, address=checksum, timeout_s=timeout_s)

    @classmethod
    def from_config(cls, config: ChainConfig) -> "ContractPriceSource":
        return cls.connect(config.rpc_url, config.contract_address, config.timeout_s)

    async def read_batch(self, count: int) -> list[RawRecord]:
        try:
            rows = await asyncio.wait_for(
                self.contract.functions.getLastNPrices(count).call(), self.timeout_s
            )
        except ContractCustomError as e:
            decoded = decode_insufficient_data(e)
            available = decoded[1] if decoded else None
            raise InsufficientDataError(requested=count, available=available) from e
        except ContractLogicError as e:
            # Reverts from a contract predating the custom error
            raise InsufficientDataError(requested=count) from e
        except BadFunctionCallOutput as e:
            raise self._config_error(e) from e
        except _CALL_ERRORS as e:
            raise SourceCallError(
                f"getLastNPrices({count}) failed: {e}", {"count": count}
            ) from e
        return [RawRecord.from_tuple(row) for row in rows]

    async def read_at(self, index: int) -> RawRecord:
        try:
            row = await asyncio.wait_for(
                self.contract.functions.priceHistory(index).call(), self.timeout_s
            )
        except ContractLogicError as e:
            raise IndexOutOfRangeError(index) from e
        except BadFunctionCallOutput as e:
            raise self._config_error(e) from e
        except _CALL_ERRORS as e:
            raise SourceCallError(
                f"priceHistory({index}) failed: {e}", {"index": index}
            ) from e
        return RawRecord.from_tuple(row)

    def _config_error(self, error: Exception) -> SourceConfigError:
        self.logger.error("Contract output could not be decoded", address=self.address)
        return SourceConfigError(
            f"No PriceRecorder contract at {self.address or 'the configured address'}: {error}",
            {"address": self.address},
        )
