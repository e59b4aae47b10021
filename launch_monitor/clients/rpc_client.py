"""
Solana HTTP JSON-RPC client

Implements the signature source and transaction fetcher used by the monitor
(getSignaturesForAddress and getTransaction with jsonParsed encoding).
"""

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp

from launch_monitor.core.logger import get_logger
from launch_monitor.core.models import ParsedInstruction, ParsedTransaction, SignatureInfo


logger = get_logger(__name__)


class RPCError(Exception):
    """Transport failure or JSON-RPC error response"""

    def __init__(self, method: str, message: str, code: Optional[int] = None):
        super().__init__(f"{method}: {message}")
        self.method = method
        self.code = code


def _account_address(entry: Any) -> Optional[str]:
    # jsonParsed returns {"pubkey": ...}; legacy encodings return the bare string
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        return entry.get("pubkey")
    return None


def parse_signatures(result: Optional[List[Dict]]) -> List[SignatureInfo]:
    """Convert a getSignaturesForAddress result, keeping RPC order"""
    signatures = []
    for item in result or []:
        if not isinstance(item, dict) or "signature" not in item:
            continue
        signatures.append(SignatureInfo(
            signature=item["signature"],
            block_time=item.get("blockTime")
        ))
    return signatures


def parse_transaction(signature: str, result: Optional[Dict]) -> Optional[ParsedTransaction]:
    """
    Convert a jsonParsed getTransaction result

    Returns:
        ParsedTransaction, or None when the node has no data or no meta
    """
    if not result or not result.get("meta"):
        return None

    meta = result["meta"]
    message = (result.get("transaction") or {}).get("message") or {}

    account_keys = [_account_address(k) or "" for k in message.get("accountKeys", [])]

    instructions = []
    for ix in message.get("instructions", []):
        program_id = ix.get("programId")
        if program_id is None and "programIdIndex" in ix:
            idx = ix["programIdIndex"]
            program_id = account_keys[idx] if idx < len(account_keys) else None
        if program_id is None:
            continue

        accounts = []
        for account in ix.get("accounts", []):
            # Non-parsed encodings list account indices instead of addresses
            if isinstance(account, int):
                if account < len(account_keys):
                    accounts.append(account_keys[account])
            else:
                accounts.append(str(account))

        instructions.append(ParsedInstruction(program_id=program_id, accounts=accounts))

    return ParsedTransaction(
        signature=signature,
        account_keys=account_keys,
        instructions=instructions,
        pre_balances=list(meta.get("preBalances") or []),
        post_balances=list(meta.get("postBalances") or []),
        fee=meta.get("fee") or 0,
        block_time=result.get("blockTime")
    )


class SolanaRPCClient:
    """Minimal aiohttp client for the two RPC calls the monitor needs"""

    def __init__(
        self,
        endpoint: str,
        timeout_s: float = 10.0,
        max_concurrent: int = 10,
        headers: Optional[Dict[str, str]] = None,
        commitment: str = "confirmed"
    ):
        """
        Args:
            endpoint: HTTP RPC endpoint (e.g., https://api.mainnet-beta.solana.com)
            timeout_s: Per-request timeout in seconds
            max_concurrent: Max in-flight requests
            headers: Extra HTTP headers (auth tokens for paid RPCs)
            commitment: Commitment level for getTransaction
        """
        self.endpoint = endpoint
        self.timeout_s = timeout_s
        self.headers = {"Content-Type": "application/json", **(headers or {})}
        self.commitment = commitment
        self.session: Optional[aiohttp.ClientSession] = None
        self.semaphore = asyncio.Semaphore(max_concurrent)
        self.request_count = 0

    async def start(self) -> None:
        """Open the HTTP session"""
        if self.session is None:
            self.session = aiohttp.ClientSession(headers=self.headers)

    async def stop(self) -> None:
        """Close the HTTP session"""
        if self.session is not None:
            await self.session.close()
            self.session = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    async def call(self, method: str, params: List[Any]) -> Any:
        """
        Make one JSON-RPC call

        Returns:
            The "result" member of the response

        Raises:
            RPCError: On HTTP errors, timeouts or a JSON-RPC error object
        """
        if self.session is None:
            await self.start()

        async with self.semaphore:
            self.request_count += 1
            payload = {
                "jsonrpc": "2.0",
                "id": self.request_count,
                "method": method,
                "params": params
            }

            try:
                async with self.session.post(
                    self.endpoint,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.timeout_s)
                ) as response:
                    if response.status != 200:
                        text = await response.text()
                        raise RPCError(method, f"HTTP {response.status}: {text[:200]}", code=response.status)
                    try:
                        data = await response.json(content_type=None)
                    except ValueError as e:
                        raise RPCError(method, f"invalid JSON response: {e}") from e
            except asyncio.TimeoutError as e:
                raise RPCError(method, f"timeout after {self.timeout_s}s") from e
            except aiohttp.ClientError as e:
                raise RPCError(method, str(e)) from e

        if not isinstance(data, dict):
            raise RPCError(method, f"unexpected response body: {str(data)[:200]}")

        if "error" in data and data["error"]:
            error = data["error"]
            if not isinstance(error, dict):
                raise RPCError(method, str(error))
            raise RPCError(method, error.get("message", str(error)), code=error.get("code"))

        return data.get("result")

    async def get_signatures_for_address(self, address: str, limit: int = 50) -> List[SignatureInfo]:
        """Recent signatures involving an address, most recent first"""
        result = await self.call("getSignaturesForAddress", [address, {"limit": limit}])
        return parse_signatures(result)

    async def get_parsed_transaction(self, signature: str) -> Optional[ParsedTransaction]:
        """Parsed transaction, or None if the node doesn't have it yet"""
        result = await self.call("getTransaction", [
            signature,
            {
                "encoding": "jsonParsed",
                "maxSupportedTransactionVersion": 0,
                "commitment": self.commitment
            }
        ])
        if result is None:
            logger.debug("transaction_not_found", signature=signature[:8])
        return parse_transaction(signature, result)
