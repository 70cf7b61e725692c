from dataclasses import dataclass
from typing import Optional

from indexer_service.errors import ReaderRequestError
from indexer_service.logging import log
from indexer_service.reader.client import AsyncRpcClient
from indexer_service.types import Account, App, Block, Height, Node, Transaction

DEFAULT_DENOM = "upokt"


def _coins_amount(coins: list | None, denom: str = DEFAULT_DENOM) -> int:
    for coin in coins or []:
        if coin.get("denom") == denom:
            return int(coin.get("amount", 0))
    return 0


def _to_int(value, default: int = 0) -> int:
    if value is None or value == "":
        return default
    return int(value)


# -----------------------------
# ChainReader
# one node endpoint, typed views over its query API
# -----------------------------
class ChainReader:
    def __init__(
        self,
        name: str,
        url: str,
        client: AsyncRpcClient,
        *,
        page_size: int = 1000,
    ):
        self.name = name
        self.url = url
        self.client = client
        self.page_size = page_size

    def __repr__(self):
        return f"ChainReader(name={self.name!r}, url={self.url!r})"

    async def _query(self, path: str, payload: dict) -> dict:
        data, trace = await self.client.call(self.url, path, payload)
        log.debug(
            "reader_query",
            extra={
                "reader": self.name,
                "path": trace.path,
                "attempts": trace.attempts,
                "total_ms": round(trace.total_ms or 0, 1),
            },
        )
        if not isinstance(data, dict):
            raise ReaderRequestError(f"unexpected {path} response: {str(data)[:200]}")
        return data

    async def get_current_height(self) -> Height:
        data = await self._query("height", {})
        # error objects and syncing nodes answer without a height
        if data.get("height") in (None, ""):
            raise ReaderRequestError(f"no height in response: {str(data)[:200]}")
        return _to_int(data["height"])

    async def get_block(self, height: Height) -> Block:
        data = await self._query("block", {"height": height})
        header = (data.get("block") or {}).get("header") or {}
        if not header:
            raise ReaderRequestError(f"empty block at {height}")

        return Block(
            height=_to_int(header.get("height"), height),
            hash=(data.get("block_id") or {}).get("hash", ""),
            time=header.get("time", ""),
            proposer_address=header.get("proposer_address", ""),
            tx_count=_to_int(header.get("num_txs")),
        )

    async def get_transactions(self, height: Height) -> list[Transaction]:
        txs: list[Transaction] = []
        page = 1

        while True:
            data = await self._query(
                "blocktxs",
                {"height": height, "page": page, "per_page": self.page_size},
            )
            batch = data.get("txs") or []

            for raw in batch:
                result = raw.get("tx_result") or {}
                std_tx = raw.get("stdTx") or {}
                msg_value = (std_tx.get("msg") or {}).get("value") or {}

                txs.append(
                    Transaction(
                        hash=raw.get("hash", ""),
                        height=_to_int(raw.get("height"), height),
                        index=_to_int(raw.get("index")),
                        from_address=result.get("signer", ""),
                        to_address=result.get("recipient", ""),
                        message_type=result.get("message_type", ""),
                        fee=_coins_amount(std_tx.get("fee")),
                        amount=_to_int(msg_value.get("amount")),
                        result_code=_to_int(result.get("code")),
                    )
                )

            total = _to_int(data.get("total_txs"), len(txs))
            if not batch or len(txs) >= total:
                return txs
            page += 1

    async def _paged_result(self, path: str, height: Height) -> list[dict]:
        items: list[dict] = []
        page = 1

        while True:
            data = await self._query(
                path,
                {"height": height, "opts": {"page": page, "per_page": self.page_size}},
            )
            items.extend(data.get("result") or [])

            total_pages = _to_int(data.get("total_pages"), 1)
            if page >= total_pages:
                return items
            page += 1

    async def get_nodes(self, height: Height) -> list[Node]:
        return [
            Node(
                address=raw.get("address", ""),
                height=height,
                service_url=raw.get("service_url", ""),
                tokens=_to_int(raw.get("tokens")),
                jailed=bool(raw.get("jailed", False)),
                status=_to_int(raw.get("status")),
                public_key=raw.get("public_key", ""),
            )
            for raw in await self._paged_result("nodes", height)
        ]

    async def get_apps(self, height: Height) -> list[App]:
        return [
            App(
                address=raw.get("address", ""),
                height=height,
                public_key=raw.get("public_key", ""),
                staked_tokens=_to_int(raw.get("staked_tokens")),
                jailed=bool(raw.get("jailed", False)),
                status=_to_int(raw.get("status")),
            )
            for raw in await self._paged_result("apps", height)
        ]

    async def get_accounts(self, height: Height) -> list[Account]:
        accounts: list[Account] = []
        page = 1

        while True:
            data = await self._query(
                "accounts",
                {"height": height, "page": page, "per_page": self.page_size},
            )
            for raw in data.get("result") or []:
                accounts.append(
                    Account(
                        address=raw.get("address", ""),
                        height=height,
                        balance=_coins_amount(raw.get("coins")),
                    )
                )

            total_pages = _to_int(data.get("total_pages"), 1)
            if page >= total_pages:
                return accounts
            page += 1

    async def get_account(self, address: str, height: Height) -> Account:
        data = await self._query("account", {"address": address, "height": height})
        return Account(
            address=data.get("address") or address,
            height=height,
            balance=_coins_amount(data.get("coins")),
        )


@dataclass(frozen=True)
class ReaderPair:
    primary: ChainReader
    fallback: Optional[ChainReader] = None

    def readers(self) -> list[ChainReader]:
        return [r for r in (self.primary, self.fallback) if r is not None]

    def describe(self) -> dict:
        return {
            "main_node": self.primary.name,
            "fallback_node": self.fallback.name if self.fallback else None,
        }
