from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

Height = int

# first indexable height of the chain, used when the store is empty
GENESIS_HEIGHT: Height = 1


class TaskKind(str, Enum):
    BLOCK = "block"
    TRANSACTIONS = "transactions"
    NODES = "nodes"
    APPS = "apps"
    ACCOUNTS = "accounts"
    CALCULATED_FIELDS = "calculated_fields"


# one slot per kind, acquired together for every height in phase 1
PHASE1_KINDS = (
    TaskKind.BLOCK,
    TaskKind.ACCOUNTS,
    TaskKind.TRANSACTIONS,
    TaskKind.NODES,
    TaskKind.APPS,
)

# kinds whose result carries the account addresses seen at that height
DISCOVERY_KINDS = (TaskKind.NODES, TaskKind.APPS)


@dataclass(frozen=True)
class IndexingTask:
    kind: TaskKind
    height: Height
    address: Optional[str] = None
    compute_took: bool = True

    def describe(self) -> dict:
        fields = {"kind": self.kind.value, "height": self.height}
        if self.address:
            fields["address"] = self.address
        return fields


@dataclass
class TaskResult:
    task: IndexingTask
    ok: bool
    reader: Optional[str] = None
    addresses: list[str] = field(default_factory=list)
    error: Optional[BaseException] = None


# -----------------------------
# Run mode
# -----------------------------
@dataclass(frozen=True)
class Continuous:
    pass


@dataclass(frozen=True)
class Bounded:
    from_height: Height
    to_height: Height


RunMode = Union[Continuous, Bounded]


# -----------------------------
# Records written to the store
# -----------------------------
@dataclass
class Block:
    height: Height
    hash: str
    time: str
    proposer_address: str
    tx_count: int


@dataclass
class Transaction:
    hash: str
    height: Height
    index: int
    from_address: str
    to_address: str
    message_type: str
    fee: int
    amount: int
    result_code: int = 0


@dataclass
class Node:
    address: str
    height: Height
    service_url: str
    tokens: int
    jailed: bool
    status: int
    public_key: str = ""


@dataclass
class App:
    address: str
    height: Height
    public_key: str
    staked_tokens: int
    jailed: bool
    status: int


@dataclass
class Account:
    address: str
    height: Height
    balance: int


@dataclass
class CalculatedFields:
    height: Height
    accounts_quantity: int
    apps_quantity: int
    nodes_quantity: int
    took: Optional[int] = None
