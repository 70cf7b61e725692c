CREATE_TABLES = """
create table if not exists blocks (
    height            bigint primary key,
    hash              text not null,
    time              text not null,
    proposer_address  text not null,
    tx_count          integer not null default 0,
    accounts_quantity integer,
    apps_quantity     integer,
    nodes_quantity    integer,
    took              bigint,
    inserted_at       timestamptz not null default now()
);

create table if not exists transactions (
    hash          text primary key,
    height        bigint not null,
    index         integer not null,
    from_address  text not null,
    to_address    text not null,
    message_type  text not null,
    fee           numeric not null default 0,
    amount        numeric not null default 0,
    result_code   integer not null default 0
);
create index if not exists transactions_height_idx on transactions (height);

create table if not exists nodes (
    address      text not null,
    height       bigint not null,
    public_key   text not null default '',
    service_url  text not null,
    tokens       numeric not null default 0,
    jailed       boolean not null default false,
    status       integer not null default 0,
    primary key (address, height)
);
create index if not exists nodes_height_idx on nodes (height);

create table if not exists apps (
    address        text not null,
    height         bigint not null,
    public_key     text not null,
    staked_tokens  numeric not null default 0,
    jailed         boolean not null default false,
    status         integer not null default 0,
    primary key (address, height)
);
create index if not exists apps_height_idx on apps (height);

create table if not exists accounts (
    address  text not null,
    height   bigint not null,
    balance  numeric not null default 0,
    primary key (address, height)
);
create index if not exists accounts_height_idx on accounts (height);
"""

UPSERT_BLOCK = """
insert into blocks (height, hash, time, proposer_address, tx_count)
values (%s, %s, %s, %s, %s)
on conflict (height) do update set
    hash = excluded.hash,
    time = excluded.time,
    proposer_address = excluded.proposer_address,
    tx_count = excluded.tx_count
"""

UPSERT_TRANSACTIONS = """
insert into transactions
    (hash, height, index, from_address, to_address, message_type, fee, amount, result_code)
values %s
on conflict (hash) do update set
    height = excluded.height,
    index = excluded.index,
    from_address = excluded.from_address,
    to_address = excluded.to_address,
    message_type = excluded.message_type,
    fee = excluded.fee,
    amount = excluded.amount,
    result_code = excluded.result_code
"""

UPSERT_NODES = """
insert into nodes (address, height, public_key, service_url, tokens, jailed, status)
values %s
on conflict (address, height) do update set
    public_key = excluded.public_key,
    service_url = excluded.service_url,
    tokens = excluded.tokens,
    jailed = excluded.jailed,
    status = excluded.status
"""

UPSERT_APPS = """
insert into apps (address, height, public_key, staked_tokens, jailed, status)
values %s
on conflict (address, height) do update set
    public_key = excluded.public_key,
    staked_tokens = excluded.staked_tokens,
    jailed = excluded.jailed,
    status = excluded.status
"""

UPSERT_ACCOUNTS = """
insert into accounts (address, height, balance)
values %s
on conflict (address, height) do update set
    balance = excluded.balance
"""

UPDATE_CALCULATED_FIELDS = """
update blocks set
    accounts_quantity = %s,
    apps_quantity = %s,
    nodes_quantity = %s,
    took = %s
where height = %s
"""

SELECT_MAX_HEIGHT = "select max(height) from blocks"

SELECT_BLOCK = """
select height, hash, time, proposer_address, tx_count
from blocks
where height = %s
"""

COUNT_AT_HEIGHT = {
    "accounts": "select count(*) from accounts where height = %s",
    "apps": "select count(*) from apps where height = %s",
    "nodes": "select count(*) from nodes where height = %s",
}
