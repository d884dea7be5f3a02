"""Shared test fixtures for the bulletin wallet test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from bulletin_wallet.btc.address import address_from_pubkey
from bulletin_wallet.btc.keys import PrivateKey
from bulletin_wallet.btc.network import MAINNET_PARAMS
from bulletin_wallet.btc.script import pay_to_address_script
from bulletin_wallet.btc.transaction import OutPoint
from bulletin_wallet.config.settings import DatabaseEngine
from bulletin_wallet.wallet.credits import Credit
from bulletin_wallet.wallet.keystore import Keystore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

# Secrets 1 and 2; their WIF and addresses are well-known vectors.
AUTHOR_KEY = PrivateKey((1).to_bytes(32, "big"))
OTHER_KEY = PrivateKey((2).to_bytes(32, "big"))
AUTHOR_WIF = "KwDiBf89QgGbjEhKnhXJuH7LrciVrZi3qYjgd9M7rFU73sVHnoWn"
AUTHOR_ADDRESS = "1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH"


def _make_credit(
    amount: int,
    *,
    key: PrivateKey = AUTHOR_KEY,
    n: int = 0,
    block_height: int = 100,
    txid_byte: str = "aa",
) -> Credit:
    """A P2PKH credit paying *key*'s address."""
    address = address_from_pubkey(key.public_key(), MAINNET_PARAMS)
    return Credit(
        outpoint=OutPoint(txid_byte * 32, n),
        amount=amount,
        pk_script=pay_to_address_script(address),
        block_height=block_height,
    )


@pytest.fixture
def make_credit():
    return _make_credit


@pytest.fixture
def author_key():
    return AUTHOR_KEY


@pytest.fixture
def other_key():
    return OTHER_KEY


@pytest.fixture
def params():
    return MAINNET_PARAMS


@pytest.fixture
def author():
    return address_from_pubkey(AUTHOR_KEY.public_key(), MAINNET_PARAMS)


@pytest.fixture
def other():
    return address_from_pubkey(OTHER_KEY.public_key(), MAINNET_PARAMS)


@pytest.fixture
def keystore():
    ks = Keystore(MAINNET_PARAMS)
    ks.import_key(AUTHOR_KEY)
    ks.import_key(OTHER_KEY)
    return ks


@pytest.fixture
def app_config(tmp_path):
    """Provide a test AppConfig with safe defaults."""
    from bulletin_wallet.config.settings import AppConfig, DatabaseConfig, PolicyConfig

    return AppConfig(
        debug=True,
        network="mainnet",
        wifs=[AUTHOR_WIF, OTHER_KEY.to_wif(MAINNET_PARAMS)],
        db=DatabaseConfig(
            engine=DatabaseEngine.SQLITE,
            dsn=f"sqlite+aiosqlite:///{tmp_path / 'wallet.db'}",
        ),
        policy=PolicyConfig(dust_amount=1000, fee_increment=10),
    )


@pytest.fixture
async def datastore(app_config) -> AsyncIterator:
    """An open datastore with all tables created."""
    from bulletin_wallet.store.datastore import Datastore
    from bulletin_wallet.store.models import Base

    ds = Datastore(app_config.db)
    await ds.open(base=Base)
    yield ds
    await ds.close()


@pytest.fixture
async def engine(app_config) -> AsyncIterator:
    """An initialized engine on a temporary SQLite file."""
    from bulletin_wallet.engine.client import WalletEngine

    eng = WalletEngine(app_config)
    await eng.initialize()
    yield eng
    await eng.close()
