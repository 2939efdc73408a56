"""测试共享夹具。"""

import itertools

import pytest

from account_store import AccountStore
from mnemonic_service import MnemonicService
from persistence import InMemoryRegistry
from wallet_service import WalletService

from vectors import FIXED_TIMESTAMP


class FailingRegistry(InMemoryRegistry):
    """可以切换为写入失败的内存存储。"""

    def __init__(self) -> None:
        super().__init__()
        self.fail = False

    def save_registry(self, blob: str) -> None:
        if self.fail:
            raise OSError("disk full")
        super().save_registry(blob)


@pytest.fixture
def mnemonic_service() -> MnemonicService:
    return MnemonicService()


@pytest.fixture
def registry() -> FailingRegistry:
    return FailingRegistry()


@pytest.fixture
def store_factory(mnemonic_service):
    """按给定存储构造注册表，账户 ID 与时间戳固定，便于断言。"""

    def make(registry):
        counter = itertools.count(1)
        return AccountStore(
            registry,
            mnemonic_service=mnemonic_service,
            clock=lambda: FIXED_TIMESTAMP,
            id_factory=lambda: f"acct-{next(counter)}",
        )

    return make


@pytest.fixture
def store(store_factory, registry) -> AccountStore:
    return store_factory(registry)


@pytest.fixture
def service(store, mnemonic_service) -> WalletService:
    return WalletService(store, mnemonic_service)
