"""钱包服务：面向界面层的边界操作，组合助记词服务与账户注册表。"""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

from account_store import AccountStore
from config import default_registry_path
from mnemonic_service import MnemonicService
from models import Account, WalletRecord
from persistence import JsonFileRegistry, PersistencePort

log = logging.getLogger(__name__)


class WalletService:
    """
    单助记词多账户 HD 钱包的对外接口。

    界面层只需调用这里的方法，并按异常类型（见 errors 模块）给出提示。

    :param store: 已加载的账户注册表
    :param mnemonics: 助记词服务，应与 store 使用同一词表
    """

    def __init__(self, store: AccountStore, mnemonics: Optional[MnemonicService] = None) -> None:
        self.store = store
        self.mnemonics = mnemonics or MnemonicService()

    @classmethod
    def open(cls, persistence: PersistencePort) -> "WalletService":
        mnemonics = MnemonicService()
        store = AccountStore.open(persistence, mnemonic_service=mnemonics)
        return cls(store, mnemonics)

    @classmethod
    def open_file(cls, path: Optional[Union[str, Path]] = None) -> "WalletService":
        """以 JSON 文件作为存储打开服务，默认路径见 config.default_registry_path。"""
        registry_path = Path(path) if path else default_registry_path()
        log.debug("使用注册表文件 %s", registry_path)
        return cls.open(JsonFileRegistry(registry_path))

    # ------------------------- 助记词 ------------------------- #
    def generate_phrase(self) -> str:
        """生成新的 12 词助记词（尚未创建账户）。"""
        return self.mnemonics.generate().phrase

    def validate_phrase(self, phrase: str) -> bool:
        return self.mnemonics.validate(phrase)

    # ------------------------- 账户 ------------------------- #
    def create_account(self, name: Optional[str] = None) -> Account:
        """生成新助记词并以其创建账户，新账户成为当前账户。"""
        return self.store.create_account(self.mnemonics.generate(), name)

    def import_account(self, phrase: str, name: Optional[str] = None) -> Account:
        return self.store.import_account(phrase, name)

    def switch_account(self, account_id: str) -> Account:
        return self.store.switch_current(account_id)

    def delete_account(self, account_id: str) -> None:
        self.store.delete_account(account_id)

    def list_accounts(self) -> Tuple[Account, ...]:
        return self.store.list_accounts()

    @property
    def current_account(self) -> Optional[Account]:
        return self.store.current_account

    # ------------------------- 钱包 ------------------------- #
    def add_wallet(self, account_id: str, chain_type: str) -> WalletRecord:
        return self.store.add_wallet(account_id, chain_type)

    def list_wallets(self, account_id: str) -> Tuple[WalletRecord, ...]:
        return self.store.list_wallets(account_id)

    def export_private_key(self, account_id: str, wallet_index: int) -> str:
        return self.store.export_private_key(account_id, wallet_index)
