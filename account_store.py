"""
账户注册表：维护账户、各账户的派生钱包以及当前账户指针。

所有公开操作在同一把锁内串行执行；每次成功修改后立即把完整注册表
写入持久化端口。写入失败时内存状态保持修改后的结果，并抛出携带
操作结果的 PersistenceError，调用方可以稍后调用 flush() 重试。
"""

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar, Union

from config import DEFAULT_ACCOUNT_NAME, DEFAULT_IMPORTED_ACCOUNT_NAME, get_chain_spec
from derivation import DerivationEngine
from errors import (
    AccountNotFoundError,
    DuplicateAccountError,
    InvalidMnemonicError,
    LastAccountError,
    PersistenceError,
    WalletError,
    WalletNotFoundError,
)
from mnemonic_service import MnemonicService
from models import Account, MnemonicPhrase, WalletRecord
from persistence import PersistencePort, dump_registry, parse_registry

log = logging.getLogger(__name__)

T = TypeVar("T")


def _utc_timestamp() -> str:
    """ISO-8601 UTC 时间，毫秒精度，以 Z 结尾。"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _new_account_id() -> str:
    return uuid.uuid4().hex


class AccountStore:
    """账户与钱包的唯一状态持有者。"""

    def __init__(
        self,
        persistence: PersistencePort,
        engine: Optional[DerivationEngine] = None,
        mnemonic_service: Optional[MnemonicService] = None,
        clock: Callable[[], str] = _utc_timestamp,
        id_factory: Callable[[], str] = _new_account_id,
    ) -> None:
        self._persistence = persistence
        self._engine = engine or DerivationEngine()
        self._mnemonics = mnemonic_service or MnemonicService()
        self._clock = clock
        self._id_factory = id_factory
        self._lock = threading.RLock()
        # dict 保持插入顺序，即账户创建顺序
        self._accounts: Dict[str, Account] = {}
        self._current_id: Optional[str] = None
        self._pending_save = False

    @classmethod
    def open(cls, persistence: PersistencePort, **kwargs: Any) -> "AccountStore":
        """创建注册表并从持久化端口加载已有数据。"""
        store = cls(persistence, **kwargs)
        store.load()
        return store

    # ------------------------- 查询 ------------------------- #
    @property
    def current_account_id(self) -> Optional[str]:
        return self._current_id

    @property
    def current_account(self) -> Optional[Account]:
        with self._lock:
            if self._current_id is None:
                return None
            return self._accounts[self._current_id]

    @property
    def pending_save(self) -> bool:
        """上一次写入是否失败、尚待重试。"""
        return self._pending_save

    def list_accounts(self) -> Tuple[Account, ...]:
        with self._lock:
            return tuple(self._accounts.values())

    def get_account(self, account_id: str) -> Account:
        with self._lock:
            return self._require(account_id)

    def list_wallets(self, account_id: str) -> Tuple[WalletRecord, ...]:
        """返回账户钱包的只读元组，顺序即派生顺序。"""
        with self._lock:
            return self._require(account_id).wallets

    def export_private_key(self, account_id: str, wallet_index: int) -> str:
        """按链编码导出指定钱包的私钥。"""
        with self._lock:
            wallets = self._require(account_id).wallets
            if isinstance(wallet_index, bool) or not isinstance(wallet_index, int):
                raise WalletNotFoundError(account_id, wallet_index)
            if not 0 <= wallet_index < len(wallets):
                raise WalletNotFoundError(account_id, wallet_index)
            return wallets[wallet_index].export_private_key()

    # ------------------------- 修改 ------------------------- #
    def create_account(self, mnemonic: Union[MnemonicPhrase, str], name: Optional[str] = None) -> Account:
        """以给定助记词新建账户并设为当前账户。"""
        with self._lock:
            phrase = self._mnemonics.parse(mnemonic)
            account = self._insert(phrase, name, DEFAULT_ACCOUNT_NAME)
            return self._commit(account)

    def import_account(self, phrase: str, name: Optional[str] = None) -> Account:
        """
        导入已有助记词。

        :raises InvalidMnemonicError: 助记词未通过校验
        :raises DuplicateAccountError: 已有账户使用相同助记词
        """
        with self._lock:
            if not self._mnemonics.validate(phrase):
                raise InvalidMnemonicError()
            candidate = self._mnemonics.parse(phrase)
            for existing in self._accounts.values():
                if existing.mnemonic == candidate:
                    raise DuplicateAccountError(existing.id)
            account = self._insert(candidate, name, DEFAULT_IMPORTED_ACCOUNT_NAME)
            log.info("已导入账户 %s", account.id)
            return self._commit(account)

    def switch_current(self, account_id: str) -> Account:
        with self._lock:
            account = self._require(account_id)
            self._current_id = account.id
            log.info("当前账户切换为 %s", account.id)
            return self._commit(account)

    def delete_account(self, account_id: str) -> None:
        """
        删除账户并擦除其钱包私钥。

        删除当前账户时，当前账户改为剩余账户中的第一个。
        """
        with self._lock:
            account = self._require(account_id)
            if len(self._accounts) == 1:
                raise LastAccountError(account_id)
            del self._accounts[account_id]
            if self._current_id == account_id:
                self._current_id = next(iter(self._accounts))
            for wallet in account.wallets:
                wallet.private_key.wipe()
            log.info("已删除账户 %s，当前账户 %s", account_id, self._current_id)
            self._commit(None)

    def add_wallet(self, account_id: str, chain_type: str) -> WalletRecord:
        """
        为账户派生下一个钱包。

        派生索引取账户现有钱包总数，各链共用同一计数。
        派生引擎的异常原样向上抛出，此时账户不变。
        """
        with self._lock:
            account = self._require(account_id)
            get_chain_spec(chain_type)
            index = account.next_derivation_index
            with self._mnemonics.to_seed(account.mnemonic) as seed:
                wallet = self._engine.derive(seed, chain_type, index)
            account.append_wallet(wallet)
            log.info("账户 %s 新增 %s 钱包 #%d %s", account.id, chain_type, index, wallet.address)
            return self._commit(wallet)

    # ------------------------- 持久化 ------------------------- #
    def flush(self) -> None:
        """重新写入当前内存状态，用于写入失败后的重试。"""
        with self._lock:
            self._commit(None)

    def load(self) -> None:
        """
        从持久化端口加载注册表，替换当前内存状态。

        文档中的每个钱包都会按账户助记词重新派生并与保存的地址、私钥比对，
        任何不一致都抛出 PersistenceError，且不修改当前状态。
        """
        with self._lock:
            blob = self._persistence.load_registry()
            if blob is None:
                log.debug("注册表为空，从空状态开始")
                return
            accounts, current_id = self._from_document(parse_registry(blob))
            self._accounts = accounts
            self._current_id = current_id
            self._pending_save = False
            log.info("已加载 %d 个账户", len(accounts))

    def to_document(self) -> Dict[str, Any]:
        """生成可 JSON 序列化的注册表文档，字段顺序固定。"""
        with self._lock:
            return {
                "accounts": [self._account_to_dict(account) for account in self._accounts.values()],
                "currentAccountId": self._current_id,
            }

    # ------------------------- 内部 ------------------------- #
    def _require(self, account_id: str) -> Account:
        try:
            return self._accounts[account_id]
        except (KeyError, TypeError):
            raise AccountNotFoundError(account_id) from None

    def _insert(self, phrase: MnemonicPhrase, name: Optional[str], default_name: str) -> Account:
        account_id = self._id_factory()
        while account_id in self._accounts:
            account_id = self._id_factory()
        name = (name or "").strip() or default_name.format(n=len(self._accounts) + 1)
        account = Account(id=account_id, name=name, mnemonic=phrase, created_at=self._clock())
        self._accounts[account_id] = account
        self._current_id = account_id
        log.info("已创建账户 %s（%s）", account_id, name)
        return account

    def _commit(self, result: T) -> T:
        try:
            self._persistence.save_registry(dump_registry(self.to_document()))
        except (PersistenceError, OSError) as exc:
            self._pending_save = True
            log.warning("注册表写入失败，内存状态已保留: %s", exc)
            raise PersistenceError(f"注册表写入失败: {exc}", result=result) from exc
        self._pending_save = False
        return result

    @staticmethod
    def _account_to_dict(account: Account) -> Dict[str, Any]:
        return {
            "id": account.id,
            "name": account.name,
            "mnemonic": account.mnemonic.phrase,
            "wallets": [
                {
                    "chainType": wallet.chain_type,
                    "derivationIndex": wallet.derivation_index,
                    "derivationPath": wallet.derivation_path,
                    "address": wallet.address,
                    "privateKey": wallet.export_private_key(),
                }
                for wallet in account.wallets
            ],
            "createdAt": account.created_at,
        }

    def _from_document(self, document: Dict[str, Any]) -> Tuple[Dict[str, Account], Optional[str]]:
        accounts: Dict[str, Account] = {}
        phrases: Dict[MnemonicPhrase, str] = {}
        for entry in document["accounts"]:
            account = self._account_from_dict(entry)
            if account.id in accounts:
                raise PersistenceError(f"注册表中账户 ID 重复: {account.id}")
            if account.mnemonic in phrases:
                raise PersistenceError(f"账户 {account.id} 与 {phrases[account.mnemonic]} 使用相同助记词")
            phrases[account.mnemonic] = account.id
            accounts[account.id] = account

        current_id = document.get("currentAccountId")
        if current_id not in accounts:
            current_id = next(iter(accounts), None)
            if current_id is not None:
                log.warning("注册表中的当前账户无效，改用第一个账户 %s", current_id)
        return accounts, current_id

    def _account_from_dict(self, entry: Any) -> Account:
        try:
            fields = {key: entry[key] for key in ("id", "name", "mnemonic", "wallets", "createdAt")}
        except (KeyError, TypeError) as exc:
            raise PersistenceError(f"账户记录缺少字段: {exc}") from exc
        for key in ("id", "name", "mnemonic", "createdAt"):
            if not isinstance(fields[key], str):
                raise PersistenceError(f"账户字段 {key} 必须为字符串")
        if not isinstance(fields["wallets"], list):
            raise PersistenceError("账户字段 wallets 必须为列表")

        account_id = fields["id"]
        try:
            phrase = self._mnemonics.parse(fields["mnemonic"])
        except InvalidMnemonicError as exc:
            raise PersistenceError(f"账户 {account_id} 的助记词无效") from exc

        account = Account(id=account_id, name=fields["name"], mnemonic=phrase, created_at=fields["createdAt"])
        if not fields["wallets"]:
            return account

        with self._mnemonics.to_seed(phrase) as seed:
            for position, stored in enumerate(fields["wallets"]):
                account.append_wallet(self._restore_wallet(account_id, seed, position, stored))
        return account

    def _restore_wallet(self, account_id: str, seed: Any, position: int, stored: Any) -> WalletRecord:
        """按保存的链类型与索引重新派生钱包，并与文档内容逐项核对。"""
        try:
            chain_type = stored["chainType"]
            index = stored["derivationIndex"]
            expected: List[Tuple[str, Any]] = [
                ("derivationPath", stored["derivationPath"]),
                ("address", stored["address"]),
                ("privateKey", stored["privateKey"]),
            ]
        except (KeyError, TypeError) as exc:
            raise PersistenceError(f"账户 {account_id} 的钱包 #{position} 缺少字段: {exc}") from exc
        if index != position:
            raise PersistenceError(f"账户 {account_id} 的钱包 #{position} 派生索引为 {index!r}，索引必须连续")

        try:
            wallet = self._engine.derive(seed, chain_type, index)
        except WalletError as exc:
            raise PersistenceError(f"账户 {account_id} 的钱包 #{position} 无法派生: {exc}") from exc

        actual = {
            "derivationPath": wallet.derivation_path,
            "address": wallet.address,
            "privateKey": wallet.export_private_key(),
        }
        for key, value in expected:
            if actual[key] != value:
                wallet.private_key.wipe()
                raise PersistenceError(f"账户 {account_id} 的钱包 #{position} 字段 {key} 与助记词派生结果不一致")
        return wallet
