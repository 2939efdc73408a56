"""钱包核心的异常类型，每类失败都有独立可区分的类型。"""

from typing import Any, Optional


class WalletError(Exception):
    """所有钱包核心异常的基类。"""


class InvalidMnemonicError(WalletError, ValueError):
    """助记词词数错误、含未知单词或校验和不匹配。"""

    def __init__(self, message: str = "助记词无效，请检查单词与顺序") -> None:
        super().__init__(message)


class InvalidSeedError(WalletError, ValueError):
    """种子长度不是 64 字节。"""

    def __init__(self, length: int) -> None:
        super().__init__(f"种子长度必须为 64 字节，实际为 {length} 字节")
        self.length = length


class UnsupportedChainError(WalletError, ValueError):
    """未支持的链类型。"""

    def __init__(self, chain_type: Any) -> None:
        super().__init__(f"未支持的链类型: {chain_type!r}")
        self.chain_type = chain_type


class InvalidDerivationIndexError(WalletError, ValueError):
    """派生索引不是 [0, 2^31) 范围内的整数。"""

    def __init__(self, index: Any) -> None:
        super().__init__(f"派生索引无效: {index!r}")
        self.index = index


class DerivationError(WalletError):
    """派生得到无效私钥（概率约 2^-127），该路径不可用。"""


class DuplicateAccountError(WalletError):
    """相同助记词已存在于其他账户中。"""

    def __init__(self, existing_id: str) -> None:
        super().__init__("该助记词对应的账户已存在")
        self.existing_id = existing_id


class AccountNotFoundError(WalletError, LookupError):
    """账户 ID 不存在。"""

    def __init__(self, account_id: Any) -> None:
        super().__init__(f"账户不存在: {account_id!r}")
        self.account_id = account_id


class WalletNotFoundError(WalletError, LookupError):
    """账户中不存在指定序号的钱包。"""

    def __init__(self, account_id: str, wallet_index: Any) -> None:
        super().__init__(f"账户 {account_id} 中不存在序号为 {wallet_index!r} 的钱包")
        self.account_id = account_id
        self.wallet_index = wallet_index


class LastAccountError(WalletError):
    """不能删除最后一个账户。"""

    def __init__(self, account_id: str) -> None:
        super().__init__("不能删除最后一个账户")
        self.account_id = account_id


class PersistenceError(WalletError):
    """注册表读写失败；内存状态不受影响，可重试。"""

    def __init__(self, message: str, result: Optional[Any] = None) -> None:
        super().__init__(message)
        self.result = result
