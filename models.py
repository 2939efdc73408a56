"""数据模型定义：助记词、按链区分的钱包记录与账户。"""

from dataclasses import dataclass, field
from typing import ClassVar, List, Optional, Tuple

from base58 import b58encode

from config import ChainType
from secret_bytes import SecretBytes


@dataclass(frozen=True)
class MnemonicPhrase:
    """已通过校验的助记词，创建后不可变。请通过 MnemonicService.parse 构造。"""

    words: Tuple[str, ...]

    @property
    def phrase(self) -> str:
        return " ".join(self.words)

    def __str__(self) -> str:
        return self.phrase

    def __repr__(self) -> str:
        # 避免在日志或异常中泄露助记词
        return f"MnemonicPhrase(<{len(self.words)} words>)"


@dataclass(frozen=True)
class WalletRecord:
    """
    单个派生钱包记录，由派生引擎创建，之后不可变。

    通过子类区分链类型（EthereumWallet / SolanaWallet），
    chain_type 为类级常量，不作为实例字段传入。
    """

    chain_type: ClassVar[str] = ""

    derivation_index: int
    derivation_path: str
    address: str
    public_key: Optional[bytes]
    private_key: SecretBytes = field(repr=False, hash=False)

    def export_private_key(self) -> str:
        """按链约定编码私钥，供导出与持久化。"""
        raise NotImplementedError


@dataclass(frozen=True)
class EthereumWallet(WalletRecord):
    """secp256k1 钱包：私钥为 32 字节标量，地址为 EIP-55 校验格式。"""

    chain_type: ClassVar[str] = ChainType.ETHEREUM

    def export_private_key(self) -> str:
        return "0x" + self.private_key.hex()


@dataclass(frozen=True)
class SolanaWallet(WalletRecord):
    """ed25519 钱包：私钥为 64 字节（种子 + 公钥），地址为公钥的 Base58。"""

    chain_type: ClassVar[str] = ChainType.SOLANA

    def export_private_key(self) -> str:
        return b58encode(self.private_key.reveal()).decode("ascii")


@dataclass
class Account:
    """
    账户：一条助记词及其按派生顺序排列的钱包列表。

    钱包列表只能追加，外部只能拿到元组视图；追加由 AccountStore 完成。
    """

    id: str
    name: str
    mnemonic: MnemonicPhrase
    created_at: str
    _wallets: List[WalletRecord] = field(default_factory=list, repr=False)

    @property
    def wallets(self) -> Tuple[WalletRecord, ...]:
        return tuple(self._wallets)

    @property
    def next_derivation_index(self) -> int:
        """下一个钱包的派生索引：账户内所有链共用一个计数。"""
        return len(self._wallets)

    def append_wallet(self, wallet: WalletRecord) -> None:
        """追加新派生的钱包，仅供 AccountStore 调用。"""
        if wallet.derivation_index != len(self._wallets):
            raise ValueError(
                f"派生索引不连续: 期望 {len(self._wallets)}，实际 {wallet.derivation_index}"
            )
        self._wallets.append(wallet)
