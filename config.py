"""全局配置，提供链类型、派生路径模板、助记词参数与账户注册表文件路径。"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Tuple

from errors import UnsupportedChainError


class ChainType:
    """链类型字符串枚举，取值同时也是持久化文档中的 chainType 字段。"""

    ETHEREUM = "ethereum"
    SOLANA = "solana"

    ALL: Tuple[str, ...] = (ETHEREUM, SOLANA)


@dataclass(frozen=True)
class ChainSpec:
    """单条链的派生参数：币种常量、路径模板、曲线与私钥导出编码。"""

    name: str
    chain_type: str
    coin_type: int
    derivation_path_template: str
    curve: str
    private_key_encoding: str

    def path_for(self, index: int) -> str:
        """按模板填入派生索引。"""
        return self.derivation_path_template.format(index=index)


# BIP44 派生路径模板；以太坊末两级为非硬化
DERIVATION_PATH_TEMPLATE_ETH = "m/44'/60'/0'/0/{index}"
# ed25519 只支持硬化派生，Solana 路径全部硬化
DERIVATION_PATH_TEMPLATE_SOL = "m/44'/501'/0'/{index}'"

CHAIN_SPECS: Dict[str, ChainSpec] = {
    ChainType.ETHEREUM: ChainSpec(
        name="Ethereum",
        chain_type=ChainType.ETHEREUM,
        coin_type=60,
        derivation_path_template=DERIVATION_PATH_TEMPLATE_ETH,
        curve="secp256k1",
        private_key_encoding="hex",
    ),
    ChainType.SOLANA: ChainSpec(
        name="Solana",
        chain_type=ChainType.SOLANA,
        coin_type=501,
        derivation_path_template=DERIVATION_PATH_TEMPLATE_SOL,
        curve="ed25519",
        private_key_encoding="base58",
    ),
}


def get_chain_spec(chain_type: str) -> ChainSpec:
    """返回链参数；未知链类型抛出 UnsupportedChainError。"""
    try:
        return CHAIN_SPECS[chain_type]
    except (KeyError, TypeError):
        raise UnsupportedChainError(chain_type) from None


# 助记词：标准 BIP39 英文词表，12 词 / 128 位熵
MNEMONIC_LANGUAGE = "english"
MNEMONIC_WORD_COUNT = 12
MNEMONIC_STRENGTH = 128
SEED_LENGTH = 64

# BIP32 硬化索引起点
HARDENED_OFFSET = 0x80000000

# 默认账户名称，序号为当前账户数 + 1
DEFAULT_ACCOUNT_NAME = "Account {n}"
DEFAULT_IMPORTED_ACCOUNT_NAME = "Imported Account {n}"

# 账户注册表存储位置，可通过环境变量覆盖
REGISTRY_ENV_VAR = "HDWALLET_REGISTRY"
DEFAULT_REGISTRY_FILE = Path("hd_wallet_accounts.json")


def default_registry_path() -> Path:
    """返回注册表文件路径，环境变量优先。"""
    override = os.environ.get(REGISTRY_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return DEFAULT_REGISTRY_FILE
